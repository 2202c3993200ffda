"""Fact store integrity verification.

Integrity checks:
1. Foreign key violations (non-null references to missing rows)
2. Index drift (secondary index contents differ from the rows)
3. Vocabulary violations (tags outside the column's allowed set)
4. Counter drift (next id not past the largest stored id)

Used after bulk import and by tests. A failed report means the store must
not be analyzed further; rebuild it from source instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from blastradius.store.facts import FOREIGN_KEYS, TABLE_ORDER
from blastradius.store.models import (
    DIRECT_REFERENCE_TAGS,
    LOCALITY_TAGS,
    SERVICE_IMPACT_TAGS,
    ReferenceType,
)

if TYPE_CHECKING:
    from blastradius.store.facts import FactStore

# table -> {field: allowed tags}
_VOCABULARY: dict[str, dict[str, frozenset[ReferenceType]]] = {
    "test_steps": {
        "reference_type": LOCALITY_TAGS,
        "visibility": frozenset(
            {ReferenceType.PUBLIC_REFERENCE, ReferenceType.PRIVATE_REFERENCE}
        ),
    },
    "template_call_chains": {"reference_type": LOCALITY_TAGS},
    "direct_resource_references": {"reference_type": DIRECT_REFERENCE_TAGS},
    "indirect_config_references": {
        "reference_type": LOCALITY_TAGS,
        "service_impact": SERVICE_IMPACT_TAGS,
    },
}


@dataclass
class IntegrityIssue:
    """A single integrity issue detected."""

    category: str  # 'fk_violation', 'index_drift', 'vocabulary', 'counter_drift'
    table: str | None
    message: str
    count: int = 1

    def __str__(self) -> str:
        return f"{self.category}:{self.table}: {self.message} (x{self.count})"


@dataclass
class IntegrityReport:
    """Result of integrity verification."""

    passed: bool
    issues: list[IntegrityIssue] = field(default_factory=list)
    rows_checked: int = 0
    indexes_checked: int = 0

    def add_issue(self, issue: IntegrityIssue) -> None:
        """Add an issue and mark as failed."""
        self.issues.append(issue)
        self.passed = False


class IntegrityChecker:
    """Verifies that a fact store is internally consistent.

    Usage::

        report = IntegrityChecker(store).verify()
        if not report.passed:
            raise InterchangeError.integrity_violation([str(i) for i in report.issues])
    """

    def __init__(self, store: FactStore) -> None:
        self._store = store

    def verify(self) -> IntegrityReport:
        """Run all integrity checks and return report."""
        report = IntegrityReport(passed=True)

        self._check_foreign_keys(report)
        self._check_indexes(report)
        self._check_vocabulary(report)
        self._check_counters(report)

        return report

    def _check_foreign_keys(self, report: IntegrityReport) -> None:
        for name in TABLE_ORDER:
            table = self._store.table(name)
            for field_name, target_name in FOREIGN_KEYS[name].items():
                target = self._store.table(target_name)
                orphans = sum(
                    1
                    for record in table
                    if getattr(record, field_name) is not None
                    and getattr(record, field_name) not in target
                )
                if orphans:
                    report.add_issue(
                        IntegrityIssue(
                            category="fk_violation",
                            table=name,
                            message=f"{field_name} points to missing {target_name} rows",
                            count=orphans,
                        )
                    )
            report.rows_checked += len(table)

    def _check_indexes(self, report: IntegrityReport) -> None:
        for table in self._store.tables():
            for index in table.index_names:
                report.indexes_checked += 1
                actual = table.index_entries(index)
                expected = table.expected_index_entries(index)
                if actual == expected:
                    continue
                drift = sum(
                    1 for key in set(actual) | set(expected) if actual.get(key) != expected.get(key)
                )
                report.add_issue(
                    IntegrityIssue(
                        category="index_drift",
                        table=table.name,
                        message=f"index '{index}' disagrees with rows",
                        count=drift,
                    )
                )

    def _check_vocabulary(self, report: IntegrityReport) -> None:
        for name, columns in _VOCABULARY.items():
            table = self._store.table(name)
            for column, allowed in columns.items():
                bad = sum(1 for record in table if getattr(record, column) not in allowed)
                if bad:
                    report.add_issue(
                        IntegrityIssue(
                            category="vocabulary",
                            table=name,
                            message=f"{column} holds tags outside its vocabulary",
                            count=bad,
                        )
                    )

    def _check_counters(self, report: IntegrityReport) -> None:
        for table in self._store.tables():
            highest = max((record.id for record in table), default=0)
            if table.next_id <= highest:
                report.add_issue(
                    IntegrityIssue(
                        category="counter_drift",
                        table=table.name,
                        message=f"next id {table.next_id} does not exceed max id {highest}",
                    )
                )
