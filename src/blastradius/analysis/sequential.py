"""Resolution of sequential orchestration references.

Runs single-threaded after ingestion, once every test function is in the
store. Each (entry point, group, key, referenced name) fact becomes one
``SequentialReference`` row; the referenced name is looked up in

1. the entry point's own file,
2. the entry point's service,
3. the whole store (file-backed functions first),

and when nothing matches a file-less placeholder test function is created
(tagged EXTERNAL_REFERENCE) and reused by later references to that name.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from blastradius.ingest.models import SequentialFact
from blastradius.store import FactStore, ReferenceType, TestFunction

logger = structlog.get_logger()


@dataclass
class SequentialStats:
    references: int = 0
    placeholders: int = 0
    entry_points: int = 0
    referenced: int = 0


class SequentialResolver:
    """Turns sequential facts into reference rows and back-fills test tags."""

    def __init__(self, store: FactStore) -> None:
        self._store = store

    def _lookup(self, name: str, entry: TestFunction) -> TestFunction | None:
        store = self._store
        if entry.file_id is not None:
            same_file = store.find_test_function(entry.file_id, name)
            if same_file is not None:
                return same_file

        candidates = store.test_functions_named(name)
        if not candidates:
            return None
        service_id = store.file_service_id(entry.file_id)
        if service_id is not None:
            for candidate in candidates:
                if candidate.file_id is not None and store.file_service_id(candidate.file_id) == service_id:
                    return candidate
        file_backed = [c for c in candidates if c.file_id is not None]
        return (file_backed or candidates)[0]

    def _placeholder(self, name: str, stats: SequentialStats) -> int | None:
        placeholder_id = self._store.add_test_function(
            name, None, reference_type=ReferenceType.EXTERNAL_REFERENCE
        )
        if placeholder_id is not None:
            stats.placeholders += 1
        return placeholder_id

    def resolve(self, pending: list[tuple[int, SequentialFact]]) -> SequentialStats:
        """Write references for ``(entry test function id, fact)`` pairs."""
        store = self._store
        stats = SequentialStats()
        entries: set[int] = set()
        referenced: set[int] = set()

        for entry_id, fact in pending:
            entry = store.get_test_function(entry_id)
            if entry is None:
                logger.warning("sequential_entry_point_missing", id=entry_id)
                continue
            target = self._lookup(fact.referenced, entry)
            if target is None:
                logger.warning(
                    "sequential_reference_unresolved",
                    entry_point=entry.name,
                    group=fact.group,
                    key=fact.key,
                    referenced=fact.referenced,
                )
                target_id = self._placeholder(fact.referenced, stats)
                if target_id is None:
                    continue
            else:
                target_id = target.id

            before = len(store.sequential_references)
            if store.add_sequential_reference(
                entry_id, target_id, fact.group, fact.key, line=fact.line
            ) is None:
                continue
            stats.references += len(store.sequential_references) - before
            entries.add(entry_id)
            referenced.add(target_id)

        for test_id in sorted(referenced - entries):
            test = store.get_test_function(test_id)
            if test is None or test.file_id is None:
                continue
            store.set_test_function_reference_type(test_id, ReferenceType.SEQUENTIAL_REFERENCE)
            stats.referenced += 1
        for test_id in sorted(entries):
            store.mark_sequential_entry_point(test_id)
            stats.entry_points += 1

        logger.info(
            "sequential_references_resolved",
            references=stats.references,
            entry_points=stats.entry_points,
            placeholders=stats.placeholders,
        )
        return stats
