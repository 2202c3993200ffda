"""Blast radius query over a classified fact store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from blastradius.analysis.classifier import templates_reaching
from blastradius.store import FactStore, ReferenceType


@dataclass(frozen=True)
class ImpactedTest:
    """One test step whose config reaches the resource."""

    test_function_id: int
    test_name: str
    file_path: str | None
    service: str | None
    step_index: int
    template_name: str
    locality: ReferenceType
    service_impact: ReferenceType
    visibility: ReferenceType


@dataclass(frozen=True)
class DirectMention:
    template_name: str
    file_path: str | None
    kind: ReferenceType
    context: str
    line: int


@dataclass
class BlastRadius:
    """Everything that depends on one resource."""

    resource: str
    owning_service: str | None
    impacted_tests: list[ImpactedTest] = field(default_factory=list)
    direct_mentions: list[DirectMention] = field(default_factory=list)
    # entry point name -> names of impacted tests it runs
    entry_points: dict[str, list[str]] = field(default_factory=dict)

    @property
    def tests(self) -> list[str]:
        return sorted({t.test_name for t in self.impacted_tests})

    @property
    def files(self) -> list[str]:
        return sorted({t.file_path for t in self.impacted_tests if t.file_path})

    @property
    def services(self) -> list[str]:
        return sorted({t.service for t in self.impacted_tests if t.service})

    def summary(self) -> dict[str, Any]:
        """Counts suitable for a log line or a report header."""
        by_locality: dict[str, int] = {}
        by_impact: dict[str, int] = {}
        for test in self.impacted_tests:
            by_locality[test.locality.label] = by_locality.get(test.locality.label, 0) + 1
            by_impact[test.service_impact.label] = by_impact.get(test.service_impact.label, 0) + 1
        return {
            "resource": self.resource,
            "owning_service": self.owning_service,
            "tests": len(self.tests),
            "files": len(self.files),
            "services": len(self.services),
            "direct_mentions": len(self.direct_mentions),
            "entry_points": len(self.entry_points),
            "by_locality": by_locality,
            "by_service_impact": by_impact,
        }


def compute_blast_radius(store: FactStore, resource_id: int) -> BlastRadius:
    """Assemble the blast radius of a resource from classified rows.

    Raises:
        KeyError: If ``resource_id`` is not in the store.
    """
    resource = store.get_resource(resource_id)
    if resource is None:
        raise KeyError(resource_id)

    def file_path(file_id: int | None) -> str | None:
        file = store.get_file(file_id)
        return file.path if file else None

    def service_name(service_id: int | None) -> str | None:
        service = store.get_service(service_id)
        return service.name if service else None

    radius = BlastRadius(
        resource=resource.name,
        owning_service=service_name(store.resource_service_id(resource_id)),
    )

    for ref in store.direct_references_for_resource(resource_id):
        template = store.get_template_function(ref.template_function_id)
        radius.direct_mentions.append(
            DirectMention(
                template_name=template.name if template else "",
                file_path=file_path(template.file_id) if template else None,
                kind=ref.reference_type,
                context=ref.context,
                line=ref.context_line,
            )
        )

    reaching = templates_reaching(store, resource_id)
    impacted_ids: set[int] = set()
    for ref in store.indirect_config_references:
        if ref.template_function_id not in reaching:
            continue
        step = store.get_test_step(ref.test_step_id)
        test = store.get_test_function(step.test_function_id) if step else None
        template = store.get_template_function(ref.template_function_id)
        if step is None or test is None:
            continue
        impacted_ids.add(test.id)
        radius.impacted_tests.append(
            ImpactedTest(
                test_function_id=test.id,
                test_name=test.name,
                file_path=file_path(test.file_id),
                service=service_name(store.file_service_id(test.file_id)),
                step_index=step.step_index,
                template_name=template.name if template else "",
                locality=ref.reference_type,
                service_impact=ref.service_impact,
                visibility=step.visibility,
            )
        )

    for test_id in sorted(impacted_ids):
        for seq in store.sequential_references_to(test_id):
            entry = store.get_test_function(seq.entry_test_function_id)
            test = store.get_test_function(test_id)
            if entry is None or test is None:
                continue
            runs = radius.entry_points.setdefault(entry.name, [])
            if test.name not in runs:
                runs.append(test.name)
    return radius
