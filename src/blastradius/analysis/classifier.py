"""Three-stage reference classification.

Stage 1 (``classify_steps``): every pending test step gets a locality tag.

- anonymous closure                     -> ANONYMOUS_FUNCTION_REFERENCE
- struct (or helper) in the test's file -> SELF_CONTAINED
- anything else                         -> CROSS_FILE (possibly deferred)

Stage 2 (``sweep``): deferred CROSS_FILE steps get one more resolution
attempt via the enclosing test's struct; steps still without a struct
become EXTERNAL_REFERENCE. Anonymous steps are marked private.

Between stages 2 and 3, ``derive_indirect_references`` links every step
whose template reaches the target resource (directly or through template
call chains) to an indirect config reference. Only steps above the store's
watermark are considered, so repeated derivation never duplicates rows.

Stage 3 (``classify_service_impact``): each indirect reference is tagged
SAME_SERVICE / CROSS_SERVICE by comparing the test's service with the
resource's owning service, or EXTERNAL_REFERENCE when either is unknown.

Tags only move along ``LOCALITY_TRANSITIONS`` and
``SERVICE_IMPACT_TRANSITIONS``; anything else is a bug and
raises ``InternalError``.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

import structlog

from blastradius.analysis.patterns import ConfigStrategy
from blastradius.analysis.resolution import locate_template
from blastradius.config.models import AnalysisConfig
from blastradius.core.errors import InternalError
from blastradius.store import FactStore, ReferenceType, Struct, TestStep

logger = structlog.get_logger()

RT = ReferenceType

LOCALITY_TRANSITIONS: dict[ReferenceType, frozenset[ReferenceType]] = {
    RT.UNRESOLVED: frozenset(
        {RT.SELF_CONTAINED, RT.CROSS_FILE, RT.ANONYMOUS_FUNCTION_REFERENCE}
    ),
    RT.CROSS_FILE: frozenset({RT.SELF_CONTAINED, RT.CROSS_FILE, RT.EXTERNAL_REFERENCE}),
}

SERVICE_IMPACT_TRANSITIONS: dict[ReferenceType, frozenset[ReferenceType]] = {
    RT.UNRESOLVED: frozenset({RT.SAME_SERVICE, RT.CROSS_SERVICE, RT.EXTERNAL_REFERENCE}),
}


def check_transition(
    row_id: int,
    current: ReferenceType,
    target: ReferenceType,
    allowed: dict[ReferenceType, frozenset[ReferenceType]] = LOCALITY_TRANSITIONS,
) -> None:
    if target not in allowed.get(current, frozenset()):
        raise InternalError.invalid_transition(row_id, current.name, target.name)


def templates_reaching(store: FactStore, resource_id: int) -> set[int]:
    """Templates that mention the resource or call, transitively, one that does."""
    reached = {ref.template_function_id for ref in store.direct_references_for_resource(resource_id)}
    queue = deque(reached)
    while queue:
        template_id = queue.popleft()
        for chain in store.chains_to(template_id):
            if chain.source_template_id not in reached:
                reached.add(chain.source_template_id)
                queue.append(chain.source_template_id)
    return reached


@dataclass
class ClassificationStats:
    self_contained: int = 0
    cross_file: int = 0
    anonymous: int = 0
    deferred: int = 0
    retried: int = 0
    external: int = 0
    private: int = 0
    indirect_references: int = 0
    same_service: int = 0
    cross_service: int = 0
    service_unknown: int = 0


class ReferenceClassifier:
    """Runs the classification stages over one store.

    Usage::

        classifier = ReferenceClassifier(store, config.analysis)
        classifier.classify_steps()
        classifier.sweep()
        classifier.derive_indirect_references(resource_id)
        classifier.classify_service_impact(resource_id)
        classifier.stats
    """

    def __init__(self, store: FactStore, config: AnalysisConfig | None = None) -> None:
        self._store = store
        self._config = config or AnalysisConfig()
        self.stats = ClassificationStats()

    def _retag(self, step: TestStep, tag: ReferenceType) -> None:
        check_transition(step.id, step.reference_type, tag)
        self._store.set_step_reference_type(step.id, tag)

    def _resolve(self, step: TestStep, struct: Struct | None) -> None:
        """Record the struct, template and service a step points at."""
        store = self._store
        test = store.get_test_function(step.test_function_id)
        if struct is not None:
            template = locate_template(store, step.config_method, struct_id=struct.id)
        elif step.strategy == ConfigStrategy.HELPER_CALL.value or not step.config_variable:
            template = locate_template(
                store, step.config_method, file_id=test.file_id if test else None
            )
        else:
            template = None

        if struct is not None and struct.file_id is not None:
            service_id = store.file_service_id(struct.file_id)
        elif template is not None:
            service_id = store.file_service_id(template.file_id)
        else:
            service_id = None

        store.set_step_resolution(
            step.id,
            struct_id=struct.id if struct is not None else None,
            template_function_id=template.id if template is not None else None,
            service_id=service_id,
        )
        ref = store.template_reference_for_step(step.id)
        if ref is not None:
            store.set_template_reference_target(
                ref.id,
                struct_id=struct.id if struct is not None else None,
                template_function_id=template.id if template is not None else None,
            )

    # ------------------------------------------------------------------
    # Stage 1
    # ------------------------------------------------------------------

    def classify_steps(self) -> ClassificationStats:
        """Stage 1: tag every pending step by where its config comes from."""
        store = self._store
        for step in store.test_steps_by_reference_type(RT.UNRESOLVED):
            test = store.get_test_function(step.test_function_id)
            struct = store.find_struct(step.struct_name) if step.struct_name else None
            self._resolve(step, struct)
            resolved = store.get_test_step(step.id)
            template = store.get_template_function(resolved.template_function_id) if resolved else None

            if step.is_anonymous:
                tag = RT.ANONYMOUS_FUNCTION_REFERENCE
                self.stats.anonymous += 1
            elif struct is not None and struct.file_id is not None and test and struct.file_id == test.file_id:
                tag = RT.SELF_CONTAINED
                self.stats.self_contained += 1
            elif (
                struct is None
                and template is not None
                and template.struct_id is None
                and test is not None
                and template.file_id == test.file_id
            ):
                tag = RT.SELF_CONTAINED
                self.stats.self_contained += 1
            else:
                tag = RT.CROSS_FILE
                self.stats.cross_file += 1
                if struct is None:
                    self.stats.deferred += 1
            self._retag(step, tag)

        logger.info(
            "stage_one_complete",
            self_contained=self.stats.self_contained,
            cross_file=self.stats.cross_file,
            anonymous=self.stats.anonymous,
            deferred=self.stats.deferred,
        )
        return self.stats

    # ------------------------------------------------------------------
    # Stage 2
    # ------------------------------------------------------------------

    def _fallback_struct(self, step: TestStep) -> Struct | None:
        """The enclosing test's struct, for conventional receiver variables."""
        if step.config_variable not in self._config.struct_receiver_variables:
            return None
        test = self._store.get_test_function(step.test_function_id)
        if test is None:
            return None
        return self._store.get_struct(test.struct_id)

    def sweep(self) -> ClassificationStats:
        """Stage 2: retry deferred steps, externalize the rest, mark anonymous steps private."""
        store = self._store
        for step in store.test_steps_by_reference_type(RT.CROSS_FILE):
            if step.struct_id is not None:
                continue
            struct = self._fallback_struct(step)
            if struct is None:
                self._retag(step, RT.EXTERNAL_REFERENCE)
                self.stats.external += 1
                continue
            self._resolve(step, struct)
            self.stats.retried += 1
            test = store.get_test_function(step.test_function_id)
            if test is not None and struct.file_id is not None and struct.file_id == test.file_id:
                self._retag(step, RT.SELF_CONTAINED)
            else:
                self._retag(step, RT.CROSS_FILE)

        for step in store.test_steps_by_reference_type(RT.ANONYMOUS_FUNCTION_REFERENCE):
            if step.struct_id is None and (struct := self._fallback_struct(step)) is not None:
                self._resolve(step, struct)
            if step.visibility is not RT.PRIVATE_REFERENCE:
                store.set_step_visibility(step.id, RT.PRIVATE_REFERENCE)
                self.stats.private += 1

        logger.info(
            "stage_two_complete",
            retried=self.stats.retried,
            external=self.stats.external,
            private=self.stats.private,
        )
        return self.stats

    # ------------------------------------------------------------------
    # Indirect references
    # ------------------------------------------------------------------

    def derive_indirect_references(self, resource_id: int) -> int:
        """Link steps whose template reaches the resource; returns rows created."""
        store = self._store
        reaching = templates_reaching(store, resource_id)
        steps = store.steps_after(store.indirect_watermark)
        created = 0
        for step in steps:
            if step.template_function_id not in reaching:
                continue
            ref = store.template_reference_for_step(step.id)
            if ref is None:
                continue
            before = len(store.indirect_config_references)
            store.add_indirect_config_reference(
                step.id, ref.id, step.template_function_id, step.reference_type
            )
            created += len(store.indirect_config_references) - before
        if steps:
            store.indirect_watermark = steps[-1].id

        self.stats.indirect_references += created
        logger.info(
            "indirect_references_derived",
            created=created,
            templates=len(reaching),
            watermark=store.indirect_watermark,
        )
        return created

    # ------------------------------------------------------------------
    # Stage 3
    # ------------------------------------------------------------------

    def classify_service_impact(self, resource_id: int) -> ClassificationStats:
        """Stage 3: compare each impacted test's service with the resource's."""
        store = self._store
        owner = store.resource_service_id(resource_id)
        for ref in store.indirect_config_references_by_service_impact(RT.UNRESOLVED):
            step = store.get_test_step(ref.test_step_id)
            test = store.get_test_function(step.test_function_id) if step else None
            consumer = store.file_service_id(test.file_id) if test else None

            if owner is None or consumer is None:
                tag = RT.EXTERNAL_REFERENCE
                self.stats.service_unknown += 1
            elif owner == consumer:
                tag = RT.SAME_SERVICE
                self.stats.same_service += 1
            else:
                tag = RT.CROSS_SERVICE
                self.stats.cross_service += 1
            check_transition(ref.id, ref.service_impact, tag, SERVICE_IMPACT_TRANSITIONS)
            store.set_indirect_service_impact(ref.id, tag)

        logger.info(
            "stage_three_complete",
            same_service=self.stats.same_service,
            cross_service=self.stats.cross_service,
            unknown=self.stats.service_unknown,
        )
        return self.stats
