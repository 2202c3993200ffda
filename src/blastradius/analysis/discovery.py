"""Reference discovery: turns ingested source into relationship rows.

For a target resource, discovery writes

- direct resource references from every template body that mentions it,
- template call chains from ``fmt.Sprintf`` composition, tagged by where
  the callee lives relative to the caller,
- one test step (pending classification) plus one template reference per
  ``Config``-bearing step of every test function.

Analyzer documents arrive with these facts precomputed; they are mapped
onto the same rows.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from blastradius.analysis.patterns import (
    ConfigStrategy,
    classify_direct_references,
    find_template_calls,
    find_test_steps,
)
from blastradius.analysis.resolution import (
    ConventionalConstructorInference,
    StructNameInference,
    StructResolver,
    locate_template,
)
from blastradius.config.constants import CONTEXT_MAX_CHARS
from blastradius.config.models import AnalysisConfig
from blastradius.ingest.models import FileExtraction, FunctionSource, SourceIndex
from blastradius.store import FactStore, ReferenceType, Resource, TemplateFunction

logger = structlog.get_logger()

_CHAIN_HINTS = {
    "self_contained": ReferenceType.SELF_CONTAINED,
    "cross_file": ReferenceType.CROSS_FILE,
    "embedded_self": ReferenceType.EMBEDDED_SELF,
}


@dataclass
class DiscoveryStats:
    direct_references: int = 0
    template_call_chains: int = 0
    unresolved_calls: int = 0
    test_steps: int = 0
    unmatched_steps: int = 0


def chain_locality(source: TemplateFunction, target: TemplateFunction) -> ReferenceType:
    """Locality of a template-to-template call."""
    if source.file_id != target.file_id:
        return ReferenceType.CROSS_FILE
    if source.struct_id is not None and source.struct_id == target.struct_id:
        return ReferenceType.EMBEDDED_SELF
    return ReferenceType.SELF_CONTAINED


def _reference_kind(kind: str) -> ReferenceType:
    normalized = kind.strip().lower().replace("_", "-")
    if normalized.startswith("resource"):
        return ReferenceType.RESOURCE_BLOCK
    if normalized.startswith("data"):
        return ReferenceType.DATA_SOURCE_BLOCK
    return ReferenceType.ATTRIBUTE_REFERENCE


class ReferenceDiscovery:
    """Writes discovery rows for one resource.

    Usage::

        discovery = ReferenceDiscovery(store, pipeline.sources, config.analysis)
        stats = discovery.discover(resource_id)
    """

    def __init__(
        self,
        store: FactStore,
        sources: SourceIndex,
        config: AnalysisConfig | None = None,
        inference: StructNameInference | None = None,
    ) -> None:
        self._store = store
        self._sources = sources
        self._config = config or AnalysisConfig()
        self._resolver = StructResolver(
            inference or ConventionalConstructorInference.from_config(self._config),
            sources.constructors,
        )

    def discover(self, resource_id: int) -> DiscoveryStats:
        resource = self._store.get_resource(resource_id)
        if resource is None:
            raise KeyError(resource_id)
        stats = DiscoveryStats()
        for template in self._sources.templates:
            self._discover_direct_references(template, resource, stats)
            self._discover_template_calls(template, stats)
        for test in self._sources.tests:
            self._discover_test_steps(test, stats)
        for file_id, extraction in self._sources.precomputed:
            self._apply_precomputed(file_id, extraction, resource, stats)

        logger.info(
            "discovery_complete",
            resource=resource.name,
            direct_references=stats.direct_references,
            chains=stats.template_call_chains,
            steps=stats.test_steps,
            unmatched_steps=stats.unmatched_steps,
        )
        return stats

    # ------------------------------------------------------------------
    # Source-backed discovery
    # ------------------------------------------------------------------

    def _discover_direct_references(
        self, template: FunctionSource, resource: Resource, stats: DiscoveryStats
    ) -> None:
        mentions = classify_direct_references(
            template.body,
            template.body_line,
            resource.name,
            self._config.assertion_exclusions,
        )
        for mention in mentions:
            if (
                self._store.add_direct_resource_reference(
                    template.record_id,
                    resource.id,
                    mention.kind,
                    context=mention.context,
                    context_line=mention.line,
                )
                is not None
            ):
                stats.direct_references += 1

    def _discover_template_calls(self, template: FunctionSource, stats: DiscoveryStats) -> None:
        source = self._store.get_template_function(template.record_id)
        if source is None:
            return
        for call in find_template_calls(template.body, template.body_line):
            struct_name = call.struct_name
            if call.variable:
                resolution = self._resolver.resolve(
                    call.variable,
                    template.body,
                    receiver_var=template.receiver_var,
                    receiver_type=template.receiver_type,
                )
                struct_name = resolution.struct_name if resolution else ""
                if not struct_name:
                    logger.debug(
                        "template_call_skipped", template=template.name, call=call.text
                    )
                    continue

            target = self._locate(call.method, struct_name, template.file_id)
            if target is None:
                stats.unresolved_calls += 1
                logger.warning(
                    "template_chain_unresolved",
                    template=template.name,
                    path=template.path,
                    call=call.text,
                )
                continue
            if target.id == source.id:
                continue
            if (
                self._store.add_template_call_chain(
                    source.id,
                    target.id,
                    chain_locality(source, target),
                    call_text=call.text,
                    line=call.line,
                )
                is not None
            ):
                stats.template_call_chains += 1

    def _locate(self, method: str, struct_name: str, file_id: int) -> TemplateFunction | None:
        if struct_name:
            struct = self._store.find_struct(struct_name)
            if struct is None:
                return None
            return locate_template(self._store, method, struct_id=struct.id)
        return locate_template(self._store, method, file_id=file_id)

    def _discover_test_steps(self, test: FunctionSource, stats: DiscoveryStats) -> None:
        for step in find_test_steps(test.body, test.body_line, self._config.step_packages):
            call = step.call
            struct_name = ""
            if call is None:
                stats.unmatched_steps += 1
                logger.warning(
                    "config_pattern_unmatched",
                    test=test.name,
                    path=test.path,
                    step=step.step_index,
                    expr=step.expr,
                )
            elif call.struct_name:
                struct_name = call.struct_name
            elif call.variable:
                resolution = self._resolver.resolve(call.variable, test.body)
                struct_name = resolution.struct_name if resolution else ""

            self._write_step(
                test.record_id,
                step.step_index,
                struct_name=struct_name,
                variable=call.variable if call else "",
                method=call.method if call else "",
                expr=step.expr,
                strategy=call.strategy.value if call else "",
                is_anonymous=call.is_anonymous if call else False,
                line=step.line,
                stats=stats,
            )

    def _write_step(
        self,
        test_function_id: int,
        step_index: int,
        *,
        struct_name: str,
        variable: str,
        method: str,
        expr: str,
        strategy: str,
        is_anonymous: bool,
        line: int,
        stats: DiscoveryStats,
    ) -> None:
        step_id = self._store.add_test_step(
            test_function_id,
            step_index,
            struct_name=struct_name,
            config_variable=variable,
            config_method=method,
            config_expr=expr,
            strategy=strategy,
            is_anonymous=is_anonymous,
            line=line,
        )
        if step_id is None:
            return
        stats.test_steps += 1
        self._store.add_template_reference(test_function_id, step_id, call_text=expr)

    # ------------------------------------------------------------------
    # Analyzer-supplied facts
    # ------------------------------------------------------------------

    def _template_in_file(self, file_id: int, name: str) -> TemplateFunction | None:
        for template in self._store.template_functions_named(name):
            if template.file_id == file_id:
                return template
        return None

    def _apply_precomputed(
        self,
        file_id: int,
        extraction: FileExtraction,
        resource: Resource,
        stats: DiscoveryStats,
    ) -> None:
        for ref in extraction.direct_refs:
            if ref.resource_name != resource.name:
                continue
            template = self._template_in_file(file_id, ref.owning_template)
            if template is None:
                logger.warning(
                    "direct_reference_owner_unknown",
                    path=extraction.file_path,
                    template=ref.owning_template,
                )
                continue
            if (
                self._store.add_direct_resource_reference(
                    template.id,
                    resource.id,
                    _reference_kind(ref.reference_kind),
                    context=ref.context[:CONTEXT_MAX_CHARS],
                    context_line=ref.line,
                )
                is not None
            ):
                stats.direct_references += 1

        for call in extraction.template_calls:
            source = self._template_in_file(file_id, call.source_function)
            target = self._locate(call.target_function, call.target_struct, file_id)
            if source is None or target is None:
                stats.unresolved_calls += 1
                logger.warning(
                    "template_chain_unresolved",
                    path=extraction.file_path,
                    template=call.source_function,
                    call=call.target_function,
                )
                continue
            tag = _CHAIN_HINTS.get(call.locality_hint.strip().lower()) or chain_locality(
                source, target
            )
            if (
                self._store.add_template_call_chain(source.id, target.id, tag, line=call.line)
                is not None
            ):
                stats.template_call_chains += 1

        for step in extraction.steps:
            test = self._store.find_test_function(file_id, step.source_function)
            if test is None:
                logger.warning(
                    "test_step_owner_unknown", path=extraction.file_path, test=step.source_function
                )
                continue
            if step.is_anonymous:
                strategy = ConfigStrategy.ANONYMOUS_CLOSURE
            elif step.target_struct:
                strategy = ConfigStrategy.STRUCT_LITERAL
            elif step.target_variable:
                strategy = ConfigStrategy.RECEIVER_METHOD
            else:
                strategy = ConfigStrategy.HELPER_CALL
            self._write_step(
                test.id,
                step.step_index,
                struct_name=step.target_struct,
                variable=step.target_variable,
                method=step.target_method,
                expr=step.config_expr,
                strategy=strategy.value,
                is_anonymous=step.is_anonymous,
                line=step.line,
                stats=stats,
            )
