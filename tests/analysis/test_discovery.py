"""Tests for reference discovery over ingested sources."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from blastradius.analysis.discovery import ReferenceDiscovery, chain_locality
from blastradius.analysis.patterns import ConfigStrategy
from blastradius.ingest import IngestionPipeline
from blastradius.store import FactStore, ReferenceType, TemplateFunction

RT = ReferenceType


def _ingest(store: FactStore, root: Path) -> IngestionPipeline:
    pipeline = IngestionPipeline(store)
    pipeline.ingest_tree(root)
    return pipeline


class TestChainLocality:
    @pytest.mark.parametrize(
        ("source", "target", "expected"),
        [
            (TemplateFunction(1, "a", 1, struct_id=1), TemplateFunction(2, "b", 2, struct_id=1), RT.CROSS_FILE),
            (TemplateFunction(1, "a", 1, struct_id=1), TemplateFunction(2, "b", 1, struct_id=1), RT.EMBEDDED_SELF),
            (TemplateFunction(1, "a", 1, struct_id=1), TemplateFunction(2, "b", 1, struct_id=2), RT.SELF_CONTAINED),
            (TemplateFunction(1, "a", 1), TemplateFunction(2, "b", 1), RT.SELF_CONTAINED),
        ],
    )
    def test_chain_locality(
        self, source: TemplateFunction, target: TemplateFunction, expected: ReferenceType
    ) -> None:
        assert chain_locality(source, target) == expected


class TestSourceDiscovery:
    """Direct references, chains and steps from Go sources."""

    def test_counts(self, store: FactStore, provider_repo: Path) -> None:
        pipeline = _ingest(store, provider_repo)
        resource_id = store.add_resource("widget_alpha")
        assert resource_id is not None

        stats = ReferenceDiscovery(store, pipeline.sources).discover(resource_id)

        assert stats.direct_references == 2
        assert stats.template_call_chains == 1
        assert stats.unresolved_calls == 0
        assert stats.test_steps == 8
        assert stats.unmatched_steps == 1

    def test_direct_reference_rows(self, store: FactStore, provider_repo: Path) -> None:
        pipeline = _ingest(store, provider_repo)
        resource_id = store.add_resource("widget_alpha")
        assert resource_id is not None

        ReferenceDiscovery(store, pipeline.sources).discover(resource_id)

        refs = store.direct_references_for_resource(resource_id)
        owners = {}
        for ref in refs:
            template = store.get_template_function(ref.template_function_id)
            assert template is not None
            owners[template.name] = ref
        assert set(owners) == {"Basic", "gadgetConfig"}
        assert owners["Basic"].reference_type is RT.RESOURCE_BLOCK
        assert owners["Basic"].context == 'resource "widget_alpha" "test" {'

    def test_embedded_chain(self, store: FactStore, provider_repo: Path) -> None:
        pipeline = _ingest(store, provider_repo)
        resource_id = store.add_resource("widget_alpha")
        assert resource_id is not None

        ReferenceDiscovery(store, pipeline.sources).discover(resource_id)

        (chain,) = store.template_call_chains_by_reference_type(RT.EMBEDDED_SELF)
        source = store.get_template_function(chain.source_template_id)
        target = store.get_template_function(chain.target_template_id)
        assert source is not None and target is not None
        assert (source.name, target.name) == ("Basic", "template")
        assert chain.call_text == "r.template(data)"

    def test_steps_start_pending_with_struct_names(
        self, store: FactStore, provider_repo: Path
    ) -> None:
        pipeline = _ingest(store, provider_repo)
        resource_id = store.add_resource("widget_alpha")
        assert resource_id is not None

        ReferenceDiscovery(store, pipeline.sources).discover(resource_id)

        steps = store.test_steps_by_reference_type(RT.UNRESOLVED)
        assert len(steps) == 8
        by_test: dict[str, list[str]] = {}
        for step in steps:
            test = store.get_test_function(step.test_function_id)
            assert test is not None
            by_test.setdefault(test.name, []).append(step.struct_name)
            assert store.template_reference_for_step(step.id) is not None
        assert by_test["TestAccWidgetAlpha_basic"] == ["WidgetAlphaResource"]
        assert by_test["TestAccWidgetBeta_withAlpha"] == ["WidgetAlphaResource", "WidgetBetaResource"]
        assert by_test["TestAccGadget_helper"] == ["", "", ""]

    def test_unknown_resource(self, store: FactStore, provider_repo: Path) -> None:
        pipeline = _ingest(store, provider_repo)

        with pytest.raises(KeyError):
            ReferenceDiscovery(store, pipeline.sources).discover(404)

    def test_unresolved_template_call(
        self, store: FactStore, write_tree: Callable[[dict[str, str]], Path]
    ) -> None:
        root = write_tree(
            {
                "internal/services/svc1/a_test.go": """package svc1

type AResource struct{}

func (r AResource) basic() string {
	return fmt.Sprintf(`%s`, missingHelper())
}
""",
            }
        )
        pipeline = _ingest(store, root)
        resource_id = store.add_resource("widget_alpha")
        assert resource_id is not None

        stats = ReferenceDiscovery(store, pipeline.sources).discover(resource_id)

        assert stats.unresolved_calls == 1
        assert len(store.template_call_chains) == 0


class TestPrecomputedDiscovery:
    """Analyzer documents map onto the same rows."""

    def test_analyzer_facts(self, store: FactStore, tmp_path: Path) -> None:
        doc = tmp_path / "widget.json"
        doc.write_text(
            json.dumps(
                {
                    "file_path": "internal/services/svc1/widget_test.go",
                    "functions": [
                        {"name": "TestAccWidget_basic", "is_test": True, "line": 5},
                        {"name": "basic", "owning_type": "WidgetResource", "line": 20},
                        {"name": "template", "owning_type": "WidgetResource", "line": 40},
                    ],
                    "test_steps": [
                        {
                            "source_function": "TestAccWidget_basic",
                            "step_index": 1,
                            "target_struct": "WidgetResource",
                            "target_method": "basic",
                        },
                        {
                            "source_function": "TestAccWidget_basic",
                            "step_index": 2,
                            "target_variable": "r",
                            "target_method": "basic",
                            "locality_hint": "closure",
                        },
                        {"source_function": "TestAccUnknown", "step_index": 1},
                    ],
                    "template_calls": [
                        {
                            "source_function": "basic",
                            "target_function": "template",
                            "target_struct": "WidgetResource",
                        }
                    ],
                    "direct_resource_references": [
                        {
                            "owning_template": "template",
                            "resource_name": "widget",
                            "reference_kind": "data_source_block",
                            "context": 'data "widget" "x" {',
                            "line": 42,
                        },
                        {
                            "owning_template": "template",
                            "resource_name": "other",
                            "reference_kind": "resource_block",
                        },
                    ],
                }
            )
        )
        pipeline = IngestionPipeline(store)
        pipeline.ingest_documents([doc])
        resource_id = store.add_resource("widget")
        assert resource_id is not None

        stats = ReferenceDiscovery(store, pipeline.sources).discover(resource_id)

        assert stats.direct_references == 1
        assert stats.template_call_chains == 1
        assert stats.test_steps == 2
        (ref,) = store.direct_references_for_resource(resource_id)
        assert ref.reference_type is RT.DATA_SOURCE_BLOCK
        assert ref.context_line == 42
        (chain,) = list(store.template_call_chains)
        assert chain.reference_type is RT.EMBEDDED_SELF
        strategies = sorted(s.strategy for s in store.test_steps)
        assert strategies == sorted(
            [ConfigStrategy.STRUCT_LITERAL.value, ConfigStrategy.ANONYMOUS_CLOSURE.value]
        )
