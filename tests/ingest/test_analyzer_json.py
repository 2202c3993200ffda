"""Tests for analyzer document validation and conversion."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from blastradius.config.models import AnalysisConfig
from blastradius.ingest.analyzer_json import AnalyzerDocument, load_analyzer_document
from blastradius.ingest.models import FunctionKind

DOCUMENT = {
    "file_path": "internal/services/network/vnet_test.go",
    "functions": [
        {"name": "TestAccVnet_basic", "is_test": True, "line": 10},
        {"name": "basic", "owning_type": "VnetResource", "line": 40},
        {"name": "template", "owning_type": "VnetResource", "line": 55},
        {"name": "sharedProvider", "line": 70},
    ],
    "test_steps": [
        {
            "source_function": "TestAccVnet_basic",
            "step_index": 1,
            "target_struct": "VnetResource",
            "target_method": "basic",
            "line": 14,
        },
        {
            "source_function": "TestAccVnet_basic",
            "step_index": 2,
            "target_method": "basic",
            "locality_hint": "Anonymous",
            "line": 18,
        },
    ],
    "template_calls": [
        {"source_function": "basic", "target_function": "template", "target_struct": "VnetResource"}
    ],
    "sequential_references": [
        {"entry_point": "TestAccVnet", "referenced_function": "testAccVnet_basic", "group": "vnet"}
    ],
    "direct_resource_references": [
        {
            "owning_template": "template",
            "resource_name": "example_vnet",
            "reference_kind": "resource_block",
            "line": 57,
        }
    ],
    "unknown_key": "ignored",
}


class TestAnalyzerDocument:
    """Document to extraction conversion."""

    def test_functions_and_structs(self) -> None:
        doc = AnalyzerDocument.model_validate(DOCUMENT)

        extraction = doc.to_extraction(AnalysisConfig(), "services")

        assert extraction.precomputed is True
        assert extraction.service == "network"
        assert [(f.name, f.kind) for f in extraction.functions] == [
            ("TestAccVnet_basic", FunctionKind.TEST),
            ("basic", FunctionKind.TEMPLATE),
            ("template", FunctionKind.TEMPLATE),
            ("sharedProvider", FunctionKind.HELPER),
        ]
        assert extraction.functions[0].prefix == "TestAcc"
        assert [(s.name, s.line) for s in extraction.structs] == [("VnetResource", 40)]

    def test_precomputed_facts(self) -> None:
        extraction = AnalyzerDocument.model_validate(DOCUMENT).to_extraction(
            AnalysisConfig(), "services"
        )

        assert [s.is_anonymous for s in extraction.steps] == [False, True]
        assert extraction.template_calls[0].target_struct == "VnetResource"
        assert extraction.sequential[0].referenced == "testAccVnet_basic"
        assert extraction.direct_refs[0].reference_kind == "resource_block"

    def test_explicit_service_wins(self) -> None:
        doc = AnalyzerDocument.model_validate({**DOCUMENT, "service": "networking"})

        assert doc.to_extraction(AnalysisConfig(), "services").service == "networking"

    def test_step_index_must_be_positive(self) -> None:
        bad = {
            "file_path": "a_test.go",
            "test_steps": [{"source_function": "TestAccA", "step_index": 0}],
        }

        with pytest.raises(ValidationError):
            AnalyzerDocument.model_validate(bad)


class TestLoadAnalyzerDocument:
    def test_valid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "vnet.json"
        path.write_text(json.dumps(DOCUMENT))

        extraction = load_analyzer_document(path, AnalysisConfig(), "services")

        assert extraction.error is None
        assert extraction.file_path == "internal/services/network/vnet_test.go"

    def test_invalid_document_reports_error(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"functions": []}))

        extraction = load_analyzer_document(path, AnalysisConfig(), "services")

        assert extraction.error is not None
        assert "invalid analyzer document" in extraction.error
        assert extraction.file_path == str(path)

    def test_missing_file_reports_error(self, tmp_path: Path) -> None:
        extraction = load_analyzer_document(tmp_path / "gone.json", AnalysisConfig(), "services")

        assert extraction.error is not None
        assert extraction.error.startswith("FileNotFoundError")
