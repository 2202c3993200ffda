"""Documents produced by an external structural analyzer.

An analyzer emits one JSON document per source file. Documents are
validated with pydantic and converted into the same ``FileExtraction``
shape the Go source scanner produces, with the analyzer's own discovery
results (steps, template calls, direct references) carried along as
precomputed facts.

Document schema (unknown keys are ignored)::

    {
      "file_path": "internal/services/network/vnet_resource_test.go",
      "service": "network",                       # optional
      "functions": [{"name", "owning_type", "is_test", "line"}],
      "test_steps": [{"source_function", "step_index", "target_struct",
                      "target_method", "target_variable", "locality_hint",
                      "config_expr", "line"}],
      "template_calls": [{"source_function", "target_struct",
                          "target_function", "locality_hint", "line"}],
      "sequential_references": [{"entry_point", "referenced_function",
                                 "group", "key", "line"}],
      "direct_resource_references": [{"owning_template", "resource_name",
                                      "reference_kind", "context", "line"}]
    }
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from blastradius.config.models import AnalysisConfig
from blastradius.ingest.go_source import service_for_path
from blastradius.ingest.models import (
    DirectRefFact,
    FileExtraction,
    FunctionFact,
    FunctionKind,
    SequentialFact,
    StepFact,
    StructFact,
    TemplateCallFact,
)

_ANONYMOUS_HINTS = frozenset({"anonymous", "anonymous_function_reference", "closure"})


class _AnalyzerModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class AnalyzerFunction(_AnalyzerModel):
    name: str
    owning_type: str = ""
    is_test: bool = False
    line: int = 0


class AnalyzerTestStep(_AnalyzerModel):
    source_function: str
    step_index: int = Field(ge=1)
    target_struct: str = ""
    target_method: str = ""
    target_variable: str = ""
    locality_hint: str = ""
    config_expr: str = ""
    line: int = 0


class AnalyzerTemplateCall(_AnalyzerModel):
    source_function: str
    target_function: str
    target_struct: str = ""
    locality_hint: str = ""
    line: int = 0


class AnalyzerSequentialReference(_AnalyzerModel):
    entry_point: str
    referenced_function: str
    group: str
    key: str = ""
    line: int = 0


class AnalyzerDirectReference(_AnalyzerModel):
    owning_template: str
    resource_name: str
    reference_kind: str
    context: str = ""
    line: int = 0


class AnalyzerDocument(_AnalyzerModel):
    """One analyzer document (one source file)."""

    file_path: str
    service: str | None = None
    functions: list[AnalyzerFunction] = Field(default_factory=list)
    test_steps: list[AnalyzerTestStep] = Field(default_factory=list)
    template_calls: list[AnalyzerTemplateCall] = Field(default_factory=list)
    sequential_references: list[AnalyzerSequentialReference] = Field(default_factory=list)
    direct_resource_references: list[AnalyzerDirectReference] = Field(default_factory=list)

    def to_extraction(self, analysis: AnalysisConfig, service_marker: str) -> FileExtraction:
        result = FileExtraction(
            file_path=self.file_path,
            service=self.service or service_for_path(self.file_path, service_marker),
            precomputed=True,
        )

        struct_lines: dict[str, int] = {}
        for fn in self.functions:
            if fn.is_test:
                prefix = max(
                    (p for p in analysis.test_function_prefixes if fn.name.startswith(p)),
                    key=len,
                    default="",
                )
                result.functions.append(
                    FunctionFact(name=fn.name, kind=FunctionKind.TEST, line=fn.line, prefix=prefix)
                )
            elif fn.owning_type:
                struct_lines.setdefault(fn.owning_type, fn.line)
                result.functions.append(
                    FunctionFact(
                        name=fn.name,
                        kind=FunctionKind.TEMPLATE,
                        line=fn.line,
                        receiver_type=fn.owning_type,
                    )
                )
            else:
                result.functions.append(
                    FunctionFact(name=fn.name, kind=FunctionKind.HELPER, line=fn.line)
                )
        result.structs = [StructFact(name=n, line=line) for n, line in struct_lines.items()]

        result.steps = [
            StepFact(
                source_function=s.source_function,
                step_index=s.step_index,
                target_struct=s.target_struct,
                target_method=s.target_method,
                target_variable=s.target_variable,
                config_expr=s.config_expr,
                is_anonymous=s.locality_hint.strip().lower() in _ANONYMOUS_HINTS,
                line=s.line,
            )
            for s in self.test_steps
        ]
        result.template_calls = [
            TemplateCallFact(
                source_function=c.source_function,
                target_function=c.target_function,
                target_struct=c.target_struct,
                locality_hint=c.locality_hint,
                line=c.line,
            )
            for c in self.template_calls
        ]
        result.sequential = [
            SequentialFact(
                entry_point=r.entry_point,
                referenced=r.referenced_function,
                group=r.group,
                key=r.key,
                line=r.line,
            )
            for r in self.sequential_references
        ]
        result.direct_refs = [
            DirectRefFact(
                owning_template=d.owning_template,
                resource_name=d.resource_name,
                reference_kind=d.reference_kind,
                context=d.context,
                line=d.line,
            )
            for d in self.direct_resource_references
        ]
        return result


def load_analyzer_document(
    path: Path,
    analysis: AnalysisConfig,
    service_marker: str,
) -> FileExtraction:
    """Read and validate one analyzer document (worker function).

    Unreadable or invalid documents are reported on the result's ``error``
    field so the caller can skip them without aborting the run.
    """
    try:
        document = AnalyzerDocument.model_validate_json(path.read_bytes())
    except OSError as e:
        return FileExtraction(file_path=str(path), error=f"{type(e).__name__}: {e}")
    except ValidationError as e:
        return FileExtraction(
            file_path=str(path), error=f"invalid analyzer document: {e.error_count()} error(s)"
        )
    return document.to_extraction(analysis, service_marker)
