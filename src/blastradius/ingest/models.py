"""Extraction records passed from ingestion workers to the writer.

Everything here is produced in Phase A (worker threads) and consumed in
Phase B (the single writer thread). Records are plain data: no store ids,
no references to shared state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FunctionKind(str, Enum):
    """Role of an extracted function."""

    TEST = "test"
    TEMPLATE = "template"  # receiver method on a resource type returning string
    HELPER = "helper"  # free function returning string
    CONSTRUCTOR = "constructor"
    OTHER = "other"


@dataclass
class StructFact:
    name: str
    line: int


@dataclass
class RegistrationFact:
    """A resource type name registered by the file's service."""

    name: str
    line: int


@dataclass
class SequentialFact:
    """``entry_point`` runs ``referenced`` as ``group``/``key``."""

    entry_point: str
    referenced: str
    group: str
    key: str = ""
    line: int = 0


@dataclass
class FunctionFact:
    """A function declaration with its isolated body.

    ``body`` is the text strictly between the body braces; ``body_line`` is
    the line of the opening brace, so line ``n`` of the body (0-based) is
    source line ``body_line + n``.
    """

    name: str
    kind: FunctionKind
    line: int
    body: str = ""
    body_line: int = 0
    receiver_var: str | None = None
    receiver_type: str | None = None
    result_type: str | None = None
    prefix: str = ""
    struct_hint: str | None = None


@dataclass
class StepFact:
    """A test step supplied pre-resolved by an external analyzer."""

    source_function: str
    step_index: int
    target_struct: str = ""
    target_method: str = ""
    target_variable: str = ""
    config_expr: str = ""
    is_anonymous: bool = False
    line: int = 0


@dataclass
class TemplateCallFact:
    """A template-to-template call supplied by an external analyzer."""

    source_function: str
    target_function: str
    target_struct: str = ""
    locality_hint: str = ""
    line: int = 0


@dataclass
class DirectRefFact:
    """A resource mention supplied by an external analyzer."""

    owning_template: str
    resource_name: str
    reference_kind: str
    context: str = ""
    line: int = 0


@dataclass
class FileExtraction:
    """Result of extracting facts from a single file."""

    file_path: str
    service: str | None = None
    structs: list[StructFact] = field(default_factory=list)
    functions: list[FunctionFact] = field(default_factory=list)
    registrations: list[RegistrationFact] = field(default_factory=list)
    sequential: list[SequentialFact] = field(default_factory=list)
    # name -> returned type, for constructor-style struct inference
    constructors: dict[str, str] = field(default_factory=dict)
    # Only filled for analyzer documents, which carry their own discovery results
    precomputed: bool = False
    steps: list[StepFact] = field(default_factory=list)
    template_calls: list[TemplateCallFact] = field(default_factory=list)
    direct_refs: list[DirectRefFact] = field(default_factory=list)
    line_count: int = 0
    error: str | None = None


@dataclass
class ChunkBatch:
    """Everything one worker extracted from its chunk."""

    worker: int
    extractions: list[FileExtraction] = field(default_factory=list)
    cancelled: bool = False
    duration_ms: int = 0


@dataclass
class WorkerFailure:
    """Reported by a worker that died outside per-file error handling."""

    worker: int
    reason: str


@dataclass
class FunctionSource:
    """A written function plus the source needed by later passes."""

    record_id: int
    name: str
    kind: FunctionKind
    file_id: int
    path: str
    line: int
    body: str
    body_line: int
    receiver_var: str | None = None
    receiver_type: str | None = None


@dataclass
class SourceIndex:
    """Run-scoped source text kept alongside the store.

    The store holds facts only; function bodies needed by discovery and
    the sequential resolver live here for the duration of the run.
    """

    tests: list[FunctionSource] = field(default_factory=list)
    templates: list[FunctionSource] = field(default_factory=list)
    constructors: dict[str, str] = field(default_factory=dict)
    # (entry test function id, fact)
    sequential: list[tuple[int, SequentialFact]] = field(default_factory=list)
    # (file id, extraction) for analyzer documents
    precomputed: list[tuple[int, FileExtraction]] = field(default_factory=list)


@dataclass
class IngestionResult:
    """Result of one ingestion run."""

    files_processed: int = 0
    files_failed: int = 0
    services_written: int = 0
    structs_written: int = 0
    test_functions_written: int = 0
    template_functions_written: int = 0
    registrations_written: int = 0
    batches: int = 0
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0
