"""Ingestion - populate the fact store from source files or analyzer documents.

Public API:
- IngestionPipeline: concurrent extraction, serial writes
- discover_source_files: file discovery with directory pruning
- extract_source_text / extract_source_file: per-file Go source extraction
- load_analyzer_document: per-file analyzer JSON loading
"""

from blastradius.ingest.analyzer_json import AnalyzerDocument, load_analyzer_document
from blastradius.ingest.discovery import discover_source_files, partition
from blastradius.ingest.go_source import (
    extract_source_file,
    extract_source_text,
    service_for_path,
)
from blastradius.ingest.models import (
    FileExtraction,
    FunctionFact,
    FunctionKind,
    FunctionSource,
    IngestionResult,
    SequentialFact,
    SourceIndex,
)
from blastradius.ingest.pipeline import FactWriter, IngestionPipeline
from blastradius.ingest.sequential_scan import scan_sequential_references

__all__ = [
    "AnalyzerDocument",
    "FactWriter",
    "FileExtraction",
    "FunctionFact",
    "FunctionKind",
    "FunctionSource",
    "IngestionPipeline",
    "IngestionResult",
    "SequentialFact",
    "SourceIndex",
    "discover_source_files",
    "extract_source_file",
    "extract_source_text",
    "load_analyzer_document",
    "partition",
    "scan_sequential_references",
    "service_for_path",
]
