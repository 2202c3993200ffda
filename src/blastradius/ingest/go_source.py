"""Fact extraction from raw Go source text (worker function).

Extracts, per file:
- struct definitions (name + line)
- function declarations with their exact body span, classified as test,
  template, helper or constructor
- constructor return types, for constructor-style struct inference
- resource registrations (``ResourceType()`` string returns and the
  ``"name": factory()`` entries of a service's registration file)
- sequential orchestration markers inside test functions

All pattern matching for structure runs on masked text (see
``blastradius.ingest.lexer``); literal contents are read back from the
original text at the same offsets.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath

from blastradius.config.constants import REGISTRATION_FILE_NAME
from blastradius.config.models import AnalysisConfig
from blastradius.ingest.lexer import LineIndex, mask_literals, match_brace, quoted_values
from blastradius.ingest.models import (
    FileExtraction,
    FunctionFact,
    FunctionKind,
    RegistrationFact,
    StructFact,
)
from blastradius.ingest.sequential_scan import scan_sequential_references

# func [(recv_var *RecvType)] Name(
_FUNC_RE = re.compile(
    r"^func\s+"
    r"(?:\(\s*(?:(?P<recv_var>[A-Za-z_]\w*)\s+)?\*?\s*(?P<recv_type>[A-Za-z_]\w*)\s*(?:\[[^\]]*\])?\s*\)\s*)?"
    r"(?P<name>[A-Za-z_]\w*)\s*(?:\[[^\]]*\]\s*)?\(",
    re.MULTILINE,
)

# type Name struct {
_STRUCT_RE = re.compile(r"^type\s+(?P<name>[A-Za-z_]\w*)\s+struct\s*\{", re.MULTILINE)

# First struct literal assigned in a test body: r := ThingResource{}
_STRUCT_HINT_RE = re.compile(r"\b[A-Za-z_]\w*\s*:=\s*&?(?P<name>[A-Z]\w*)\s*\{")

# "azurerm_thing": resourceThing(),   (registration map entry, run on masked text)
_REGISTRATION_ENTRY_RE = re.compile(r'^[ \t]*"[^"\n]*"\s*:\s*[\w.]+\s*\(', re.MULTILINE)

_RESOURCE_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*$")

# Single named result type, optionally a pointer: *ThingResource
_SIMPLE_TYPE_RE = re.compile(r"^\*?\s*(?P<type>[A-Za-z_]\w*)$")

_BUILTIN_TYPES = frozenset(
    {
        "string", "error", "bool", "byte", "rune", "int", "int8", "int16", "int32", "int64",
        "uint", "uint8", "uint16", "uint32", "uint64", "float32", "float64", "any",
    }
)


def service_for_path(rel_path: str, marker: str) -> str | None:
    """Owning service of a file: the directory after ``marker``, else the parent directory."""
    parts = PurePosixPath(rel_path).parts
    if marker in parts:
        idx = parts.index(marker)
        if idx + 1 < len(parts) - 1:
            return parts[idx + 1]
    if len(parts) > 1:
        return parts[-2]
    return None


def _primary_result(results: str) -> str | None:
    """First non-error result type name, if it is a plain (pointer to) identifier."""
    text = results.strip()
    if text.startswith("(") and text.endswith(")"):
        text = text[1:-1]
    for part in text.split(","):
        candidate = part.strip().split()[-1] if part.strip() else ""
        m = _SIMPLE_TYPE_RE.match(candidate)
        if m and m.group("type") != "error":
            return m.group("type")
    return None


def _matches_prefix(name: str, prefixes: list[str]) -> str:
    """Longest prefix of ``name`` among ``prefixes``, or empty string."""
    best = ""
    for prefix in prefixes:
        if name.startswith(prefix) and len(prefix) > len(best):
            best = prefix
    return best


def classify_function(
    name: str,
    receiver_type: str | None,
    results: str,
    analysis: AnalysisConfig,
) -> tuple[FunctionKind, str]:
    """Kind of a function declaration and the test prefix it matched."""
    prefix = _matches_prefix(name, analysis.test_function_prefixes)
    if prefix:
        return FunctionKind.TEST, prefix

    returns_string = results.strip() == "string"
    excluded = name in analysis.template_excluded_methods or any(
        name.startswith(p) for p in analysis.template_excluded_prefixes
    )
    if receiver_type is not None:
        if (
            returns_string
            and not excluded
            and any(receiver_type.endswith(s) for s in analysis.template_receiver_suffixes)
        ):
            return FunctionKind.TEMPLATE, ""
        return FunctionKind.OTHER, ""

    if returns_string and not excluded:
        return FunctionKind.HELPER, ""
    result_type = _primary_result(results)
    if result_type and result_type not in _BUILTIN_TYPES:
        return FunctionKind.CONSTRUCTOR, ""
    return FunctionKind.OTHER, ""


def _signature_end(masked: str, params_close: int) -> tuple[int, str] | None:
    """Offset of the body's opening brace and the result text, or None for bodiless decls."""
    depth = 0
    for i in range(params_close + 1, len(masked)):
        c = masked[i]
        if c in "([":
            depth += 1
        elif c in ")]":
            depth -= 1
        elif c == "{" and depth == 0:
            return i, masked[params_close + 1 : i]
        elif c == "\n" and depth == 0:
            return None
    return None


def extract_functions(
    source: str, masked: str, lines: LineIndex, analysis: AnalysisConfig
) -> list[FunctionFact]:
    functions: list[FunctionFact] = []
    for m in _FUNC_RE.finditer(masked):
        params_close = match_brace(masked, m.end() - 1)
        if params_close == -1:
            continue
        signature = _signature_end(masked, params_close)
        if signature is None:
            continue
        body_open, results = signature
        body_close = match_brace(masked, body_open)
        if body_close == -1:
            continue

        name = m.group("name")
        receiver_type = m.group("recv_type")
        kind, prefix = classify_function(name, receiver_type, results, analysis)
        body = source[body_open + 1 : body_close]
        struct_hint = None
        if kind is FunctionKind.TEST:
            hint = _STRUCT_HINT_RE.search(mask_literals(body))
            struct_hint = hint.group("name") if hint else None

        functions.append(
            FunctionFact(
                name=name,
                kind=kind,
                line=lines.line_of(m.start()),
                body=body,
                body_line=lines.line_of(body_open),
                receiver_var=m.group("recv_var"),
                receiver_type=receiver_type,
                result_type=_primary_result(results),
                prefix=prefix,
                struct_hint=struct_hint,
            )
        )
    return functions


def extract_structs(masked: str, lines: LineIndex) -> list[StructFact]:
    return [
        StructFact(name=m.group("name"), line=lines.line_of(m.start()))
        for m in _STRUCT_RE.finditer(masked)
    ]


def extract_registrations(
    rel_path: str,
    source: str,
    masked: str,
    lines: LineIndex,
    functions: list[FunctionFact],
) -> list[RegistrationFact]:
    """Resource type names registered in this file."""
    found: dict[str, RegistrationFact] = {}
    for fn in functions:
        if fn.name == "ResourceType" and fn.receiver_type is not None:
            values = quoted_values(fn.body)
            if values and values[0] not in found:
                found[values[0]] = RegistrationFact(name=values[0], line=fn.line)

    if PurePosixPath(rel_path).name == REGISTRATION_FILE_NAME:
        for m in _REGISTRATION_ENTRY_RE.finditer(masked):
            # Masked text has blanked the name; read it from the source
            values = quoted_values(source[m.start() : m.end()])
            if not values or not _RESOURCE_NAME_RE.match(values[0]) or values[0] in found:
                continue
            found[values[0]] = RegistrationFact(name=values[0], line=lines.line_of(m.start()))
    return list(found.values())


def extract_source_text(
    rel_path: str,
    source: str,
    analysis: AnalysisConfig,
    service_marker: str,
) -> FileExtraction:
    """Extract every structural fact from one file's text."""
    masked = mask_literals(source)
    lines = LineIndex(source)
    result = FileExtraction(
        file_path=rel_path,
        service=service_for_path(rel_path, service_marker),
        line_count=len(lines),
    )
    result.structs = extract_structs(masked, lines)
    result.functions = extract_functions(source, masked, lines, analysis)
    result.registrations = extract_registrations(rel_path, source, masked, lines, result.functions)
    for fn in result.functions:
        if fn.kind is FunctionKind.CONSTRUCTOR and fn.result_type:
            result.constructors[fn.name] = fn.result_type
        elif fn.kind is FunctionKind.TEST:
            result.sequential.extend(scan_sequential_references(fn.name, fn.body, fn.body_line))
    return result


def extract_source_file(
    path: Path,
    root: Path,
    analysis: AnalysisConfig,
    service_marker: str,
) -> FileExtraction:
    """Extract all facts from a single file (worker function).

    Read and decode failures are reported on the result's ``error`` field
    so the caller can skip the file without aborting the run.
    """
    rel_path = path.relative_to(root).as_posix() if path.is_absolute() else path.as_posix()
    try:
        source = (root / rel_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return FileExtraction(file_path=rel_path, error=f"{type(e).__name__}: {e}")
    return extract_source_text(rel_path, source, analysis, service_marker)
