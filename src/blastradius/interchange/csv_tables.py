"""CSV interchange: one file per table.

Layout of an export directory::

    services.csv, resource_registrations.csv, ..., sequential_references.csv
    reference_types.csv   static vocabulary (id, name, label)
    store_meta.csv        key/value run metadata (derivation watermark)

Every table file has a header row, even when the table is empty. Columns
follow the record's dataclass fields. Encoding: ``None`` is the empty
string, booleans are ``true``/``false``, ``ReferenceType`` values are their
integer ids.

Import rebuilds a fresh store from such a directory. Any missing file,
undecodable field, duplicate id, vocabulary mismatch or (when verification
is on) integrity issue is fatal and raises ``InterchangeError``.
"""

from __future__ import annotations

import csv
import dataclasses
import types
import typing
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog

from blastradius.config.constants import (
    INTERCHANGE_SUFFIX,
    REFERENCE_TYPES_TABLE,
    STORE_META_TABLE,
)
from blastradius.config.models import InterchangeConfig
from blastradius.core.errors import InterchangeError, InternalError
from blastradius.store import FactStore, IntegrityChecker, ReferenceType

logger = structlog.get_logger()

_VOCABULARY_HEADER = ["id", "name", "label"]
_META_HEADER = ["key", "value"]
_WATERMARK_KEY = "indirect_watermark"

Decoder = Callable[[str], Any]


def _encode(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, ReferenceType):
        return str(int(value))
    return str(value)


def _decode_bool(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError(f"not a boolean: {text!r}")


def _decode_reference_type(text: str) -> ReferenceType:
    return ReferenceType(int(text))


def _decoder_for(annotation: Any) -> Decoder:
    """Decoder for one field annotation; ``X | None`` decodes ``""`` as None."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        inner = [a for a in typing.get_args(annotation) if a is not type(None)]
        base = _decoder_for(inner[0])
        return lambda text: None if text == "" else base(text)
    if annotation is bool:
        return _decode_bool
    if annotation is int:
        return int
    if annotation is ReferenceType:
        return _decode_reference_type
    return str


def _columns(record_type: type) -> list[str]:
    return [f.name for f in dataclasses.fields(record_type)]


def _decoders(record_type: type) -> dict[str, Decoder]:
    hints = typing.get_type_hints(record_type)
    return {name: _decoder_for(hints[name]) for name in _columns(record_type)}


def _table_path(directory: Path, name: str) -> Path:
    return directory / f"{name}{INTERCHANGE_SUFFIX}"


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def export_store(
    store: FactStore,
    directory: Path,
    config: InterchangeConfig | None = None,
) -> dict[str, int]:
    """Write every table to ``directory``; returns rows written per table."""
    config = config or InterchangeConfig()
    directory.mkdir(parents=True, exist_ok=True)
    written: dict[str, int] = {}

    for table in store.tables():
        columns = _columns(table.record_type)
        with _table_path(directory, table.name).open("w", newline="", encoding=config.encoding) as f:
            writer = csv.writer(f)
            writer.writerow(columns)
            for record in table:
                writer.writerow([_encode(getattr(record, column)) for column in columns])
        written[table.name] = len(table)

    with _table_path(directory, REFERENCE_TYPES_TABLE).open(
        "w", newline="", encoding=config.encoding
    ) as f:
        writer = csv.writer(f)
        writer.writerow(_VOCABULARY_HEADER)
        for tag in ReferenceType:
            writer.writerow([int(tag), tag.name, tag.label])

    with _table_path(directory, STORE_META_TABLE).open("w", newline="", encoding=config.encoding) as f:
        writer = csv.writer(f)
        writer.writerow(_META_HEADER)
        writer.writerow([_WATERMARK_KEY, store.indirect_watermark])

    logger.info("store_exported", directory=str(directory), rows=sum(written.values()))
    return written


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def _read_rows(path: Path, table: str, header: list[str], encoding: str) -> list[dict[str, str]]:
    if not path.is_file():
        raise InterchangeError.missing_table(table, str(path))
    with path.open(newline="", encoding=encoding) as f:
        reader = csv.DictReader(f)
        if reader.fieldnames != header:
            raise InterchangeError.corrupt_table(
                table, 0, f"header {reader.fieldnames} does not match {header}"
            )
        rows = []
        for row_num, row in enumerate(reader, start=1):
            # DictReader keys surplus cells under None and pads short rows with None
            if None in row or None in row.values():
                raise InterchangeError.corrupt_table(
                    table, row_num, f"expected {len(header)} fields"
                )
            rows.append(row)
        return rows


def _check_vocabulary(directory: Path, encoding: str) -> None:
    rows = _read_rows(
        _table_path(directory, REFERENCE_TYPES_TABLE),
        REFERENCE_TYPES_TABLE,
        _VOCABULARY_HEADER,
        encoding,
    )
    found = {}
    for row_num, row in enumerate(rows, start=1):
        try:
            found[int(row["id"])] = row["name"]
        except ValueError as e:
            raise InterchangeError.corrupt_table(REFERENCE_TYPES_TABLE, row_num, str(e)) from e
    expected = {int(tag): tag.name for tag in ReferenceType}
    if found != expected:
        raise InterchangeError.corrupt_table(
            REFERENCE_TYPES_TABLE, 0, "reference type vocabulary does not match"
        )


def _read_watermark(directory: Path, encoding: str) -> int:
    rows = _read_rows(
        _table_path(directory, STORE_META_TABLE), STORE_META_TABLE, _META_HEADER, encoding
    )
    for row_num, row in enumerate(rows, start=1):
        if row["key"] != _WATERMARK_KEY:
            continue
        try:
            return int(row["value"])
        except ValueError as e:
            raise InterchangeError.corrupt_table(STORE_META_TABLE, row_num, str(e)) from e
    return 0


def import_store(directory: Path, config: InterchangeConfig | None = None) -> FactStore:
    """Rebuild a store from an export directory.

    Raises:
        InterchangeError: On any missing, malformed or inconsistent table.
    """
    config = config or InterchangeConfig()
    _check_vocabulary(directory, config.encoding)
    store = FactStore()

    for table in store.tables():
        columns = _columns(table.record_type)
        decoders = _decoders(table.record_type)
        rows = _read_rows(_table_path(directory, table.name), table.name, columns, config.encoding)
        for row_num, row in enumerate(rows, start=1):
            try:
                values = {name: decode(row[name]) for name, decode in decoders.items()}
            except (ValueError, TypeError) as e:
                raise InterchangeError.corrupt_table(table.name, row_num, str(e)) from e
            if values["id"] in table:
                raise InterchangeError.corrupt_table(
                    table.name, row_num, f"duplicate id {values['id']}"
                )
            try:
                store.load_record(table.name, table.record_type(**values))
            except InternalError as e:
                raise InterchangeError.corrupt_table(table.name, row_num, e.message) from e

    store.indirect_watermark = _read_watermark(directory, config.encoding)

    if config.verify_on_import:
        report = IntegrityChecker(store).verify()
        if not report.passed:
            issues = [str(issue) for issue in report.issues]
            logger.error("store_import_integrity_failed", issues=issues)
            raise InterchangeError.integrity_violation(issues)

    logger.info("store_imported", directory=str(directory), rows=sum(store.statistics().values()))
    return store
