"""blastradius error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Ingestion
- 4xxx: Interchange
- 9xxx: Internal

Only fatal conditions are raised. Soft failures (dangling foreign keys,
missing ids on update, unresolvable patterns) are logged as warnings by the
component that hits them and never surface as exceptions.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Ingestion (3xxx)
    INGESTION_WORKER_FAILED = 3001
    INGESTION_WRITE_FAILED = 3002
    INGESTION_WORKER_TIMEOUT = 3003
    INGESTION_SOURCE_NOT_FOUND = 3004

    # Interchange (4xxx)
    INTERCHANGE_MISSING_TABLE = 4001
    INTERCHANGE_CORRUPT_TABLE = 4002
    INTERCHANGE_INTEGRITY_VIOLATION = 4003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    INTERNAL_INVALID_TRANSITION = 9002


@dataclass(frozen=True, slots=True)
class BlastRadiusError(Exception):
    """Base error with structured context for log records and CLI output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'INGESTION_WRITE_FAILED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(BlastRadiusError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class IngestionError(BlastRadiusError):
    """Fatal ingestion errors. The run is aborted and must be restarted."""

    @classmethod
    def worker_failed(cls, worker: int, reason: str) -> "IngestionError":
        return cls(
            code=ErrorCode.INGESTION_WORKER_FAILED,
            message=f"Extraction worker {worker} failed: {reason}",
            details={"worker": worker, "reason": reason},
        )

    @classmethod
    def write_failed(cls, path: str, reason: str) -> "IngestionError":
        return cls(
            code=ErrorCode.INGESTION_WRITE_FAILED,
            message=f"Failed to write facts for {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def worker_timeout(cls, timeout_sec: float, pending: int) -> "IngestionError":
        return cls(
            code=ErrorCode.INGESTION_WORKER_TIMEOUT,
            message=f"{pending} worker(s) did not finish within {timeout_sec}s",
            details={"timeout_sec": timeout_sec, "pending": pending},
        )

    @classmethod
    def source_not_found(cls, path: str) -> "IngestionError":
        return cls(
            code=ErrorCode.INGESTION_SOURCE_NOT_FOUND,
            message=f"Source root not found: {path}",
            details={"path": path},
        )


class InterchangeError(BlastRadiusError):
    """Errors while importing an exported fact store."""

    @classmethod
    def missing_table(cls, table: str, path: str) -> "InterchangeError":
        return cls(
            code=ErrorCode.INTERCHANGE_MISSING_TABLE,
            message=f"Table '{table}' not found at {path}",
            details={"table": table, "path": path},
        )

    @classmethod
    def corrupt_table(cls, table: str, row: int, reason: str) -> "InterchangeError":
        return cls(
            code=ErrorCode.INTERCHANGE_CORRUPT_TABLE,
            message=f"Corrupt table '{table}' at row {row}: {reason}",
            details={"table": table, "row": row, "reason": reason},
        )

    @classmethod
    def integrity_violation(cls, issues: list[str]) -> "InterchangeError":
        return cls(
            code=ErrorCode.INTERCHANGE_INTEGRITY_VIOLATION,
            message=f"Imported store failed integrity check ({len(issues)} issue(s))",
            details={"issues": issues},
        )


class InternalError(BlastRadiusError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )

    @classmethod
    def invalid_transition(cls, row_id: int, current: str, target: str) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_INVALID_TRANSITION,
            message=f"Illegal reference type transition {current} -> {target} for row {row_id}",
            details={"row_id": row_id, "current": current, "target": target},
        )
