"""Core module exports."""

from blastradius.core.errors import (
    BlastRadiusError,
    ConfigError,
    ErrorCode,
    IngestionError,
    InterchangeError,
    InternalError,
)
from blastradius.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Errors
    "BlastRadiusError",
    "ConfigError",
    "ErrorCode",
    "IngestionError",
    "InterchangeError",
    "InternalError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
]
