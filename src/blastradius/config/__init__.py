"""Config module exports."""

from blastradius.config.loader import load_config
from blastradius.config.models import (
    AnalysisConfig,
    BlastRadiusConfig,
    IngestionConfig,
    InterchangeConfig,
    LoggingConfig,
    LogOutputConfig,
)

__all__ = [
    "load_config",
    "AnalysisConfig",
    "BlastRadiusConfig",
    "IngestionConfig",
    "InterchangeConfig",
    "LoggingConfig",
    "LogOutputConfig",
]
