"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (BLASTRADIUS__SECTION__KEY)
3. Repo YAML (.blastradius/config.yaml)
4. Global YAML (~/.config/blastradius/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    BLASTRADIUS__<SECTION>__<KEY>=<VALUE>

Examples:
    BLASTRADIUS__LOGGING__LEVEL=DEBUG
    BLASTRADIUS__INGESTION__MAX_WORKERS=8
    BLASTRADIUS__INGESTION__WORKER_TIMEOUT_SEC=300
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        BLASTRADIUS__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every soft failure with full context.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IngestionConfig(BaseModel):
    """Ingestion pipeline configuration.

    Env vars:
        BLASTRADIUS__INGESTION__MAX_WORKERS: Extraction worker count
        BLASTRADIUS__INGESTION__POLL_INTERVAL_SEC: Coordinator poll interval
        BLASTRADIUS__INGESTION__WORKER_TIMEOUT_SEC: Abort when workers stall this long
        BLASTRADIUS__INGESTION__SERVICE_MARKER: Directory preceding the service name
    """

    max_workers: int = Field(
        default=4,
        description="Number of extraction workers. The file set is split into this many chunks.",
    )
    poll_interval_sec: float = Field(
        default=0.05,
        description="How long the coordinator blocks on the result queue per poll.",
    )
    worker_timeout_sec: float | None = Field(
        default=None,
        description="Abort ingestion if no worker reports within this window. "
        "None waits indefinitely.",
    )
    file_patterns: list[str] = Field(
        default_factory=lambda: ["*.go"],
        description="Filename patterns (fnmatch) of files to analyze.",
    )
    exclude_dirs: list[str] = Field(
        default_factory=lambda: ["vendor", ".git", "testdata", "node_modules"],
        description="Directory names pruned during file discovery.",
    )
    service_marker: str = Field(
        default="services",
        description="Path component after which the owning service name appears.",
    )

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}")
        return v

    @field_validator("poll_interval_sec")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"poll_interval_sec must be positive, got {v}")
        return v

    @field_validator("worker_timeout_sec")
    @classmethod
    def validate_worker_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError(f"worker_timeout_sec must be positive, got {v}")
        return v


class AnalysisConfig(BaseModel):
    """Pattern conventions used by discovery and resolution.

    Env vars:
        BLASTRADIUS__ANALYSIS__TEST_FUNCTION_PREFIXES: JSON list of test name prefixes
        BLASTRADIUS__ANALYSIS__STRUCT_RECEIVER_VARIABLES: JSON list of receiver names
    """

    test_function_prefixes: list[str] = Field(
        default_factory=lambda: ["TestAcc", "testAcc", "Test"],
        description="Function name prefixes identifying test entry points. "
        "Longest match is recorded as the test's prefix.",
    )
    template_receiver_suffixes: list[str] = Field(
        default_factory=lambda: ["Resource", "DataSource"],
        description="Receiver type suffixes whose string-returning methods are templates.",
    )
    template_excluded_methods: list[str] = Field(
        default_factory=lambda: ["Exists", "Destroy", "ResourceType", "IDValidationFunc"],
        description="Receiver methods that are never treated as templates.",
    )
    template_excluded_prefixes: list[str] = Field(
        default_factory=lambda: ["Validate", "Parse", "Expand", "Flatten"],
        description="Method name prefixes that are never treated as templates.",
    )
    step_packages: list[str] = Field(
        default_factory=lambda: ["acceptance", "resource", "pluginsdk"],
        description="Packages whose TestStep slice literals hold test steps.",
    )
    assertion_exclusions: list[str] = Field(
        default_factory=lambda: [
            "BuildTestData(",
            "TestCheckResourceAttr",
            "check.That(",
            "ImportStep(",
        ],
        description="Line fragments that mention a resource name without depending on it.",
    )
    struct_receiver_variables: list[str] = Field(
        default_factory=lambda: ["r"],
        description="Conventional receiver variable names tried when a step "
        "method call has no resolvable variable.",
    )
    constructor_prefixes: list[str] = Field(
        default_factory=lambda: ["new", "New"],
        description="Prefixes stripped from constructor names to infer a struct name.",
    )
    constructor_type_suffixes: list[str] = Field(
        default_factory=lambda: ["Resource", "DataSource"],
        description="Struct name suffixes; anything after the last one is a disambiguator.",
    )
    constructor_trailing_suffixes: list[str] = Field(
        default_factory=lambda: ["Test", "ForTest", "WithDefaults"],
        description="Trailing disambiguators stripped when no type suffix is present.",
    )


class InterchangeConfig(BaseModel):
    """CSV interchange configuration.

    Env vars:
        BLASTRADIUS__INTERCHANGE__VERIFY_ON_IMPORT: Run integrity check after import
    """

    verify_on_import: bool = Field(
        default=True,
        description="Run the integrity checker after import and fail on any issue.",
    )
    encoding: str = Field(
        default="utf-8",
        description="Text encoding of exported CSV files.",
    )


class BlastRadiusConfig(BaseModel):
    """Root configuration model."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    interchange: InterchangeConfig = Field(default_factory=InterchangeConfig)
