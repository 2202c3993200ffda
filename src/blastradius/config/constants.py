"""Configuration constants.

Values here are part of on-disk formats or repository conventions and are
not user-configurable. For tunables, see models.py.
"""

# =============================================================================
# Repository Layout
# =============================================================================

CONFIG_DIR_NAME = ".blastradius"
"""Per-repository configuration directory."""

CONFIG_FILE_NAME = "config.yaml"
"""Configuration file inside CONFIG_DIR_NAME."""

REGISTRATION_FILE_NAME = "registration.go"
"""Per-service file mapping resource type names to their implementations."""

# =============================================================================
# Interchange Format
# =============================================================================

INTERCHANGE_SUFFIX = ".csv"
"""File extension of exported tables."""

REFERENCE_TYPES_TABLE = "reference_types"
"""Static vocabulary table written alongside the entity tables."""

STORE_META_TABLE = "store_meta"
"""Key/value table carrying store-level counters (e.g. derivation watermark)."""

# =============================================================================
# Internal Implementation Constants
# =============================================================================

ID_START = 1
"""First id assigned by every table."""

CONTEXT_MAX_CHARS = 200
"""Maximum length of the context text stored on a direct resource reference."""
