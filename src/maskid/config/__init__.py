"""
maskid config package public API.

File: src/maskid/config/__init__.py

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``maskid.toml`` + ``MASKID_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from maskid.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_config,
)
from maskid.config.schema import (
    DEFAULT_CONFIG,
    FORMAT_FIELDS,
    OBSERVABILITY_FIELDS,
    ConfigSchemaVersion,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    FormatConfig,
    MaskidConfig,
    ObservabilityConfig,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    parse_timestamp_start,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "FORMAT_FIELDS",
    "FormatConfig",
    "MaskidConfig",
    "OBSERVABILITY_FIELDS",
    "ObservabilityConfig",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "load_config",
    "merge_config",
    "migration_guidance",
    "parse_timestamp_start",
    "validate_config",
]
