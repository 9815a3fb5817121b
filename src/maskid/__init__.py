"""
maskid: short, voice-friendly identifiers from character masks.

File: src/maskid/__init__.py

Purpose
- Package root. Re-exports the mask engine, the format registry and the config
  and logging entrypoints.

Identifiers use 13 letters (``ADFKLMNRTWXYZ``) and the ten digits so that they
survive being read aloud across Latin and Cyrillic language groups. They are
case insensitive and may carry hyphens for readability.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

from maskid.config import ConfigLoadError, ConfigValidationError, load_config
from maskid.constants import (
    CRYPTO_SAFE_BITS,
    DIGITS,
    LETTERS,
    TIMESTAMP_PAD_LETTER,
    TIMESTAMP_PREFIX_LENGTH,
)
from maskid.engine import (
    IdentifierError,
    IdentifierSpec,
    InsufficientEntropyError,
    InvalidArgumentError,
    InvalidMaskCharacterError,
    RandomnessUnavailableError,
    TimestampOverflowError,
    compile_mask,
)
from maskid.observability import setup_logging, shutdown_logging
from maskid.registry import IdentifierRegistry, build_registry, load_registry

__version__ = "1.0.0"

__all__ = [
    "CRYPTO_SAFE_BITS",
    "ConfigLoadError",
    "ConfigValidationError",
    "DIGITS",
    "IdentifierError",
    "IdentifierRegistry",
    "IdentifierSpec",
    "InsufficientEntropyError",
    "InvalidArgumentError",
    "InvalidMaskCharacterError",
    "LETTERS",
    "RandomnessUnavailableError",
    "TIMESTAMP_PAD_LETTER",
    "TIMESTAMP_PREFIX_LENGTH",
    "TimestampOverflowError",
    "__version__",
    "build_registry",
    "compile_mask",
    "load_config",
    "load_registry",
    "setup_logging",
    "shutdown_logging",
]
