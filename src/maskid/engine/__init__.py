"""Mask engine: compile masks, generate identifiers, parse candidates."""

from maskid.engine.compiler import compile_mask
from maskid.engine.errors import (
    IdentifierError,
    InsufficientEntropyError,
    InvalidArgumentError,
    InvalidMaskCharacterError,
    RandomnessUnavailableError,
    TimestampOverflowError,
)
from maskid.engine.randomness import (
    CallableRandomSource,
    FastRandomSource,
    RandBytes,
    RandomSource,
    SecureRandomSource,
)
from maskid.engine.spec import IdentifierSpec
from maskid.engine.tokens import MaskToken, TokenKind

__all__ = [
    "CallableRandomSource",
    "FastRandomSource",
    "IdentifierError",
    "IdentifierSpec",
    "InsufficientEntropyError",
    "InvalidArgumentError",
    "InvalidMaskCharacterError",
    "MaskToken",
    "RandBytes",
    "RandomSource",
    "RandomnessUnavailableError",
    "SecureRandomSource",
    "TimestampOverflowError",
    "TokenKind",
    "compile_mask",
]
