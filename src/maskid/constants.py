"""Stable constants shared across the mask engine, config and observability layers."""

from __future__ import annotations

from typing import Final

# Symbol alphabets. Order is part of the generation contract: byte % len(alphabet)
# indexes into these tuples, so reordering changes every generated identifier.
LETTERS: Final[tuple[str, ...]] = (
    "A",
    "D",
    "F",
    "K",
    "L",
    "M",
    "N",
    "R",
    "T",
    "W",
    "X",
    "Y",
    "Z",
)
DIGITS: Final[tuple[str, ...]] = ("0", "1", "2", "3", "4", "5", "6", "7", "8", "9")

# Mask grammar.
LETTER_SLOT_CHAR: Final[str] = "X"
DIGIT_SLOT_CHAR: Final[str] = "9"
LITERAL_SEPARATOR: Final[str] = "-"

# Minimum entropy for masks compiled with cryptographic randomness.
CRYPTO_SAFE_BITS: Final[int] = 128

# Timestamp prefix layout.
TIMESTAMP_PREFIX_LENGTH: Final[int] = 10
TIMESTAMP_PAD_LETTER: Final[str] = "A"
TIMESTAMP_MAX_ELAPSED_MINUTES: Final[int] = 10**TIMESTAMP_PREFIX_LENGTH - 1
# Start dates must sit strictly further in the past than this many seconds.
TIMESTAMP_MIN_START_AGE_SECONDS: Final[int] = 60

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "CRYPTO_SAFE_BITS",
    "DIGITS",
    "DIGIT_SLOT_CHAR",
    "LETTERS",
    "LETTER_SLOT_CHAR",
    "LITERAL_SEPARATOR",
    "TIMESTAMP_MAX_ELAPSED_MINUTES",
    "TIMESTAMP_MIN_START_AGE_SECONDS",
    "TIMESTAMP_PAD_LETTER",
    "TIMESTAMP_PREFIX_LENGTH",
]
