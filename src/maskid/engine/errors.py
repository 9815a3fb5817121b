"""Structured failures raised by the mask engine.

Parse failures are deliberately absent: a candidate string that does not match a
mask is an ordinary outcome and is reported as ``None`` by the parser.
"""

from __future__ import annotations

from maskid.constants import CRYPTO_SAFE_BITS, TIMESTAMP_MAX_ELAPSED_MINUTES


class IdentifierError(Exception):
    """Base class for every mask engine failure."""


class InvalidArgumentError(IdentifierError, ValueError):
    """Raised when compile arguments have the wrong type or an invalid value."""


class InvalidMaskCharacterError(InvalidArgumentError):
    """Raised when a mask contains a character outside ``{X, 9, -}``."""

    def __init__(self, character: str, position: int) -> None:
        self.character = character
        self.position = position
        super().__init__(f"invalid mask character {character!r} at position {position}")


class InsufficientEntropyError(IdentifierError, ValueError):
    """Raised when a crypto mask cannot reach the required entropy floor."""

    def __init__(self, mask: str, bits: int, required: int = CRYPTO_SAFE_BITS) -> None:
        self.mask = mask
        self.bits = bits
        self.required = required
        super().__init__(
            f"mask {mask!r} is not crypto-safe: only {bits} bits (need >= {required})"
        )


class RandomnessUnavailableError(IdentifierError, RuntimeError):
    """Raised when a cryptographically secure random source cannot be used."""


class TimestampOverflowError(IdentifierError, OverflowError):
    """Raised when elapsed minutes cannot be rendered into the timestamp prefix."""

    def __init__(self, elapsed_minutes: int) -> None:
        self.elapsed_minutes = elapsed_minutes
        super().__init__(
            "timestamp prefix out of range: expected "
            f"0..{TIMESTAMP_MAX_ELAPSED_MINUTES} elapsed minutes, got {elapsed_minutes}"
        )


__all__ = [
    "IdentifierError",
    "InsufficientEntropyError",
    "InvalidArgumentError",
    "InvalidMaskCharacterError",
    "RandomnessUnavailableError",
    "TimestampOverflowError",
]
