"""Mask tokens, tokenization and entropy accounting."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from maskid.constants import (
    DIGIT_SLOT_CHAR,
    DIGITS,
    LETTER_SLOT_CHAR,
    LETTERS,
    LITERAL_SEPARATOR,
)
from maskid.engine.errors import InvalidMaskCharacterError

LETTER_SET: Final[frozenset[str]] = frozenset(LETTERS)
DIGIT_SET: Final[frozenset[str]] = frozenset(DIGITS)
SYMBOL_SET: Final[frozenset[str]] = LETTER_SET | DIGIT_SET


class TokenKind(StrEnum):
    LETTER = LETTER_SLOT_CHAR
    DIGIT = DIGIT_SLOT_CHAR
    LITERAL = LITERAL_SEPARATOR


@dataclass(frozen=True, slots=True)
class MaskToken:
    """One compiled mask position."""

    kind: TokenKind
    char: str

    @property
    def is_slot(self) -> bool:
        return self.kind is not TokenKind.LITERAL

    @property
    def alphabet(self) -> tuple[str, ...]:
        """Symbols a slot may take; literals have an empty alphabet."""
        if self.kind is TokenKind.LETTER:
            return LETTERS
        if self.kind is TokenKind.DIGIT:
            return DIGITS
        return ()

    def accepts(self, symbol: str) -> bool:
        if self.kind is TokenKind.LETTER:
            return symbol in LETTER_SET
        if self.kind is TokenKind.DIGIT:
            return symbol in DIGIT_SET
        return False


LETTER_SLOT: Final[MaskToken] = MaskToken(TokenKind.LETTER, LETTER_SLOT_CHAR)
DIGIT_SLOT: Final[MaskToken] = MaskToken(TokenKind.DIGIT, DIGIT_SLOT_CHAR)
SEPARATOR: Final[MaskToken] = MaskToken(TokenKind.LITERAL, LITERAL_SEPARATOR)

_TOKEN_BY_CHAR: Final[dict[str, MaskToken]] = {
    LETTER_SLOT_CHAR: LETTER_SLOT,
    DIGIT_SLOT_CHAR: DIGIT_SLOT,
    LITERAL_SEPARATOR: SEPARATOR,
}


def tokenize(mask: str) -> tuple[MaskToken, ...]:
    """Translate normalized mask text into tokens, reporting the first bad character."""
    tokens: list[MaskToken] = []
    for position, char in enumerate(mask):
        token = _TOKEN_BY_CHAR.get(char)
        if token is None:
            raise InvalidMaskCharacterError(char, position)
        tokens.append(token)
    return tuple(tokens)


def render_mask(tokens: Iterable[MaskToken]) -> str:
    return "".join(token.char for token in tokens)


def count_slots(tokens: Iterable[MaskToken]) -> int:
    return sum(1 for token in tokens if token.is_slot)


def unique_count(tokens: Iterable[MaskToken]) -> int:
    """Number of distinct bodies a token sequence can produce."""
    total = 1
    for token in tokens:
        if token.is_slot:
            total *= len(token.alphabet)
    return total


def entropy_bits(uniques: int) -> int:
    """Return ``ceil(log2(uniques))``, or 0 when there is at most one outcome.

    Integer arithmetic keeps the result exact for masks far beyond float precision.
    """
    if uniques <= 1:
        return 0
    return (uniques - 1).bit_length()


__all__ = [
    "DIGIT_SET",
    "DIGIT_SLOT",
    "LETTER_SET",
    "LETTER_SLOT",
    "MaskToken",
    "SEPARATOR",
    "SYMBOL_SET",
    "TokenKind",
    "count_slots",
    "entropy_bits",
    "render_mask",
    "tokenize",
    "unique_count",
]
