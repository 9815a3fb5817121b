"""Candidate validation and canonicalization against compiled masks.

Nothing here raises for malformed input. Every rejection returns ``None`` and is
logged at DEBUG with the reason, because a mismatching candidate is routine.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from maskid.constants import LITERAL_SEPARATOR
from maskid.engine.timestamp import decode_elapsed_minutes, split_prefix
from maskid.engine.tokens import SYMBOL_SET

if TYPE_CHECKING:
    from collections.abc import Sequence

    from maskid.engine.spec import IdentifierSpec
    from maskid.engine.tokens import MaskToken

logger = logging.getLogger(__name__)


def normalize_input(value: object) -> str | None:
    """Coerce ``value`` to uppercase, stripped text.

    Strings pass through, bytes are decoded as UTF-8 and everything else goes through
    ``str()`` so numeric identifiers such as ``1234`` can be parsed.
    """
    if isinstance(value, str):
        text = value
    elif isinstance(value, (bytes, bytearray)):
        try:
            text = bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return None
    else:
        text = str(value)
    return text.upper().strip()


def extract_symbols(text: str) -> list[str]:
    return [char for char in text if char in SYMBOL_SET]


def canonical_body(tokens: Sequence[MaskToken], symbols: Sequence[str]) -> str | None:
    """Lay ``symbols`` onto ``tokens``; ``None`` on count or class mismatch."""
    out: list[str] = []
    index = 0
    for token in tokens:
        if not token.is_slot:
            out.append(token.char)
            continue
        if index >= len(symbols):
            return None
        symbol = symbols[index]
        if not token.accepts(symbol):
            return None
        out.append(symbol)
        index += 1
    if index != len(symbols):
        return None
    return "".join(out)


def parse_identifier(spec: IdentifierSpec, value: object) -> str | None:
    text = normalize_input(value)
    if text is None:
        return _reject(spec, "undecodable input")

    prefix: str | None = None
    body_text = text
    if spec.timestamp_epoch_minutes is not None:
        prefix, body_text = split_prefix(text)
        if decode_elapsed_minutes(prefix) is None:
            return _reject(spec, "invalid timestamp prefix")

    symbols = extract_symbols(body_text)
    if len(symbols) != spec.slot_count:
        return _reject(spec, "symbol count mismatch")

    body = canonical_body(spec.tokens, symbols)
    if body is None:
        return _reject(spec, "symbol class mismatch")

    if prefix is not None:
        return f"{prefix}{LITERAL_SEPARATOR}{body}"
    return body


def _reject(spec: IdentifierSpec, reason: str) -> None:
    logger.debug("identifier rejected", extra={"mask": spec.mask, "reason": reason})
    return None


__all__ = [
    "canonical_body",
    "extract_symbols",
    "normalize_input",
    "parse_identifier",
]
