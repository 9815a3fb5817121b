"""Random identifier generation for compiled masks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from maskid.constants import LITERAL_SEPARATOR
from maskid.engine.errors import IdentifierError
from maskid.engine.timestamp import current_timestamp_field

if TYPE_CHECKING:
    from collections.abc import Sequence

    from maskid.engine.spec import IdentifierSpec
    from maskid.engine.tokens import MaskToken

logger = logging.getLogger(__name__)


def render_body(tokens: Sequence[MaskToken], seed: bytes) -> str:
    """Map one byte per slot onto its alphabet (``byte % len(alphabet)``)."""
    chars: list[str] = []
    index = 0
    for token in tokens:
        if not token.is_slot:
            chars.append(token.char)
            continue
        alphabet = token.alphabet
        chars.append(alphabet[seed[index] % len(alphabet)])
        index += 1
    if index != len(seed):
        raise ValueError(f"seed has {len(seed)} bytes but mask consumes {index}")
    return "".join(chars)


def generate_identifier(spec: IdentifierSpec) -> str:
    try:
        seed = spec.random_source.read(spec.slot_count)
        body = render_body(spec.tokens, seed)
        if spec.timestamp_epoch_minutes is None:
            identifier = body
        else:
            prefix = current_timestamp_field(spec.timestamp_epoch_minutes, spec.clock())
            identifier = f"{prefix}{LITERAL_SEPARATOR}{body}"
    except IdentifierError as exc:
        logger.warning(
            "identifier generation failed",
            extra={"mask": spec.mask, "crypto": spec.crypto, "error": type(exc).__name__},
        )
        raise

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("identifier generated", extra={"mask": spec.mask, "identifier": identifier})
    return identifier


__all__ = ["generate_identifier", "render_body"]
