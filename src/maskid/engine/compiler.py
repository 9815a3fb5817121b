"""
maskid: mask compiler.

File: src/maskid/engine/compiler.py

Purpose
- Validate mask text and options, and freeze them into an ``IdentifierSpec``.

Functional requirements
- Checks run in a fixed order so the first reported problem is deterministic:
  mask type, emptiness, crypto flag type, mask characters, entropy floor,
  clock and randbytes callability, timestamp start date.
- Crypto masks below ``CRYPTO_SAFE_BITS`` never compile.
- Timestamp start dates must lie strictly more than one minute in the past;
  minute truncation could otherwise move the epoch into the future.

Non-functional requirements
- No I/O. The clock and random source are injectable for deterministic tests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from maskid.constants import CRYPTO_SAFE_BITS, TIMESTAMP_MIN_START_AGE_SECONDS
from maskid.engine.errors import InsufficientEntropyError, InvalidArgumentError
from maskid.engine.randomness import RandBytes, select_random_source
from maskid.engine.spec import IdentifierSpec
from maskid.engine.timestamp import Clock, as_utc, minutes_since_unix_epoch, utc_now
from maskid.engine.tokens import count_slots, entropy_bits, tokenize, unique_count

logger = logging.getLogger(__name__)


def compile_mask(
    mask: str,
    crypto: bool = False,
    timestamp_start: datetime | None = None,
    *,
    randbytes: RandBytes | None = None,
    clock: Clock | None = None,
) -> IdentifierSpec:
    """Compile ``mask`` (e.g. ``"XX-99-X9"``) into an immutable identifier spec.

    Parameters
    ----------
    mask:
        Pattern over ``X`` (letter slot), ``9`` (digit slot) and ``-`` (separator),
        case-insensitive and trimmed.
    crypto:
        Draw bytes from the OS CSPRNG; requires at least 128 bits of entropy.
    timestamp_start:
        Enables a 10-character prefix counting minutes since this moment.
    randbytes:
        Optional byte provider replacing the default random source.
    clock:
        Optional ``() -> datetime`` replacing the wall clock.
    """

    if not isinstance(mask, str):
        raise InvalidArgumentError(f"mask must be a string, got {type(mask).__name__}")
    normalized = mask.upper().strip()
    if not normalized:
        raise InvalidArgumentError("mask must be non-empty")
    if not isinstance(crypto, bool):
        raise InvalidArgumentError(f"crypto must be a boolean, got {type(crypto).__name__}")

    tokens = tokenize(normalized)
    uniques = unique_count(tokens)
    bits = entropy_bits(uniques)
    if crypto and bits < CRYPTO_SAFE_BITS:
        raise InsufficientEntropyError(normalized, bits, CRYPTO_SAFE_BITS)

    if clock is not None and not callable(clock):
        raise InvalidArgumentError(f"clock must be callable, got {type(clock).__name__}")
    resolved_clock = utc_now if clock is None else clock
    random_source = select_random_source(crypto=crypto, randbytes=randbytes)

    epoch_minutes: int | None = None
    if timestamp_start is not None:
        epoch_minutes = _resolve_epoch_minutes(timestamp_start, resolved_clock())

    spec = IdentifierSpec(
        tokens=tokens,
        crypto=crypto,
        slot_count=count_slots(tokens),
        unique_count=uniques,
        entropy_bits=bits,
        random_source=random_source,
        timestamp_epoch_minutes=epoch_minutes,
        clock=resolved_clock,
    )
    logger.debug(
        "identifier spec compiled",
        extra={
            "mask": spec.mask,
            "crypto": spec.crypto,
            "slot_count": spec.slot_count,
            "entropy_bits": spec.entropy_bits,
            "timestamp": spec.has_timestamp,
        },
    )
    return spec


def _resolve_epoch_minutes(timestamp_start: datetime, now: datetime) -> int:
    if not isinstance(timestamp_start, datetime):
        raise InvalidArgumentError(
            f"timestamp start must be a datetime, got {type(timestamp_start).__name__}"
        )
    start = as_utc(timestamp_start)
    latest_allowed = as_utc(now) - timedelta(seconds=TIMESTAMP_MIN_START_AGE_SECONDS)
    if start >= latest_allowed:
        raise InvalidArgumentError("timestamp start must be in the past")
    return minutes_since_unix_epoch(start)


__all__ = ["compile_mask"]
