"""Minute-resolution timestamp prefix codec.

The prefix is the number of whole minutes elapsed since a format's start date,
rendered in base 10 and left-padded to ten characters with the letter ``A``
(``AAA1017757``). Decoding is advisory: malformed prefixes yield ``None``.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Final

from maskid.constants import (
    TIMESTAMP_MAX_ELAPSED_MINUTES,
    TIMESTAMP_PAD_LETTER,
    TIMESTAMP_PREFIX_LENGTH,
)
from maskid.engine.errors import InvalidArgumentError, TimestampOverflowError
from maskid.engine.tokens import DIGIT_SET, LETTER_SET

Clock = Callable[[], datetime]

UNIX_EPOCH: Final[datetime] = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MINUTE: Final[timedelta] = timedelta(minutes=1)


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are read as UTC."""
    if not isinstance(value, datetime):
        raise InvalidArgumentError(f"expected datetime, got {type(value).__name__}")
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=UTC)
    try:
        return value.astimezone(UTC)
    except OverflowError as exc:
        raise InvalidArgumentError(f"datetime {value.isoformat()} has no UTC equivalent") from exc


def minutes_since_unix_epoch(moment: datetime) -> int:
    """Whole minutes between the Unix epoch and ``moment`` (floored)."""
    return (as_utc(moment) - UNIX_EPOCH) // _ONE_MINUTE


def datetime_from_epoch_minutes(minutes: int) -> datetime:
    return UNIX_EPOCH + timedelta(minutes=minutes)


def decode_timestamp_field(epoch_minutes: int, prefix: str) -> datetime | None:
    """Return the minute ``prefix`` encodes; ``None`` if malformed or past year 9999."""
    elapsed = decode_elapsed_minutes(prefix)
    if elapsed is None:
        return None
    try:
        return datetime_from_epoch_minutes(epoch_minutes + elapsed)
    except OverflowError:
        return None


def encode_elapsed_minutes(elapsed: int) -> str:
    if isinstance(elapsed, bool) or not isinstance(elapsed, int):
        raise InvalidArgumentError(f"elapsed minutes must be an int, got {type(elapsed).__name__}")
    if not 0 <= elapsed <= TIMESTAMP_MAX_ELAPSED_MINUTES:
        raise TimestampOverflowError(elapsed)
    return str(elapsed).rjust(TIMESTAMP_PREFIX_LENGTH, TIMESTAMP_PAD_LETTER)


def decode_elapsed_minutes(prefix: str) -> int | None:
    """Return elapsed minutes encoded by ``prefix`` or ``None`` when it is malformed."""
    if len(prefix) != TIMESTAMP_PREFIX_LENGTH:
        return None
    if any(char in LETTER_SET and char != TIMESTAMP_PAD_LETTER for char in prefix):
        return None

    digits = prefix.replace(TIMESTAMP_PAD_LETTER, "")
    if not digits or not all(char in DIGIT_SET for char in digits):
        return None
    elapsed = int(digits)

    # Pad letters are only legal as leading padding.
    if str(elapsed).rjust(TIMESTAMP_PREFIX_LENGTH, TIMESTAMP_PAD_LETTER) != prefix:
        return None
    return elapsed


def current_timestamp_field(epoch_minutes: int, now: datetime) -> str:
    """Encode the minutes elapsed between ``epoch_minutes`` and ``now``."""
    return encode_elapsed_minutes(minutes_since_unix_epoch(now) - epoch_minutes)


def split_prefix(text: str) -> tuple[str, str]:
    return text[:TIMESTAMP_PREFIX_LENGTH], text[TIMESTAMP_PREFIX_LENGTH:]


__all__ = [
    "Clock",
    "UNIX_EPOCH",
    "as_utc",
    "current_timestamp_field",
    "datetime_from_epoch_minutes",
    "decode_elapsed_minutes",
    "decode_timestamp_field",
    "encode_elapsed_minutes",
    "minutes_since_unix_epoch",
    "split_prefix",
    "utc_now",
]
