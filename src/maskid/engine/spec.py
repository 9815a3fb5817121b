"""Immutable compiled identifier format."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from maskid.engine.generator import generate_identifier
from maskid.engine.parser import normalize_input, parse_identifier
from maskid.engine.randomness import RandomSource
from maskid.engine.timestamp import (
    Clock,
    datetime_from_epoch_minutes,
    decode_timestamp_field,
    split_prefix,
    utc_now,
)
from maskid.engine.tokens import MaskToken, render_mask


@dataclass(frozen=True, slots=True)
class IdentifierSpec:
    """A compiled mask bound to its randomness strategy and timestamp epoch.

    Instances are produced by :func:`maskid.engine.compile_mask`; every derived
    field is fixed at compile time, so one spec can be shared across threads.
    """

    tokens: tuple[MaskToken, ...]
    crypto: bool
    slot_count: int
    unique_count: int
    entropy_bits: int
    random_source: RandomSource = field(repr=False, compare=False)
    timestamp_epoch_minutes: int | None = None
    clock: Clock = field(default=utc_now, repr=False, compare=False)

    @property
    def mask(self) -> str:
        return render_mask(self.tokens)

    @property
    def has_timestamp(self) -> bool:
        return self.timestamp_epoch_minutes is not None

    @property
    def timestamp_start(self) -> datetime | None:
        """Start date truncated to the minute, in UTC."""
        if self.timestamp_epoch_minutes is None:
            return None
        return datetime_from_epoch_minutes(self.timestamp_epoch_minutes)

    def generate(self) -> str:
        """Return a fresh random identifier in canonical form."""
        return generate_identifier(self)

    def parse(self, value: object) -> str | None:
        """Return the canonical form of ``value`` or ``None`` when it does not match."""
        return parse_identifier(self, value)

    def decode_timestamp(self, value: object) -> datetime | None:
        """Return when an identifier was generated, to the minute, if it carries a prefix."""
        if self.timestamp_epoch_minutes is None:
            return None
        text = normalize_input(value)
        if text is None:
            return None
        prefix, _ = split_prefix(text)
        return decode_timestamp_field(self.timestamp_epoch_minutes, prefix)


__all__ = ["IdentifierSpec"]
