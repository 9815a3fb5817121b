"""
maskid: unit tests for the mask compiler

File: tests/unit/engine/test_compiler.py

Purpose
- Validate mask normalization, argument checks and their ordering, entropy
  accounting and the crypto entropy floor.

What this test file should cover
- Rejection of non-string, empty and malformed masks with position-precise errors.
- ``unique_count`` / ``entropy_bits`` laws for representative masks.
- Timestamp start date validation against an injected clock.
- Immutability and value equality of compiled specs.

Functional requirements
- Offline, no wall-clock dependence.
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime, timedelta, timezone

import pytest

from maskid.constants import CRYPTO_SAFE_BITS
from maskid.engine import (
    IdentifierError,
    InsufficientEntropyError,
    InvalidArgumentError,
    InvalidMaskCharacterError,
    compile_mask,
)
from maskid.engine.randomness import (
    CallableRandomSource,
    FastRandomSource,
    SecureRandomSource,
)

_NOW = datetime(2024, 12, 7, 18, 37, 30, tzinfo=UTC)
_START = datetime(2023, 1, 1, tzinfo=UTC)
_START_EPOCH_MINUTES = 27_875_520


def _fixed_clock() -> datetime:
    return _NOW


def test_mask_is_uppercased_and_trimmed() -> None:
    spec = compile_mask("  x9-9x ")

    assert spec.mask == "X9-9X"
    assert spec.slot_count == 4
    assert spec.crypto is False
    assert spec.has_timestamp is False
    assert spec.timestamp_start is None


@pytest.mark.parametrize("mask", [123, None, b"XX", ["X"]])
def test_non_string_mask_is_rejected(mask: object) -> None:
    with pytest.raises(InvalidArgumentError, match="mask must be a string"):
        compile_mask(mask)  # type: ignore[arg-type]


@pytest.mark.parametrize("mask", ["", "   ", "\t\n"])
def test_empty_mask_is_rejected(mask: str) -> None:
    with pytest.raises(InvalidArgumentError, match="non-empty"):
        compile_mask(mask)


@pytest.mark.parametrize(
    ("mask", "character", "position"),
    [
        ("A", "A", 0),
        ("x9-9?", "?", 4),
        ("XX 99", " ", 2),
        ("XX_99", "_", 2),
        ("X8", "8", 1),
    ],
)
def test_invalid_mask_character_reports_first_offender(
    mask: str, character: str, position: int
) -> None:
    with pytest.raises(InvalidMaskCharacterError) as exc_info:
        compile_mask(mask)

    assert exc_info.value.character == character
    assert exc_info.value.position == position
    assert f"at position {position}" in str(exc_info.value)


def test_invalid_mask_character_is_an_invalid_argument() -> None:
    with pytest.raises(InvalidArgumentError):
        compile_mask("XZ")
    with pytest.raises(ValueError):
        compile_mask("XZ")


@pytest.mark.parametrize("crypto", ["nope", 1, 0, None])
def test_crypto_flag_must_be_boolean(crypto: object) -> None:
    with pytest.raises(InvalidArgumentError, match="crypto must be a boolean"):
        compile_mask("X9", crypto)  # type: ignore[arg-type]


def test_argument_checks_run_in_documented_order() -> None:
    with pytest.raises(InvalidArgumentError, match="non-empty"):
        compile_mask("", "nope")  # type: ignore[arg-type]
    with pytest.raises(InvalidArgumentError, match="crypto must be a boolean"):
        compile_mask("A", "nope")  # type: ignore[arg-type]
    with pytest.raises(InvalidMaskCharacterError):
        compile_mask("A", True)
    with pytest.raises(InsufficientEntropyError):
        compile_mask("XXXXX", True, _NOW + timedelta(days=1), clock=_fixed_clock)


@pytest.mark.parametrize(
    ("mask", "uniques", "bits"),
    [
        ("X", 13, 4),
        ("9", 10, 4),
        ("99", 100, 7),
        ("XXXXX", 13**5, 19),
        ("X9-9X", 13 * 10 * 10 * 13, 15),
        ("-", 1, 0),
        ("---", 1, 0),
    ],
)
def test_unique_count_and_entropy(mask: str, uniques: int, bits: int) -> None:
    spec = compile_mask(mask)

    assert spec.unique_count == uniques
    assert spec.entropy_bits == bits


def test_crypto_mask_below_floor_is_rejected_with_details() -> None:
    with pytest.raises(InsufficientEntropyError) as exc_info:
        compile_mask("xxxxx", True)

    error = exc_info.value
    assert error.mask == "XXXXX"
    assert error.bits == 19
    assert error.required == CRYPTO_SAFE_BITS
    assert "not crypto-safe: only 19 bits" in str(error)
    assert isinstance(error, IdentifierError)


def test_crypto_mask_at_floor_compiles() -> None:
    spec = compile_mask("X" * 20 + "9" * 20, True)

    assert spec.entropy_bits == 141
    assert spec.crypto is True
    assert spec.entropy_bits >= CRYPTO_SAFE_BITS


def test_non_crypto_mask_has_no_entropy_floor() -> None:
    assert compile_mask("9").entropy_bits == 4


def test_random_source_selection() -> None:
    assert isinstance(compile_mask("X9").random_source, FastRandomSource)
    assert isinstance(compile_mask("X" * 35, True).random_source, SecureRandomSource)

    injected = compile_mask("X9", randbytes=lambda size: bytes(size))
    assert isinstance(injected.random_source, CallableRandomSource)
    assert injected.random_source.secure is False


def test_randbytes_must_be_callable() -> None:
    with pytest.raises(InvalidArgumentError, match="randbytes must be callable"):
        compile_mask("X9", randbytes=b"\x00\x00")  # type: ignore[arg-type]


def test_clock_must_be_callable() -> None:
    with pytest.raises(InvalidArgumentError, match="clock must be callable"):
        compile_mask("X9", clock=_NOW)  # type: ignore[arg-type]


def test_timestamp_start_sets_epoch_minutes() -> None:
    spec = compile_mask("X9-9X", timestamp_start=_START, clock=_fixed_clock)

    assert spec.has_timestamp is True
    assert spec.timestamp_epoch_minutes == _START_EPOCH_MINUTES
    assert spec.timestamp_start == _START


def test_timestamp_start_naive_datetime_is_utc() -> None:
    spec = compile_mask("X9", timestamp_start=datetime(2023, 1, 1), clock=_fixed_clock)

    assert spec.timestamp_epoch_minutes == _START_EPOCH_MINUTES


def test_timestamp_start_offset_is_converted_to_utc() -> None:
    plus_two = timezone(timedelta(hours=2))
    spec = compile_mask(
        "X9",
        timestamp_start=datetime(2023, 1, 1, 2, 0, tzinfo=plus_two),
        clock=_fixed_clock,
    )

    assert spec.timestamp_epoch_minutes == _START_EPOCH_MINUTES


def test_timestamp_start_is_truncated_to_the_minute() -> None:
    spec = compile_mask(
        "X9",
        timestamp_start=datetime(2023, 1, 1, 0, 0, 59, 999_999, tzinfo=UTC),
        clock=_fixed_clock,
    )

    assert spec.timestamp_start == _START


@pytest.mark.parametrize(
    "start",
    [
        _NOW,
        _NOW + timedelta(days=1),
        _NOW - timedelta(seconds=60),
        _NOW - timedelta(seconds=30),
    ],
)
def test_timestamp_start_must_be_in_the_past(start: datetime) -> None:
    with pytest.raises(InvalidArgumentError, match="timestamp start must be in the past"):
        compile_mask("X9", timestamp_start=start, clock=_fixed_clock)


def test_timestamp_start_just_over_one_minute_ago_is_accepted() -> None:
    start = _NOW - timedelta(seconds=61)
    spec = compile_mask("X9", timestamp_start=start, clock=_fixed_clock)

    assert spec.has_timestamp is True


@pytest.mark.parametrize("start", ["2023-01-01", 1_672_531_200, object()])
def test_timestamp_start_must_be_datetime(start: object) -> None:
    with pytest.raises(InvalidArgumentError, match="must be a datetime"):
        compile_mask("X9", timestamp_start=start, clock=_fixed_clock)  # type: ignore[arg-type]


def test_default_clock_accepts_historic_start() -> None:
    spec = compile_mask("X9", timestamp_start=_START)

    assert spec.timestamp_start == _START


def test_spec_is_frozen() -> None:
    spec = compile_mask("X9")

    with pytest.raises(dataclasses.FrozenInstanceError):
        spec.crypto = True  # type: ignore[misc]


def test_specs_compare_by_compiled_value() -> None:
    assert compile_mask("x9") == compile_mask("X9 ")
    assert compile_mask("X9") != compile_mask("9X")
    assert compile_mask("X" * 35, True) != compile_mask("X" * 35)


def test_randbytes_is_checked_before_timestamp_start() -> None:
    with pytest.raises(InvalidArgumentError, match="randbytes must be callable"):
        compile_mask(
            "X9",
            timestamp_start=_NOW + timedelta(days=1),
            randbytes=b"\x00",  # type: ignore[arg-type]
            clock=_fixed_clock,
        )


def test_timestamp_start_without_utc_equivalent_is_an_invalid_argument() -> None:
    earliest = datetime(1, 1, 1, tzinfo=timezone(timedelta(hours=5)))

    with pytest.raises(InvalidArgumentError, match="no UTC equivalent"):
        compile_mask("X9", timestamp_start=earliest, clock=_fixed_clock)
