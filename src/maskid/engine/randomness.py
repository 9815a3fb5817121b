"""Random byte sources used by identifier generation.

A source is chosen once when a mask is compiled and is then called with the number
of slot bytes needed per identifier. Injected callables (``Callable[[int], bytes]``)
are wrapped the same way so generation never branches on where bytes come from.
"""

from __future__ import annotations

import random
import secrets
from collections.abc import Callable
from typing import Protocol

from maskid.engine.errors import InvalidArgumentError, RandomnessUnavailableError

RandBytes = Callable[[int], bytes]


class RandomSource(Protocol):
    secure: bool

    def read(self, size: int) -> bytes: ...


class SecureRandomSource:
    """Operating system CSPRNG via :func:`secrets.token_bytes`."""

    __slots__ = ()

    secure = True

    def read(self, size: int) -> bytes:
        if size <= 0:
            return b""
        try:
            return secrets.token_bytes(size)
        except (NotImplementedError, OSError) as exc:
            raise RandomnessUnavailableError(
                f"cryptographically secure randomness is not available: {exc}"
            ) from exc

    def __repr__(self) -> str:
        return "SecureRandomSource()"


class FastRandomSource:
    """Non-secure Mersenne Twister source with its own state.

    The module-level :mod:`random` state is never touched, so callers that seed the
    global generator do not change identifier output.
    """

    __slots__ = ("_random",)

    secure = False

    def __init__(self, seed: int | None = None) -> None:
        self._random = random.Random(seed)

    def read(self, size: int) -> bytes:
        if size <= 0:
            return b""
        return self._random.randbytes(size)

    def __repr__(self) -> str:
        return "FastRandomSource()"


class CallableRandomSource:
    """Adapter for caller-supplied byte providers."""

    __slots__ = ("_provider", "secure")

    def __init__(self, provider: RandBytes, *, secure: bool) -> None:
        if not callable(provider):
            raise InvalidArgumentError(
                f"randbytes must be callable, got {type(provider).__name__}"
            )
        self._provider = provider
        self.secure = secure

    def read(self, size: int) -> bytes:
        if size <= 0:
            return b""
        raw = self._provider(size)
        if not isinstance(raw, (bytes, bytearray, memoryview)):
            raise InvalidArgumentError("randbytes must return a bytes-like object")
        as_bytes = bytes(raw)
        if len(as_bytes) != size:
            raise InvalidArgumentError(
                f"randbytes must return exactly {size} bytes, got {len(as_bytes)}"
            )
        return as_bytes

    def __repr__(self) -> str:
        return f"CallableRandomSource(secure={self.secure})"


def select_random_source(*, crypto: bool, randbytes: RandBytes | None = None) -> RandomSource:
    """Pick the byte source for a compiled mask."""
    if randbytes is not None:
        return CallableRandomSource(randbytes, secure=crypto)
    if crypto:
        return SecureRandomSource()
    return FastRandomSource()


__all__ = [
    "CallableRandomSource",
    "FastRandomSource",
    "RandBytes",
    "RandomSource",
    "SecureRandomSource",
    "select_random_source",
]
