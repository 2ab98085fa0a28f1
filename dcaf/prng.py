"""Pluggable source of random bytes."""

from __future__ import annotations

import os
from collections.abc import Callable

RandomSource = Callable[[int], bytes]

_source: RandomSource = os.urandom


def set_prng(rng: RandomSource | None) -> None:
    """Install ``rng`` as the random source; None restores the system source."""
    global _source
    _source = os.urandom if rng is None else rng


def prng(length: int) -> bytes:
    """Return ``length`` random bytes from the installed source."""
    if length < 0:
        raise ValueError("length must not be negative")
    data = bytes(_source(length))
    if len(data) != length:
        raise ValueError(
            f"random source returned {len(data)} bytes, expected {length}"
        )
    return data