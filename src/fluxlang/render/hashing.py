"""
Deterministic hashing and pseudo-random numbers for rendering.

Both functions reproduce the JavaScript reference bit for bit so documents
render identically across engines: `stable_hash` is 32-bit FNV-1a over the
UTF-16 code units of a canonical serialization, and `mulberry32` is the
classic 32-bit generator.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable

from ..values import format_number, is_number

_MASK = 0xFFFFFFFF
_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


def stable_serialize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "b:true" if value else "b:false"
    if is_number(value):
        return f"n:{format_number(value)}"
    if isinstance(value, str):
        return f"s:{value}"
    if isinstance(value, (list, tuple)):
        return "a:[" + ",".join(stable_serialize(item) for item in value) + "]"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if isinstance(value, dict):
        entries = sorted(value.items(), key=lambda item: str(item[0]))
        return "o:{" + ",".join(f"{key}:{stable_serialize(item)}" for key, item in entries) + "}"
    return f"u:{value}"


def stable_hash(*values: Any) -> int:
    serialized = "|".join(stable_serialize(value) for value in values)
    data = serialized.encode("utf-16-le")
    h = _FNV_OFFSET
    for idx in range(0, len(data), 2):
        h ^= data[idx] | (data[idx + 1] << 8)
        h = (h * _FNV_PRIME) & _MASK
    return h


def mulberry32(seed: int) -> Callable[[], float]:
    """Return a generator of floats in [0, 1) seeded with a 32-bit integer."""
    state = int(seed) & _MASK

    def next_float() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _MASK
        r = state
        r = ((r ^ (r >> 15)) * (r | 1)) & _MASK
        r ^= (r + (((r ^ (r >> 7)) * (r | 61)) & _MASK)) & _MASK
        return ((r ^ (r >> 14)) & _MASK) / 4294967296

    return next_float
