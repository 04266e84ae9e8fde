"""
Duration units shared by the parser, the runtime wrapper and refresh policies.
"""

from __future__ import annotations

import re
from typing import Optional

UNIT_ALIASES = {
    "s": "s",
    "sec": "s",
    "secs": "s",
    "second": "s",
    "seconds": "s",
    "ms": "ms",
    "millisecond": "ms",
    "milliseconds": "ms",
    "m": "m",
    "min": "m",
    "mins": "m",
    "minute": "m",
    "minutes": "m",
    "h": "h",
    "hr": "h",
    "hrs": "h",
    "hour": "h",
    "hours": "h",
    "beat": "beats",
    "beats": "beats",
    "bar": "bars",
    "bars": "bars",
    "measure": "bars",
    "measures": "bars",
    "sub": "subs",
    "subs": "subs",
    "subdivision": "subs",
    "subdivisions": "subs",
    "tick": "ticks",
    "ticks": "ticks",
}

# Musical units are kept as raw scalar amounts and never converted.
MUSICAL_UNITS = {"beats", "bars", "subs", "ticks"}

_SECONDS_PER_UNIT = {"ms": 0.001, "s": 1, "m": 60, "h": 3600}

_TIME_STRING_RE = re.compile(r"^([0-9]*\.?[0-9]+)\s*(ms|s|m|h)$", re.IGNORECASE)


def normalize_unit(raw: str) -> Optional[str]:
    return UNIT_ALIASES.get(raw.lower())


def to_seconds(amount: float, unit: str) -> Optional[float]:
    """Convert a wall-clock duration to seconds; musical or unknown units give None."""
    normalized = normalize_unit(unit)
    if normalized is None or normalized in MUSICAL_UNITS:
        return None
    if normalized == "ms":
        return amount / 1000
    return amount * _SECONDS_PER_UNIT[normalized]


def to_milliseconds(amount: float, unit: str) -> Optional[float]:
    seconds = to_seconds(amount, unit)
    if seconds is None:
        return None
    normalized = normalize_unit(unit)
    if normalized == "ms":
        return amount
    return seconds * 1000


def parse_time_string(raw: str) -> Optional[tuple[float, str]]:
    """Split strings such as "5s", "250 ms" or "1.5m" into (amount, unit)."""
    match = _TIME_STRING_RE.match(raw.strip())
    if not match:
        return None
    text = match.group(1)
    amount: float = float(text)
    if amount.is_integer() and "." not in text:
        amount = int(text)
    return amount, match.group(2).lower()
