"""Volume and mass unit parsing for pocket and item type definitions.

Volumes are integer millilitres and masses integer grams everywhere in the
storage core. Definitions may spell them either as plain non-negative numbers
(already in ml / g) or as ``"<number> <unit>"`` strings.
"""

from __future__ import annotations

import math
import re
from typing import Any

VOLUME_UNITS: dict[str, float] = {"ml": 1, "l": 1000}
MASS_UNITS: dict[str, float] = {"mg": 0.001, "g": 1, "kg": 1000}

_QUANTITY_PATTERN = re.compile(r"^\s*(?P<amount>\d+(?:\.\d+)?)\s*(?P<unit>[a-zA-Z]+)\s*$")


def _parse(value: Any, units: dict[str, float], kind: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{kind} must be a number or a '<amount> <unit>' string, got {value!r}")
    if isinstance(value, int | float):
        if value < 0 or not math.isfinite(value):
            raise ValueError(f"{kind} must be a finite non-negative amount, got {value!r}")
        return int(math.ceil(value))
    if not isinstance(value, str):
        raise ValueError(f"{kind} must be a number or a '<amount> <unit>' string, got {type(value).__name__}")

    match = _QUANTITY_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Malformed {kind} {value!r}; expected '<amount> <unit>' with unit in {sorted(units)}")
    unit = match.group("unit").lower()
    if unit not in units:
        raise ValueError(f"Unknown {kind} unit {match.group('unit')!r}; expected one of {sorted(units)}")
    return int(math.ceil(float(match.group("amount")) * units[unit]))


def parse_volume(value: Any) -> int:
    """Parse a volume definition into millilitres."""
    return _parse(value, VOLUME_UNITS, "volume")


def parse_mass(value: Any) -> int:
    """Parse a mass definition into grams."""
    return _parse(value, MASS_UNITS, "mass")
