"""Rate limiters that keep animated values from snapping between ticks."""

from __future__ import annotations

import math
from typing import Optional


def approach(prev: float, target: float, max_delta: float) -> float:
    """Move ``prev`` toward ``target`` by at most ``max_delta``."""
    diff = target - prev
    if abs(diff) > max_delta:
        return prev + math.copysign(max_delta, diff)
    return target


def clamp_change(prev: Optional[float], next_value: float, rate: float) -> float:
    """Move toward ``next_value`` by at most ``rate`` times ``|prev|``.

    The first observation (``prev is None``) is returned unclamped.
    """
    if prev is None:
        return next_value
    max_change = abs(prev) * rate
    diff = next_value - prev
    if abs(diff) > max_change:
        return prev + math.copysign(max_change, diff)
    return next_value
