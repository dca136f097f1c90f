"""Shared numeric helpers."""

from __future__ import annotations

import uuid

from .models import Trend


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def trend_from_change(change: float, dead_zone: float) -> Trend:
    """Classify ``change`` as up/down, treating ``|change| <= dead_zone`` as neutral."""
    if change > dead_zone:
        return Trend.UP
    if change < -dead_zone:
        return Trend.DOWN
    return Trend.NEUTRAL


def append_bounded(seq: list, item, limit: int) -> list:
    """Append ``item`` and drop the oldest entries beyond ``limit``."""
    seq.append(item)
    if len(seq) > limit:
        del seq[: len(seq) - limit]
    return seq


def percent_change(new: float, old: float) -> float:
    if old == 0:
        return 0.0
    return (new - old) / old * 100


def new_id() -> str:
    return uuid.uuid4().hex[:12]
