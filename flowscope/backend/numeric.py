"""
backend/numeric.py

Safe arithmetic shared by every statistics / analysis stage.

Every rate or percentage in the backend goes through these helpers so that
empty batches and zero-length time spans produce 0.0 instead of
ZeroDivisionError, NaN or inf.

Zero-span policy:
    span_seconds() floors a time span to MIN_SPAN_SECONDS (1 s). A batch whose
    records all share one timestamp is treated as covering one second.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, Sequence

MIN_SPAN_SECONDS = 1.0


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Return numerator / denominator, or `default` when the denominator is 0."""
    if denominator == 0:
        return default
    result = numerator / denominator
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def span_seconds(
    start: datetime | None,
    end: datetime | None,
    floor: float = MIN_SPAN_SECONDS,
) -> float:
    """Seconds between start and end, never below `floor`."""
    if start is None or end is None:
        return floor
    return max((end - start).total_seconds(), floor)


def percentage(part: float, whole: float) -> float:
    return safe_div(part * 100.0, whole)


def mean(values: Sequence[float]) -> float:
    return safe_div(sum(values), len(values))


def pstdev(values: Sequence[float]) -> float:
    """Population standard deviation (0.0 for fewer than one value)."""
    if not values:
        return 0.0
    avg = mean(values)
    variance = sum((v - avg) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def linear_slope(values: Sequence[float]) -> float:
    """Least-squares slope of `values` against their index 0..n-1."""
    n = len(values)
    if n < 2:
        return 0.0
    sum_x = n * (n - 1) / 2
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))
    sum_xx = n * (n - 1) * (2 * n - 1) / 6
    return safe_div(n * sum_xy - sum_x * sum_y, n * sum_xx - sum_x * sum_x)


def share(matching: int, total: int) -> float:
    """Fraction matching/total in [0, 1]."""
    return safe_div(matching, total)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def time_bounds(timestamps: Iterable[datetime]) -> tuple[datetime, datetime] | None:
    """(min, max) of the timestamps, or None for an empty iterable."""
    start: datetime | None = None
    end: datetime | None = None
    for ts in timestamps:
        if start is None or ts < start:
            start = ts
        if end is None or ts > end:
            end = ts
    if start is None or end is None:
        return None
    return start, end
