"""
analysis/volume.py

Volume analysis over fixed windows: totals, peak window, per-window share of
the batch, and a least-squares trend once there are at least three windows.

Trend direction compares the slope with the mean window volume, so the
same relative growth reads the same on a quiet link and a busy one.
"""

from __future__ import annotations

from typing import Sequence

from ..models import FlowRecord
from ..numeric import linear_slope, mean, percentage, safe_div
from .models import VolumeAnalysis, VolumeDistribution, VolumeTrend
from .windows import group_by_window

MIN_TREND_WINDOWS = 3
TREND_CONFIDENCE_WINDOWS = 10
_TREND_TOLERANCE = 0.1


def analyze_volume(records: Sequence[FlowRecord], time_window_ms: int) -> VolumeAnalysis:
    if not records:
        return VolumeAnalysis()

    total = sum(r.byte_count for r in records)
    windows = group_by_window(records, time_window_ms)
    volumes = [w.volume for w in windows]

    peak_index = max(range(len(volumes)), key=lambda i: volumes[i])

    return VolumeAnalysis(
        total_volume=total,
        average_volume=safe_div(total, len(records)),
        peak_volume=volumes[peak_index],
        peak_time=windows[peak_index].start,
        distribution=[
            VolumeDistribution(w.time_range, v, percentage(v, total))
            for w, v in zip(windows, volumes)
        ],
        trends=volume_trends(volumes),
    )


def volume_trends(volumes: Sequence[float]) -> list[VolumeTrend]:
    if len(volumes) < MIN_TREND_WINDOWS:
        return []

    slope = linear_slope(volumes)
    relative = safe_div(slope, mean(volumes))
    if relative > _TREND_TOLERANCE:
        direction = "increasing"
    elif relative < -_TREND_TOLERANCE:
        direction = "decreasing"
    else:
        direction = "stable"

    return [VolumeTrend(
        period="window",
        direction=direction,
        magnitude=abs(slope),
        confidence=min(len(volumes) / TREND_CONFIDENCE_WINDOWS, 1.0),
    )]
