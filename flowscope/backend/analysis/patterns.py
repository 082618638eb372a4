"""
analysis/patterns.py

Pattern detection over the per-window volume series.

Three independent classifiers; one series can match several:

    periodic  ≥ min_occurrences windows, mean > 0, coefficient of variation
              < 0.3                       confidence = 1 − CV
    burst     ≥ 3 windows; one pattern for each window above 3× the mean
                                          confidence = min(volume / mean / 3, 1)
    baseline  ≥ max(5, min_occurrences) windows and ≥ 70% of windows within
              one standard deviation of the mean
                                          confidence = that share
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..models import FlowRecord, TimeRange, protocol_name
from ..numeric import mean, pstdev, safe_div, share
from .models import PatternCharacteristics, PatternType, TrafficPattern
from .windows import TimeWindow, group_by_window

logger = logging.getLogger(__name__)

PERIODIC_MAX_CV = 0.3
BURST_FACTOR = 3.0
MIN_BURST_WINDOWS = 3
MIN_BASELINE_WINDOWS = 5
BASELINE_MIN_SHARE = 0.7


class PatternDetector:
    def __init__(self, time_window_ms: int = 300_000, min_occurrences: int = 3) -> None:
        self.time_window_ms = time_window_ms
        self.min_occurrences = min_occurrences

    def detect(self, records: Sequence[FlowRecord]) -> list[TrafficPattern]:
        windows = group_by_window(records, self.time_window_ms)
        volumes = [w.volume for w in windows]

        patterns: list[TrafficPattern] = []
        patterns.extend(self._periodic(windows, volumes))
        patterns.extend(self._bursts(windows, volumes))
        patterns.extend(self._baseline(windows, volumes))

        logger.debug(
            "Pattern detection: windows=%d patterns=%s",
            len(windows), [p.id for p in patterns],
        )
        return patterns

    # ------------------------------------------------------------------
    # Classifiers
    # ------------------------------------------------------------------

    def _periodic(self, windows: list[TimeWindow], volumes: list[int]) -> list[TrafficPattern]:
        if not windows or len(windows) < self.min_occurrences:
            return []
        avg = mean(volumes)
        if avg <= 0:
            return []
        cv = safe_div(pstdev(volumes), avg)
        if cv >= PERIODIC_MAX_CV:
            return []
        return [_span_pattern(PatternType.PERIODIC, 1.0 - cv, windows, avg)]

    def _bursts(self, windows: list[TimeWindow], volumes: list[int]) -> list[TrafficPattern]:
        if len(windows) < MIN_BURST_WINDOWS:
            return []
        avg = mean(volumes)
        if avg <= 0:
            return []
        patterns: list[TrafficPattern] = []
        for window, volume in zip(windows, volumes):
            if volume <= avg * BURST_FACTOR:
                continue
            patterns.append(TrafficPattern(
                id=f"{PatternType.BURST.value}-{window.start_ms}",
                type=PatternType.BURST,
                confidence=min(volume / avg / BURST_FACTOR, 1.0),
                time_range=window.time_range,
                characteristics=PatternCharacteristics(
                    frequency=1,
                    amplitude=float(volume),
                    duration_ms=window.size_ms,
                    **_protocols_and_ports(window.records),
                ),
            ))
        return patterns

    def _baseline(self, windows: list[TimeWindow], volumes: list[int]) -> list[TrafficPattern]:
        if len(windows) < max(MIN_BASELINE_WINDOWS, self.min_occurrences):
            return []
        avg = mean(volumes)
        sd = pstdev(volumes)
        within = share(sum(1 for v in volumes if abs(v - avg) <= sd), len(volumes))
        if within < BASELINE_MIN_SHARE:
            return []
        return [_span_pattern(PatternType.BASELINE, within, windows, avg)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _span_pattern(
    kind: PatternType,
    confidence: float,
    windows: list[TimeWindow],
    amplitude: float,
) -> TrafficPattern:
    first, last = windows[0], windows[-1]
    records = [r for w in windows for r in w.records]
    return TrafficPattern(
        id=f"{kind.value}-{first.start_ms}",
        type=kind,
        confidence=confidence,
        time_range=TimeRange(first.start, last.end),
        characteristics=PatternCharacteristics(
            frequency=len(windows),
            amplitude=amplitude,
            duration_ms=last.start_ms - first.start_ms,
            **_protocols_and_ports(records),
        ),
    )


def _protocols_and_ports(records: Sequence[FlowRecord]) -> dict:
    return {
        "protocols": list(dict.fromkeys(protocol_name(r.protocol) for r in records)),
        "ports": sorted({r.dst_port for r in records}),
    }


def detect_patterns(
    records: Sequence[FlowRecord],
    time_window_ms: int = 300_000,
    min_occurrences: int = 3,
) -> list[TrafficPattern]:
    return PatternDetector(time_window_ms, min_occurrences).detect(records)
