"""
analysis/baseline.py

Baseline establishment and anomaly detection.

Baseline:
    The earliest 70% of a batch (by timestamp) is treated as normal traffic.
    Rates divide by the configured baseline window, and every rate/count
    threshold is 2× what that prefix showed.

Anomaly dimensions (each emits at most one anomaly, when severity ≥ threshold):
    volume       batch bytes/s (own span, floored to 1 s) above max_bytes_per_second
                 severity = min(rate / max, 1)
    destination  unique destinations above max_unique_destinations
                 severity = min(count / max − 1, 1)
    protocol     share of records whose protocol the baseline never saw
    timing       share of records outside business hours

A zero threshold with a non-zero observation is maximally severe (1.0).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

from ..models import FlowRecord, TimeRange, is_off_hours, protocol_name
from ..numeric import mean, safe_div, share, span_seconds, time_bounds
from .models import (
    EVIDENCE_SAMPLE_SIZE,
    AnomalyDetectionResult,
    AnomalyEvidence,
    AnomalyType,
    BaselineThresholds,
    TrafficAnomaly,
    TrafficBaseline,
)

logger = logging.getLogger(__name__)

BASELINE_FRACTION = 0.7
THRESHOLD_MULTIPLIER = 2


def establish_baseline(
    records: Sequence[FlowRecord],
    baseline_window_ms: int,
    now: datetime | None = None,
) -> TrafficBaseline | None:
    """Baseline from the earliest 70% of `records`; None for an empty batch."""
    if not records:
        return None

    ordered = sorted(records, key=lambda r: r.timestamp)
    sample = ordered[: int(len(ordered) * BASELINE_FRACTION)]
    window_seconds = baseline_window_ms / 1000

    total_bytes = sum(r.byte_count for r in sample)
    unique_destinations = len({r.dst_ip for r in sample})
    now = now or datetime.now(timezone.utc)

    bounds = time_bounds(r.timestamp for r in sample)
    if bounds is None:
        start = ordered[0].timestamp
        bounds = (start - timedelta(milliseconds=baseline_window_ms), start)

    baseline = TrafficBaseline(
        sample_size=len(sample),
        time_range=TimeRange(*bounds),
        thresholds=BaselineThresholds(
            max_bytes_per_second=safe_div(total_bytes, window_seconds) * THRESHOLD_MULTIPLIER,
            max_connections_per_second=safe_div(len(sample), window_seconds) * THRESHOLD_MULTIPLIER,
            max_unique_destinations=unique_destinations * THRESHOLD_MULTIPLIER,
            normal_ports=frozenset(r.dst_port for r in sample),
            normal_protocols=frozenset(protocol_name(r.protocol) for r in sample),
        ),
        established_at=now,
    )
    logger.debug(
        "Baseline established: sample=%d max_bps=%.1f max_dest=%d",
        baseline.sample_size,
        baseline.thresholds.max_bytes_per_second,
        baseline.thresholds.max_unique_destinations,
    )
    return baseline


def _ratio_severity(observed: float, limit: float, offset: float = 0.0) -> float:
    if limit <= 0:
        return 1.0
    return min(observed / limit - offset, 1.0)


class AnomalyDetector:
    """Compares a batch against a TrafficBaseline, one dimension at a time."""

    def __init__(self, threshold: float = 0.7) -> None:
        self.threshold = threshold
        self._checks: list[Callable[[Sequence[FlowRecord], TrafficBaseline, TimeRange],
                                    TrafficAnomaly | None]] = [
            self._volume,
            self._destinations,
            self._protocols,
            self._timing,
        ]

    def detect(
        self,
        records: Sequence[FlowRecord],
        baseline: TrafficBaseline,
        now: datetime | None = None,
    ) -> AnomalyDetectionResult:
        anomalies: list[TrafficAnomaly] = []
        bounds = time_bounds(r.timestamp for r in records)
        if bounds is not None:
            span = TimeRange(*bounds)
            for check in self._checks:
                anomaly = check(records, baseline, span)
                if anomaly is not None:
                    anomalies.append(anomaly)

        confidence = mean([a.severity for a in anomalies]) if anomalies else 1.0
        return AnomalyDetectionResult(
            anomalies=anomalies,
            baseline=baseline,
            confidence=confidence,
            analysis_time=now or datetime.now(timezone.utc),
        )

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    def _volume(self, records, baseline, span) -> TrafficAnomaly | None:
        limit = baseline.thresholds.max_bytes_per_second
        rate = safe_div(sum(r.byte_count for r in records),
                        span_seconds(span.start, span.end))
        if rate <= limit:
            return None
        return self._emit(
            AnomalyType.VOLUME,
            _ratio_severity(rate, limit),
            f"Traffic volume {rate:.0f} bytes/sec exceeds baseline of {limit:.0f} bytes/sec",
            span, rate - limit, records, "high-volume",
        )

    def _destinations(self, records, baseline, span) -> TrafficAnomaly | None:
        limit = baseline.thresholds.max_unique_destinations
        count = len({r.dst_ip for r in records})
        if count <= limit:
            return None
        return self._emit(
            AnomalyType.DESTINATION,
            _ratio_severity(count, limit, offset=1.0),
            f"Unusual number of destinations: {count} (baseline: {limit})",
            span, count - limit, records, "unusual-destinations",
        )

    def _protocols(self, records, baseline, span) -> TrafficAnomaly | None:
        normal = baseline.thresholds.normal_protocols
        unusual = [r for r in records if protocol_name(r.protocol) not in normal]
        if not unusual:
            return None
        names = ", ".join(dict.fromkeys(protocol_name(r.protocol) for r in unusual))
        return self._emit(
            AnomalyType.PROTOCOL,
            share(len(unusual), len(records)),
            f"Unusual protocols detected: {names}",
            span, len(unusual), unusual, "unusual-protocols",
        )

    def _timing(self, records, baseline, span) -> TrafficAnomaly | None:
        off_hours = [r for r in records if is_off_hours(r.timestamp)]
        if not off_hours:
            return None
        return self._emit(
            AnomalyType.TIMING,
            share(len(off_hours), len(records)),
            f"Unusual off-hours traffic: {len(off_hours)} connections outside business hours",
            span, len(off_hours), off_hours, "off-hours-traffic",
        )

    def _emit(
        self,
        kind: AnomalyType,
        severity: float,
        description: str,
        span: TimeRange,
        deviation: float,
        evidence: Sequence[FlowRecord],
        label: str,
    ) -> TrafficAnomaly | None:
        if severity < self.threshold:
            return None
        return TrafficAnomaly(
            id=f"{kind.value}-anomaly-{int(span.start.timestamp() * 1000)}",
            type=kind,
            severity=severity,
            description=description,
            time_range=span,
            evidence=AnomalyEvidence(
                statistical_significance=severity,
                deviation_from_baseline=deviation,
                related_records=list(evidence[:EVIDENCE_SAMPLE_SIZE]),
                patterns=[label],
            ),
        )
