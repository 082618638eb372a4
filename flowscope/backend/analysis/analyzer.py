"""
analysis/analyzer.py

TrafficAnalyzer — the traffic analysis entry point.

Sections, each gated by its own option:
    statistics + volume + connections   always
    patterns                            enable_pattern_detection
    anomalies                           enable_anomaly_detection
    security issues                     enable_security_analysis

Baseline lifecycle:
    reuse_baseline=True (default) — the first baseline this instance
        establishes is cached and reused by every later call, until
        reset_baseline().
    reuse_baseline=False — a fresh baseline from every batch.
    baseline=...  — an explicit baseline for one call; never cached.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from ..metrics import METRICS
from ..models import FlowRecord
from ..options import AnalysisOptions, coerce_options
from ..statistics.calculator import calculate_traffic_statistics
from ..validation.validator import FlowRecordValidator
from .baseline import AnomalyDetector, establish_baseline
from .connections import analyze_connections
from .models import AnomalyDetectionResult, TrafficAnalysisResult, TrafficBaseline
from .patterns import PatternDetector
from .security.analyzer import SecurityAnalyzer
from .volume import analyze_volume

logger = logging.getLogger(__name__)


class TrafficAnalyzer:
    def __init__(
        self,
        reuse_baseline: bool = True,
        validator: FlowRecordValidator | None = None,
        security: SecurityAnalyzer | None = None,
    ) -> None:
        self.reuse_baseline = reuse_baseline
        self._validator = validator or FlowRecordValidator()
        self._security = security or SecurityAnalyzer()
        self._baseline: TrafficBaseline | None = None
        self._lock = threading.Lock()

    @property
    def security(self) -> SecurityAnalyzer:
        return self._security

    @property
    def baseline(self) -> TrafficBaseline | None:
        """The cached baseline, if one has been established."""
        return self._baseline

    def reset_baseline(self) -> None:
        with self._lock:
            self._baseline = None
        logger.info("Cached traffic baseline cleared")

    def analyze_traffic_patterns(
        self,
        records: Iterable[Mapping[str, Any] | FlowRecord],
        options: AnalysisOptions | Mapping[str, Any] | None = None,
        baseline: TrafficBaseline | None = None,
        now: datetime | None = None,
    ) -> TrafficAnalysisResult:
        opts = coerce_options(AnalysisOptions, options)
        valid = self._validator.validate_batch(records).valid_records
        return self.analyze_valid_records(valid, opts, baseline=baseline, now=now)

    def analyze_valid_records(
        self,
        valid: list[FlowRecord],
        options: AnalysisOptions | Mapping[str, Any] | None = None,
        baseline: TrafficBaseline | None = None,
        now: datetime | None = None,
    ) -> TrafficAnalysisResult:
        """Analyze records that already passed FlowRecordValidator."""
        opts = coerce_options(AnalysisOptions, options)
        t0 = time.monotonic()
        now = now or datetime.now(timezone.utc)

        result = TrafficAnalysisResult(
            volume_analysis=analyze_volume(valid, opts.time_window_ms),
            connection_analysis=analyze_connections(valid),
            statistics=calculate_traffic_statistics(valid, opts.time_window_ms),
        )

        if opts.enable_pattern_detection:
            result.patterns = PatternDetector(
                opts.time_window_ms, opts.min_pattern_occurrences
            ).detect(valid)

        if opts.enable_anomaly_detection:
            result.anomalies = self._detect_anomalies(valid, opts, baseline, now)

        if opts.enable_security_analysis:
            result.security_issues = self._security.analyze(valid)

        anomaly_count = len(result.anomalies.anomalies) if result.anomalies else 0
        METRICS.analyses_run.inc()
        METRICS.anomalies_detected.inc(anomaly_count)
        METRICS.security_issues_raised.inc(len(result.security_issues))
        logger.info(
            "Analyzed traffic: records=%d patterns=%d anomalies=%d issues=%d in %.1fms",
            len(valid),
            len(result.patterns),
            anomaly_count,
            len(result.security_issues),
            (time.monotonic() - t0) * 1000,
        )
        return result

    def _detect_anomalies(
        self,
        records: list[FlowRecord],
        opts: AnalysisOptions,
        explicit: TrafficBaseline | None,
        now: datetime,
    ) -> AnomalyDetectionResult | None:
        baseline = explicit or self._resolve_baseline(records, opts.baseline_window_ms, now)
        if baseline is None:
            logger.debug("No baseline available (empty batch); skipping anomaly detection")
            return None
        return AnomalyDetector(opts.anomaly_threshold).detect(records, baseline, now=now)

    def _resolve_baseline(
        self,
        records: list[FlowRecord],
        baseline_window_ms: int,
        now: datetime,
    ) -> TrafficBaseline | None:
        if not self.reuse_baseline:
            return establish_baseline(records, baseline_window_ms, now=now)
        with self._lock:
            if self._baseline is None:
                self._baseline = establish_baseline(records, baseline_window_ms, now=now)
            return self._baseline


def analyze_traffic_patterns(
    records: Iterable[Mapping[str, Any] | FlowRecord],
    options: AnalysisOptions | Mapping[str, Any] | None = None,
    baseline: TrafficBaseline | None = None,
) -> TrafficAnalysisResult:
    """Analyze one batch with a fresh TrafficAnalyzer (no baseline carried over)."""
    return TrafficAnalyzer().analyze_traffic_patterns(records, options, baseline=baseline)
