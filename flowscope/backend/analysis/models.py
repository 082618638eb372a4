"""
analysis/models.py

Result types for traffic analysis.

TrafficPattern        — periodic / burst / baseline behaviour over time windows
TrafficBaseline       — thresholds learned from the early part of a batch
TrafficAnomaly        — one dimension that deviates from the baseline
SecurityIssue         — one finding from a security rule
TrafficAnalysisResult — everything analyze_traffic_patterns() returns

Ids are derived from the data (type + window start / first-seen time), so
analysing the same batch twice yields equal results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..models import FlowRecord, TimeRange
from ..statistics.models import TrafficStatistics

# Cap on the records attached to any anomaly / issue as evidence
EVIDENCE_SAMPLE_SIZE = 10


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PatternType(str, Enum):
    PERIODIC = "periodic"
    BURST    = "burst"
    BASELINE = "baseline"


class AnomalyType(str, Enum):
    VOLUME      = "volume"
    DESTINATION = "destination"
    PROTOCOL    = "protocol"
    TIMING      = "timing"


class IssueSeverity(str, Enum):
    LOW      = "low"
    MEDIUM   = "medium"
    HIGH     = "high"
    CRITICAL = "critical"


class IssueType(str, Enum):
    UNUSUAL_PORT        = "unusual-port"
    HIGH_REJECTION_RATE = "high-rejection-rate"
    LARGE_TRANSFER      = "large-transfer"
    PORT_SCAN           = "port-scan"


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class PatternCharacteristics:
    frequency: int = 0
    """Number of windows the pattern spans."""

    amplitude: float = 0.0
    """Bytes: mean window volume, or the burst window's volume."""

    duration_ms: int = 0
    protocols: list[str] = field(default_factory=list)
    ports: list[int] = field(default_factory=list)


@dataclass(slots=True)
class TrafficPattern:
    id: str
    type: PatternType
    confidence: float
    time_range: TimeRange
    characteristics: PatternCharacteristics = field(default_factory=PatternCharacteristics)


# ---------------------------------------------------------------------------
# Baseline / anomalies
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class BaselineThresholds:
    max_bytes_per_second: float = 0.0
    max_connections_per_second: float = 0.0
    max_unique_destinations: int = 0
    normal_ports: frozenset[int] = frozenset()
    normal_protocols: frozenset[str] = frozenset()


@dataclass(slots=True)
class TrafficBaseline:
    sample_size: int
    time_range: TimeRange
    thresholds: BaselineThresholds
    established_at: datetime | None = field(default=None, compare=False)


@dataclass(slots=True)
class AnomalyEvidence:
    statistical_significance: float
    deviation_from_baseline: float
    related_records: list[FlowRecord] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)


@dataclass(slots=True)
class TrafficAnomaly:
    id: str
    type: AnomalyType
    severity: float
    description: str
    time_range: TimeRange
    evidence: AnomalyEvidence
    affected_nodes: list[str] = field(default_factory=list)
    affected_edges: list[str] = field(default_factory=list)


@dataclass(slots=True)
class AnomalyDetectionResult:
    anomalies: list[TrafficAnomaly]
    baseline: TrafficBaseline
    confidence: float
    analysis_time: datetime | None = field(default=None, compare=False)


# ---------------------------------------------------------------------------
# Security issues
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class SecurityIssue:
    id: str
    type: IssueType
    severity: IssueSeverity
    description: str
    recommendation: str
    first_detected: datetime | None = None
    last_seen: datetime | None = None
    node_ids: list[str] = field(default_factory=list)
    edge_ids: list[str] = field(default_factory=list)
    source_ip: str | None = None
    """Set by rules whose finding belongs to one sender."""

    evidence: list[FlowRecord] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"<SecurityIssue {self.type.value} severity={self.severity.value}>"


# ---------------------------------------------------------------------------
# Volume / connection analysis
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class VolumeDistribution:
    time_range: TimeRange
    volume: int
    percentage: float


@dataclass(slots=True)
class VolumeTrend:
    period: str
    direction: str
    """'increasing' | 'decreasing' | 'stable'."""

    magnitude: float
    """Absolute slope in bytes per window."""

    confidence: float


@dataclass(slots=True)
class VolumeAnalysis:
    total_volume: int = 0
    average_volume: float = 0.0
    peak_volume: int = 0
    peak_time: datetime | None = None
    distribution: list[VolumeDistribution] = field(default_factory=list)
    trends: list[VolumeTrend] = field(default_factory=list)


@dataclass(slots=True)
class ConnectionPattern:
    source_pattern: str
    destination_pattern: str
    frequency: int = 0
    protocols: list[str] = field(default_factory=list)
    ports: list[int] = field(default_factory=list)
    time_pattern: str = "irregular"
    """'continuous' | 'periodic' | 'burst' | 'irregular'."""


@dataclass(slots=True)
class RejectionAnalysis:
    total_rejections: int = 0
    rejection_rate: float = 0.0
    by_port: dict[int, int] = field(default_factory=dict)
    by_protocol: dict[str, int] = field(default_factory=dict)
    by_source: dict[str, int] = field(default_factory=dict)
    suspicious_rejections: list[FlowRecord] = field(default_factory=list)


@dataclass(slots=True)
class ConnectionAnalysis:
    total_connections: int = 0
    unique_source_ips: int = 0
    unique_destination_ips: int = 0
    patterns: list[ConnectionPattern] = field(default_factory=list)
    rejections: RejectionAnalysis = field(default_factory=RejectionAnalysis)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class TrafficAnalysisResult:
    volume_analysis: VolumeAnalysis
    connection_analysis: ConnectionAnalysis
    statistics: TrafficStatistics
    patterns: list[TrafficPattern] = field(default_factory=list)
    anomalies: AnomalyDetectionResult | None = None
    security_issues: list[SecurityIssue] = field(default_factory=list)
