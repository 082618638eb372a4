"""
statistics/models.py

Aggregate statistics over a batch of FlowRecords.

TrafficStatistics     — batch-level volume / port / protocol / rejection figures
EdgeTrafficStatistics — TrafficStatistics plus per-direction counters for one edge
TimeSeriesPoint       — one fixed-size window of the batch
IPStatistic           — one row of a top-source / top-destination table
RecordFilter          — criteria for filter_records()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..models import TimeRange


@dataclass(slots=True)
class PortStatistic:
    port: int
    protocol: str
    connections: int = 0
    bytes: int = 0
    packets: int = 0


@dataclass(slots=True)
class ProtocolDistribution:
    protocol: str
    bytes: int = 0
    packets: int = 0
    connections: int = 0
    percentage: float = 0.0
    """Share of the batch's total bytes, 0–100."""


@dataclass(slots=True)
class TimeSeriesPoint:
    timestamp: datetime
    """Start of the window."""

    bytes: int = 0
    packets: int = 0
    connections: int = 0
    accepted_connections: int = 0
    rejected_connections: int = 0


@dataclass(slots=True)
class TrafficStatistics:
    total_bytes: int = 0
    total_packets: int = 0
    total_connections: int = 0
    accepted_connections: int = 0
    rejected_connections: int = 0
    unique_source_ips: int = 0
    unique_destination_ips: int = 0

    top_ports: list[PortStatistic] = field(default_factory=list)
    protocol_distribution: list[ProtocolDistribution] = field(default_factory=list)

    bytes_per_second: float = 0.0
    connections_per_second: float = 0.0
    average_packet_size: float = 0.0

    unusual_ports: list[int] = field(default_factory=list)
    anomalous_connections: int = 0
    """Rejected connections."""

    suspicious_traffic: int = 0
    """Sum of high-port, large-transfer and rejected-to-common-port signals."""

    time_range: TimeRange | None = None
    time_series: list[TimeSeriesPoint] = field(default_factory=list)


@dataclass(slots=True)
class EdgeTrafficStatistics(TrafficStatistics):
    source_to_target_bytes: int = 0
    source_to_target_packets: int = 0
    target_to_source_bytes: int = 0
    target_to_source_packets: int = 0
    peak_traffic_time: datetime | None = None
    average_bytes_per_connection: float = 0.0


@dataclass(slots=True)
class IPStatistic:
    ip: str
    bytes: int = 0
    packets: int = 0
    connections: int = 0
    unique_peers: int = 0


@dataclass(slots=True)
class RecordFilter:
    """Every populated criterion must match; empty criteria match everything."""

    source_ips: frozenset[str] = frozenset()
    destination_ips: frozenset[str] = frozenset()
    ports: frozenset[int] = frozenset()
    """Matches either the source or the destination port."""

    protocols: frozenset[str] = frozenset()
    actions: frozenset[str] = frozenset()
    time_range: TimeRange | None = None
    min_bytes: int | None = None
    max_bytes: int | None = None
