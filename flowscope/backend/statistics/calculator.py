"""
statistics/calculator.py

Pure aggregation of a record batch into TrafficStatistics.

Design notes:
  - Single pass over the records; every per-key table is a plain dict so
    first-seen order is preserved for free.
  - Top ports are ranked by connection count with a stable sort, so ties keep
    the order in which the (port, protocol) pair first appeared.
  - Rates divide by the batch's own min/max span, floored to 1 s
    (numeric.span_seconds). No NaN / inf can escape.
"""

from __future__ import annotations

from typing import Callable, Sequence

from ..models import FlowRecord, TimeRange, protocol_name
from ..numeric import percentage, safe_div, span_seconds, time_bounds
from .models import (
    EdgeTrafficStatistics,
    PortStatistic,
    ProtocolDistribution,
    TrafficStatistics,
)
from .processor import generate_time_series

COMMON_PORTS: frozenset[int] = frozenset(
    {22, 23, 25, 53, 80, 110, 143, 443, 993, 995, 3389}
)

# Ports whose rejection counts towards suspicious_traffic
SENSITIVE_PORTS: frozenset[int] = frozenset({22, 80, 443, 3389})

DYNAMIC_PORT_FLOOR = 49_152
LARGE_FLOW_BYTES = 1_000_000
TOP_PORTS_LIMIT = 10


def calculate_traffic_statistics(
    records: Sequence[FlowRecord],
    time_window_ms: int | None = None,
) -> TrafficStatistics:
    stats = TrafficStatistics()
    _accumulate(stats, records)
    if time_window_ms and records:
        stats.time_series = generate_time_series(records, time_window_ms)
    return stats


def calculate_edge_statistics(
    records: Sequence[FlowRecord],
    source_id: str,
    endpoint_ids: Callable[[FlowRecord], tuple[str, str]],
) -> EdgeTrafficStatistics:
    """
    Statistics for one edge.

    `endpoint_ids` maps a record to its (source node id, destination node id);
    records whose source id equals `source_id` travel source → target, every
    other record travels target → source.
    """
    stats = EdgeTrafficStatistics()
    _accumulate(stats, records)

    peak: FlowRecord | None = None
    for record in records:
        if endpoint_ids(record)[0] == source_id:
            stats.source_to_target_bytes += record.byte_count
            stats.source_to_target_packets += record.packet_count
        else:
            stats.target_to_source_bytes += record.byte_count
            stats.target_to_source_packets += record.packet_count
        if peak is None or record.byte_count > peak.byte_count:
            peak = record

    stats.peak_traffic_time = peak.timestamp if peak is not None else None
    stats.average_bytes_per_connection = safe_div(stats.total_bytes, stats.total_connections)
    return stats


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _accumulate(stats: TrafficStatistics, records: Sequence[FlowRecord]) -> None:
    if not records:
        return

    sources: set[str] = set()
    destinations: set[str] = set()
    ports: dict[tuple[int, str], PortStatistic] = {}
    protocols: dict[str, ProtocolDistribution] = {}
    unusual: dict[int, None] = {}

    for record in records:
        proto = protocol_name(record.protocol)

        stats.total_bytes += record.byte_count
        stats.total_packets += record.packet_count
        stats.total_connections += 1
        if record.is_rejected:
            stats.rejected_connections += 1
        else:
            stats.accepted_connections += 1

        sources.add(record.src_ip)
        destinations.add(record.dst_ip)

        port_stat = ports.get((record.dst_port, proto))
        if port_stat is None:
            port_stat = ports[(record.dst_port, proto)] = PortStatistic(record.dst_port, proto)
        port_stat.connections += 1
        port_stat.bytes += record.byte_count
        port_stat.packets += record.packet_count

        dist = protocols.get(proto)
        if dist is None:
            dist = protocols[proto] = ProtocolDistribution(proto)
        dist.bytes += record.byte_count
        dist.packets += record.packet_count
        dist.connections += 1

        if record.dst_port not in COMMON_PORTS:
            unusual.setdefault(record.dst_port, None)

        if record.dst_port > DYNAMIC_PORT_FLOOR:
            stats.suspicious_traffic += 1
        if record.byte_count > LARGE_FLOW_BYTES:
            stats.suspicious_traffic += 1
        if record.is_rejected and record.dst_port in SENSITIVE_PORTS:
            stats.suspicious_traffic += 1

    stats.unique_source_ips = len(sources)
    stats.unique_destination_ips = len(destinations)
    stats.top_ports = sorted(
        ports.values(), key=lambda p: p.connections, reverse=True
    )[:TOP_PORTS_LIMIT]

    for dist in protocols.values():
        dist.percentage = percentage(dist.bytes, stats.total_bytes)
    stats.protocol_distribution = sorted(
        protocols.values(), key=lambda d: d.bytes, reverse=True
    )

    stats.unusual_ports = list(unusual)
    stats.anomalous_connections = stats.rejected_connections

    bounds = time_bounds(r.timestamp for r in records)
    if bounds is not None:
        stats.time_range = TimeRange(*bounds)
    span = span_seconds(*bounds) if bounds else span_seconds(None, None)
    stats.bytes_per_second = safe_div(stats.total_bytes, span)
    stats.connections_per_second = safe_div(stats.total_connections, span)
    stats.average_packet_size = safe_div(stats.total_bytes, stats.total_packets)
