"""
topology/edges.py

Edge aggregation: records are bucketed by their unordered endpoint pair, one
NetworkEdge per bucket.

Edge identity:
    id = '<smaller node id>--<larger node id>' (plain string comparison), so
    A→B and B→A records land in the same bucket.

Direction:
    `source` / `target` follow the majority of records; on a tie the smaller
    id is the source. Direction only affects labelling and the per-direction
    counters, never totals.

Anomaly score (capped at 1.0):
    +0.3  rejection rate > 0.5
    +0.2  > 20% of records to a destination port above 49152
    +0.2  > 10% of records larger than 1,000,000 bytes
    +0.3  > 50% of records outside business hours
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from ..addresses import is_external_ip
from ..models import FlowRecord, is_off_hours, protocol_name
from ..numeric import clamp, share
from ..statistics.calculator import calculate_edge_statistics
from .classifier import endpoint_node_ids
from .models import ConnectionType, EdgeMetadata, EdgeProperties, NetworkEdge

logger = logging.getLogger(__name__)

EDGE_ID_SEPARATOR = "--"

_HIGH_PORT_FLOOR = 49_152
_LARGE_RECORD_BYTES = 1_000_000


def edge_id(a: str, b: str) -> str:
    low, high = (a, b) if a <= b else (b, a)
    return f"{low}{EDGE_ID_SEPARATOR}{high}"


def aggregate_edges(records: Iterable[FlowRecord]) -> list[NetworkEdge]:
    """One edge per unordered endpoint pair, in first-seen order."""
    buckets: dict[tuple[str, str], list[FlowRecord]] = {}
    self_loops = 0
    for record in records:
        src, dst = endpoint_node_ids(record)
        if src == dst:
            self_loops += 1
            continue
        key = (src, dst) if src <= dst else (dst, src)
        buckets.setdefault(key, []).append(record)

    if self_loops:
        logger.debug("Dropped %d self-loop record(s)", self_loops)

    return [build_edge(low, high, bucket) for (low, high), bucket in buckets.items()]


def build_edge(low: str, high: str, records: Sequence[FlowRecord]) -> NetworkEdge:
    """Aggregate one bucket; `low` < `high` are the two endpoint ids."""
    forward = sum(1 for r in records if endpoint_node_ids(r)[0] == low)
    backward = len(records) - forward
    source, target = (low, high) if forward >= backward else (high, low)

    stats = calculate_edge_statistics(records, source, endpoint_node_ids)
    rejection_rate = share(stats.rejected_connections, stats.total_connections)

    return NetworkEdge(
        id=edge_id(low, high),
        source=source,
        target=target,
        flow_records=list(records),
        traffic_stats=stats,
        properties=EdgeProperties(
            protocols=list(dict.fromkeys(protocol_name(r.protocol) for r in records)),
            ports=sorted({r.dst_port for r in records}),
            has_rejected_connections=stats.rejected_connections > 0,
            rejection_rate=rejection_rate,
            bidirectional=forward > 0 and backward > 0,
            connection_type=connection_type(source, target, records),
        ),
        metadata=EdgeMetadata(
            first_seen=stats.time_range.start if stats.time_range else None,
            last_seen=stats.time_range.end if stats.time_range else None,
            is_active=bool(records),
            confidence=1.0,
            anomaly_score=anomaly_score(records),
        ),
    )


def connection_type(source: str, target: str, records: Sequence[FlowRecord]) -> ConnectionType:
    if source.startswith("tgw-") or target.startswith("tgw-"):
        return ConnectionType.ROUTED
    if any(r.transit_gateway_id for r in records):
        return ConnectionType.ROUTED
    # vpn- ids only reach an edge as a source's instance_id tag
    if source.startswith("vpn-") or target.startswith("vpn-"):
        return ConnectionType.VPN
    if any(is_external_ip(r.src_ip) or is_external_ip(r.dst_ip) for r in records):
        return ConnectionType.INTERNET
    return ConnectionType.DIRECT


def anomaly_score(records: Sequence[FlowRecord]) -> float:
    total = len(records)
    if total == 0:
        return 0.0

    score = 0.0
    if share(sum(1 for r in records if r.is_rejected), total) > 0.5:
        score += 0.3
    if share(sum(1 for r in records if r.dst_port > _HIGH_PORT_FLOOR), total) > 0.2:
        score += 0.2
    if share(sum(1 for r in records if r.byte_count > _LARGE_RECORD_BYTES), total) > 0.1:
        score += 0.2
    if share(sum(1 for r in records if is_off_hours(r.timestamp)), total) > 0.5:
        score += 0.3
    return clamp(score)
