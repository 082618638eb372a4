"""
statistics/processor.py

Batch-level helpers layered on the raw records:

    generate_time_series()  — contiguous fixed-size windows, empty ones included
    top_source_ips()        — busiest senders by bytes
    top_destination_ips()   — busiest receivers by bytes
    filter_records()        — subset of a batch matching a RecordFilter
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Sequence

from ..models import FlowRecord, protocol_name
from .models import IPStatistic, RecordFilter, TimeSeriesPoint


def window_start_ms(timestamp_ms: int, window_ms: int) -> int:
    """Start of the fixed window containing `timestamp_ms` (epoch-aligned)."""
    return timestamp_ms - (timestamp_ms % window_ms)


def generate_time_series(
    records: Sequence[FlowRecord],
    time_window_ms: int,
) -> list[TimeSeriesPoint]:
    if not records or time_window_ms <= 0:
        return []

    starts = [window_start_ms(r.timestamp_ms, time_window_ms) for r in records]
    first, last = min(starts), max(starts)
    points: dict[int, TimeSeriesPoint] = {}
    for ms in range(first, last + time_window_ms, time_window_ms):
        points[ms] = TimeSeriesPoint(timestamp=_from_ms(ms))

    for start, record in zip(starts, records):
        point = points[start]
        point.bytes += record.byte_count
        point.packets += record.packet_count
        point.connections += 1
        if record.is_rejected:
            point.rejected_connections += 1
        else:
            point.accepted_connections += 1

    return list(points.values())


def top_source_ips(records: Sequence[FlowRecord], limit: int = 10) -> list[IPStatistic]:
    return _top_ips(records, limit, outbound=True)


def top_destination_ips(records: Sequence[FlowRecord], limit: int = 10) -> list[IPStatistic]:
    return _top_ips(records, limit, outbound=False)


def filter_records(records: Sequence[FlowRecord], criteria: RecordFilter) -> list[FlowRecord]:
    protocols = {p.upper() for p in criteria.protocols}
    actions = {a.upper() for a in criteria.actions}
    matched: list[FlowRecord] = []
    for record in records:
        if criteria.source_ips and record.src_ip not in criteria.source_ips:
            continue
        if criteria.destination_ips and record.dst_ip not in criteria.destination_ips:
            continue
        if criteria.ports and not (
            record.src_port in criteria.ports or record.dst_port in criteria.ports
        ):
            continue
        if protocols and not (
            record.protocol.upper() in protocols
            or protocol_name(record.protocol).upper() in protocols
        ):
            continue
        if actions and record.action.upper() not in actions:
            continue
        if criteria.time_range is not None and not (
            criteria.time_range.start <= record.timestamp <= criteria.time_range.end
        ):
            continue
        if criteria.min_bytes is not None and record.byte_count < criteria.min_bytes:
            continue
        if criteria.max_bytes is not None and record.byte_count > criteria.max_bytes:
            continue
        matched.append(record)
    return matched


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _from_ms(ms: int) -> datetime:
    return datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=ms)


def _top_ips(records: Sequence[FlowRecord], limit: int, outbound: bool) -> list[IPStatistic]:
    table: dict[str, IPStatistic] = {}
    peers: dict[str, set[str]] = {}
    for record in records:
        ip, peer = (record.src_ip, record.dst_ip) if outbound else (record.dst_ip, record.src_ip)
        entry = table.get(ip)
        if entry is None:
            entry = table[ip] = IPStatistic(ip)
        entry.bytes += record.byte_count
        entry.packets += record.packet_count
        entry.connections += 1
        peers.setdefault(ip, set()).add(peer)

    for ip, entry in table.items():
        entry.unique_peers = len(peers[ip])
    return sorted(table.values(), key=lambda e: e.bytes, reverse=True)[:limit]
