"""
analysis/connections.py

Connection analysis: who talks to whom (coarse address patterns), how often,
and what gets rejected.

Address patterns collapse private IPv4 space to 'a.b.x.x' and everything else
to 'external'. A pattern's time label comes from its share of the batch:
    > 0.8 continuous, > 0.3 periodic, > 0.1 burst, else irregular.
"""

from __future__ import annotations

from typing import Sequence

from ..addresses import ip_pattern
from ..models import FlowRecord, protocol_name
from ..numeric import share
from .models import ConnectionAnalysis, ConnectionPattern, RejectionAnalysis

# Rejections to these ports are worth a second look
COMMONLY_OPEN_PORTS: frozenset[int] = frozenset({22, 80, 443, 25, 53})
HIGH_VALUE_PORTS: frozenset[int] = frozenset({3389, 1433, 3306, 5432, 6379})
DYNAMIC_PORT_FLOOR = 49_152


def time_pattern_for(ratio: float) -> str:
    if ratio > 0.8:
        return "continuous"
    if ratio > 0.3:
        return "periodic"
    if ratio > 0.1:
        return "burst"
    return "irregular"


def is_suspicious_rejection(record: FlowRecord) -> bool:
    port = record.dst_port
    return port in COMMONLY_OPEN_PORTS or port in HIGH_VALUE_PORTS or port > DYNAMIC_PORT_FLOOR


def analyze_connections(records: Sequence[FlowRecord]) -> ConnectionAnalysis:
    sources: set[str] = set()
    destinations: set[str] = set()
    patterns: dict[tuple[str, str], ConnectionPattern] = {}
    rejections = RejectionAnalysis()

    for record in records:
        sources.add(record.src_ip)
        destinations.add(record.dst_ip)
        proto = protocol_name(record.protocol)

        key = (ip_pattern(record.src_ip), ip_pattern(record.dst_ip))
        pattern = patterns.get(key)
        if pattern is None:
            pattern = patterns[key] = ConnectionPattern(*key)
        pattern.frequency += 1
        if proto not in pattern.protocols:
            pattern.protocols.append(proto)
        if record.dst_port not in pattern.ports:
            pattern.ports.append(record.dst_port)

        if record.is_rejected:
            rejections.total_rejections += 1
            rejections.by_port[record.dst_port] = rejections.by_port.get(record.dst_port, 0) + 1
            rejections.by_protocol[proto] = rejections.by_protocol.get(proto, 0) + 1
            rejections.by_source[record.src_ip] = rejections.by_source.get(record.src_ip, 0) + 1
            if is_suspicious_rejection(record):
                rejections.suspicious_rejections.append(record)

    for pattern in patterns.values():
        pattern.time_pattern = time_pattern_for(share(pattern.frequency, len(records)))
    rejections.rejection_rate = share(rejections.total_rejections, len(records))

    return ConnectionAnalysis(
        total_connections=len(records),
        unique_source_ips=len(sources),
        unique_destination_ips=len(destinations),
        patterns=list(patterns.values()),
        rejections=rejections,
    )
