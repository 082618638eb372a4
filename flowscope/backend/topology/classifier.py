"""
topology/classifier.py

Node identification: every record yields one candidate per endpoint plus one
per infrastructure tag it carries.

Classification order for one record:
    1. source endpoint tagged with instance_id  → instance (0.9), id = instance id
    2. vpc_id / subnet_id / transit_gateway_id  → vpc / subnet / transit-gateway (1.0)
    3. every other endpoint goes through IP_RULES; the first matching rule wins

IP_RULES is plain data: (name, predicate, node type, confidence). Adding a
heuristic means adding a row, not another branch.

Deduplication lives in NodeStore.merge(): higher confidence wins, then the
more specific type; on a full tie the incumbent stays and only gains the
properties it was missing. Arrival order never changes the winning type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable

from ..addresses import address_node_id, is_external_ip, is_private_ip
from ..models import FlowRecord
from .models import (
    TYPE_SPECIFICITY,
    NetworkNode,
    NodeCandidate,
    NodeMetadata,
    NodeProperties,
    NodeType,
)

logger = logging.getLogger(__name__)

LOAD_BALANCER_PORTS: frozenset[int] = frozenset({80, 443, 8080, 8443})
NAT_GATEWAY_PORTS: frozenset[int] = frozenset({80, 443})

TAGGED_INSTANCE_CONFIDENCE = 0.9
INFRASTRUCTURE_CONFIDENCE = 1.0


# ---------------------------------------------------------------------------
# IP rule table
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class IpRule:
    name: str
    matches: Callable[[str, int], bool]
    node_type: NodeType
    confidence: float


IP_RULES: tuple[IpRule, ...] = (
    IpRule(
        "private-load-balancer-port",
        lambda ip, port: is_private_ip(ip) and port in LOAD_BALANCER_PORTS,
        NodeType.LOAD_BALANCER, 0.7,
    ),
    IpRule(
        "private-nat-port",
        lambda ip, port: is_private_ip(ip) and port in NAT_GATEWAY_PORTS,
        NodeType.NAT_GATEWAY, 0.8,
    ),
    IpRule(
        "private-address",
        lambda ip, port: is_private_ip(ip),
        NodeType.INSTANCE, 0.6,
    ),
    IpRule(
        "global-address",
        lambda ip, port: is_external_ip(ip),
        NodeType.INTERNET_GATEWAY, 0.4,
    ),
    IpRule(
        "fallback",
        lambda ip, port: True,
        NodeType.UNKNOWN, 0.3,
    ),
)


def classify_address(ip: str, port: int) -> IpRule:
    """First rule in IP_RULES that matches (the last row always matches)."""
    for rule in IP_RULES:
        if rule.matches(ip, port):
            return rule
    return IP_RULES[-1]


# ---------------------------------------------------------------------------
# Endpoint ids (shared with the edge aggregator)
# ---------------------------------------------------------------------------

def source_node_id(record: FlowRecord) -> str:
    if record.instance_id:
        return record.instance_id
    return address_node_id(record.src_ip)


def destination_node_id(record: FlowRecord) -> str:
    return address_node_id(record.dst_ip)


def endpoint_node_ids(record: FlowRecord) -> tuple[str, str]:
    """(source node id, destination node id) for a record."""
    return source_node_id(record), destination_node_id(record)


# ---------------------------------------------------------------------------
# Candidate generation
# ---------------------------------------------------------------------------

def record_candidates(record: FlowRecord) -> list[NodeCandidate]:
    candidates: list[NodeCandidate] = []

    if record.instance_id:
        candidates.append(NodeCandidate(
            node_id=record.instance_id,
            node_type=NodeType.INSTANCE,
            confidence=TAGGED_INSTANCE_CONFIDENCE,
            properties=NodeProperties(
                ip_address=record.src_ip,
                port=record.src_port,
                instance_id=record.instance_id,
                vpc_id=record.vpc_id,
                subnet_id=record.subnet_id,
                account_id=record.account_id,
                region=record.region,
                availability_zone=record.availability_zone,
                is_external=is_external_ip(record.src_ip),
            ),
        ))
    else:
        candidates.append(_address_candidate(record, record.src_ip, record.src_port))

    if record.vpc_id:
        candidates.append(NodeCandidate(
            node_id=record.vpc_id,
            node_type=NodeType.VPC,
            confidence=INFRASTRUCTURE_CONFIDENCE,
            properties=NodeProperties(
                vpc_id=record.vpc_id,
                account_id=record.account_id,
                region=record.region,
            ),
        ))
    if record.subnet_id:
        candidates.append(NodeCandidate(
            node_id=record.subnet_id,
            node_type=NodeType.SUBNET,
            confidence=INFRASTRUCTURE_CONFIDENCE,
            properties=NodeProperties(
                subnet_id=record.subnet_id,
                vpc_id=record.vpc_id,
                account_id=record.account_id,
                region=record.region,
                availability_zone=record.availability_zone,
            ),
        ))
    if record.transit_gateway_id:
        candidates.append(NodeCandidate(
            node_id=record.transit_gateway_id,
            node_type=NodeType.TRANSIT_GATEWAY,
            confidence=INFRASTRUCTURE_CONFIDENCE,
            properties=NodeProperties(
                transit_gateway_id=record.transit_gateway_id,
                account_id=record.account_id,
                region=record.region,
                extra=(
                    {"attachment_id": record.transit_gateway_attachment_id}
                    if record.transit_gateway_attachment_id else {}
                ),
            ),
        ))

    candidates.append(_address_candidate(record, record.dst_ip, record.dst_port))
    return candidates


def _address_candidate(record: FlowRecord, ip: str, port: int) -> NodeCandidate:
    rule = classify_address(ip, port)
    properties = NodeProperties(ip_address=ip, port=port, is_external=is_external_ip(ip))
    # Resource tags describe the record's own network, so only private
    # endpoints inherit them.
    if is_private_ip(ip):
        properties.vpc_id = record.vpc_id
        properties.subnet_id = record.subnet_id
        properties.account_id = record.account_id
        properties.region = record.region
    return NodeCandidate(
        node_id=address_node_id(ip),
        node_type=rule.node_type,
        confidence=rule.confidence,
        properties=properties,
    )


# ---------------------------------------------------------------------------
# NodeStore
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class _Activity:
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    connection_count: int = 0

    def touch(self, ts: datetime) -> None:
        if self.first_seen is None or ts < self.first_seen:
            self.first_seen = ts
        if self.last_seen is None or ts > self.last_seen:
            self.last_seen = ts
        self.connection_count += 1


@dataclass(slots=True)
class NodeStore:
    """Deduplicating store of node candidates keyed by node id."""

    _candidates: dict[str, NodeCandidate] = field(default_factory=dict)
    _activity: dict[str, _Activity] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._candidates)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._candidates

    def get(self, node_id: str) -> NodeCandidate | None:
        return self._candidates.get(node_id)

    def merge(self, candidate: NodeCandidate) -> NodeCandidate:
        """Insert `candidate` or merge it into the stored one; return the winner."""
        current = self._candidates.get(candidate.node_id)
        if current is None:
            self._candidates[candidate.node_id] = candidate
            return candidate

        if _outranks(candidate, current):
            candidate.properties.fill_missing(current.properties)
            self._candidates[candidate.node_id] = candidate
            logger.debug(
                "Node %s reclassified %s(%.2f) -> %s(%.2f)",
                candidate.node_id, current.node_type.value, current.confidence,
                candidate.node_type.value, candidate.confidence,
            )
            return candidate

        current.properties.fill_missing(candidate.properties)
        return current

    def touch(self, node_id: str, ts: datetime) -> None:
        """Record one record's worth of activity for `node_id`."""
        self._activity.setdefault(node_id, _Activity()).touch(ts)

    def to_nodes(self, include_unknown: bool = True) -> list[NetworkNode]:
        """Materialise one NetworkNode per id, in first-seen order."""
        nodes: list[NetworkNode] = []
        for node_id, candidate in self._candidates.items():
            if not include_unknown and candidate.node_type is NodeType.UNKNOWN:
                continue
            activity = self._activity.get(node_id, _Activity())
            nodes.append(NetworkNode(
                id=node_id,
                type=candidate.node_type,
                label=_label_for(candidate),
                properties=candidate.properties,
                metadata=NodeMetadata(
                    first_seen=activity.first_seen,
                    last_seen=activity.last_seen,
                    connection_count=activity.connection_count,
                    is_active=activity.connection_count > 0,
                    confidence=candidate.confidence,
                ),
            ))
        return nodes


def _outranks(challenger: NodeCandidate, incumbent: NodeCandidate) -> bool:
    if challenger.confidence != incumbent.confidence:
        return challenger.confidence > incumbent.confidence
    return TYPE_SPECIFICITY[challenger.node_type] > TYPE_SPECIFICITY[incumbent.node_type]


def _label_for(candidate: NodeCandidate) -> str:
    # Address-derived ids read better as the address itself
    if candidate.node_id.startswith(("ip-", "external-")) and candidate.properties.ip_address:
        return candidate.properties.ip_address
    return candidate.node_id


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def identify_nodes(records: Iterable[FlowRecord]) -> NodeStore:
    """Run every record through the classifier into a fresh NodeStore."""
    store = NodeStore()
    for record in records:
        seen: set[str] = set()
        for candidate in record_candidates(record):
            store.merge(candidate)
            if candidate.node_id not in seen:
                seen.add(candidate.node_id)
                store.touch(candidate.node_id, record.timestamp)
    logger.debug("Identified %d node(s)", len(store))
    return store
