"""
topology/models.py

Typed graph model produced by the topology engine.

NodeCandidate    — one classification of one endpoint, before deduplication
NetworkNode      — deduplicated node, one per id
NetworkEdge      — one undirected endpoint pair with aggregated statistics
TopologyHierarchy — region → VPC → subnet → instance containment
NetworkTopology  — nodes + edges + hierarchy + quality metadata

Properties are closed typed fields plus a single `extra` map for anything
else a data source wants to attach.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any

from ..models import FlowRecord, TimeRange
from ..statistics.models import EdgeTrafficStatistics


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

class NodeType(str, Enum):
    VPC              = "vpc"
    SUBNET           = "subnet"
    INSTANCE         = "instance"
    TRANSIT_GATEWAY  = "transit-gateway"
    VPN              = "vpn"
    INTERNET_GATEWAY = "internet-gateway"
    NAT_GATEWAY      = "nat-gateway"
    LOAD_BALANCER    = "load-balancer"
    UNKNOWN          = "unknown"


# Kept by the filter regardless of traffic volume
INFRASTRUCTURE_TYPES: frozenset[NodeType] = frozenset(
    {NodeType.VPC, NodeType.SUBNET, NodeType.TRANSIT_GATEWAY}
)

# Higher wins when two identifications of one id have equal confidence
TYPE_SPECIFICITY: dict[NodeType, int] = {
    NodeType.UNKNOWN:          0,
    NodeType.INTERNET_GATEWAY: 1,
    NodeType.INSTANCE:         2,
    NodeType.NAT_GATEWAY:      3,
    NodeType.LOAD_BALANCER:    3,
    NodeType.VPN:              3,
    NodeType.SUBNET:           4,
    NodeType.VPC:              4,
    NodeType.TRANSIT_GATEWAY:  4,
}


@dataclass(slots=True)
class NodeProperties:
    ip_address: str | None = None
    port: int | None = None
    instance_id: str | None = None
    vpc_id: str | None = None
    subnet_id: str | None = None
    transit_gateway_id: str | None = None
    account_id: str | None = None
    region: str | None = None
    availability_zone: str | None = None
    cidr_block: str | None = None
    instance_type: str | None = None
    subnet_type: str | None = None
    is_external: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def fill_missing(self, other: "NodeProperties") -> None:
        """Copy every field that is unset here but set on `other`."""
        for name in (f.name for f in fields(self)):
            if name == "extra":
                for key, value in other.extra.items():
                    self.extra.setdefault(key, value)
            elif name == "is_external":
                self.is_external = self.is_external or other.is_external
            elif getattr(self, name) is None:
                setattr(self, name, getattr(other, name))


@dataclass(slots=True)
class NodeCandidate:
    node_id: str
    node_type: NodeType
    confidence: float
    properties: NodeProperties = field(default_factory=NodeProperties)


@dataclass(slots=True)
class NodeMetadata:
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    traffic_volume: int = 0
    connection_count: int = 0
    is_active: bool = False
    confidence: float = 0.0


@dataclass(slots=True)
class NetworkNode:
    id: str
    type: NodeType
    label: str
    properties: NodeProperties = field(default_factory=NodeProperties)
    metadata: NodeMetadata = field(default_factory=NodeMetadata)
    position: tuple[float, float] | None = None
    """Layout coordinates; left for the renderer."""

    def __repr__(self) -> str:
        return f"<Node {self.id} type={self.type.value} conf={self.metadata.confidence:.2f}>"


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

class ConnectionType(str, Enum):
    DIRECT   = "direct"
    ROUTED   = "routed"
    VPN      = "vpn"
    INTERNET = "internet"


@dataclass(slots=True)
class EdgeProperties:
    protocols: list[str] = field(default_factory=list)
    ports: list[int] = field(default_factory=list)
    has_rejected_connections: bool = False
    rejection_rate: float = 0.0
    bidirectional: bool = False
    connection_type: ConnectionType = ConnectionType.DIRECT
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class EdgeMetadata:
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    is_active: bool = False
    confidence: float = 1.0
    anomaly_score: float = 0.0


@dataclass(slots=True)
class NetworkEdge:
    id: str
    """'<smaller id>--<larger id>'."""

    source: str
    target: str
    flow_records: list[FlowRecord] = field(default_factory=list)
    traffic_stats: EdgeTrafficStatistics = field(default_factory=EdgeTrafficStatistics)
    properties: EdgeProperties = field(default_factory=EdgeProperties)
    metadata: EdgeMetadata = field(default_factory=EdgeMetadata)

    def __repr__(self) -> str:
        return (
            f"<Edge {self.source}->{self.target} "
            f"bytes={self.traffic_stats.total_bytes} "
            f"anomaly={self.metadata.anomaly_score:.2f}>"
        )


# ---------------------------------------------------------------------------
# Hierarchy
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class RegionInfo:
    vpcs: list[str] = field(default_factory=list)
    transit_gateways: list[str] = field(default_factory=list)


@dataclass(slots=True)
class VpcInfo:
    subnets: list[str] = field(default_factory=list)
    instances: list[str] = field(default_factory=list)
    cidr_block: str | None = None
    account_id: str | None = None
    region: str | None = None


@dataclass(slots=True)
class SubnetInfo:
    instances: list[str] = field(default_factory=list)
    vpc_id: str | None = None
    cidr_block: str | None = None
    availability_zone: str | None = None
    subnet_type: str = "private"


@dataclass(slots=True)
class InstanceInfo:
    subnet_id: str | None = None
    private_ip_address: str | None = None
    public_ip_address: str | None = None
    instance_type: str | None = None
    state: str = "running"


@dataclass(slots=True)
class TopologyHierarchy:
    regions: dict[str, RegionInfo] = field(default_factory=dict)
    vpcs: dict[str, VpcInfo] = field(default_factory=dict)
    subnets: dict[str, SubnetInfo] = field(default_factory=dict)
    instances: dict[str, InstanceInfo] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Topology
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class TopologyMetadata:
    last_updated: datetime | None = field(default=None, compare=False)
    record_count: int = 0
    invalid_record_count: int = 0
    time_range: TimeRange | None = None
    processing_time_ms: float = field(default=0.0, compare=False)
    data_source: str = "flow-logs"
    version: str = "1.0"
    completeness: float = 0.0
    accuracy: float = 0.0
    freshness: float = 0.0


@dataclass(slots=True)
class NetworkTopology:
    nodes: list[NetworkNode] = field(default_factory=list)
    edges: list[NetworkEdge] = field(default_factory=list)
    metadata: TopologyMetadata = field(default_factory=TopologyMetadata)
    hierarchy: TopologyHierarchy = field(default_factory=TopologyHierarchy)

    def node(self, node_id: str) -> NetworkNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edge(self, edge_id: str) -> NetworkEdge | None:
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None
