"""topology/__init__.py"""
from .classifier import IP_RULES, NodeStore, endpoint_node_ids, identify_nodes
from .edges import aggregate_edges, edge_id
from .engine import TopologyEngine, build_topology
from .hierarchy import HierarchyBuilder, build_hierarchy
from .models import (
    ConnectionType,
    NetworkEdge,
    NetworkNode,
    NetworkTopology,
    NodeCandidate,
    NodeProperties,
    NodeType,
    TopologyHierarchy,
    TopologyMetadata,
)

__all__ = [
    "IP_RULES",
    "NodeStore",
    "endpoint_node_ids",
    "identify_nodes",
    "aggregate_edges",
    "edge_id",
    "TopologyEngine",
    "build_topology",
    "HierarchyBuilder",
    "build_hierarchy",
    "ConnectionType",
    "NetworkEdge",
    "NetworkNode",
    "NetworkTopology",
    "NodeCandidate",
    "NodeProperties",
    "NodeType",
    "TopologyHierarchy",
    "TopologyMetadata",
]
