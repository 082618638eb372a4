"""
topology/engine.py

TopologyEngine — turns a batch of flow records into a NetworkTopology.

Pipeline:
    validate → identify nodes → aggregate edges → node traffic volume
    → filter (threshold + caps) → hierarchy → quality metadata

Filtering:
    nodes  — keep volume ≥ min_traffic_threshold, plus every infrastructure
             node (vpc / subnet / transit-gateway) regardless of volume;
             rank by volume desc then id; cap at max_nodes.
    edges  — keep total bytes ≥ min_traffic_threshold; rank by bytes desc
             then id; cap at max_edges.
    Node and edge filtering are independent: an edge may reference a node
    that the node cap removed.

Quality scores (n = valid records):
    completeness — mean of min(nodes / min(n/10, 100), 1) and
                   min(edges / min(n/5, 200), 1)
    accuracy     — 0.4·instance-tagged + 0.3·vpc-tagged + 0.3·subnet-tagged
                   share of records, floor 0.1
    freshness    — step decay on the age of the newest record
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from ..metrics import METRICS
from ..models import FlowRecord, TimeRange
from ..numeric import mean, safe_div, share, time_bounds
from ..options import TopologyOptions, coerce_options
from ..validation.validator import BatchValidation, FlowRecordValidator
from .classifier import identify_nodes
from .edges import aggregate_edges
from .hierarchy import build_hierarchy
from .models import (
    INFRASTRUCTURE_TYPES,
    NetworkEdge,
    NetworkNode,
    NetworkTopology,
    TopologyMetadata,
)

logger = logging.getLogger(__name__)

# (max age in hours, score); the first bound the age is under wins
_FRESHNESS_STEPS: tuple[tuple[float, float], ...] = (
    (1, 1.0),
    (6, 0.8),
    (24, 0.6),
    (168, 0.4),
)
_STALE_FRESHNESS = 0.2
_MIN_ACCURACY = 0.1


class TopologyEngine:
    def __init__(self, validator: FlowRecordValidator | None = None) -> None:
        self._validator = validator or FlowRecordValidator()

    def build_topology(
        self,
        records: Iterable[Mapping[str, Any] | FlowRecord],
        options: TopologyOptions | Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> NetworkTopology:
        opts = coerce_options(TopologyOptions, options)
        batch = self._validator.validate_batch(records)
        return self.build_from_batch(batch, opts, now=now)

    def build_from_batch(
        self,
        batch: BatchValidation,
        options: TopologyOptions | Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> NetworkTopology:
        """Build from an already-validated batch (invalid records are only counted)."""
        opts = coerce_options(TopologyOptions, options)
        t0 = time.monotonic()
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        valid = batch.valid_records

        if not valid:
            topology = NetworkTopology(
                metadata=TopologyMetadata(
                    last_updated=now,
                    invalid_record_count=len(batch.invalid_records),
                ),
            )
        else:
            store = identify_nodes(valid)
            nodes = store.to_nodes(include_unknown=opts.include_unknown_nodes)
            edges = aggregate_edges(valid)

            _apply_traffic_volume(nodes, edges)
            nodes = filter_nodes(nodes, opts.min_traffic_threshold, opts.max_nodes)
            edges = filter_edges(edges, opts.min_traffic_threshold, opts.max_edges)

            bounds = time_bounds(r.timestamp for r in valid)
            topology = NetworkTopology(
                nodes=nodes,
                edges=edges,
                hierarchy=build_hierarchy(nodes, valid),
                metadata=TopologyMetadata(
                    last_updated=now,
                    record_count=len(valid),
                    invalid_record_count=len(batch.invalid_records),
                    time_range=TimeRange(*bounds) if bounds else None,
                    completeness=completeness(len(valid), len(nodes), len(edges)),
                    accuracy=accuracy(valid),
                    freshness=freshness(bounds[1], now) if bounds else 0.0,
                ),
            )

        topology.metadata.processing_time_ms = (time.monotonic() - t0) * 1000
        METRICS.topologies_built.inc()
        logger.info(
            "Built topology: records=%d invalid=%d nodes=%d edges=%d in %.1fms",
            topology.metadata.record_count,
            topology.metadata.invalid_record_count,
            len(topology.nodes),
            len(topology.edges),
            topology.metadata.processing_time_ms,
        )
        return topology


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

def _apply_traffic_volume(nodes: Sequence[NetworkNode], edges: Sequence[NetworkEdge]) -> None:
    volume: dict[str, int] = {}
    for edge in edges:
        for endpoint in (edge.source, edge.target):
            volume[endpoint] = volume.get(endpoint, 0) + edge.traffic_stats.total_bytes
    for node in nodes:
        node.metadata.traffic_volume = volume.get(node.id, 0)


def filter_nodes(nodes: Sequence[NetworkNode], threshold: int, cap: int) -> list[NetworkNode]:
    kept = [
        n for n in nodes
        if n.metadata.traffic_volume >= threshold or n.type in INFRASTRUCTURE_TYPES
    ]
    kept.sort(key=lambda n: (-n.metadata.traffic_volume, n.id))
    return kept[:cap]


def filter_edges(edges: Sequence[NetworkEdge], threshold: int, cap: int) -> list[NetworkEdge]:
    kept = [e for e in edges if e.traffic_stats.total_bytes >= threshold]
    kept.sort(key=lambda e: (-e.traffic_stats.total_bytes, e.id))
    return kept[:cap]


# ---------------------------------------------------------------------------
# Quality scores
# ---------------------------------------------------------------------------

def completeness(record_count: int, node_count: int, edge_count: int) -> float:
    expected_nodes = min(record_count / 10, 100)
    expected_edges = min(record_count / 5, 200)
    return mean([
        min(safe_div(node_count, expected_nodes), 1.0),
        min(safe_div(edge_count, expected_edges), 1.0),
    ])


def accuracy(records: Sequence[FlowRecord]) -> float:
    total = len(records)
    if total == 0:
        return 0.0
    score = (
        0.4 * share(sum(1 for r in records if r.instance_id), total)
        + 0.3 * share(sum(1 for r in records if r.vpc_id), total)
        + 0.3 * share(sum(1 for r in records if r.subnet_id), total)
    )
    return max(score, _MIN_ACCURACY)


def freshness(latest: datetime, now: datetime) -> float:
    age_hours = (now - latest).total_seconds() / 3600
    for bound, score in _FRESHNESS_STEPS:
        if age_hours < bound:
            return score
    return _STALE_FRESHNESS


# ---------------------------------------------------------------------------
# Module-level entry point
# ---------------------------------------------------------------------------

def build_topology(
    records: Iterable[Mapping[str, Any] | FlowRecord],
    options: TopologyOptions | Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> NetworkTopology:
    """Build a topology with a fresh TopologyEngine."""
    return TopologyEngine().build_topology(records, options, now=now)
