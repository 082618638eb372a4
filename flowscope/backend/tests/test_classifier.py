"""
tests/test_classifier.py

Tests for topology/classifier.py — IP rule table, tag-derived candidates,
and NodeStore deduplication.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from flowscope.backend.models import FlowRecord
from flowscope.backend.topology import NodeCandidate, NodeProperties, NodeStore, NodeType
from flowscope.backend.topology.classifier import (
    classify_address,
    endpoint_node_ids,
    identify_nodes,
    record_candidates,
)

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_record(
    src_ip: str = "10.0.0.1",
    dst_ip: str = "10.0.0.2",
    dst_port: int = 5432,
    timestamp: datetime = T0,
    **tags,
) -> FlowRecord:
    return FlowRecord(
        timestamp=timestamp,
        src_ip=src_ip,
        dst_ip=dst_ip,
        src_port=40_000,
        dst_port=dst_port,
        protocol="TCP",
        action="ACCEPT",
        byte_count=100,
        packet_count=1,
        **tags,
    )


# ---------------------------------------------------------------------------
# IP rules
# ---------------------------------------------------------------------------

class TestClassifyAddress:

    @pytest.mark.parametrize("ip, port, expected", [
        ("10.0.0.5",    443,  NodeType.LOAD_BALANCER),
        ("172.16.4.2",  8080, NodeType.LOAD_BALANCER),
        ("192.168.1.1", 5432, NodeType.INSTANCE),
        ("8.8.8.8",     443,  NodeType.INTERNET_GATEWAY),
        ("127.0.0.1",   80,   NodeType.UNKNOWN),
        ("100.64.0.1",  22,   NodeType.UNKNOWN),
    ])
    def test_first_matching_rule(self, ip, port, expected):
        assert classify_address(ip, port).node_type is expected

    def test_confidences(self):
        assert classify_address("10.0.0.5", 80).confidence == 0.7
        assert classify_address("10.0.0.5", 22).confidence == 0.6
        assert classify_address("8.8.8.8", 22).confidence == 0.4
        assert classify_address("127.0.0.1", 22).confidence == 0.3


class TestCandidates:

    def test_instance_tag_names_source(self):
        record = make_record(instance_id="i-abc", vpc_id="vpc-1", subnet_id="subnet-1")
        candidates = record_candidates(record)
        by_id = {c.node_id: c for c in candidates}
        assert by_id["i-abc"].node_type is NodeType.INSTANCE
        assert by_id["i-abc"].confidence == 0.9
        assert by_id["i-abc"].properties.ip_address == "10.0.0.1"
        assert by_id["vpc-1"].node_type is NodeType.VPC
        assert by_id["subnet-1"].node_type is NodeType.SUBNET
        assert by_id["subnet-1"].properties.vpc_id == "vpc-1"
        assert "ip-10-0-0-1" not in by_id
        assert "ip-10-0-0-2" in by_id

    def test_transit_gateway_candidate(self):
        record = make_record(
            transit_gateway_id="tgw-1", transit_gateway_attachment_id="tgw-attach-9"
        )
        tgw = next(c for c in record_candidates(record) if c.node_id == "tgw-1")
        assert tgw.node_type is NodeType.TRANSIT_GATEWAY
        assert tgw.confidence == 1.0
        assert tgw.properties.extra == {"attachment_id": "tgw-attach-9"}

    def test_external_endpoint_ids(self):
        record = make_record(src_ip="10.0.0.1", dst_ip="8.8.8.8")
        assert endpoint_node_ids(record) == ("ip-10-0-0-1", "external-8-8-8-8")

    def test_tags_not_attached_to_external_endpoints(self):
        record = make_record(dst_ip="8.8.8.8", vpc_id="vpc-1")
        external = next(c for c in record_candidates(record) if c.node_id == "external-8-8-8-8")
        assert external.properties.vpc_id is None
        assert external.properties.is_external


# ---------------------------------------------------------------------------
# NodeStore
# ---------------------------------------------------------------------------

def _candidate(node_type: NodeType, confidence: float, **props) -> NodeCandidate:
    return NodeCandidate("ip-10-0-0-9", node_type, confidence, NodeProperties(**props))


class TestNodeStore:

    @pytest.mark.parametrize("order", [(0, 1), (1, 0)])
    def test_higher_confidence_wins_in_any_order(self, order):
        candidates = [
            _candidate(NodeType.INSTANCE, 0.6, vpc_id="vpc-1"),
            _candidate(NodeType.LOAD_BALANCER, 0.7, port=443),
        ]
        store = NodeStore()
        for i in order:
            store.merge(candidates[i])
        winner = store.get("ip-10-0-0-9")
        assert winner.node_type is NodeType.LOAD_BALANCER
        assert winner.properties.vpc_id == "vpc-1"
        assert winner.properties.port == 443

    def test_tie_goes_to_more_specific_type(self):
        store = NodeStore()
        store.merge(_candidate(NodeType.UNKNOWN, 0.5))
        store.merge(_candidate(NodeType.INSTANCE, 0.5))
        assert store.get("ip-10-0-0-9").node_type is NodeType.INSTANCE

    def test_full_tie_keeps_incumbent_and_fills_gaps(self):
        store = NodeStore()
        first = store.merge(_candidate(NodeType.INSTANCE, 0.6, region="us-east-1"))
        store.merge(_candidate(NodeType.INSTANCE, 0.6, region="eu-west-1", account_id="123"))
        assert store.get("ip-10-0-0-9") is first
        assert first.properties.region == "us-east-1"
        assert first.properties.account_id == "123"

    def test_len_and_contains(self):
        store = NodeStore()
        store.merge(_candidate(NodeType.INSTANCE, 0.6))
        assert len(store) == 1
        assert "ip-10-0-0-9" in store
        assert "ip-10-0-0-8" not in store


class TestIdentifyNodes:

    def test_one_node_per_id(self):
        records = [make_record(), make_record(), make_record(src_ip="10.0.0.2", dst_ip="10.0.0.1")]
        nodes = identify_nodes(records).to_nodes()
        assert sorted(n.id for n in nodes) == ["ip-10-0-0-1", "ip-10-0-0-2"]

    def test_activity(self):
        records = [
            make_record(timestamp=T0),
            make_record(timestamp=T0 + timedelta(minutes=3)),
        ]
        node = next(n for n in identify_nodes(records).to_nodes() if n.id == "ip-10-0-0-1")
        assert node.metadata.connection_count == 2
        assert node.metadata.first_seen == T0
        assert node.metadata.last_seen == T0 + timedelta(minutes=3)
        assert node.metadata.is_active

    def test_unknown_nodes_can_be_excluded(self):
        store = identify_nodes([make_record(dst_ip="127.0.0.1")])
        ids = [n.id for n in store.to_nodes(include_unknown=False)]
        assert ids == ["ip-10-0-0-1"]

    def test_label_is_address(self):
        node = identify_nodes([make_record()]).to_nodes()[0]
        assert node.label == "10.0.0.1"
