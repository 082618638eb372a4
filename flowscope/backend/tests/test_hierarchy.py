"""
tests/test_hierarchy.py

Tests for topology/hierarchy.py — region / VPC / subnet / instance
containment built from nodes and record tags.
"""

from __future__ import annotations

from datetime import datetime, timezone

from flowscope.backend.models import FlowRecord
from flowscope.backend.topology import HierarchyBuilder, build_hierarchy, identify_nodes

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def tagged_record(**overrides) -> FlowRecord:
    data = dict(
        timestamp=T0,
        src_ip="10.0.1.5",
        dst_ip="10.0.2.7",
        src_port=40_000,
        dst_port=5432,
        protocol="TCP",
        action="ACCEPT",
        byte_count=100,
        packet_count=1,
        account_id="111122223333",
        region="us-east-1",
        vpc_id="vpc-1",
        subnet_id="subnet-1",
        instance_id="i-1",
    )
    data.update(overrides)
    return FlowRecord(**data)


def hierarchy_for(records):
    nodes = identify_nodes(records).to_nodes()
    return build_hierarchy(nodes, records)


class TestContainment:

    def test_region_vpc_subnet_instance_chain(self):
        h = hierarchy_for([tagged_record()])
        assert h.regions["us-east-1"].vpcs == ["vpc-1"]
        assert h.vpcs["vpc-1"].subnets == ["subnet-1"]
        assert "i-1" in h.vpcs["vpc-1"].instances
        assert "i-1" in h.subnets["subnet-1"].instances
        assert h.instances["i-1"].private_ip_address == "10.0.1.5"
        assert h.instances["i-1"].subnet_id == "subnet-1"

    def test_scalar_attributes(self):
        h = hierarchy_for([tagged_record()])
        assert h.vpcs["vpc-1"].account_id == "111122223333"
        assert h.vpcs["vpc-1"].region == "us-east-1"
        assert h.subnets["subnet-1"].vpc_id == "vpc-1"
        assert h.subnets["subnet-1"].subnet_type == "private"
        assert h.instances["i-1"].state == "running"

    def test_transit_gateways_listed_per_region(self):
        h = hierarchy_for([tagged_record(transit_gateway_id="tgw-1")])
        assert h.regions["us-east-1"].transit_gateways == ["tgw-1"]

    def test_lists_are_sorted(self):
        records = [
            tagged_record(subnet_id="subnet-b", instance_id="i-2"),
            tagged_record(subnet_id="subnet-a", instance_id="i-1"),
        ]
        h = hierarchy_for(records)
        assert h.vpcs["vpc-1"].subnets == ["subnet-a", "subnet-b"]
        assert list(h.subnets) == ["subnet-a", "subnet-b"]

    def test_untagged_records_give_empty_hierarchy(self):
        record = tagged_record(
            account_id=None, region=None, vpc_id=None, subnet_id=None, instance_id=None,
        )
        h = hierarchy_for([record])
        assert h.regions == {}
        assert h.vpcs == {}
        assert h.subnets == {}

    def test_records_never_create_entries(self):
        # Links from records alone point at nodes that were never added
        h = build_hierarchy([], [tagged_record()])
        assert h.regions == {}
        assert h.vpcs == {}
        assert h.instances == {}


class TestIdempotence:

    def test_folding_twice_changes_nothing(self):
        records = [tagged_record(), tagged_record(subnet_id="subnet-2", instance_id="i-2")]
        nodes = identify_nodes(records).to_nodes()
        once = HierarchyBuilder().fold(nodes, records).build()
        twice = HierarchyBuilder().fold(nodes, records).fold(nodes, records).build()
        assert once == twice

    def test_build_is_repeatable(self):
        records = [tagged_record()]
        builder = HierarchyBuilder().fold(identify_nodes(records).to_nodes(), records)
        assert builder.build() == builder.build()

    def test_record_order_does_not_matter(self):
        records = [
            tagged_record(subnet_id="subnet-b", instance_id="i-2", dst_ip="10.0.2.8"),
            tagged_record(subnet_id="subnet-a", instance_id="i-1", region="eu-west-1",
                          vpc_id="vpc-2", dst_ip="10.0.2.9"),
        ]
        assert hierarchy_for(records) == hierarchy_for(list(reversed(records)))
