"""
topology/hierarchy.py

Containment reconstruction: region → VPC → subnet → instance, with transit
gateways listed per region.

Folding rules:
  - Entries (VPCs, subnets, instances, transit gateways) are only created by
    add_node(); records never invent resources that the node filter dropped.
  - Every parent/child relation is remembered as a link. build() applies the
    links whose child exists, creating a region the first time a VPC or
    transit gateway in it is linked.
  - Scalar attributes are filled once (first non-empty value sticks).
  - build() sorts every list, so folding order and duplicate folds never
    change the result.

Missing or partial tags are fine: a subnet without a vpc_id simply has no
parent link; a VPC without a region is listed under no region.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from ..addresses import is_external_ip
from ..models import FlowRecord
from .models import (
    InstanceInfo,
    NetworkNode,
    NodeType,
    RegionInfo,
    SubnetInfo,
    TopologyHierarchy,
    VpcInfo,
)

_REGION_VPC = "region-vpc"
_REGION_TGW = "region-tgw"
_VPC_SUBNET = "vpc-subnet"
_VPC_INSTANCE = "vpc-instance"
_SUBNET_INSTANCE = "subnet-instance"


def _fill(target: object, **values: object) -> None:
    for name, value in values.items():
        if value is not None and getattr(target, name) is None:
            setattr(target, name, value)


class HierarchyBuilder:

    def __init__(self) -> None:
        self._vpcs: dict[str, VpcInfo] = {}
        self._subnets: dict[str, SubnetInfo] = {}
        self._instances: dict[str, InstanceInfo] = {}
        self._transit_gateways: set[str] = set()
        self._links: set[tuple[str, str, str]] = set()

    # ------------------------------------------------------------------
    # Folding
    # ------------------------------------------------------------------

    def add_node(self, node: NetworkNode) -> None:
        props = node.properties
        if node.type is NodeType.VPC:
            vpc = self._vpcs.setdefault(node.id, VpcInfo())
            _fill(vpc, cidr_block=props.cidr_block, account_id=props.account_id,
                  region=props.region)
            self._link(_REGION_VPC, props.region, node.id)

        elif node.type is NodeType.SUBNET:
            subnet = self._subnets.setdefault(node.id, SubnetInfo())
            _fill(subnet, vpc_id=props.vpc_id, cidr_block=props.cidr_block,
                  availability_zone=props.availability_zone)
            if props.subnet_type:
                subnet.subnet_type = props.subnet_type
            self._link(_VPC_SUBNET, props.vpc_id, node.id)

        elif node.type is NodeType.INSTANCE:
            instance = self._instances.setdefault(node.id, InstanceInfo())
            address = props.ip_address
            if address and is_external_ip(address):
                _fill(instance, public_ip_address=address)
            else:
                _fill(instance, private_ip_address=address)
            _fill(instance, subnet_id=props.subnet_id, instance_type=props.instance_type)
            self._link(_SUBNET_INSTANCE, props.subnet_id, node.id)
            self._link(_VPC_INSTANCE, props.vpc_id, node.id)

        elif node.type is NodeType.TRANSIT_GATEWAY:
            self._transit_gateways.add(node.id)
            self._link(_REGION_TGW, props.region, node.id)

    def add_record(self, record: FlowRecord) -> None:
        self._link(_REGION_VPC, record.region, record.vpc_id)
        self._link(_REGION_TGW, record.region, record.transit_gateway_id)
        self._link(_VPC_SUBNET, record.vpc_id, record.subnet_id)
        self._link(_VPC_INSTANCE, record.vpc_id, record.instance_id)
        self._link(_SUBNET_INSTANCE, record.subnet_id, record.instance_id)

    def fold(self, nodes: Iterable[NetworkNode], records: Iterable[FlowRecord]) -> "HierarchyBuilder":
        for node in nodes:
            self.add_node(node)
        for record in records:
            self.add_record(record)
        return self

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self) -> TopologyHierarchy:
        vpcs = {k: replace(v, subnets=[], instances=[]) for k, v in self._vpcs.items()}
        subnets = {k: replace(v, instances=[]) for k, v in self._subnets.items()}
        instances = {k: replace(v) for k, v in self._instances.items()}
        regions: dict[str, RegionInfo] = {}

        for kind, parent, child in sorted(self._links):
            if kind == _REGION_VPC and child in vpcs:
                regions.setdefault(parent, RegionInfo()).vpcs.append(child)
            elif kind == _REGION_TGW and child in self._transit_gateways:
                regions.setdefault(parent, RegionInfo()).transit_gateways.append(child)
            elif kind == _VPC_SUBNET and parent in vpcs and child in subnets:
                vpcs[parent].subnets.append(child)
            elif kind == _VPC_INSTANCE and parent in vpcs and child in instances:
                vpcs[parent].instances.append(child)
            elif kind == _SUBNET_INSTANCE and parent in subnets and child in instances:
                subnets[parent].instances.append(child)

        return TopologyHierarchy(
            regions=dict(sorted(regions.items())),
            vpcs=dict(sorted(vpcs.items())),
            subnets=dict(sorted(subnets.items())),
            instances=dict(sorted(instances.items())),
        )

    def _link(self, kind: str, parent: str | None, child: str | None) -> None:
        if parent and child:
            self._links.add((kind, parent, child))


def build_hierarchy(
    nodes: Iterable[NetworkNode],
    records: Iterable[FlowRecord],
) -> TopologyHierarchy:
    return HierarchyBuilder().fold(nodes, records).build()
