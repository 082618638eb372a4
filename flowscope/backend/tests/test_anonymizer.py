"""
tests/test_anonymizer.py

Tests for anonymizer.py — consistent replacements, structure-preserving and
sequential modes, topology / flow-record transforms and the mapping table.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timedelta, timezone

import pytest

from flowscope.backend.anonymizer import CIRCULAR_REFERENCE, DataAnonymizer
from flowscope.backend.errors import ConfigurationError, MappingImportError
from flowscope.backend.metrics import METRICS
from flowscope.backend.models import FlowRecord
from flowscope.backend.topology import build_topology

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
INSTANCE = "i-0123456789abcdef0"
VPC = "vpc-0a1b2c3d4e"
SUBNET = "subnet-5f6e7d8c"
ACCOUNT = "123456789012"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_record(src_ip: str = "10.0.0.1", dst_ip: str = "10.0.1.5", **tags) -> FlowRecord:
    return FlowRecord(
        timestamp=T0,
        src_ip=src_ip,
        dst_ip=dst_ip,
        src_port=40_000,
        dst_port=443,
        protocol="TCP",
        action="ACCEPT",
        byte_count=1500,
        packet_count=10,
        **tags,
    )


def sequential(**options) -> DataAnonymizer:
    return DataAnonymizer({"preserve_structure": False, **options})


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

class TestText:

    def test_same_value_same_replacement(self):
        anonymizer = DataAnonymizer()
        out = anonymizer.anonymize_text("10.0.0.1 talked to 10.0.0.1")
        first, _, second = out.partition(" talked to ")
        assert first == second
        assert first != "10.0.0.1"
        assert re.fullmatch(r"10\.\d+\.\d+\.\d+", first)

    def test_resource_ids_keep_their_shape(self):
        anonymizer = DataAnonymizer()
        assert re.fullmatch(r"i-[0-9a-f]{8}", anonymizer.anonymize_text(INSTANCE))
        assert re.fullmatch(r"vpc-[0-9a-f]{8}", anonymizer.anonymize_text(VPC))
        assert re.fullmatch(r"subnet-[0-9a-f]{8}", anonymizer.anonymize_text(SUBNET))
        account = anonymizer.anonymize_text(ACCOUNT)
        assert re.fullmatch(r"\d{12}", account)
        assert account != ACCOUNT

    def test_same_salt_agrees_across_instances(self):
        a = DataAnonymizer({"hash_salt": "s1"}).anonymize_text(VPC)
        b = DataAnonymizer({"hash_salt": "s1"}).anonymize_text(VPC)
        c = DataAnonymizer({"hash_salt": "s2"}).anonymize_text(VPC)
        assert a == b
        assert a != c

    def test_address_node_ids_follow_their_address(self):
        anonymizer = DataAnonymizer()
        out = anonymizer.anonymize_text("ip-10-0-0-1--external-8-8-8-8")
        private = anonymizer.mappings["10.0.0.1"].replace(".", "-")
        public = anonymizer.mappings["8.8.8.8"].replace(".", "-")
        assert out == f"ip-{private}--external-{public}"
        assert anonymizer.anonymize_text("10.0.0.1") == anonymizer.mappings["10.0.0.1"]

    def test_sequential_mode(self):
        out = sequential().anonymize_text("10.0.0.1 10.0.0.2 10.0.0.1 vpc-0a1b2c3d")
        assert out == "ip-001 ip-002 ip-001 vpc-001"

    def test_switches_leave_values_alone(self):
        anonymizer = DataAnonymizer({"anonymize_ips": False, "anonymize_vpc_ids": False})
        assert anonymizer.anonymize_text(f"10.0.0.1 {VPC}") == f"10.0.0.1 {VPC}"

    def test_role_names_only_when_enabled(self):
        arn = f"arn:aws:iam::{ACCOUNT}:role/Admin"
        assert sequential(anonymize_account_ids=False).anonymize_text(arn) == arn
        anonymizer = sequential(anonymize_account_ids=False, anonymize_role_names=True)
        assert anonymizer.anonymize_text(arn) == f"arn:aws:iam::{ACCOUNT}:role/role-001"

    def test_custom_patterns_applied_last(self):
        anonymizer = DataAnonymizer({"custom_patterns": [[r"secret-\w+", "[REDACTED]"]]})
        assert anonymizer.anonymize_text("token secret-abc") == "token [REDACTED]"

    def test_bad_custom_pattern_rejected(self):
        with pytest.raises(ConfigurationError, match="custom_patterns"):
            DataAnonymizer({"custom_patterns": [["(unclosed", "x"]]})

    def test_unknown_option_rejected(self):
        with pytest.raises(ConfigurationError):
            DataAnonymizer({"anonymize_everything": True})

    def test_counter_counts_distinct_values(self):
        METRICS.reset_all()
        DataAnonymizer().anonymize_text("10.0.0.1 10.0.0.1 10.0.0.2")
        assert METRICS.values_anonymized.value == 2


# ---------------------------------------------------------------------------
# Structures
# ---------------------------------------------------------------------------

class TestStructures:

    def test_topology_ids_stay_joinable(self):
        records = [
            make_record(instance_id=INSTANCE, vpc_id=VPC, subnet_id=SUBNET, account_id=ACCOUNT),
            make_record(src_ip="10.0.1.5", dst_ip="8.8.8.8"),
        ]
        topology = build_topology(records, now=T0 + timedelta(minutes=5))
        anonymizer = DataAnonymizer()
        result = anonymizer.anonymize_topology(topology)

        dumped = json.dumps(result)
        for secret in ("10.0.0.1", "10.0.1.5", "8.8.8.8", INSTANCE, VPC, SUBNET, ACCOUNT):
            assert secret not in dumped

        node_ids = {n["id"] for n in result["nodes"]}
        assert len(node_ids) == len(topology.nodes)
        for edge in result["edges"]:
            assert edge["source"] in node_ids
            assert edge["target"] in node_ids

    def test_flow_logs(self):
        anonymizer = DataAnonymizer()
        out = anonymizer.anonymize_flow_logs([make_record(vpc_id=VPC), make_record()])
        assert out[0]["src_ip"] == out[1]["src_ip"] == anonymizer.mappings["10.0.0.1"]
        assert out[0]["vpc_id"] == anonymizer.mappings[VPC]
        assert out[0]["byte_count"] == 1500
        assert out[1]["vpc_id"] is None

    def test_raw_records_pass_through_shape(self):
        out = sequential().anonymize_flow_logs([{"src_ip": "10.0.0.1", "note": "ok"}, "garbage"])
        assert out == [{"src_ip": "ip-001", "note": "ok"}, "garbage"]

    def test_anonymize_data_starts_fresh(self):
        anonymizer = sequential()
        anonymizer.anonymize_text("10.0.0.9")
        result = anonymizer.anonymize_data({"addr": "10.0.0.1", VPC: [1, "10.0.0.1"]})
        assert result.anonymized == {"addr": "ip-001", "vpc-001": [1, "ip-001"]}
        assert result.mappings == {"10.0.0.1": "ip-001", VPC: "vpc-001"}
        assert result.original == {"addr": "10.0.0.1", VPC: [1, "10.0.0.1"]}

    def test_circular_reference(self):
        data: dict = {"addr": "10.0.0.1"}
        data["self"] = data
        result = sequential().anonymize_data(data)
        assert result.anonymized == {"addr": "ip-001", "self": CIRCULAR_REFERENCE}


# ---------------------------------------------------------------------------
# Mapping table
# ---------------------------------------------------------------------------

class TestMappings:

    def test_export_then_import_reuses_replacements(self):
        first = DataAnonymizer({"hash_salt": "one"})
        replaced = first.anonymize_text(VPC)

        second = DataAnonymizer({"hash_salt": "two"})
        second.import_mappings(first.export_mappings())
        assert second.anonymize_text(VPC) == replaced

    def test_clear(self):
        anonymizer = DataAnonymizer()
        anonymizer.anonymize_text("10.0.0.1")
        anonymizer.clear_mappings()
        assert anonymizer.mappings == {}

    def test_mappings_is_a_copy(self):
        anonymizer = DataAnonymizer()
        anonymizer.mappings["10.0.0.1"] = "x"
        assert anonymizer.mappings == {}

    @pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"10.0.0.1": 5}'])
    def test_bad_import_raises(self, text):
        with pytest.raises(MappingImportError, match="Failed to import mappings"):
            DataAnonymizer().import_mappings(text)
