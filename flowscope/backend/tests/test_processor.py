"""
tests/test_processor.py

Tests for statistics/processor.py — time series, top talkers, filtering.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from flowscope.backend.models import FlowRecord, TimeRange
from flowscope.backend.statistics import (
    RecordFilter,
    filter_records,
    generate_time_series,
    top_destination_ips,
    top_source_ips,
)
from flowscope.backend.statistics.processor import window_start_ms

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
FIVE_MIN_MS = 300_000


def make_record(
    src_ip: str = "10.0.0.1",
    dst_ip: str = "10.0.0.2",
    dst_port: int = 443,
    protocol: str = "TCP",
    action: str = "ACCEPT",
    byte_count: int = 1000,
    timestamp: datetime = T0,
) -> FlowRecord:
    return FlowRecord(
        timestamp=timestamp,
        src_ip=src_ip,
        dst_ip=dst_ip,
        src_port=40_000,
        dst_port=dst_port,
        protocol=protocol,
        action=action,
        byte_count=byte_count,
        packet_count=1,
    )


class TestTimeSeries:

    def test_window_alignment(self):
        assert window_start_ms(1_234_567, 1000) == 1_234_000

    def test_empty_windows_are_included(self):
        records = [
            make_record(timestamp=T0, byte_count=100),
            make_record(timestamp=T0 + timedelta(minutes=16), byte_count=300, action="REJECT"),
        ]
        series = generate_time_series(records, FIVE_MIN_MS)
        assert [p.timestamp for p in series] == [
            T0 + timedelta(minutes=5 * i) for i in range(4)
        ]
        assert [p.bytes for p in series] == [100, 0, 0, 300]
        assert series[3].rejected_connections == 1
        assert series[0].accepted_connections == 1

    def test_series_conserves_bytes(self):
        records = [make_record(timestamp=T0 + timedelta(seconds=37 * i)) for i in range(40)]
        series = generate_time_series(records, 60_000)
        assert sum(p.bytes for p in series) == 40 * 1000
        assert sum(p.connections for p in series) == 40

    def test_empty_input(self):
        assert generate_time_series([], FIVE_MIN_MS) == []


class TestTopTalkers:

    def test_top_sources_by_bytes(self):
        records = [
            make_record("10.0.0.1", "10.0.0.9", byte_count=100),
            make_record("10.0.0.2", "10.0.0.9", byte_count=500),
            make_record("10.0.0.1", "10.0.0.8", byte_count=100),
        ]
        top = top_source_ips(records)
        assert [t.ip for t in top] == ["10.0.0.2", "10.0.0.1"]
        assert top[1].unique_peers == 2
        assert top[1].connections == 2

    def test_top_destinations_limit(self):
        records = [make_record(dst_ip=f"10.0.1.{i}", byte_count=i) for i in range(1, 6)]
        top = top_destination_ips(records, limit=2)
        assert [t.ip for t in top] == ["10.0.1.5", "10.0.1.4"]


class TestFilterRecords:

    def test_empty_filter_matches_everything(self):
        records = [make_record(), make_record(dst_port=22)]
        assert filter_records(records, RecordFilter()) == records

    def test_criteria_combine(self):
        records = [
            make_record(dst_port=22, action="REJECT"),
            make_record(dst_port=22, action="ACCEPT"),
            make_record(dst_port=443, action="REJECT"),
        ]
        matched = filter_records(
            records, RecordFilter(ports=frozenset({22}), actions=frozenset({"reject"}))
        )
        assert matched == [records[0]]

    def test_protocol_matches_number_or_name(self):
        records = [make_record(protocol="6"), make_record(protocol="UDP")]
        matched = filter_records(records, RecordFilter(protocols=frozenset({"tcp"})))
        assert matched == [records[0]]

    def test_time_range_and_byte_bounds(self):
        records = [
            make_record(timestamp=T0, byte_count=10),
            make_record(timestamp=T0 + timedelta(hours=2), byte_count=10),
            make_record(timestamp=T0, byte_count=10_000),
        ]
        criteria = RecordFilter(
            time_range=TimeRange(T0, T0 + timedelta(hours=1)),
            max_bytes=100,
        )
        assert filter_records(records, criteria) == [records[0]]
