"""
tests/test_api.py

FastAPI route tests using TestClient (synchronous).
A fresh TrafficAnalyzer is injected per test so cached baselines never leak
between tests.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from flowscope.backend.analysis import TrafficAnalyzer
from flowscope.backend.api.main import create_app, get_analyzer, set_analyzer
from flowscope.backend.config import settings


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    set_analyzer(TrafficAnalyzer())
    with TestClient(create_app()) as c:
        yield c
    set_analyzer(None)


def record(src_ip="10.0.0.1", dst_ip="10.0.0.2", dst_port=5432, byte_count=100,
           second=0, **extra) -> dict:
    data = {
        "timestamp": f"2024-03-01T12:00:{second:02d}Z",
        "src_ip": src_ip,
        "dst_ip": dst_ip,
        "src_port": 40_000,
        "dst_port": dst_port,
        "protocol": "TCP",
        "action": "ACCEPT",
        "byte_count": byte_count,
        "packet_count": 1,
    }
    data.update(extra)
    return data


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert "topologies_built" in body["metrics"]
    assert "port_scan" in body["security_rules"]


# ---------------------------------------------------------------------------
# POST /api/topology
# ---------------------------------------------------------------------------

class TestTopologyRoute:

    def test_builds_graph(self, client):
        resp = client.post("/api/topology", json={
            "records": [record(), record(dst_ip="8.8.8.8", dst_port=443)],
        })
        assert resp.status_code == 200
        topology = resp.json()["topology"]
        ids = {n["id"] for n in topology["nodes"]}
        assert ids == {"ip-10-0-0-1", "ip-10-0-0-2", "external-8-8-8-8"}
        assert len(topology["edges"]) == 2
        assert topology["metadata"]["record_count"] == 2
        node_types = {n["id"]: n["type"] for n in topology["nodes"]}
        assert node_types["external-8-8-8-8"] == "internet-gateway"

    def test_invalid_records_reported(self, client):
        resp = client.post("/api/topology", json={
            "records": [record(), record(src_port=-1), "garbage"],
        })
        assert resp.status_code == 200
        validation = resp.json()["validation"]
        assert validation["total"] == 3
        assert validation["valid"] == 1
        assert [r["index"] for r in validation["invalid_records"]] == [1, 2]

    def test_options_applied(self, client):
        resp = client.post("/api/topology", json={
            "records": [record(), record(dst_ip="10.0.0.3", byte_count=1000)],
            "options": {"max_edges": 1},
        })
        edges = resp.json()["topology"]["edges"]
        assert [e["id"] for e in edges] == ["ip-10-0-0-1--ip-10-0-0-3"]

    def test_bad_options_rejected(self, client):
        resp = client.post("/api/topology", json={
            "records": [record()],
            "options": {"max_nodes": -1},
        })
        assert resp.status_code == 422

    def test_oversized_batch(self, client, monkeypatch):
        monkeypatch.setattr(settings, "MAX_BATCH_RECORDS", 1)
        resp = client.post("/api/topology", json={"records": [record(), record()]})
        assert resp.status_code == 413

    def test_out_of_range_default_setting(self, client, monkeypatch):
        monkeypatch.setattr(settings, "MAX_NODES", -1)
        resp = client.post("/api/topology", json={"records": [record()]})
        assert resp.status_code == 422
        assert "max_nodes" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# /api/analysis
# ---------------------------------------------------------------------------

class TestAnalysisRoute:

    def test_port_scan_reported(self, client):
        records = [record(src_ip="10.0.0.9", dst_port=p, second=p) for p in range(1, 21)]
        resp = client.post("/api/analysis", json={"records": records})
        assert resp.status_code == 200
        analysis = resp.json()["analysis"]
        assert analysis["statistics"]["total_connections"] == 20
        scans = [i for i in analysis["security_issues"] if i["type"] == "port-scan"]
        assert scans[0]["severity"] == "high"
        assert scans[0]["source_ip"] == "10.0.0.9"

    def test_sections_disabled(self, client):
        resp = client.post("/api/analysis", json={
            "records": [record()],
            "options": {
                "enable_pattern_detection": False,
                "enable_anomaly_detection": False,
                "enable_security_analysis": False,
            },
        })
        analysis = resp.json()["analysis"]
        assert analysis["patterns"] == []
        assert analysis["anomalies"] is None
        assert analysis["security_issues"] == []

    def test_baseline_cached_and_cleared(self, client):
        client.post("/api/analysis", json={"records": [record(second=s) for s in range(10)]})
        assert get_analyzer().baseline is not None

        resp = client.delete("/api/analysis/baseline")
        assert resp.status_code == 200
        assert resp.json() == {"cleared": True}
        assert get_analyzer().baseline is None

        assert client.delete("/api/analysis/baseline").json() == {"cleared": False}

    def test_bad_threshold_rejected(self, client):
        resp = client.post("/api/analysis", json={
            "records": [record()],
            "options": {"anomaly_threshold": 2},
        })
        assert resp.status_code == 422

    def test_out_of_range_default_setting(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ANOMALY_THRESHOLD", 1.5)
        resp = client.post("/api/analysis", json={"records": [record()]})
        assert resp.status_code == 422
        assert "anomaly_threshold" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# POST /api/anonymize
# ---------------------------------------------------------------------------

class TestAnonymizeRoute:

    def test_records_and_text(self, client):
        resp = client.post("/api/anonymize", json={
            "records": [record(), record(dst_ip="8.8.8.8")],
            "text": "10.0.0.1 reached 8.8.8.8",
            "options": {"preserve_structure": False},
        })
        assert resp.status_code == 200
        body = resp.json()
        assert [r["src_ip"] for r in body["records"]] == ["ip-001", "ip-001"]
        assert body["text"] == "ip-001 reached ip-003"
        assert body["mappings"] == {"10.0.0.1": "ip-001", "10.0.0.2": "ip-002", "8.8.8.8": "ip-003"}
        assert body["topology"] is None

    def test_mappings_carried_between_requests(self, client):
        first = client.post("/api/anonymize", json={"text": "10.0.0.1"}).json()
        second = client.post("/api/anonymize", json={
            "text": "10.0.0.1",
            "options": {"hash_salt": "different"},
            "mappings": first["mappings"],
        }).json()
        assert second["text"] == first["text"]

    def test_topology_from_topology_route(self, client):
        topology = client.post("/api/topology", json={"records": [record()]}).json()["topology"]
        resp = client.post("/api/anonymize", json={"topology": topology})
        assert resp.status_code == 200
        ids = {n["id"] for n in resp.json()["topology"]["nodes"]}
        assert len(ids) == 2
        assert "ip-10-0-0-1" not in ids

    def test_bad_pattern_rejected(self, client):
        resp = client.post("/api/anonymize", json={
            "text": "x",
            "options": {"custom_patterns": [["(unclosed", "x"]]},
        })
        assert resp.status_code == 422
