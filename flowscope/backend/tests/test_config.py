"""
tests/test_config.py

Tests for config.py — Pydantic Settings validation and defaults.
"""

from __future__ import annotations

from flowscope.backend.config import Settings


class TestSettingsDefaults:

    def test_topology_defaults(self):
        s = Settings()
        assert s.INCLUDE_UNKNOWN_NODES is True
        assert s.TIME_WINDOW_MS == 300_000
        assert s.MIN_TRAFFIC_THRESHOLD == 0
        assert s.MAX_NODES == 1_000
        assert s.MAX_EDGES == 5_000

    def test_analysis_defaults(self):
        s = Settings()
        assert s.ANOMALY_THRESHOLD == 0.7
        assert s.BASELINE_WINDOW_MS == 3_600_000
        assert s.MIN_PATTERN_OCCURRENCES == 3
        assert s.ENABLE_ANOMALY_DETECTION
        assert s.ENABLE_PATTERN_DETECTION
        assert s.ENABLE_SECURITY_ANALYSIS

    def test_api_defaults(self):
        s = Settings()
        assert s.API_HOST == "127.0.0.1"
        assert s.API_PORT == 8000
        assert s.MAX_BATCH_RECORDS == 100_000

    def test_default_log_level(self):
        assert Settings().LOG_LEVEL == "INFO"


class TestSettingsOverrides:

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("MAX_NODES", "50")
        monkeypatch.setenv("ANOMALY_THRESHOLD", "0.25")
        monkeypatch.setenv("ENABLE_PATTERN_DETECTION", "false")
        s = Settings()
        assert s.MAX_NODES == 50
        assert s.ANOMALY_THRESHOLD == 0.25
        assert s.ENABLE_PATTERN_DETECTION is False
