"""
backend/config.py

Application configuration via Pydantic Settings.
All values can be overridden with environment variables or a .env file.

The topology / analysis values are the defaults the HTTP layer applies when
a request omits them; the core entry points use the option models in
options.py directly.

Quick start — create a .env file in your project root:
    MAX_NODES=500
    ANOMALY_THRESHOLD=0.5
    API_PORT=9000
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Topology construction
    INCLUDE_UNKNOWN_NODES: bool = True
    TIME_WINDOW_MS: int = 300_000
    MIN_TRAFFIC_THRESHOLD: int = 0
    MAX_NODES: int = 1_000
    MAX_EDGES: int = 5_000

    # Traffic analysis
    ANOMALY_THRESHOLD: float = 0.7
    BASELINE_WINDOW_MS: int = 3_600_000
    MIN_PATTERN_OCCURRENCES: int = 3
    ENABLE_ANOMALY_DETECTION: bool = True
    ENABLE_PATTERN_DETECTION: bool = True
    ENABLE_SECURITY_ANALYSIS: bool = True

    # API
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8000
    MAX_BATCH_RECORDS: int = 100_000

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()
