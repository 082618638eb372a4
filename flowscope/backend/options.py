"""
backend/options.py

Caller-supplied options for the entry points.

Every model is validated eagerly: a bad value raises ConfigurationError
before any record is looked at. Entry points accept a model instance, a
plain mapping, or None (all defaults).
"""

from __future__ import annotations

import re
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError


class TopologyOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    include_unknown_nodes: bool = True
    aggregate_traffic: bool = True          # reserved; edges are always aggregated
    time_window_ms: int = Field(default=300_000, gt=0)
    min_traffic_threshold: int = Field(default=0, ge=0)
    max_nodes: int = Field(default=1_000, ge=0)
    max_edges: int = Field(default=5_000, ge=0)


class AnalysisOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    time_window_ms: int = Field(default=300_000, gt=0)
    anomaly_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    baseline_window_ms: int = Field(default=3_600_000, gt=0)
    min_pattern_occurrences: int = Field(default=3, ge=1)
    enable_anomaly_detection: bool = True
    enable_pattern_detection: bool = True
    enable_security_analysis: bool = True


class AnonymizationOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    preserve_structure: bool = True         # False: sequential "<kind>-001" replacements
    hash_salt: str = Field(default="flowscope-anonymizer", min_length=1)
    anonymize_ips: bool = True
    anonymize_account_ids: bool = True
    anonymize_instance_ids: bool = True
    anonymize_vpc_ids: bool = True
    anonymize_subnet_ids: bool = True
    anonymize_security_group_ids: bool = True
    anonymize_transit_gateway_ids: bool = True
    anonymize_usernames: bool = False
    anonymize_role_names: bool = False
    # (regex, replacement) pairs applied after the built-in patterns
    custom_patterns: tuple[tuple[str, str], ...] = ()

    @field_validator("custom_patterns")
    @classmethod
    def _compilable(cls, v: tuple[tuple[str, str], ...]) -> tuple[tuple[str, str], ...]:
        for pattern, _ in v:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"invalid pattern {pattern!r}: {exc}") from exc
        return v


OptionsT = TypeVar("OptionsT", TopologyOptions, AnalysisOptions, AnonymizationOptions)


def coerce_options(
    model: type[OptionsT],
    options: OptionsT | Mapping[str, Any] | None,
) -> OptionsT:
    """
    Normalise `options` into a validated `model` instance.

    Raises:
        ConfigurationError: the mapping holds an invalid or unknown value.
    """
    if options is None:
        return model()
    if isinstance(options, model):
        return options
    if isinstance(options, BaseModel):
        options = options.model_dump()
    if not isinstance(options, Mapping):
        raise ConfigurationError(
            f"{model.__name__} expected a mapping, got {type(options).__name__}"
        )
    try:
        return model.model_validate(dict(options))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(f"invalid {model.__name__}: {problems}") from exc


def topology_defaults() -> TopologyOptions:
    """TopologyOptions populated from the environment-backed settings."""
    from .config import settings
    return coerce_options(TopologyOptions, {
        "include_unknown_nodes": settings.INCLUDE_UNKNOWN_NODES,
        "time_window_ms": settings.TIME_WINDOW_MS,
        "min_traffic_threshold": settings.MIN_TRAFFIC_THRESHOLD,
        "max_nodes": settings.MAX_NODES,
        "max_edges": settings.MAX_EDGES,
    })


def analysis_defaults() -> AnalysisOptions:
    """AnalysisOptions populated from the environment-backed settings."""
    from .config import settings
    return coerce_options(AnalysisOptions, {
        "time_window_ms": settings.TIME_WINDOW_MS,
        "anomaly_threshold": settings.ANOMALY_THRESHOLD,
        "baseline_window_ms": settings.BASELINE_WINDOW_MS,
        "min_pattern_occurrences": settings.MIN_PATTERN_OCCURRENCES,
        "enable_anomaly_detection": settings.ENABLE_ANOMALY_DETECTION,
        "enable_pattern_detection": settings.ENABLE_PATTERN_DETECTION,
        "enable_security_analysis": settings.ENABLE_SECURITY_ANALYSIS,
    })
