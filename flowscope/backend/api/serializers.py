"""
api/serializers.py

Request bodies and response shaping for the HTTP surface.

Option models are reused as-is from options.py, so an out-of-range value in
a request body is a 422 before any record is touched. Records are accepted
as raw JSON values: malformed ones are reported under `validation`, never
rejected wholesale.
"""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from ..options import AnalysisOptions, AnonymizationOptions, TopologyOptions
from ..validation.validator import BatchValidation


class TopologyRequest(BaseModel):
    records: list[Any]
    options: TopologyOptions | None = None


class AnalysisRequest(BaseModel):
    records: list[Any]
    options: AnalysisOptions | None = None


class AnonymizeRequest(BaseModel):
    topology: dict[str, Any] | None = None
    records: list[Any] | None = None
    text: str | None = None
    options: AnonymizationOptions | None = None
    # Table from an earlier response, so replacements stay consistent
    mappings: dict[str, str] | None = None


class InvalidRecordResponse(BaseModel):
    index: int
    errors: list[str]


class ValidationReport(BaseModel):
    total: int
    valid: int
    invalid: int
    invalid_records: list[InvalidRecordResponse] = []
    warnings: dict[int, list[str]] = {}

    @classmethod
    def from_batch(cls, batch: BatchValidation) -> "ValidationReport":
        summary = batch.summary
        return cls(
            total=summary["total"],
            valid=summary["valid"],
            invalid=summary["invalid"],
            invalid_records=[
                InvalidRecordResponse(index=r.index, errors=r.errors)
                for r in batch.invalid_records
            ],
            warnings=batch.warnings,
        )


def to_json(result: Any) -> Any:
    """Dataclass result → JSON-ready structure (enums as values, datetimes ISO-8601)."""
    return jsonable_encoder(result)


class HealthResponse(BaseModel):
    status: str
    metrics: dict[str, int]
    security_rules: list[str] = []
