"""
api/routes/analysis.py

POST   /api/analysis           — analyze a batch of flow records
DELETE /api/analysis/baseline  — forget the cached traffic baseline

The analyzer is process-wide (see api/main.py), so the baseline established
by the first analysed batch is reused by later requests until cleared.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ...analysis.analyzer import TrafficAnalyzer
from ...config import settings
from ...options import analysis_defaults
from ...validation.validator import FlowRecordValidator
from ..serializers import AnalysisRequest, ValidationReport, to_json

router = APIRouter(prefix="/analysis", tags=["analysis"])

_validator = FlowRecordValidator()


def _get_analyzer() -> TrafficAnalyzer:
    from ..main import get_analyzer
    return get_analyzer()


@router.post("")
async def analyze(
    request: AnalysisRequest,
    analyzer: TrafficAnalyzer = Depends(_get_analyzer),
) -> dict:
    """Return volume, connection, pattern, anomaly and security analysis."""
    if len(request.records) > settings.MAX_BATCH_RECORDS:
        raise HTTPException(
            status_code=413,
            detail=f"batch of {len(request.records)} records exceeds "
                   f"MAX_BATCH_RECORDS={settings.MAX_BATCH_RECORDS}",
        )
    options = request.options or analysis_defaults()
    batch = _validator.validate_batch(request.records)
    result = analyzer.analyze_valid_records(batch.valid_records, options)
    return {
        "analysis": to_json(result),
        "validation": ValidationReport.from_batch(batch).model_dump(),
    }


@router.delete("/baseline")
async def clear_baseline(
    analyzer: TrafficAnalyzer = Depends(_get_analyzer),
) -> dict:
    """Drop the cached baseline; the next analysis establishes a new one."""
    had_baseline = analyzer.baseline is not None
    analyzer.reset_baseline()
    return {"cleared": had_baseline}
