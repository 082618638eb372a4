"""
api/routes/topology.py

POST /api/topology  — build a topology graph from a batch of flow records.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ...config import settings
from ...options import topology_defaults
from ...topology.engine import TopologyEngine
from ...validation.validator import FlowRecordValidator
from ..serializers import TopologyRequest, ValidationReport, to_json

router = APIRouter(prefix="/topology", tags=["topology"])

_validator = FlowRecordValidator()
_engine = TopologyEngine(validator=_validator)


@router.post("")
async def build_topology(request: TopologyRequest) -> dict:
    """Validate the records and return nodes, edges, hierarchy and metadata."""
    if len(request.records) > settings.MAX_BATCH_RECORDS:
        raise HTTPException(
            status_code=413,
            detail=f"batch of {len(request.records)} records exceeds "
                   f"MAX_BATCH_RECORDS={settings.MAX_BATCH_RECORDS}",
        )
    options = request.options or topology_defaults()
    batch = _validator.validate_batch(request.records)
    topology = _engine.build_from_batch(batch, options)
    return {
        "topology": to_json(topology),
        "validation": ValidationReport.from_batch(batch).model_dump(),
    }
