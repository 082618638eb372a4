"""
api/routes/anonymize.py

POST /api/anonymize  — pseudonymise a topology, flow records and/or text.

Stateless: the caller keeps the returned mapping table and sends it back
with the next request to get the same replacements again.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ...anonymizer import DataAnonymizer
from ...config import settings
from ..serializers import AnonymizeRequest

router = APIRouter(prefix="/anonymize", tags=["anonymize"])


@router.post("")
async def anonymize(request: AnonymizeRequest) -> dict:
    """Return the anonymized inputs together with the mapping table used."""
    if request.records is not None and len(request.records) > settings.MAX_BATCH_RECORDS:
        raise HTTPException(
            status_code=413,
            detail=f"batch of {len(request.records)} records exceeds "
                   f"MAX_BATCH_RECORDS={settings.MAX_BATCH_RECORDS}",
        )
    anonymizer = DataAnonymizer(request.options)
    if request.mappings:
        anonymizer.load_mappings(request.mappings)

    return {
        "topology": (
            anonymizer.anonymize_topology(request.topology)
            if request.topology is not None else None
        ),
        "records": (
            anonymizer.anonymize_flow_logs(request.records)
            if request.records is not None else None
        ),
        "text": anonymizer.anonymize_text(request.text) if request.text is not None else None,
        "mappings": anonymizer.mappings,
    }
