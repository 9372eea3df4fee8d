from __future__ import annotations

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from api.responses import invalid_json, json_response
from services.ingestion import IngestOutcome, IngestStatus, ingest_body

logger = logging.getLogger("weatherstation.api.ingest")

router = APIRouter(prefix="/v1", tags=["ingest"])


def build_ingest_response(outcome: IngestOutcome) -> JSONResponse:
    """Map an ingestion outcome onto its status code and JSON body."""
    if outcome.status is IngestStatus.INVALID_JSON:
        return invalid_json(status="error")
    if outcome.status is IngestStatus.INVALID_ENVELOPE:
        return json_response(
            {
                "status": "error",
                "error": "invalid_payload",
                "message": "Envelope validation failed",
                "details": [issue.to_dict() for issue in outcome.envelope_errors],
            },
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    if outcome.status is IngestStatus.ALL_INVALID:
        return json_response(
            {
                "status": "error",
                "error": "invalid_payload",
                "message": "All readings invalid",
                "rejections": [rejection.to_dict() for rejection in outcome.rejections],
            },
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    if outcome.status is IngestStatus.PARTIAL:
        return json_response(
            {
                "status": "partial",
                "ingested": outcome.ingested,
                "rejected": outcome.rejected,
                "rejections": [rejection.to_dict() for rejection in outcome.rejections],
            },
            status_code=status.HTTP_207_MULTI_STATUS,
        )
    return json_response({"status": "ok", "ingested": outcome.ingested})


@router.post("/ingest")
async def ingest(request: Request) -> JSONResponse:
    outcome = ingest_body(await request.body())
    if outcome.status is IngestStatus.INVALID_ENVELOPE:
        logger.warning(
            "Rejected telemetry envelope: %s",
            "; ".join(issue.render() for issue in outcome.envelope_errors),
        )
    elif outcome.envelope is not None:
        logger.info(
            "Telemetry batch from %s: %d accepted, %d rejected",
            outcome.envelope.device_id,
            outcome.ingested,
            outcome.rejected,
        )
    return build_ingest_response(outcome)


__all__ = ["build_ingest_response", "router"]
