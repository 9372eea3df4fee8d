from typing import Optional

from fastapi import APIRouter, Depends, status

from api.responses import json_response
from mock.data import chart_payload
from services.sessions import Session

from .dependencies import get_current_session

router = APIRouter(prefix="/v1", tags=["charts"])


@router.get("/chart-data")
async def get_chart_data(session: Optional[Session] = Depends(get_current_session)):
    if session is None:
        return json_response({"error": "unauthorized"}, status_code=status.HTTP_401_UNAUTHORIZED)
    # Demo series until station readings are persisted.
    return json_response(chart_payload())
