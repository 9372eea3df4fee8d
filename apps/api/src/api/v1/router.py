from fastapi import APIRouter

from config import settings
from .auth_router import router as auth_router
from .chart_router import router as chart_router
from .ingest_router import router as ingest_router
from .weather_router import router as weather_router

router = APIRouter()
router.include_router(ingest_router)
router.include_router(chart_router)
router.include_router(weather_router)
router.include_router(auth_router)


@router.get("/health", tags=["meta"])
async def health():
    return {"status": "ok", "service": settings.service_name}
