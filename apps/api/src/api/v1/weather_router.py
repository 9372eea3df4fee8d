from __future__ import annotations

import math
from typing import Awaitable, Callable, Optional

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from api.responses import json_response
from config import settings
from services.weather import WeatherProviderError, weather_service
from services.weather_mapping import map_analytics, map_current, map_forecast, map_geocoding

router = APIRouter(prefix="/v1", tags=["weather"])

MAX_FORECAST_DAYS = 16
MAX_PAST_DAYS = 7
MAX_GEOCODE_RESULTS = 10


def parse_coordinate(raw: Optional[str], default: float, limit: float) -> Optional[float]:
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value) or abs(value) > limit:
        return None
    return value


def clamp_int(raw: Optional[str], default: int, low: int, high: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        value = default
    return min(max(value, low), high)


def _invalid_coordinates() -> JSONResponse:
    return json_response({"error": "Invalid coordinates"}, status_code=status.HTTP_400_BAD_REQUEST)


def _upstream_error(exc: WeatherProviderError) -> JSONResponse:
    return json_response(
        {"status": "error", "error": str(exc), "source": "open-meteo"},
        status_code=status.HTTP_502_BAD_GATEWAY,
    )


async def _proxy(fetch: Callable[[], Awaitable[tuple[object, bool]]], mapper: Callable[..., dict], **extra) -> JSONResponse:
    try:
        data, cached = await fetch()
    except WeatherProviderError as exc:
        return _upstream_error(exc)
    if not isinstance(data, dict):
        return _upstream_error(WeatherProviderError("Open-Meteo returned an unexpected payload"))
    return json_response(mapper(data, cached=cached, **extra))


def _coordinates(lat: Optional[str], lon: Optional[str]) -> tuple[Optional[float], Optional[float]]:
    return (
        parse_coordinate(lat, settings.default_lat, 90.0),
        parse_coordinate(lon, settings.default_lon, 180.0),
    )


@router.get("/weather/current")
async def get_current_weather(lat: Optional[str] = Query(default=None), lon: Optional[str] = Query(default=None)):
    latitude, longitude = _coordinates(lat, lon)
    if latitude is None or longitude is None:
        return _invalid_coordinates()
    return await _proxy(lambda: weather_service.current(latitude, longitude), map_current)


@router.get("/weather/forecast")
async def get_forecast(
    lat: Optional[str] = Query(default=None),
    lon: Optional[str] = Query(default=None),
    days: Optional[str] = Query(default=None, description="Forecast days (1-16)"),
):
    latitude, longitude = _coordinates(lat, lon)
    if latitude is None or longitude is None:
        return _invalid_coordinates()
    forecast_days = clamp_int(days, 7, 1, MAX_FORECAST_DAYS)
    return await _proxy(lambda: weather_service.forecast(latitude, longitude, forecast_days), map_forecast)


@router.get("/weather/analytics")
async def get_analytics(
    lat: Optional[str] = Query(default=None),
    lon: Optional[str] = Query(default=None),
    days: Optional[str] = Query(default=None, description="Forecast days (1-16)"),
    past_days: Optional[str] = Query(default=None, description="History days (0-7)"),
):
    latitude, longitude = _coordinates(lat, lon)
    if latitude is None or longitude is None:
        return _invalid_coordinates()
    forecast_days = clamp_int(days, 7, 1, MAX_FORECAST_DAYS)
    history_days = clamp_int(past_days, 2, 0, MAX_PAST_DAYS)
    return await _proxy(
        lambda: weather_service.analytics(latitude, longitude, forecast_days, history_days),
        map_analytics,
        past_days=history_days,
    )


@router.get("/geocode/search")
async def search_locations(
    name: Optional[str] = Query(default=None),
    count: Optional[str] = Query(default=None),
):
    query = (name or "").strip()
    if not query:
        return json_response(
            {"error": "invalid_query", "message": "name is required"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    limit = clamp_int(count, 5, 1, MAX_GEOCODE_RESULTS)
    return await _proxy(lambda: weather_service.search_locations(query, limit), map_geocoding)
