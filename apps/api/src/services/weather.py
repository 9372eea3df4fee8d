import asyncio
import logging
import time as time_utils
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import httpx

from config import settings
from services.weather_mapping import (
    ANALYTICS_DAILY_FIELDS,
    ANALYTICS_HOURLY_FIELDS,
    CURRENT_FIELDS,
    FORECAST_DAILY_FIELDS,
    FORECAST_HOURLY_FIELDS,
)

logger = logging.getLogger("weatherstation.api.weather")


class WeatherProviderError(RuntimeError):
    """Raised when Open-Meteo cannot produce a usable response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class CachedResponse:
    payload: Any
    expires_at: float


class TTLResponseCache:
    """Upstream payloads keyed by full request URL.

    Expired entries are pruned on every insert and the oldest entry is
    evicted once ``max_entries`` is reached.
    """

    def __init__(self, clock: Callable[[], float] = time_utils.monotonic, max_entries: int = 512) -> None:
        self._clock = clock
        self._max_entries = max(1, max_entries)
        self._entries: "OrderedDict[str, CachedResponse]" = OrderedDict()

    def get(self, key: str) -> Optional[CachedResponse]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    def put(self, key: str, payload: Any, ttl: float) -> None:
        if ttl <= 0:
            return
        now = self._clock()
        self._prune(now)
        self._entries.pop(key, None)
        while len(self._entries) >= self._max_entries:
            self._entries.popitem(last=False)
        self._entries[key] = CachedResponse(payload=payload, expires_at=now + ttl)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _prune(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]


class WeatherService:
    def __init__(self, cache: Optional[TTLResponseCache] = None) -> None:
        self._client: Optional[httpx.AsyncClient] = None
        self._cache = cache if cache is not None else TTLResponseCache(max_entries=settings.weather_cache_max_entries)
        self._lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "User-Agent": settings.weather_user_agent,
                "Accept": "application/json",
            }
            self._client = httpx.AsyncClient(headers=headers, timeout=settings.weather_request_timeout)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def clear_cache(self) -> None:
        self._cache.clear()

    async def fetch_json(self, url: str, params: Mapping[str, str], ttl: float) -> tuple[Any, bool]:
        """Return ``(payload, cached)`` for a GET against the provider."""
        request_url = str(httpx.URL(url, params=dict(params)))
        if ttl > 0:
            cached = self._cache.get(request_url)
            if cached is not None:
                return cached.payload, True

        async with self._lock:
            if ttl > 0:
                cached = self._cache.get(request_url)
                if cached is not None:
                    return cached.payload, True

            client = await self._get_client()
            logger.debug("Fetching %s", request_url)
            try:
                response = await client.get(request_url)
            except httpx.HTTPError as exc:
                logger.warning("Open-Meteo request to %s failed: %s", request_url, exc)
                raise WeatherProviderError(str(exc) or "Unknown error fetching Open-Meteo data") from exc

            if response.is_error:
                logger.warning("Open-Meteo returned %s for %s", response.status_code, request_url)
                raise WeatherProviderError(
                    f"Open-Meteo returned {response.status_code}: {response.reason_phrase}",
                    status_code=response.status_code,
                )
            try:
                payload = response.json()
            except ValueError as exc:
                raise WeatherProviderError("Open-Meteo returned an invalid JSON body") from exc

            self._cache.put(request_url, payload, ttl)
            return payload, False

    def _forecast_url(self) -> str:
        return f"{settings.open_meteo_base_url.rstrip('/')}/forecast"

    async def current(self, lat: float, lon: float) -> tuple[Any, bool]:
        params = {
            "latitude": str(lat),
            "longitude": str(lon),
            "current": ",".join(CURRENT_FIELDS),
            "timezone": "auto",
        }
        return await self.fetch_json(self._forecast_url(), params, settings.weather_current_cache_ttl)

    async def forecast(self, lat: float, lon: float, days: int) -> tuple[Any, bool]:
        params = {
            "latitude": str(lat),
            "longitude": str(lon),
            "hourly": ",".join(FORECAST_HOURLY_FIELDS),
            "daily": ",".join(FORECAST_DAILY_FIELDS),
            "timezone": "auto",
            "forecast_days": str(days),
        }
        return await self.fetch_json(self._forecast_url(), params, settings.weather_forecast_cache_ttl)

    async def analytics(self, lat: float, lon: float, days: int, past_days: int) -> tuple[Any, bool]:
        params = {
            "latitude": str(lat),
            "longitude": str(lon),
            "hourly": ",".join(ANALYTICS_HOURLY_FIELDS),
            "daily": ",".join(ANALYTICS_DAILY_FIELDS),
            "timezone": "auto",
            "forecast_days": str(days),
            "past_days": str(past_days),
        }
        return await self.fetch_json(self._forecast_url(), params, settings.weather_analytics_cache_ttl)

    async def search_locations(self, name: str, count: int) -> tuple[Any, bool]:
        params = {
            "name": name,
            "count": str(count),
            "language": "en",
            "format": "json",
        }
        url = f"{settings.geocoding_base_url.rstrip('/')}/search"
        return await self.fetch_json(url, params, settings.geocoding_cache_ttl)


weather_service = WeatherService()
