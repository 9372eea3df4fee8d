from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from services.weather import TTLResponseCache, WeatherProviderError, WeatherService
from services.weather_mapping import comfort_index, describe_weather, map_analytics, uv_risk

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"


def _current_payload() -> dict[str, Any]:
    return {
        "latitude": 50.0,
        "longitude": 20.0,
        "elevation": 219.0,
        "timezone": "Europe/Warsaw",
        "current": {
            "time": "2025-06-01T12:00",
            "temperature_2m": 22.4,
            "relative_humidity_2m": 48,
            "apparent_temperature": 21.9,
            "is_day": 1,
            "precipitation": 0.0,
            "weather_code": 2,
            "cloud_cover": 40,
            "pressure_msl": 1016.2,
            "wind_speed_10m": 11.5,
            "wind_direction_10m": 270,
            "wind_gusts_10m": 20.1,
        },
    }


def _hourly_payload(hours: int, start: datetime) -> dict[str, Any]:
    times = [(start + timedelta(hours=i)).strftime("%Y-%m-%dT%H:%M") for i in range(hours)]
    return {
        "time": times,
        "temperature_2m": [10.0 + i for i in range(hours)],
        "relative_humidity_2m": [50] * hours,
        "weather_code": [0] * hours,
        "wind_speed_10m": [5.0 + i for i in range(hours)],
        "uv_index": [0.0] + [float(i) for i in range(1, hours)],
        "shortwave_radiation": [100.0] * hours,
        "is_day": [1] * hours,
    }


def _stub_forecast(respx_mock, payload: dict[str, Any] | None = None, status: int = 200):
    return respx_mock.get(FORECAST_URL).mock(
        return_value=httpx.Response(status, json=payload if payload is not None else _current_payload())
    )


def test_current_weather_maps_upstream_payload(client: TestClient, respx_mock) -> None:
    route = _stub_forecast(respx_mock)

    response = client.get("/v1/weather/current", params={"lat": "50", "lon": "20"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["source"] == "open-meteo"
    assert body["cached"] is False
    assert body["location"]["timezone"] == "Europe/Warsaw"
    assert body["current"]["temperature"] == 22.4
    assert body["current"]["weather_description"] == "Partly cloudy"
    assert body["current"]["is_day"] is True

    params = route.calls.last.request.url.params
    assert params["latitude"] == "50.0"
    assert params["timezone"] == "auto"
    assert "temperature_2m" in params["current"].split(",")


def test_current_weather_is_cached(client: TestClient, respx_mock) -> None:
    route = _stub_forecast(respx_mock)

    first = client.get("/v1/weather/current", params={"lat": "50", "lon": "20"})
    second = client.get("/v1/weather/current", params={"lat": "50", "lon": "20"})

    assert first.json()["cached"] is False
    assert second.json()["cached"] is True
    assert route.call_count == 1


def test_different_coordinates_are_cached_separately(client: TestClient, respx_mock) -> None:
    route = _stub_forecast(respx_mock)

    client.get("/v1/weather/current", params={"lat": "50", "lon": "20"})
    client.get("/v1/weather/current", params={"lat": "51", "lon": "20"})

    assert route.call_count == 2


def test_current_weather_upstream_failure(client: TestClient, respx_mock) -> None:
    _stub_forecast(respx_mock, payload={"error": True, "reason": "boom"}, status=500)

    response = client.get("/v1/weather/current")

    assert response.status_code == 502
    body = response.json()
    assert body["status"] == "error"
    assert body["source"] == "open-meteo"
    assert body["error"] == "Open-Meteo returned 500: Internal Server Error"


def test_upstream_failures_are_not_cached(client: TestClient, respx_mock) -> None:
    route = respx_mock.get(FORECAST_URL).mock(
        side_effect=[
            httpx.Response(503, json={}),
            httpx.Response(200, json=_current_payload()),
        ]
    )

    assert client.get("/v1/weather/current").status_code == 502
    assert client.get("/v1/weather/current").status_code == 200
    assert route.call_count == 2


def test_network_error_maps_to_bad_gateway(client: TestClient, respx_mock) -> None:
    respx_mock.get(FORECAST_URL).mock(side_effect=httpx.ConnectError("connection refused"))

    response = client.get("/v1/weather/current")

    assert response.status_code == 502
    assert response.json()["source"] == "open-meteo"


@pytest.mark.parametrize("params", [{"lat": "91"}, {"lon": "-181"}, {"lat": "north"}, {"lat": "nan"}])
def test_invalid_coordinates(client: TestClient, params: dict[str, str]) -> None:
    response = client.get("/v1/weather/current", params=params)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid coordinates"}


def test_forecast_caps_hours_and_clamps_days(client: TestClient, respx_mock) -> None:
    payload = {
        "hourly": _hourly_payload(48, datetime(2025, 6, 1)),
        "daily": {
            "time": ["2025-06-01", "2025-06-02"],
            "weather_code": [61, 0],
            "temperature_2m_max": [18.0, 24.0],
            "temperature_2m_min": [9.0, 12.0],
        },
    }
    route = _stub_forecast(respx_mock, payload=payload)

    response = client.get("/v1/weather/forecast", params={"days": "40"})

    assert response.status_code == 200
    body = response.json()
    assert len(body["hourly"]) == 24
    assert body["hourly"][0]["time"] == "2025-06-01T00:00"
    assert [day["weather_description"] for day in body["daily"]] == ["Slight rain", "Clear sky"]
    assert body["daily"][0]["sunrise"] is None
    assert route.calls.last.request.url.params["forecast_days"] == "16"


def test_forecast_invalid_days_uses_default(client: TestClient, respx_mock) -> None:
    route = _stub_forecast(respx_mock, payload={"hourly": {}, "daily": {}})

    response = client.get("/v1/weather/forecast", params={"days": "soon"})

    assert response.status_code == 200
    assert response.json()["hourly"] == []
    assert route.calls.last.request.url.params["forecast_days"] == "7"


def test_analytics_route_passes_history_window(client: TestClient, respx_mock) -> None:
    route = _stub_forecast(respx_mock, payload={"hourly": {}, "daily": {}})

    response = client.get("/v1/weather/analytics", params={"past_days": "3"})

    assert response.status_code == 200
    body = response.json()
    assert body["summary"]["temperature"]["avg"] is None
    assert body["units"]["temperature"] == "°C"
    params = route.calls.last.request.url.params
    assert params["past_days"] == "3"
    assert "soil_moisture_0_to_1cm" in params["hourly"].split(",")


def test_map_analytics_summary() -> None:
    start = datetime(2025, 6, 1, 0, 0)
    payload = {
        "utc_offset_seconds": 7200,
        "hourly": _hourly_payload(6, start),
        "daily": {
            "time": ["2025-05-31", "2025-06-01"],
            "shortwave_radiation_sum": [12.5, 20.0],
            "uv_index_max": [4.0, 6.5],
        },
    }
    # 00:00 UTC is 02:00 local, so the third hour is current
    now = datetime(2025, 6, 1, 0, 0, tzinfo=timezone.utc)

    body = map_analytics(payload, cached=True, past_days=1, now=now)

    summary = body["summary"]
    assert body["cached"] is True
    assert summary["temperature"]["current"] == 12.0
    assert summary["temperature"]["min"] == 10.0
    assert summary["temperature"]["max"] == 15.0
    assert summary["temperature"]["avg"] == pytest.approx(12.5)
    assert summary["uv"]["max"] == 5.0
    assert summary["uv"]["max_risk"]["level"] == "Moderate"
    assert summary["wind"]["current"] == 7.0
    assert summary["solar"]["total_today"] == 20.0
    assert summary["today"]["date"] == "2025-06-01"
    assert summary["today"]["uv"]["risk"]["level"] == "High"
    assert summary["comfort"] == {"level": "Comfortable", "score": 80}
    assert body["generated_at"].startswith("2025-06-01T00:00:00")


def test_geocode_search(client: TestClient, respx_mock) -> None:
    route = respx_mock.get(GEOCODING_URL).mock(
        return_value=httpx.Response(
            200,
            json={
                "results": [
                    {
                        "name": "Kraków",
                        "latitude": 50.06,
                        "longitude": 19.94,
                        "country": "Poland",
                        "admin1": "Lesser Poland",
                        "timezone": "Europe/Warsaw",
                        "population": 804237,
                    }
                ]
            },
        )
    )

    response = client.get("/v1/geocode/search", params={"name": " Krakow ", "count": "50"})

    assert response.status_code == 200
    body = response.json()
    assert body["results"] == [
        {
            "name": "Kraków",
            "latitude": 50.06,
            "longitude": 19.94,
            "country": "Poland",
            "admin1": "Lesser Poland",
            "timezone": "Europe/Warsaw",
        }
    ]
    params = route.calls.last.request.url.params
    assert params["name"] == "Krakow"
    assert params["count"] == "10"


def test_geocode_search_without_results(client: TestClient, respx_mock) -> None:
    respx_mock.get(GEOCODING_URL).mock(return_value=httpx.Response(200, json={"generationtime_ms": 0.4}))

    response = client.get("/v1/geocode/search", params={"name": "Nowhere"})

    assert response.status_code == 200
    assert response.json()["results"] == []


def test_geocode_search_requires_name(client: TestClient) -> None:
    response = client.get("/v1/geocode/search", params={"name": "  "})

    assert response.status_code == 400
    assert response.json() == {"error": "invalid_query", "message": "name is required"}


def test_ttl_cache_expiry() -> None:
    now = [0.0]
    cache = TTLResponseCache(clock=lambda: now[0])
    cache.put("a", {"v": 1}, ttl=10)
    cache.put("b", {"v": 2}, ttl=0)

    assert cache.get("a").payload == {"v": 1}
    assert cache.get("b") is None

    now[0] = 10.0
    assert cache.get("a") is None
    assert len(cache) == 0


@pytest.mark.anyio
async def test_fetch_json_rejects_invalid_body(respx_mock) -> None:
    respx_mock.get(FORECAST_URL).mock(return_value=httpx.Response(200, content=b"<html>"))
    service = WeatherService()
    try:
        with pytest.raises(WeatherProviderError, match="invalid JSON"):
            await service.fetch_json(FORECAST_URL, {"latitude": "1"}, ttl=60)
    finally:
        await service.close()


def test_weather_helpers() -> None:
    assert describe_weather(95) == "Thunderstorm"
    assert describe_weather(None) == "Unknown"
    assert uv_risk(None)["level"] == "Low"
    assert uv_risk(11)["level"] == "Extreme"
    assert comfort_index(22, 45) == {"level": "Ideal", "score": 100}
    assert comfort_index(None, 45) is None


def test_ttl_cache_prunes_expired_entries_on_insert() -> None:
    now = [0.0]
    cache = TTLResponseCache(clock=lambda: now[0])
    cache.put("/search?name=a", {"v": 1}, ttl=10)
    cache.put("/search?name=b", {"v": 2}, ttl=30)

    now[0] = 15.0
    cache.put("/search?name=c", {"v": 3}, ttl=10)

    assert len(cache) == 2
    assert cache.get("/search?name=b").payload == {"v": 2}
    assert cache.get("/search?name=c").payload == {"v": 3}


def test_ttl_cache_evicts_oldest_at_capacity() -> None:
    cache = TTLResponseCache(clock=lambda: 0.0, max_entries=2)
    cache.put("a", 1, ttl=60)
    cache.put("b", 2, ttl=60)
    cache.put("c", 3, ttl=60)

    assert len(cache) == 2
    assert cache.get("a") is None
    assert cache.get("b").payload == 2
    assert cache.get("c").payload == 3
