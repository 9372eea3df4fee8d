"""Reshape Open-Meteo responses into the dashboard's payloads."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Optional

CURRENT_FIELDS = [
    "temperature_2m",
    "relative_humidity_2m",
    "apparent_temperature",
    "is_day",
    "precipitation",
    "rain",
    "showers",
    "snowfall",
    "weather_code",
    "cloud_cover",
    "pressure_msl",
    "surface_pressure",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
]

FORECAST_HOURLY_FIELDS = [
    "temperature_2m",
    "relative_humidity_2m",
    "precipitation_probability",
    "precipitation",
    "weather_code",
    "wind_speed_10m",
]

FORECAST_DAILY_FIELDS = [
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "sunrise",
    "sunset",
    "precipitation_sum",
    "precipitation_probability_max",
    "wind_speed_10m_max",
]

ANALYTICS_HOURLY_FIELDS = [
    "temperature_2m",
    "relative_humidity_2m",
    "dewpoint_2m",
    "apparent_temperature",
    "precipitation_probability",
    "precipitation",
    "rain",
    "snowfall",
    "snow_depth",
    "weather_code",
    "pressure_msl",
    "surface_pressure",
    "cloud_cover",
    "cloud_cover_low",
    "cloud_cover_mid",
    "cloud_cover_high",
    "visibility",
    "evapotranspiration",
    "vapour_pressure_deficit",
    "wind_speed_10m",
    "wind_speed_80m",
    "wind_direction_10m",
    "wind_direction_80m",
    "wind_gusts_10m",
    "uv_index",
    "uv_index_clear_sky",
    "sunshine_duration",
    "shortwave_radiation",
    "direct_radiation",
    "diffuse_radiation",
    "direct_normal_irradiance",
    "terrestrial_radiation",
    "soil_temperature_0cm",
    "soil_temperature_6cm",
    "soil_temperature_18cm",
    "soil_moisture_0_to_1cm",
    "soil_moisture_1_to_3cm",
    "soil_moisture_3_to_9cm",
    "cape",
    "freezing_level_height",
    "is_day",
]

ANALYTICS_DAILY_FIELDS = [
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "apparent_temperature_max",
    "apparent_temperature_min",
    "sunrise",
    "sunset",
    "daylight_duration",
    "sunshine_duration",
    "uv_index_max",
    "uv_index_clear_sky_max",
    "precipitation_sum",
    "rain_sum",
    "snowfall_sum",
    "precipitation_hours",
    "precipitation_probability_max",
    "wind_speed_10m_max",
    "wind_gusts_10m_max",
    "wind_direction_10m_dominant",
    "shortwave_radiation_sum",
    "et0_fao_evapotranspiration",
]

ANALYTICS_UNITS = {
    "temperature": "°C",
    "humidity": "%",
    "precipitation": "mm",
    "pressure": "hPa",
    "wind_speed": "km/h",
    "visibility": "m",
    "radiation": "W/m²",
    "soil_moisture": "m³/m³",
    "uv_index": "index",
}

FORECAST_HOURS = 24

# WMO weather interpretation codes
WEATHER_CODE_DESCRIPTIONS: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def describe_weather(code: Any) -> str:
    if isinstance(code, bool) or not isinstance(code, (int, float)):
        return "Unknown"
    return WEATHER_CODE_DESCRIPTIONS.get(int(code), "Unknown")


def weather_icon(code: Any, is_day: bool = True) -> str:
    if isinstance(code, bool) or not isinstance(code, (int, float)):
        return "🌡️"
    if code == 0:
        return "☀️" if is_day else "🌙"
    if code <= 3:
        return "⛅" if is_day else "☁️"
    if code <= 48:
        return "🌫️"
    if code <= 67:
        return "🌧️"
    if code <= 77:
        return "❄️"
    if code <= 82:
        return "🌧️"
    if code <= 86:
        return "🌨️"
    if code >= 95:
        return "⛈️"
    return "🌡️"


def uv_risk(uv: Optional[float]) -> dict[str, str]:
    value = uv or 0.0
    if value < 3:
        return {"level": "Low", "color": "#4ade80"}
    if value < 6:
        return {"level": "Moderate", "color": "#facc15"}
    if value < 8:
        return {"level": "High", "color": "#fb923c"}
    if value < 11:
        return {"level": "Very High", "color": "#ef4444"}
    return {"level": "Extreme", "color": "#7c3aed"}


def comfort_index(temp: Optional[float], humidity: Optional[float]) -> Optional[dict[str, object]]:
    if temp is None or humidity is None:
        return None
    if temp < 10:
        return {"level": "Cold", "score": 30}
    if temp > 35:
        return {"level": "Hot", "score": 20}
    if humidity > 80 and temp > 25:
        return {"level": "Muggy", "score": 40}
    if humidity < 30 and temp > 20:
        return {"level": "Dry", "score": 60}
    if 18 <= temp <= 26 and 30 <= humidity <= 60:
        return {"level": "Ideal", "score": 100}
    return {"level": "Comfortable", "score": 80}


def _block(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}


def _column(block: Mapping[str, Any], key: str) -> list[Any]:
    value = block.get(key)
    return value if isinstance(value, list) else []


class _Columns:
    """Index-safe access to Open-Meteo's column-oriented arrays."""

    def __init__(self, block: Mapping[str, Any]) -> None:
        self._block = block
        self.time = _column(block, "time")

    def at(self, key: str, index: int) -> Any:
        values = _column(self._block, key)
        return values[index] if index < len(values) else None


def _location(data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "latitude": data.get("latitude"),
        "longitude": data.get("longitude"),
        "elevation": data.get("elevation"),
        "timezone": data.get("timezone"),
    }


def _numbers(values: Iterable[Any], *, positive: bool = False) -> list[float]:
    result = []
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if positive and value <= 0:
            continue
        result.append(float(value))
    return result


def _mean(values: list[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def map_current(data: Mapping[str, Any], *, cached: bool) -> dict[str, Any]:
    current = _block(data, "current")
    is_day = current.get("is_day") == 1
    code = current.get("weather_code")
    return {
        "status": "ok",
        "source": "open-meteo",
        "cached": cached,
        "location": _location(data),
        "current": {
            "time": current.get("time"),
            "temperature": current.get("temperature_2m"),
            "temperature_unit": "°C",
            "feels_like": current.get("apparent_temperature"),
            "humidity": current.get("relative_humidity_2m"),
            "humidity_unit": "%",
            "pressure": current.get("pressure_msl"),
            "pressure_unit": "hPa",
            "wind_speed": current.get("wind_speed_10m"),
            "wind_speed_unit": "km/h",
            "wind_direction": current.get("wind_direction_10m"),
            "wind_gusts": current.get("wind_gusts_10m"),
            "cloud_cover": current.get("cloud_cover"),
            "precipitation": current.get("precipitation"),
            "weather_code": code,
            "weather_description": describe_weather(code),
            "weather_icon": weather_icon(code, is_day),
            "is_day": is_day,
        },
    }


def map_forecast(data: Mapping[str, Any], *, cached: bool) -> dict[str, Any]:
    hourly = _Columns(_block(data, "hourly"))
    daily = _Columns(_block(data, "daily"))

    hourly_data = []
    for i, time in enumerate(hourly.time[:FORECAST_HOURS]):
        code = hourly.at("weather_code", i)
        hourly_data.append(
            {
                "time": time,
                "temperature": hourly.at("temperature_2m", i),
                "humidity": hourly.at("relative_humidity_2m", i),
                "precipitation_probability": hourly.at("precipitation_probability", i),
                "precipitation": hourly.at("precipitation", i),
                "weather_code": code,
                "weather_description": describe_weather(code),
                "weather_icon": weather_icon(code, True),
                "wind_speed": hourly.at("wind_speed_10m", i),
            }
        )

    daily_data = []
    for i, date in enumerate(daily.time):
        code = daily.at("weather_code", i)
        daily_data.append(
            {
                "date": date,
                "temperature_max": daily.at("temperature_2m_max", i),
                "temperature_min": daily.at("temperature_2m_min", i),
                "sunrise": daily.at("sunrise", i),
                "sunset": daily.at("sunset", i),
                "precipitation_sum": daily.at("precipitation_sum", i),
                "precipitation_probability": daily.at("precipitation_probability_max", i),
                "weather_code": code,
                "weather_description": describe_weather(code),
                "weather_icon": weather_icon(code, True),
                "wind_speed_max": daily.at("wind_speed_10m_max", i),
            }
        )

    return {
        "status": "ok",
        "source": "open-meteo",
        "cached": cached,
        "location": _location(data),
        "hourly": hourly_data,
        "daily": daily_data,
    }


def _analytics_hour(h: _Columns, i: int, time: Any) -> dict[str, Any]:
    code = h.at("weather_code", i)
    is_day = h.at("is_day", i) == 1
    uv_index = h.at("uv_index", i)
    return {
        "time": time,
        "is_day": is_day,
        "weather": {"code": code, "description": describe_weather(code), "icon": weather_icon(code, is_day)},
        "temperature": {
            "actual": h.at("temperature_2m", i),
            "feels_like": h.at("apparent_temperature", i),
            "dewpoint": h.at("dewpoint_2m", i),
        },
        "humidity": h.at("relative_humidity_2m", i),
        "precipitation": {
            "probability": h.at("precipitation_probability", i),
            "total": h.at("precipitation", i),
            "rain": h.at("rain", i),
            "snowfall": h.at("snowfall", i),
            "snow_depth": h.at("snow_depth", i),
        },
        "pressure": {"sea_level": h.at("pressure_msl", i), "surface": h.at("surface_pressure", i)},
        "wind": {
            "speed_10m": h.at("wind_speed_10m", i),
            "speed_80m": h.at("wind_speed_80m", i),
            "direction_10m": h.at("wind_direction_10m", i),
            "direction_80m": h.at("wind_direction_80m", i),
            "gusts": h.at("wind_gusts_10m", i),
        },
        "clouds": {
            "total": h.at("cloud_cover", i),
            "low": h.at("cloud_cover_low", i),
            "mid": h.at("cloud_cover_mid", i),
            "high": h.at("cloud_cover_high", i),
        },
        "visibility": h.at("visibility", i),
        "uv": {"index": uv_index, "clear_sky": h.at("uv_index_clear_sky", i), "risk": uv_risk(uv_index)},
        "solar": {
            "shortwave": h.at("shortwave_radiation", i),
            "direct": h.at("direct_radiation", i),
            "diffuse": h.at("diffuse_radiation", i),
            "dni": h.at("direct_normal_irradiance", i),
            "terrestrial": h.at("terrestrial_radiation", i),
            "sunshine_duration": h.at("sunshine_duration", i),
        },
        "soil": {
            "temperature_surface": h.at("soil_temperature_0cm", i),
            "temperature_6cm": h.at("soil_temperature_6cm", i),
            "temperature_18cm": h.at("soil_temperature_18cm", i),
            "moisture_0_1cm": h.at("soil_moisture_0_to_1cm", i),
            "moisture_1_3cm": h.at("soil_moisture_1_to_3cm", i),
            "moisture_3_9cm": h.at("soil_moisture_3_to_9cm", i),
        },
        "atmospheric": {
            "evapotranspiration": h.at("evapotranspiration", i),
            "vapour_pressure_deficit": h.at("vapour_pressure_deficit", i),
            "cape": h.at("cape", i),
            "freezing_level": h.at("freezing_level_height", i),
        },
        "comfort": comfort_index(h.at("temperature_2m", i), h.at("relative_humidity_2m", i)),
    }


def _analytics_day(d: _Columns, i: int, date: Any) -> dict[str, Any]:
    code = d.at("weather_code", i)
    uv_max = d.at("uv_index_max", i)
    return {
        "date": date,
        "weather": {"code": code, "description": describe_weather(code), "icon": weather_icon(code, True)},
        "temperature": {
            "max": d.at("temperature_2m_max", i),
            "min": d.at("temperature_2m_min", i),
            "feels_like_max": d.at("apparent_temperature_max", i),
            "feels_like_min": d.at("apparent_temperature_min", i),
        },
        "sun": {
            "sunrise": d.at("sunrise", i),
            "sunset": d.at("sunset", i),
            "daylight_duration": d.at("daylight_duration", i),
            "sunshine_duration": d.at("sunshine_duration", i),
        },
        "uv": {"max": uv_max, "clear_sky_max": d.at("uv_index_clear_sky_max", i), "risk": uv_risk(uv_max)},
        "precipitation": {
            "sum": d.at("precipitation_sum", i),
            "rain": d.at("rain_sum", i),
            "snow": d.at("snowfall_sum", i),
            "hours": d.at("precipitation_hours", i),
            "probability_max": d.at("precipitation_probability_max", i),
        },
        "wind": {
            "speed_max": d.at("wind_speed_10m_max", i),
            "gusts_max": d.at("wind_gusts_10m_max", i),
            "direction_dominant": d.at("wind_direction_10m_dominant", i),
        },
        "solar": {"radiation_sum": d.at("shortwave_radiation_sum", i)},
    }


def _local_time(value: Any, offset: timedelta) -> Optional[datetime]:
    """Open-Meteo reports naive local times; anchor them with the response offset."""
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone(offset))
    return parsed


def _current_hour(hours: list[dict[str, Any]], offset: timedelta, now: datetime) -> Optional[dict[str, Any]]:
    for hour in hours:
        moment = _local_time(hour["time"], offset)
        if moment is not None and moment >= now:
            return hour
    return hours[0] if hours else None


def map_analytics(
    data: Mapping[str, Any],
    *,
    cached: bool,
    past_days: int,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    h = _Columns(_block(data, "hourly"))
    d = _Columns(_block(data, "daily"))
    hourly_data = [_analytics_hour(h, i, time) for i, time in enumerate(h.time)]
    daily_data = [_analytics_day(d, i, date) for i, date in enumerate(d.time)]

    offset_raw = data.get("utc_offset_seconds")
    offset = timedelta(seconds=offset_raw if isinstance(offset_raw, (int, float)) else 0)
    current = _current_hour(hourly_data, offset, now)
    if 0 <= past_days < len(daily_data):
        today = daily_data[past_days]
    else:
        today = daily_data[0] if daily_data else None

    temps = _numbers(hour["temperature"]["actual"] for hour in hourly_data)
    uv_values = _numbers((hour["uv"]["index"] for hour in hourly_data), positive=True)
    winds = _numbers(hour["wind"]["speed_10m"] for hour in hourly_data)
    solar = _numbers((hour["solar"]["shortwave"] for hour in hourly_data), positive=True)
    uv_max = max(uv_values) if uv_values else 0

    summary = {
        "temperature": {
            "current": current["temperature"]["actual"] if current else None,
            "min": min(temps) if temps else None,
            "max": max(temps) if temps else None,
            "avg": _mean(temps),
        },
        "uv": {
            "current": current["uv"]["index"] if current else None,
            "max": uv_max,
            "max_risk": uv_risk(uv_max),
        },
        "wind": {
            "current": current["wind"]["speed_10m"] if current else None,
            "max": max(winds) if winds else None,
            "avg": _mean(winds),
        },
        "solar": {
            "current": current["solar"]["shortwave"] if current else None,
            "max": max(solar) if solar else 0,
            "total_today": (today["solar"]["radiation_sum"] if today else None) or 0,
        },
        "comfort": current["comfort"] if current else None,
        "today": today,
    }

    return {
        "status": "ok",
        "source": "open-meteo",
        "cached": cached,
        "generated_at": now.astimezone(timezone.utc).isoformat(),
        "location": _location(data),
        "summary": summary,
        "hourly": hourly_data,
        "daily": daily_data,
        "units": dict(ANALYTICS_UNITS),
    }


def map_geocoding(data: Mapping[str, Any], *, cached: bool) -> dict[str, Any]:
    results = data.get("results")
    places = []
    for item in results if isinstance(results, list) else []:
        if not isinstance(item, Mapping):
            continue
        places.append(
            {
                "name": item.get("name"),
                "latitude": item.get("latitude"),
                "longitude": item.get("longitude"),
                "country": item.get("country"),
                "admin1": item.get("admin1"),
                "timezone": item.get("timezone"),
            }
        )
    return {"status": "ok", "cached": cached, "results": places}
