from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List

DEMO_DEVICE_ID = "device-demo-01"
POINT_COUNT = 12
STEP = timedelta(minutes=1)


@dataclass(slots=True)
class ChartPoint:
    timestamp: datetime
    temperature: float
    humidity: float
    pressure: float
    battery_voltage: float


@dataclass(frozen=True, slots=True)
class SeriesSpec:
    metric: str
    label: str
    unit: str
    digits: int


SERIES: tuple[SeriesSpec, ...] = (
    SeriesSpec("temperature", "Temperature", "C", 2),
    SeriesSpec("humidity", "Humidity", "%RH", 1),
    SeriesSpec("pressure", "Pressure", "hPa", 1),
    SeriesSpec("battery_voltage", "Battery", "V", 3),
)


def _isoformat(timestamp: datetime) -> str:
    """Serialize timestamps with millisecond precision and trailing Z."""
    iso = timestamp.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    if iso.endswith("+00:00"):
        return iso[:-6] + "Z"
    return iso


def _now(now: datetime | None = None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def generate_points(samples: int = POINT_COUNT, *, now: datetime | None = None) -> List[ChartPoint]:
    """Synthetic station readings, oldest first, one per minute ending at ``now``."""
    if samples <= 0:
        return []

    base = _now(now)
    points: list[ChartPoint] = []
    for i in range(samples):
        points.append(
            ChartPoint(
                timestamp=base - i * STEP,
                temperature=20.5 + math.sin(i / 3) * 1.2,
                humidity=55 + math.cos(i / 4) * 3,
                pressure=1013 + math.sin(i / 2) * 0.6,
                battery_voltage=3.8 - i * 0.002,
            )
        )
    points.reverse()
    return points


def chart_payload(*, now: datetime | None = None) -> dict[str, object]:
    current = _now(now)
    points = generate_points(now=current)
    series = [
        {
            "metric": spec.metric,
            "label": spec.label,
            "unit": spec.unit,
            "data": [
                {"ts": _isoformat(point.timestamp), "value": round(getattr(point, spec.metric), spec.digits)}
                for point in points
            ],
        }
        for spec in SERIES
    ]
    return {
        "status": "ok",
        "device_id": DEMO_DEVICE_ID,
        "updated_at": _isoformat(current),
        "series": series,
    }
