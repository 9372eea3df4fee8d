import sys
from pathlib import Path
from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from config import settings  # noqa: E402
from main import create_app  # noqa: E402
from services.sessions import session_store  # noqa: E402
from services.weather import weather_service  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_services() -> None:
    session_store.clear()
    weather_service.clear_cache()
    yield
    session_store.clear()
    weather_service.clear_cache()


@pytest.fixture
def settings_override() -> Callable[..., None]:
    original: Dict[str, Any] = {}

    def _apply(**overrides: Any) -> None:
        for key, value in overrides.items():
            if key not in original:
                original[key] = getattr(settings, key)
            setattr(settings, key, value)

    yield _apply

    for key, value in original.items():
        setattr(settings, key, value)


@pytest.fixture
def client() -> TestClient:
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def valid_reading() -> dict[str, Any]:
    return {
        "ts": "2025-01-01T00:00:00Z",
        "sensor_key": "temp_1",
        "metric": "temperature",
        "unit": "C",
        "value": 21.5,
    }


@pytest.fixture
def make_batch(valid_reading: dict[str, Any]) -> Callable[..., dict[str, Any]]:
    def _build(readings: list[Any] | None = None, **overrides: Any) -> dict[str, Any]:
        batch: dict[str, Any] = {
            "schema": "measurements.v1",
            "device_id": "d-1",
            "sent_at": "2025-01-01T00:00:10Z",
            "readings": readings if readings is not None else [dict(valid_reading)],
        }
        batch.update(overrides)
        return batch

    return _build
