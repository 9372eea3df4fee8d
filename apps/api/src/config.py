from pathlib import Path
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_list(value):
    if isinstance(value, str):
        s = value.strip()
        if s.startswith("["):
            import json
            return json.loads(s)
        if not s:
            return []
        return [p.strip() for p in s.split(",") if p.strip()]
    return value


class Settings(BaseSettings):
    # Load apps/api/.env and accept env keys in any case
    _env_file = Path(__file__).resolve().parent.parent / ".env"
    model_config = SettingsConfigDict(env_file=str(_env_file), extra="ignore", case_sensitive=False)

    app_name: str = "Weather Station API"
    app_version: str = "0.1.0"
    service_name: str = "weather-station-api"
    debug: bool = False
    cors_origins: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["*"])
    port: int = 8787

    # Auth / sessions
    allowlist_emails: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        description="Emails allowed to sign in. Empty means any email is accepted.",
    )
    session_cookie_name: str = "ws_session"
    session_ttl_seconds: int = Field(default=12 * 60 * 60, ge=60, description="Lifetime of a login session in seconds")
    session_max_entries: int = Field(default=1024, ge=1, description="Maximum concurrent sessions kept in memory")
    cookie_domain: str | None = Field(default=None, description="Optional Domain attribute for the session cookie")
    google_oauth_enabled: bool = False
    google_oauth_client_ids: Annotated[List[str], NoDecode] = Field(default_factory=list)
    google_oauth_hosted_domain: str | None = None

    # Weather provider
    open_meteo_base_url: str = Field(default="https://api.open-meteo.com/v1", description="Base URL for Open-Meteo")
    geocoding_base_url: str = Field(
        default="https://geocoding-api.open-meteo.com/v1",
        description="Base URL for the Open-Meteo geocoding API",
    )
    weather_user_agent: str = Field(
        default="WeatherStationAPI/0.1.0 (support@example.com)",
        description="User-Agent sent to upstream weather providers.",
    )
    weather_request_timeout: float = Field(default=8.0, ge=1.0, description="Timeout in seconds for weather HTTP calls")
    weather_current_cache_ttl: int = Field(default=5 * 60, ge=0, description="Cache duration (seconds) for current conditions")
    weather_forecast_cache_ttl: int = Field(default=30 * 60, ge=0, description="Cache duration (seconds) for forecasts")
    weather_analytics_cache_ttl: int = Field(default=15 * 60, ge=0, description="Cache duration (seconds) for analytics")
    geocoding_cache_ttl: int = Field(default=60 * 60, ge=0, description="Cache duration (seconds) for location search")
    weather_cache_max_entries: int = Field(default=512, ge=1, description="Maximum upstream responses kept in the weather cache")
    default_lat: float = Field(default=50.01548560455507, ge=-90.0, le=90.0)
    default_lon: float = Field(default=20.01632187262851, ge=-180.0, le=180.0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def normalize_cors(cls, v):
        if isinstance(v, str) and v.strip() in ("", "*"):
            return ["*"]
        return _split_list(v)

    @field_validator("allowlist_emails", mode="before")
    @classmethod
    def normalize_allowlist(cls, v):
        values = _split_list(v) or []
        return [str(item).strip().lower() for item in values if str(item).strip()]

    @field_validator("google_oauth_client_ids", mode="before")
    @classmethod
    def normalize_client_ids(cls, v):
        return _split_list(v)

settings = Settings()
