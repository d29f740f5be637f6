"""Centralized configuration — all env vars in one place."""

import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
        self.git_sha: str = os.getenv("GIT_SHA", "unknown")
        self.environment: str = os.getenv("ENVIRONMENT", "local")

        # Cache store
        self.database_url: str = os.getenv(
            "DATABASE_URL", "sqlite+aiosqlite:///./weather_cache.db"
        )
        self.cache_ttl_seconds: int = int(os.getenv("CACHE_TTL_SECONDS", "600"))
        self.single_flight: bool = _env_bool("SINGLE_FLIGHT")

        # OpenWeatherMap
        self.weather_api_base_url: str = os.getenv(
            "WEATHER_API_BASE_URL", "https://api.openweathermap.org/data/2.5"
        )
        self.weather_api_key: str | None = os.getenv("WEATHER_API_KEY")
        self.weather_units: str = os.getenv("WEATHER_UNITS", "metric")
        self.provider_timeout_seconds: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "10"))

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> list[str]:
        """Return list of missing required env vars for weather lookups."""
        required = ["WEATHER_API_KEY"]
        return [var for var in required if not getattr(self, _attr_for(var))]


settings = Settings()


def _attr_for(env_var: str) -> str:
    """Map env var name to Settings attribute name."""
    mapping = {
        "WEATHER_API_KEY": "weather_api_key",
    }
    return mapping.get(env_var, env_var.lower())
