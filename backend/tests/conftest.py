"""Shared fixtures: a temporary SQLite cache table and a scripted provider."""

import json
import os
from datetime import datetime, timedelta

import httpx
import pytest
import pytest_asyncio

# Set test environment variables before importing app modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("WEATHER_API_KEY", "test-key")

from services.cache import CacheStore
from services.db import create_engine, init_db
from services.weather import WeatherProvider

BASE_URL = "https://api.openweathermap.test/data/2.5"


def forecast_doc(city: str = "Paris", country: str = "FR", temp: float = 18.4, main: str = "Clouds") -> dict:
    """Trimmed-down OpenWeatherMap /forecast response."""
    return {
        "cod": "200",
        "cnt": 1,
        "list": [
            {
                "dt": 1760860800,
                "main": {"temp": temp, "humidity": 71},
                "weather": [{"id": 803, "main": main, "description": "broken clouds"}],
            }
        ],
        "city": {"id": 2988507, "name": city, "country": country},
    }


KNOWN_CITIES = {
    "paris": forecast_doc("Paris", "FR", 18.4, "Clouds"),
    "london": forecast_doc("London", "GB", 12.1, "Rain"),
    "tokyo": forecast_doc("Tokyo", "JP", 21.0, "Clear"),
}


class FakeOpenWeather:
    """Request handler for httpx.MockTransport that mimics the forecast endpoint."""

    def __init__(self, cities: dict | None = None):
        self.cities = KNOWN_CITIES if cities is None else cities
        self.requests: list[httpx.Request] = []

    @property
    def queries(self) -> list[str]:
        return [r.url.params["q"] for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        doc = self.cities.get(request.url.params["q"].lower())
        if doc is None:
            return httpx.Response(404, json={"cod": "404", "message": "city not found"})
        return httpx.Response(200, text=json.dumps(doc))


class FakeClock:
    def __init__(self, start: datetime = datetime(2026, 10, 19, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_provider(handler) -> WeatherProvider:
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return WeatherProvider(client, api_key="test-key", units="metric")


@pytest.fixture
def open_weather() -> FakeOpenWeather:
    return FakeOpenWeather()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'weather_cache.db'}"


@pytest_asyncio.fixture
async def store(database_url):
    engine = create_engine(database_url)
    await init_db(engine)
    yield CacheStore(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def provider(open_weather):
    provider = make_provider(open_weather)
    yield provider
    await provider.aclose()
