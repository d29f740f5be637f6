"""Weather lookup routes backed by the cache-aside resolver."""

import json
import logging

from fastapi import APIRouter, Depends, Request

from errors import TransportError
from services.resolver import CacheAsideResolver

logger = logging.getLogger(__name__)

router = APIRouter()


def get_resolver(request: Request) -> CacheAsideResolver:
    return request.app.state.resolver


def _decode(payload: str):
    try:
        return json.loads(payload)
    except ValueError as e:
        raise TransportError(f"Cached weather document is not valid JSON: {e}", status_code=502) from e


@router.get("/weather/{city}")
async def weather(city: str, resolver: CacheAsideResolver = Depends(get_resolver)) -> dict:
    """Current 5 day / 3 hour forecast for a city, served from cache when fresh."""
    result = await resolver.lookup(city)
    return {"source": result.source, "data": _decode(result.value)}


@router.get("/weather/{city}/summary")
async def weather_summary(city: str, resolver: CacheAsideResolver = Depends(get_resolver)) -> dict:
    """Headline conditions for a city (what a favorites list shows)."""
    result = await resolver.lookup(city)
    summary = summarize_forecast(_decode(result.value))
    summary["source"] = result.source
    return summary


def summarize_forecast(doc: dict) -> dict:
    """Pull the first forecast slot's headline fields out of a forecast document."""
    try:
        city = doc["city"]
        first = doc["list"][0]
        condition = first["weather"][0] if first.get("weather") else {}
        return {
            "city": city["name"],
            "country": city.get("country"),
            "temperature": first["main"]["temp"],
            "condition": condition.get("main"),
            "description": condition.get("description"),
        }
    except (KeyError, IndexError, TypeError) as e:
        logger.warning("Unexpected forecast document shape: %r", e)
        raise TransportError(f"Forecast document missing field: {e}", status_code=502) from e
