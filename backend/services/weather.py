"""OpenWeatherMap forecast client.

Returns the provider's JSON body as text, untouched, so it can be cached
verbatim. Failures are classified by what the caller should do about them:
``NotFound`` for unknown cities, ``AuthFailure`` for key or quota problems,
``TransportError`` for everything else.
"""

import json
import logging

import httpx

from errors import AuthFailure, NotFound, TransportError

logger = logging.getLogger(__name__)

NOT_FOUND_STATUSES = {400, 404}
AUTH_STATUSES = {401, 403, 429}


def _provider_message(resp: httpx.Response) -> str:
    """OpenWeatherMap errors look like {"cod": "404", "message": "city not found"}."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.reason_phrase


class WeatherProvider:
    """Read-only client for the OpenWeatherMap 5 day / 3 hour forecast."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str | None,
        units: str = "metric",
    ):
        self._client = client
        self._api_key = api_key
        self._units = units

    @classmethod
    def from_settings(cls, settings, transport: httpx.AsyncBaseTransport | None = None) -> "WeatherProvider":
        client = httpx.AsyncClient(
            base_url=settings.weather_api_base_url,
            timeout=settings.provider_timeout_seconds,
            transport=transport,
        )
        return cls(client, api_key=settings.weather_api_key, units=settings.weather_units)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch(self, query: str) -> str:
        """Fetch the forecast document for a city name."""
        try:
            resp = await self._client.get(
                "/forecast",
                params={"q": query, "units": self._units, "appid": self._api_key or ""},
            )
        except httpx.TimeoutException as e:
            logger.warning("Weather fetch timed out for %s: %s", query, e)
            raise TransportError(f"Weather provider timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning("Weather fetch failed for %s: %s", query, e)
            raise TransportError(f"Weather provider unreachable: {e}") from e

        if resp.status_code in NOT_FOUND_STATUSES:
            raise NotFound(_provider_message(resp), status_code=resp.status_code)
        if resp.status_code in AUTH_STATUSES:
            message = _provider_message(resp)
            logger.warning("Weather provider refused request (%d): %s", resp.status_code, message)
            raise AuthFailure(message, status_code=resp.status_code)
        if resp.is_error:
            message = _provider_message(resp)
            logger.warning("Weather provider error (%d) for %s: %s", resp.status_code, query, message)
            raise TransportError(message, status_code=resp.status_code)

        body = resp.text
        try:
            json.loads(body)
        except ValueError as e:
            logger.warning("Weather provider returned malformed JSON for %s", query)
            raise TransportError(f"Malformed provider response: {e}") from e
        return body
