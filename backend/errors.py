"""Custom exceptions and centralized FastAPI error handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class WeatherAppError(Exception):
    """Base exception with HTTP status code."""

    message = "Weather lookup failed"

    def __init__(self, detail: str, status_code: int = 500):
        super().__init__(detail)
        self.status_code = status_code


class ProviderError(WeatherAppError):
    """Upstream weather provider rejected or failed a request."""

    message = "Error fetching weather data"


class NotFound(ProviderError):
    """The query term does not resolve to any city at the provider."""

    message = "City not found"

    def __init__(self, detail: str, status_code: int = 404):
        super().__init__(detail, status_code=status_code)


class AuthFailure(ProviderError):
    """Provider rejected our credential or quota."""

    message = "Weather provider rejected the request"


class TransportError(ProviderError):
    """Network failure, timeout or unusable provider response."""

    message = "Weather provider unavailable"


class StoreError(WeatherAppError):
    message = "Weather cache unavailable"


def error_body(message: str, error: str) -> dict:
    return {"message": message, "error": error}


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(WeatherAppError)
    async def handle_weather_error(_request: Request, exc: WeatherAppError):
        return JSONResponse(error_body(exc.message, str(exc)), status_code=exc.status_code)

    @app.exception_handler(ValueError)
    async def handle_value_error(_request: Request, exc: ValueError):
        return JSONResponse(error_body("Invalid request", str(exc)), status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            error_body("Internal server error", "Internal server error"),
            status_code=500,
        )
