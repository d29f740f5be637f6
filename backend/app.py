"""FastAPI application entry point for the weather cache API."""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, settings as default_settings
from errors import register_error_handlers
from services.cache import CacheStore
from services.db import create_engine, init_db
from services.resolver import CacheAsideResolver, SingleFlight
from services.weather import WeatherProvider

# Structured logging: JSON for production, human-readable for local
if default_settings.is_production:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}',
        stream=sys.stdout,
    )
else:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    provider: WeatherProvider | None = None,
) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        missing = settings.validate()
        if missing:
            logger.warning("Missing env vars (weather lookups will fail): %s", ", ".join(missing))

        # Collaborators are built here and handed to the resolver explicitly.
        store = CacheStore(create_engine(settings.database_url))
        weather = provider or WeatherProvider.from_settings(settings)
        await init_db(store.engine)
        app.state.store = store
        app.state.resolver = CacheAsideResolver(
            store,
            weather,
            ttl=timedelta(seconds=settings.cache_ttl_seconds),
            single_flight=SingleFlight() if settings.single_flight else None,
        )
        yield
        await weather.aclose()
        await store.engine.dispose()

    app = FastAPI(title="Weather Cache API", version="1.0.0", lifespan=lifespan)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # Centralized error handlers
    register_error_handlers(app)

    from routes.health import router as health_router
    from routes.weather import router as weather_router

    app.include_router(health_router)
    app.include_router(weather_router)

    return app


app = create_app()
