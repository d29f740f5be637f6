"""Health and readiness check routes."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from config import settings
from services.db import ping

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/ready")
async def ready() -> dict:
    """Lightweight readiness check — no external calls."""
    return {"status": "ok", "service": "weather-cache-api", "commit": settings.git_sha}


@router.get("/health")
async def health(request: Request):
    """Deep health check that verifies the cache database is reachable.

    Answers 503 when the database check fails so the instance is taken out
    of rotation.
    """
    result = {"status": "ok", "service": "weather-cache-api", "commit": settings.git_sha, "database": "not_tested"}

    try:
        solution = await ping(request.app.state.store.engine)
    except Exception as e:
        logger.exception("Cache database health check failed")
        result["status"] = "error"
        result["database"] = "error"
        result["database_error"] = str(e)
        return JSONResponse(result, status_code=503)

    result["database"] = "connected"
    result["database_check"] = solution
    return result
