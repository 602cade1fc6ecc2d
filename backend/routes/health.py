"""Health and readiness check routes."""

import logging

from fastapi import APIRouter

from config import settings
from services.cache import cache

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "mgnrega-dashboard"
PROBE_KEY = "health:probe"


@router.get("/ready")
async def ready() -> dict:
    """Lightweight readiness check — no external calls."""
    return {"status": "ok", "service": SERVICE_NAME, "commit": settings.git_sha}


@router.get("/health")
async def health() -> dict:
    """Deeper check: upstream credentials present and cache writable."""
    result = {
        "status": "ok",
        "service": SERVICE_NAME,
        "commit": settings.git_sha,
        "data_gov_api_key": "configured" if settings.data_gov_api_key else "missing",
        "cache": "not_tested",
    }

    failures_before = cache.write_failures
    cache.set(PROBE_KEY, {"ok": True}, ttl_seconds=60)
    if cache.write_failures > failures_before or cache.get(PROBE_KEY) != {"ok": True}:
        logger.error("Cache probe failed (dir=%s)", cache.root)
        result["cache"] = "error"
        result["status"] = "degraded"
    else:
        result["cache"] = "ok"

    if not settings.data_gov_api_key:
        result["status"] = "degraded"

    return result
