# loccal/routes/health.py
"""
Health check endpoints: liveness and readiness (Redis + configuration).
"""

import time

from fastapi import APIRouter

from loccal.config import settings
from loccal.services.redis_client import fast_redis

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "loccal"}


@router.get("/readyz")
async def readyz():
    """Readiness check with Redis and configuration."""
    checks = {}
    overall_ok = True

    # 1) Redis health check
    t0 = time.time()
    try:
        redis_ok = await fast_redis.ping()
        checks["redis"] = {
            "ok": bool(redis_ok),
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = overall_ok and bool(redis_ok)
    except Exception as e:
        checks["redis"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        overall_ok = False

    # 2) Configuration checks
    config_issues = []

    if not settings.SESSION_JWT_SECRET:
        config_issues.append("SESSION_JWT_SECRET not set")

    if not settings.REDIS_URL:
        config_issues.append("REDIS_URL not set")

    checks["configuration"] = {
        "ok": not config_issues,
        "issues": config_issues or None,
        "environment": settings.environment,
    }
    overall_ok = overall_ok and not config_issues

    # Geocoding is optional; parser-only resolution still works
    checks["geocoding"] = {
        "enabled": settings.geocoding_enabled(),
        "google": bool(settings.google_maps_api_key()),
        "osm": settings.LOCCAL_OSM_GEOCODING_ENABLED,
    }

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
