"""Health, readiness, and version endpoints."""

from fastapi import APIRouter

from updown.config import get_settings
from updown.errors import StoreUnavailable
from updown.redis_client import get_kv

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe. Returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness() -> dict[str, object]:
    """Readiness probe. Checks Redis connectivity."""
    checks: dict[str, object] = {}

    try:
        await get_kv().ping()
        checks["redis"] = "ok"
    except (RuntimeError, StoreUnavailable) as exc:
        checks["redis"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
