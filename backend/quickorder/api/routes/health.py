"""Health check endpoints."""

from fastapi import APIRouter

from quickorder import __version__
from quickorder.api.deps import AppSettings
from quickorder.context import Context
from quickorder.database import get_database

router = APIRouter()


async def check_mirrors(config) -> dict[str, bool]:
    return {context.value: await get_database(context, config).ping() for context in Context}


@router.get("/health")
async def health_check(config: AppSettings) -> dict:
    """Basic health check endpoint."""
    mirrors = await check_mirrors(config)
    healthy = all(mirrors.values())

    return {
        "status": "healthy" if healthy else "degraded",
        "databases": {
            name: "connected" if ok else "disconnected" for name, ok in mirrors.items()
        },
        "version": __version__,
    }


@router.get("/health/ready")
async def readiness_check(config: AppSettings) -> dict:
    """Readiness check for load balancers."""
    checks = await check_mirrors(config)
    return {
        "ready": all(checks.values()),
        "checks": checks,
    }
