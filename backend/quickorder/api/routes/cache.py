"""Query cache endpoints."""

from fastapi import APIRouter, Query

from quickorder.context import Context
from quickorder.middleware.cache import invalidate_cache, response_cache

router = APIRouter()


@router.post("/refresh")
async def refresh_cache(
    context: str | None = Query(None, description="Only clear this context"),
) -> dict:
    """Drop cached query responses so the next reads hit the mirrors."""
    target = Context.from_alias(context) if context else None
    cleared = invalidate_cache(target)
    return {
        "success": True,
        "cleared": cleared,
        "context": target.value if target else "all",
    }


@router.get("/status")
async def cache_status() -> dict:
    return {"success": True, **response_cache.stats()}
