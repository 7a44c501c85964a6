"""Query cache for mirror read endpoints, partitioned by storefront context."""

import hashlib
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from quickorder.config import settings
from quickorder.context import Context


@dataclass
class CacheEntry:
    """A cached response entry."""
    content: bytes
    content_type: str
    status_code: int
    created_at: float
    ttl: int
    context: Context

    def is_expired(self) -> bool:
        return time.time() > self.created_at + self.ttl


class ResponseCache:
    """In-memory response cache with TTL and per-context invalidation."""

    def __init__(self, max_size: int = 1000):
        self.cache: dict[str, CacheEntry] = {}
        self.max_size = max_size
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> CacheEntry | None:
        entry = self.cache.get(key)
        if entry is None:
            self.misses += 1
            return None
        if entry.is_expired():
            del self.cache[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        if len(self.cache) >= self.max_size:
            self._evict_expired()
        if len(self.cache) >= self.max_size:
            oldest_key = min(self.cache.keys(), key=lambda k: self.cache[k].created_at)
            del self.cache[oldest_key]
        self.cache[key] = entry

    def invalidate(self, context: Context | None = None) -> int:
        """Drop the entries of one context, or everything when context is None."""
        if context is None:
            count = len(self.cache)
            self.cache.clear()
            return count

        keys_to_delete = [k for k, v in self.cache.items() if v.context is context]
        for key in keys_to_delete:
            del self.cache[key]
        return len(keys_to_delete)

    def invalidate_context(self, context: Context) -> int:
        return self.invalidate(context)

    def stats(self) -> dict:
        self._evict_expired()
        per_context = {c.value: 0 for c in Context}
        for entry in self.cache.values():
            per_context[entry.context.value] += 1
        return {
            "entries": len(self.cache),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "per_context": per_context,
        }

    def _evict_expired(self) -> None:
        expired = [k for k, v in self.cache.items() if v.is_expired()]
        for key in expired:
            del self.cache[key]


# Global cache instance
response_cache = ResponseCache(max_size=settings.query_cache_max_size)


# Read endpoints served from the mirrors
CACHEABLE_PREFIXES = (
    "/api/v1/products",
    "/api/v1/webphotos",
    "/api/v1/category-relations",
)


def request_context(request: Request) -> Context:
    return Context.from_alias(request.query_params.get("context"))


def get_cache_key(request: Request) -> str:
    """Generate a cache key from the request, context included."""
    context = request_context(request)
    query = str(sorted(request.query_params.items()))
    key_data = f"{context.value}:{request.method}:{request.url.path}:{query}"
    return hashlib.md5(key_data.encode()).hexdigest()


def should_cache(request: Request) -> bool:
    if request.method != "GET":
        return False
    return request.url.path.startswith(CACHEABLE_PREFIXES)


def bypass_requested(request: Request) -> bool:
    return "no-cache" in request.headers.get("cache-control", "").lower()


class CacheMiddleware(BaseHTTPMiddleware):
    """Middleware that caches GET responses of the mirror read endpoints."""

    def __init__(self, app, cache: ResponseCache | None = None, ttl: int | None = None):
        super().__init__(app)
        self.cache = cache or response_cache
        self.ttl = ttl if ttl is not None else settings.query_cache_ttl

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not should_cache(request):
            return await call_next(request)

        cache_key = get_cache_key(request)

        if not bypass_requested(request):
            cached = self.cache.get(cache_key)
            if cached:
                response = Response(
                    content=cached.content,
                    status_code=cached.status_code,
                    media_type=cached.content_type,
                )
                response.headers["X-Cache"] = "HIT"
                return response

        response = await call_next(request)

        # Only cache successful responses
        if response.status_code != 200:
            return response

        content_type = response.headers.get("content-type", "application/json")
        body = b""
        async for chunk in response.body_iterator:
            body += chunk

        self.cache.set(
            cache_key,
            CacheEntry(
                content=body,
                content_type=content_type,
                status_code=response.status_code,
                created_at=time.time(),
                ttl=self.ttl,
                context=request_context(request),
            ),
        )

        new_response = Response(
            content=body,
            status_code=response.status_code,
            media_type=content_type,
        )
        new_response.headers["X-Cache"] = "BYPASS" if bypass_requested(request) else "MISS"
        return new_response


def invalidate_cache(context: Context | None = None) -> int:
    """Invalidate cache entries. Call after data mutations."""
    return response_cache.invalidate(context)
