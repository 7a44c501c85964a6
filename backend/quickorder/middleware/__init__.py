"""Middleware modules for QuickOrder."""

from quickorder.middleware.cache import CacheMiddleware, invalidate_cache, response_cache

__all__ = [
    "CacheMiddleware",
    "invalidate_cache",
    "response_cache",
]
