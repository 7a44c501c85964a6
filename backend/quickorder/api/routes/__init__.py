"""API routes."""

from fastapi import APIRouter

from quickorder.api.routes import cache, category_relations, devices, health, products, sync, webphotos

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(sync.router, prefix="/sync", tags=["Sync"])
api_router.include_router(products.router, prefix="/products", tags=["Products"])
api_router.include_router(webphotos.router, prefix="/webphotos", tags=["Web Photos"])
api_router.include_router(
    category_relations.router, prefix="/category-relations", tags=["Category Relations"]
)
api_router.include_router(devices.router, prefix="/devices", tags=["Devices"])
api_router.include_router(cache.router, prefix="/cache", tags=["Cache"])
