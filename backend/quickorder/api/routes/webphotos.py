"""Web photo API endpoints."""

from fastapi import APIRouter

from quickorder.api.deps import Store
from quickorder.errors import NotFound
from quickorder.middleware.cache import invalidate_cache
from quickorder.schemas.common import MessageResponse
from quickorder.schemas.webphoto import WebPhotoListResponse, WebPhotoUpsert

router = APIRouter()


@router.get("", response_model=WebPhotoListResponse)
async def list_web_photos(store: Store) -> WebPhotoListResponse:
    """All web photos of a mirror as name -> url."""
    web_photos = await store.webphotos.get_all()
    return WebPhotoListResponse(web_photos=web_photos, count=len(web_photos))


@router.put("/{name}")
async def upsert_web_photo(store: Store, name: str, data: WebPhotoUpsert) -> dict:
    changed = await store.webphotos.upsert(name, data.image_url)
    if changed:
        invalidate_cache(store.context)
    return {"success": True, "name": name, "image_url": data.image_url, "changed": changed}


@router.delete("/{name}", response_model=MessageResponse)
async def delete_web_photo(store: Store, name: str) -> MessageResponse:
    if not await store.webphotos.delete(name):
        raise NotFound(f"Web photo {name} not found")
    invalidate_cache(store.context)
    return MessageResponse(message=f"Web photo {name} deleted")
