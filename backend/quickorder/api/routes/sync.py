"""Sync endpoints - reconcile the mirrors with Airtable."""

import logging

from fastapi import APIRouter, Query

from quickorder.api.deps import AppSettings, CurrentContext, SyncServices
from quickorder.context import Context
from quickorder.errors import RemoteFetchError
from quickorder.schemas.sync import (
    CleanupRequest,
    ProductSyncResponse,
    SyncRequest,
    SyncTimestampUpdate,
    SyncTriggerRequest,
    WebPhotoSyncResponse,
)
from quickorder.services.sync_service import SyncService
from quickorder.services.sync_timestamps import SyncTimestampStore

logger = logging.getLogger(__name__)

router = APIRouter()


async def run_product_sync(service: SyncService) -> ProductSyncResponse:
    report = await service.sync_products()
    return ProductSyncResponse(
        **report.to_dict(),
        products_count=await service.store.products.count(),
    )


async def run_webphoto_sync(service: SyncService) -> WebPhotoSyncResponse:
    report = await service.sync_webphotos()
    web_photos = await service.store.webphotos.get_all()
    return WebPhotoSyncResponse(**report.to_dict(), web_photos_count=len(web_photos))


@router.post("/products", response_model=ProductSyncResponse)
async def sync_products(request: SyncRequest, services: SyncServices) -> ProductSyncResponse:
    """
    Reconcile the products mirror of a context with Airtable.

    Responds 502 when Airtable cannot be read and 409 when a sync of the same
    context is already running.
    """
    logger.info(f"Product sync requested for {request.context.value}")
    return await run_product_sync(services(request.context))


@router.post("/webphotos", response_model=WebPhotoSyncResponse)
async def sync_webphotos(request: SyncRequest, services: SyncServices) -> WebPhotoSyncResponse:
    """Reconcile the web photos mirror of a context with Airtable."""
    logger.info(f"Web photo sync requested for {request.context.value}")
    return await run_webphoto_sync(services(request.context))


@router.post("/trigger")
async def trigger_sync(request: SyncTriggerRequest, services: SyncServices) -> dict:
    """Sync entry point used by the mobile app."""
    service = services(request.context)
    if request.action == "sync-products":
        result = await run_product_sync(service)
    else:
        result = await run_webphoto_sync(service)
    return {"action": request.action, **result.model_dump()}


@router.post("/cleanup")
async def cleanup_media(request: CleanupRequest, services: SyncServices) -> dict:
    """
    Delete downloaded files that no mirrored row references.

    Responds 409 while a sync of the same context and type is running.
    """
    deleted = await services(request.context).cleanup_media(request.type)
    return {
        "success": True,
        "context": request.context.value,
        "type": request.type,
        "deleted_count": deleted,
    }


@router.get("/remote-status")
async def remote_status(context: CurrentContext, services: SyncServices) -> dict:
    """Connection flag, record count and field names of the products table."""
    remote = services(context).remote
    status = {
        "context": context.value,
        "connected": await remote.test_connection(),
        "record_count": 0,
        "schema": [],
    }
    if status["connected"]:
        try:
            records = await remote.fetch_all_records()
            status["record_count"] = len(records)
            status["schema"] = sorted(
                {name for record in records for name in (record.get("fields") or {})}
            )
        except RemoteFetchError as e:
            status["connected"] = False
            status["error"] = str(e)
    return status


@router.get("/timestamps")
async def get_timestamps(
    config: AppSettings,
    context: str | None = Query(None, description="Only this context"),
) -> dict:
    store = SyncTimestampStore(config=config)
    if context:
        target = Context.from_alias(context)
        return {"success": True, "context": target.value, "timestamps": store.get(target)}
    return {"success": True, "timestamps": store.load()}


@router.post("/timestamps")
async def set_timestamp(request: SyncTimestampUpdate, config: AppSettings) -> dict:
    """Record a sync time reported by a client."""
    store = SyncTimestampStore(config=config)
    store.record(request.context, request.type, request.timestamp)
    return {"success": True, "context": request.context.value, "timestamps": store.get(request.context)}
