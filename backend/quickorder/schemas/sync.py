"""Sync request/response schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from quickorder.schemas.common import ContextRequest


class SyncRequest(ContextRequest):
    """Request to reconcile one mirror with the tabular source."""
    pass


class SyncTriggerRequest(ContextRequest):
    """Sync trigger sent by the mobile app."""

    action: Literal["sync-products", "sync-webphotos"]


class CleanupRequest(ContextRequest):
    type: Literal["products", "webphotos"]


class SyncTimestampUpdate(ContextRequest):
    type: Literal["products", "webphotos"]
    timestamp: datetime


class SyncResponse(BaseModel):
    """Summary of one reconciliation run."""

    success: bool
    context: str
    entity_type: str
    message: str
    remote_count: int = 0
    created_count: int = 0
    updated_count: int = 0
    unchanged_count: int = 0
    deleted_count: int = 0
    failed_count: int = 0
    downloaded_count: int = 0
    download_failed_count: int = 0
    cleaned_files_count: int = 0
    errors: list[str] = []
    timestamp: datetime | None = None


class ProductSyncResponse(SyncResponse):
    products_count: int = 0


class WebPhotoSyncResponse(SyncResponse):
    web_photos_count: int = 0
