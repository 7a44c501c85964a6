"""
Reconciliation of a context's mirror with the tabular source.

A run fetches the remote set first, so a failed fetch leaves the mirror
untouched. Deletions are computed from the snapshot taken before any write;
remote entities are then created or updated only when a tracked field
differs, which makes a repeated run with unchanged data a no-op.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from quickorder.config import Settings, settings
from quickorder.context import Context
from quickorder.errors import DownloadError, StorageError, SyncInProgressError
from quickorder.middleware.cache import ResponseCache, response_cache
from quickorder.models import Product
from quickorder.schemas.product import TRACKED_FIELDS, ProductCreate
from quickorder.services.airtable import AirtableClient
from quickorder.services.media_downloader import (
    MediaDownloader,
    is_remote,
    product_image_stem,
    sanitize,
)
from quickorder.services.mirror_store import MirrorStore, get_mirror_store
from quickorder.services.sync_timestamps import SyncTimestampStore

logger = logging.getLogger(__name__)

ENTITY_TYPES = ("products", "webphotos")

_locks: dict[tuple[Context, str], asyncio.Lock] = {}


def get_sync_lock(context: Context, entity_type: str) -> asyncio.Lock:
    key = (context, entity_type)
    if key not in _locks:
        _locks[key] = asyncio.Lock()
    return _locks[key]


def changed_fields(existing: Product, incoming: ProductCreate) -> dict[str, Any]:
    """Tracked fields whose incoming value differs from the stored one."""
    patch = {}
    for name in TRACKED_FIELDS:
        new_value = getattr(incoming, name)
        if getattr(existing, name) != new_value:
            patch[name] = new_value
    return patch


@dataclass
class SyncReport:
    """Counters of one reconciliation run."""
    context: Context
    entity_type: str
    remote_count: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    failed: int = 0
    downloaded: int = 0
    download_failed: int = 0
    cleaned_files: int = 0
    errors: list[str] = field(default_factory=list)
    skipped: bool = False
    timestamp: datetime | None = None

    @property
    def success(self) -> bool:
        return not self.skipped

    @property
    def message(self) -> str:
        if self.skipped:
            return (
                f"Remote {self.entity_type} table is empty; "
                f"{self.context.value} mirror left untouched"
            )
        return (
            f"Synced {self.remote_count} {self.entity_type} for {self.context.value}: "
            f"{self.created} created, {self.updated} updated, {self.unchanged} unchanged, "
            f"{self.deleted} deleted, {self.failed} failed"
        )

    def fail(self, message: str) -> None:
        self.failed += 1
        self.errors.append(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "context": self.context.value,
            "entity_type": self.entity_type,
            "message": self.message,
            "remote_count": self.remote_count,
            "created_count": self.created,
            "updated_count": self.updated,
            "unchanged_count": self.unchanged,
            "deleted_count": self.deleted,
            "failed_count": self.failed,
            "downloaded_count": self.downloaded,
            "download_failed_count": self.download_failed,
            "cleaned_files_count": self.cleaned_files,
            "errors": self.errors,
            "timestamp": self.timestamp,
        }


class SyncService:
    """Reconciles one context's mirror with its Airtable base."""

    def __init__(
        self,
        context: Context,
        config: Settings | None = None,
        store: MirrorStore | None = None,
        remote: AirtableClient | None = None,
        product_downloader: MediaDownloader | None = None,
        webphoto_downloader: MediaDownloader | None = None,
        timestamps: SyncTimestampStore | None = None,
        cache: ResponseCache | None = None,
    ):
        self.context = context
        self.config = config or settings
        self.store = store or get_mirror_store(context, self.config)
        self.remote = remote or AirtableClient(context, self.config)
        self.product_downloader = product_downloader or MediaDownloader(
            context, "products", self.config
        )
        self.webphoto_downloader = webphoto_downloader or MediaDownloader(
            context, "webphotos", self.config
        )
        self.timestamps = timestamps or SyncTimestampStore(config=self.config)
        self.cache = cache or response_cache

    @property
    def mirrors_product_media(self) -> bool:
        return self.context in self.config.product_media_contexts

    def _acquire(self, entity_type: str) -> asyncio.Lock:
        lock = get_sync_lock(self.context, entity_type)
        if lock.locked():
            raise SyncInProgressError(
                f"A {entity_type} sync for the {self.context.value} context is already running"
            )
        return lock

    async def _localize(
        self, downloader: MediaDownloader, url: str, stem: str, report: SyncReport
    ) -> str:
        """Local path for a remote url; the url itself when the download fails."""
        if not is_remote(url):
            return url
        existing = downloader.find_existing(stem)
        if existing is not None:
            return downloader.public_path(existing.name)
        try:
            path = await downloader.download(url, stem)
            report.downloaded += 1
            return path
        except DownloadError as e:
            report.download_failed += 1
            logger.warning(f"[{self.context.value}] {e}; keeping remote url")
            return url

    async def sync_products(self) -> SyncReport:
        """
        Reconcile the products table.

        Raises:
            RemoteFetchError: the remote set could not be fetched.
            SyncInProgressError: a products sync of this context is running.
        """
        async with self._acquire("products"):
            return await self._sync_products()

    async def _sync_products(self) -> SyncReport:
        report = SyncReport(self.context, "products")
        records = await self.remote.fetch_all_records()

        remote_products: list[ProductCreate] = []
        for record in records:
            try:
                product = self.remote.convert_record_to_product(record)
            except ValueError as e:
                report.fail(f"Record {record.get('id')}: {e}")
                logger.warning(f"[{self.context.value}] cannot convert record {record.get('id')}: {e}")
                continue
            if not product.id:
                report.fail("Record without id")
                continue
            remote_products.append(product)
        report.remote_count = len(remote_products)

        if not remote_products and not self.config.allow_empty_remote:
            report.skipped = True
            logger.warning(f"[{self.context.value}] {report.message}")
            return report

        local = {p.id: p for p in await self.store.products.get_all()}
        remote_ids = {p.id for p in remote_products}

        for product_id in local.keys() - remote_ids:
            try:
                if await self.store.products.delete(product_id):
                    report.deleted += 1
            except StorageError as e:
                report.fail(f"Delete {product_id}: {e}")

        for product in remote_products:
            try:
                if self.mirrors_product_media:
                    product.image_urls = [
                        await self._localize(
                            self.product_downloader,
                            url,
                            product_image_stem(product.id, product.brand, product.name, index),
                            report,
                        )
                        for index, url in enumerate(product.image_urls)
                    ]

                existing = local.get(product.id)
                if existing is None:
                    await self.store.products.create(product)
                    report.created += 1
                    continue

                patch = changed_fields(existing, product)
                if patch:
                    await self.store.products.update(product.id, patch)
                    report.updated += 1
                else:
                    report.unchanged += 1
            except StorageError as e:
                report.fail(f"Product {product.id}: {e}")
                logger.error(f"[{self.context.value}] failed to store product {product.id}: {e}")

        if self.mirrors_product_media:
            report.cleaned_files = await self.cleanup("products")

        try:
            await self.store.relations.populate_from_products(remote_products)
        except StorageError as e:
            report.errors.append(f"Category relations: {e}")

        return self._finish(report)

    async def sync_webphotos(self) -> SyncReport:
        """
        Reconcile the web photos table. Protected names are never deleted.

        Raises:
            RemoteFetchError: the remote set could not be fetched.
            SyncInProgressError: a web photos sync of this context is running.
        """
        async with self._acquire("webphotos"):
            return await self._sync_webphotos()

    async def _sync_webphotos(self) -> SyncReport:
        report = SyncReport(self.context, "webphotos")
        remote = await self.remote.fetch_web_photos()
        report.remote_count = len(remote)

        if not remote and not self.config.allow_empty_remote:
            report.skipped = True
            logger.warning(f"[{self.context.value}] {report.message}")
            return report

        local = await self.store.webphotos.get_all()
        protected = set(self.config.protected_webphotos)

        for name in local.keys() - remote.keys():
            if name in protected:
                continue
            try:
                if await self.store.webphotos.delete(name):
                    report.deleted += 1
            except StorageError as e:
                report.fail(f"Delete {name}: {e}")

        for name, url in remote.items():
            try:
                resolved = await self._localize(self.webphoto_downloader, url, sanitize(name), report)
                if local.get(name) == resolved:
                    report.unchanged += 1
                    continue
                await self.store.webphotos.upsert(name, resolved)
                if name in local:
                    report.updated += 1
                else:
                    report.created += 1
            except StorageError as e:
                report.fail(f"Web photo {name}: {e}")
                logger.error(f"[{self.context.value}] failed to store web photo {name}: {e}")

        report.cleaned_files = await self.cleanup("webphotos")
        return self._finish(report)

    def _finish(self, report: SyncReport) -> SyncReport:
        report.timestamp = self.timestamps.record(self.context, report.entity_type)
        self.cache.invalidate_context(self.context)
        logger.info(f"[{self.context.value}] {report.message}")
        return report

    async def cleanup_media(self, entity_type: str) -> int:
        """
        Standalone orphan cleanup, serialized with syncs of the same entity type.

        Raises:
            SyncInProgressError: a sync of this context and entity type is running.
        """
        if entity_type not in ENTITY_TYPES:
            raise ValueError(f"Unknown entity type: {entity_type}")
        async with self._acquire(entity_type):
            return await self.cleanup(entity_type)

    async def cleanup(self, entity_type: str) -> int:
        """Delete media files that no stored row references. Callers hold the sync lock."""
        if entity_type == "products":
            downloader = self.product_downloader
            references = [
                url
                for product in await self.store.products.get_all()
                for url in (product.image_urls if isinstance(product.image_urls, list) else [])
            ]
        elif entity_type == "webphotos":
            downloader = self.webphoto_downloader
            references = list((await self.store.webphotos.get_all()).values())
        else:
            raise ValueError(f"Unknown entity type: {entity_type}")

        valid = {downloader.referenced_filename(ref) for ref in references if isinstance(ref, str)}
        valid.discard(None)
        return downloader.cleanup_orphaned(valid)
