"""
Tests for mirror reconciliation.

These exercise the full sync path against in-memory Airtable tables and a
mock media server, with real SQLite mirrors in a temp directory.
"""

import json

import pytest

from conftest import product_record, webphoto_record
from quickorder.context import Context
from quickorder.errors import RemoteFetchError, StorageError, SyncInProgressError
from quickorder.middleware.cache import CacheEntry, response_cache
from quickorder.schemas.product import ProductCreate
from quickorder.services.sync_service import get_sync_lock


class TestProductSync:
    async def test_widget_scenario(self, make_service, remotes, virtual_store):
        """Second sync of an unchanged record leaves it untouched."""
        remotes[Context.VIRTUAL].products = [product_record("A", name="Widget", price=100)]
        service = make_service(Context.VIRTUAL)

        first = await service.sync_products()
        stored = await virtual_store.products.get_all()

        assert first.created == 1
        assert [p.id for p in stored] == ["A"]
        assert stored[0].price == 100
        stamp = stored[0].last_updated

        second = await service.sync_products()
        again = await virtual_store.products.get_by_id("A")

        assert (second.created, second.updated, second.unchanged) == (0, 0, 1)
        assert again.last_updated == stamp

    async def test_dropped_record_is_deleted(self, make_service, remotes, virtual_store):
        await virtual_store.products.create(ProductCreate(id="B", name="Old"))
        remotes[Context.VIRTUAL].products = [product_record("A")]

        report = await make_service(Context.VIRTUAL).sync_products()

        assert report.deleted == 1
        assert await virtual_store.products.get_by_id("B") is None
        assert await virtual_store.products.get_by_id("A") is not None

    async def test_changed_field_updates_row(self, make_service, remotes, virtual_store):
        remote = remotes[Context.VIRTUAL]
        remote.products = [product_record("A", price=100)]
        service = make_service(Context.VIRTUAL)
        await service.sync_products()

        remote.products = [product_record("A", price=120)]
        report = await service.sync_products()

        assert report.updated == 1
        assert (await virtual_store.products.get_by_id("A")).price == 120

    async def test_remote_failure_leaves_mirror_untouched(self, make_service, remotes, virtual_store):
        await virtual_store.products.create(ProductCreate(id="B", name="Kept"))
        remotes[Context.VIRTUAL].fail_with = "Airtable down"

        with pytest.raises(RemoteFetchError):
            await make_service(Context.VIRTUAL).sync_products()

        assert await virtual_store.products.get_by_id("B") is not None

    async def test_empty_remote_preserves_mirror(self, make_service, virtual_store):
        await virtual_store.products.create(ProductCreate(id="B", name="Kept"))

        report = await make_service(Context.VIRTUAL).sync_products()

        assert report.skipped is True
        assert report.success is False
        assert await virtual_store.products.count() == 1

    async def test_empty_remote_allowed(self, make_service, mirrors, virtual_store):
        mirrors.allow_empty_remote = True
        await virtual_store.products.create(ProductCreate(id="B", name="Gone"))

        report = await make_service(Context.VIRTUAL).sync_products()

        assert report.deleted == 1
        assert await virtual_store.products.count() == 0

    async def test_relations_and_timestamp_recorded(self, make_service, remotes, virtual_store, mirrors):
        remotes[Context.VIRTUAL].products = [
            product_record("A", category=["Hogar"], subCategory="Vasos")
        ]

        report = await make_service(Context.VIRTUAL).sync_products()

        pairs = {(r.category, r.subcategory) for r in await virtual_store.relations.list_relations()}
        assert pairs == {("Hogar", ""), ("Hogar", "Vasos")}
        document = json.loads(mirrors.timestamps_path.read_text())
        assert document["virtual"]["last_product_sync"] == report.timestamp.isoformat()
        assert document["regular"]["last_product_sync"] is None

    async def test_concurrent_sync_rejected(self, make_service, remotes):
        remotes[Context.VIRTUAL].products = [product_record("A")]
        lock = get_sync_lock(Context.VIRTUAL, "products")

        async with lock:
            with pytest.raises(SyncInProgressError):
                await make_service(Context.VIRTUAL).sync_products()

    async def test_storage_failure_skips_one_product(
        self, make_service, remotes, virtual_store, mirrors, monkeypatch
    ):
        """A write failure on one row is counted while the rest of the batch lands."""
        create = virtual_store.products.create

        async def flaky_create(product):
            if product.id == "B":
                raise StorageError("database is locked")
            return await create(product)

        monkeypatch.setattr(virtual_store.products, "create", flaky_create)
        remotes[Context.VIRTUAL].products = [
            product_record("A"),
            product_record("B"),
            product_record("C"),
        ]

        report = await make_service(Context.VIRTUAL).sync_products()

        assert report.created == 2
        assert report.failed == 1
        assert "database is locked" in report.errors[0]
        assert {p.id for p in await virtual_store.products.get_all()} == {"A", "C"}
        document = json.loads(mirrors.timestamps_path.read_text())
        assert document["virtual"]["last_product_sync"] == report.timestamp.isoformat()

    async def test_sync_invalidates_only_its_context(self, make_service, remotes):
        for context in Context:
            response_cache.set(
                context.value,
                CacheEntry(b"{}", "application/json", 200, 10**10, 300, context),
            )
        remotes[Context.VIRTUAL].products = [product_record("A")]

        await make_service(Context.VIRTUAL).sync_products()

        assert response_cache.get("virtual") is None
        assert response_cache.get("regular") is not None


class TestProductMedia:
    async def test_images_mirrored_and_idempotent(self, make_service, remotes, regular_store, media_server, mirrors):
        remotes[Context.REGULAR].products = [
            product_record("A", name="Vaso", brand="Acme", imageURL=[{"url": "https://cdn/a.png"}]),
            product_record("B", name="Plato", brand="Acme", imageURL=[{"url": "https://cdn/b.png"}]),
        ]
        service = make_service(Context.REGULAR)

        first = await service.sync_products()
        product = await regular_store.products.get_by_id("A")

        assert first.downloaded == 2
        assert product.image_urls == ["/images/regular/products/Acme_Vaso_A_0.png"]
        assert (mirrors.media_path(Context.REGULAR, "products") / "Acme_Vaso_A_0.png").exists()

        downloads_before = len(media_server.downloads)
        second = await service.sync_products()

        assert second.downloaded == 0
        assert (second.created, second.updated, second.unchanged) == (0, 0, 2)
        assert len(media_server.downloads) == downloads_before

    async def test_partial_download_failure(self, make_service, remotes, regular_store, media_server):
        media_server.failing.add("https://cdn/broken.png")
        remotes[Context.REGULAR].products = [
            product_record("A", imageURL="https://cdn/a.png"),
            product_record("B", imageURL="https://cdn/broken.png"),
            product_record("C", imageURL="https://cdn/c.png"),
        ]

        report = await make_service(Context.REGULAR).sync_products()

        assert report.created == 3
        assert report.download_failed == 1
        broken = await regular_store.products.get_by_id("B")
        assert broken.image_urls == ["https://cdn/broken.png"]
        assert (await regular_store.products.get_by_id("C")).image_urls[0].startswith("/images/")

    async def test_malformed_url_isolated(self, make_service, remotes, regular_store, mirrors):
        """A url httpx cannot even build a request for only costs its own image."""
        remotes[Context.REGULAR].products = [
            product_record("A", imageURL="https://cdn/a.png"),
            product_record("B", imageURL="https://cdn:abc/broken.png"),
            product_record("C", imageURL="https://cdn/c.png"),
        ]

        report = await make_service(Context.REGULAR).sync_products()

        assert report.created == 3
        assert report.download_failed == 1
        assert (await regular_store.products.get_by_id("B")).image_urls == ["https://cdn:abc/broken.png"]
        assert (await regular_store.products.get_by_id("C")).image_urls[0].startswith("/images/")
        assert report.timestamp is not None
        directory = mirrors.media_path(Context.REGULAR, "products")
        assert not any(p.name.endswith(".part") for p in directory.iterdir())

    async def test_orphaned_files_removed(self, make_service, remotes, mirrors):
        remote = remotes[Context.REGULAR]
        remote.products = [
            product_record("A", imageURL="https://cdn/a.png"),
            product_record("B", imageURL="https://cdn/b.png"),
        ]
        service = make_service(Context.REGULAR)
        await service.sync_products()

        remote.products = [product_record("A", imageURL="https://cdn/a.png")]
        report = await service.sync_products()

        directory = mirrors.media_path(Context.REGULAR, "products")
        assert report.cleaned_files == 1
        assert [p.name for p in directory.iterdir()] == ["Sin_Marca_Widget_A_0.png"]

    async def test_virtual_products_keep_remote_urls(self, make_service, remotes, virtual_store, media_server):
        remotes[Context.VIRTUAL].products = [product_record("A", imageURL="https://cdn/a.png")]

        await make_service(Context.VIRTUAL).sync_products()

        assert (await virtual_store.products.get_by_id("A")).image_urls == ["https://cdn/a.png"]
        assert media_server.requests == []


class TestWebPhotoSync:
    async def test_webphotos_mirrored(self, make_service, remotes, virtual_store):
        remotes[Context.VIRTUAL].webphotos = [
            webphoto_record("r1", "logo-reno", "https://cdn/logo.png"),
            webphoto_record("r2", "catalogo_pdf", "https://cdn/catalogo.pdf"),
        ]

        report = await make_service(Context.VIRTUAL).sync_webphotos()

        assert report.created == 2
        assert await virtual_store.webphotos.get_all() == {
            "catalogo_pdf": "/images/virtual/webphotos/catalogo_pdf.pdf",
            "logo_reno": "/images/virtual/webphotos/logo_reno.png",
        }

    async def test_second_run_is_noop(self, make_service, remotes, media_server):
        remotes[Context.VIRTUAL].webphotos = [webphoto_record("r1", "banner", "https://cdn/banner.png")]
        service = make_service(Context.VIRTUAL)
        await service.sync_webphotos()
        requests_before = len(media_server.requests)

        report = await service.sync_webphotos()

        assert (report.created, report.updated, report.unchanged, report.downloaded) == (0, 0, 1, 0)
        assert len(media_server.requests) == requests_before

    async def test_protected_photos_survive(self, make_service, remotes, virtual_store):
        await virtual_store.webphotos.upsert("logo_reno", "https://cdn/reno.png")
        await virtual_store.webphotos.upsert("old_banner", "https://cdn/old.png")
        remotes[Context.VIRTUAL].webphotos = [webphoto_record("r1", "banner", "https://cdn/banner.png")]

        report = await make_service(Context.VIRTUAL).sync_webphotos()

        photos = await virtual_store.webphotos.get_all()
        assert report.deleted == 1
        assert set(photos) == {"logo_reno", "banner"}

    async def test_cleanup_keeps_referenced_files(self, make_service, remotes, mirrors):
        remotes[Context.REGULAR].webphotos = [webphoto_record("r1", "banner", "https://cdn/banner.png")]
        service = make_service(Context.REGULAR)
        await service.sync_webphotos()
        directory = mirrors.media_path(Context.REGULAR, "webphotos")
        (directory / "stale.png").write_bytes(b"x")

        deleted = await service.cleanup_media("webphotos")

        assert deleted == 1
        assert [p.name for p in directory.iterdir()] == ["banner.png"]

    async def test_cleanup_waits_for_running_sync(self, make_service, mirrors):
        """Cleanup during a sync could delete a file whose row is not committed yet."""
        directory = mirrors.media_path(Context.REGULAR, "webphotos")
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "incoming.png").write_bytes(b"x")

        async with get_sync_lock(Context.REGULAR, "webphotos"):
            with pytest.raises(SyncInProgressError):
                await make_service(Context.REGULAR).cleanup_media("webphotos")

        assert (directory / "incoming.png").exists()

    async def test_cleanup_rejects_unknown_type(self, make_service):
        with pytest.raises(ValueError):
            await make_service(Context.REGULAR).cleanup_media("videos")
