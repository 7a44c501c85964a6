"""
Pytest configuration and fixtures for the QuickOrder test suite.
"""

import os
import tempfile

# Module-level settings are built on import; keep them away from ./data
_SESSION_DIR = tempfile.mkdtemp(prefix="quickorder-tests-")
os.environ.setdefault("DATA_DIR", _SESSION_DIR)
os.environ.setdefault("MEDIA_DIR", os.path.join(_SESSION_DIR, "media"))

import httpx
import pytest

from quickorder.config import AirtableCredentials, Settings
from quickorder.context import Context
from quickorder.database import close_db, init_db
from quickorder.errors import RemoteFetchError
from quickorder.middleware.cache import response_cache
from quickorder.services.airtable import AirtableClient
from quickorder.services.media_downloader import MediaDownloader
from quickorder.services.mirror_store import get_mirror_store, reset_mirror_stores
from quickorder.services.sync_service import SyncService
from quickorder.services.sync_timestamps import SyncTimestampStore


def product_record(record_id: str, name: str = "Widget", **fields) -> dict:
    """Airtable-shaped product record."""
    return {"id": record_id, "fields": {"name": name, **fields}}


def webphoto_record(record_id: str, name: str, url: str) -> dict:
    return {"id": record_id, "fields": {"name": name, "image": [{"url": url}]}}


class FakeAirtable(AirtableClient):
    """Airtable client serving in-memory tables."""

    def __init__(self, context: Context, config: Settings):
        super().__init__(context, config)
        self.tables: dict[str, list[dict]] = {
            config.airtable_products_table: [],
            config.airtable_webphotos_table: [],
        }
        self.fail_with: str | None = None

    @property
    def products(self) -> list[dict]:
        return self.tables[self.config.airtable_products_table]

    @products.setter
    def products(self, records: list[dict]) -> None:
        self.tables[self.config.airtable_products_table] = records

    @property
    def webphotos(self) -> list[dict]:
        return self.tables[self.config.airtable_webphotos_table]

    @webphotos.setter
    def webphotos(self, records: list[dict]) -> None:
        self.tables[self.config.airtable_webphotos_table] = records

    async def fetch_all_records(self, table: str | None = None) -> list[dict]:
        if self.fail_with:
            raise RemoteFetchError(self.fail_with)
        return list(self.tables[table or self.config.airtable_products_table])

    async def test_connection(self) -> bool:
        return self.fail_with is None


class MediaServer:
    """httpx handler standing in for the media CDN."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.failing: set[str] = set()

    @property
    def downloads(self) -> list[str]:
        return [str(r.url) for r in self.requests if r.method == "GET"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url in self.failing:
            return httpx.Response(500)
        content_type = "application/pdf" if url.endswith(".pdf") else "image/png"
        if request.method == "HEAD":
            return httpx.Response(200, headers={"content-type": content_type})
        return httpx.Response(200, headers={"content-type": content_type}, content=b"media:" + url.encode())

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def config(tmp_path) -> Settings:
    """Settings pointing at a per-test data directory."""
    return Settings(
        data_dir=tmp_path,
        media_dir=tmp_path / "media",
        regular=AirtableCredentials(api_key="key-regular", base_id="appRegular"),
        virtual=AirtableCredentials(api_key="key-virtual", base_id="appVirtual"),
        protected_webphotos=["logo_reno"],
    )


@pytest.fixture
async def mirrors(config):
    """Fresh mirror databases for both contexts."""
    await close_db()
    reset_mirror_stores()
    response_cache.invalidate()
    await init_db(config)
    yield config
    await close_db()
    reset_mirror_stores()
    response_cache.invalidate()


@pytest.fixture
def regular_store(mirrors):
    return get_mirror_store(Context.REGULAR, mirrors)


@pytest.fixture
def virtual_store(mirrors):
    return get_mirror_store(Context.VIRTUAL, mirrors)


@pytest.fixture
def media_server() -> MediaServer:
    return MediaServer()


@pytest.fixture
def remotes(config) -> dict[Context, FakeAirtable]:
    return {context: FakeAirtable(context, config) for context in Context}


@pytest.fixture
def make_service(mirrors, remotes, media_server):
    """Build the sync service of a context wired to the fakes."""

    def build(context: Context) -> SyncService:
        return SyncService(
            context,
            config=mirrors,
            store=get_mirror_store(context, mirrors),
            remote=remotes[context],
            product_downloader=MediaDownloader(
                context, "products", mirrors, transport=media_server.transport
            ),
            webphoto_downloader=MediaDownloader(
                context, "webphotos", mirrors, transport=media_server.transport
            ),
            timestamps=SyncTimestampStore(config=mirrors),
        )

    return build
