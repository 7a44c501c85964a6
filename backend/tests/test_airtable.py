"""
Tests for the Airtable client: pagination, error mapping and record conversion.
"""

import httpx
import pytest

from quickorder.config import AirtableCredentials
from quickorder.context import Context
from quickorder.errors import RemoteFetchError
from quickorder.services.airtable import AirtableClient


def paged_transport(pages: list[dict], seen: list[httpx.Request] | None = None) -> httpx.MockTransport:
    """Serve pages in order, chaining them with offsets."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        offset = request.url.params.get("offset")
        index = int(offset) if offset else 0
        body = {"records": pages[index]}
        if index + 1 < len(pages):
            body["offset"] = str(index + 1)
        return httpx.Response(200, json=body)

    return httpx.MockTransport(handler)


class TestFetchAllRecords:
    async def test_follows_offsets(self, config):
        seen: list[httpx.Request] = []
        transport = paged_transport(
            [[{"id": "rec1", "fields": {}}], [{"id": "rec2", "fields": {}}], [{"id": "rec3", "fields": {}}]],
            seen,
        )
        client = AirtableClient(Context.REGULAR, config, transport=transport)

        records = await client.fetch_all_records()

        assert [r["id"] for r in records] == ["rec1", "rec2", "rec3"]
        assert len(seen) == 3
        assert seen[0].url.path == "/v0/appRegular/Products"
        assert seen[0].headers["Authorization"] == "Bearer key-regular"

    async def test_uses_context_credentials(self, config):
        seen: list[httpx.Request] = []
        client = AirtableClient(Context.VIRTUAL, config, transport=paged_transport([[]], seen))

        await client.fetch_all_webphoto_records()

        assert seen[0].url.path == "/v0/appVirtual/WebPhotos"

    async def test_error_status_raises(self, config):
        transport = httpx.MockTransport(lambda request: httpx.Response(403, text="forbidden"))
        client = AirtableClient(Context.REGULAR, config, transport=transport)

        with pytest.raises(RemoteFetchError, match="403"):
            await client.fetch_all_records()

    async def test_transport_error_raises(self, config):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        client = AirtableClient(Context.REGULAR, config, transport=httpx.MockTransport(handler))

        with pytest.raises(RemoteFetchError):
            await client.fetch_all_records()

    async def test_malformed_json_raises(self, config):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        client = AirtableClient(Context.REGULAR, config, transport=transport)

        with pytest.raises(RemoteFetchError):
            await client.fetch_all_records()

    async def test_missing_credentials_raise(self, config):
        config.regular = AirtableCredentials()
        client = AirtableClient(Context.REGULAR, config, transport=paged_transport([[]]))

        with pytest.raises(RemoteFetchError, match="credentials"):
            await client.fetch_all_records()
        assert await client.test_connection() is False

    async def test_connection_check(self, config):
        ok = AirtableClient(Context.REGULAR, config, transport=paged_transport([[]]))
        down = AirtableClient(
            Context.REGULAR,
            config,
            transport=httpx.MockTransport(lambda request: httpx.Response(401)),
        )

        assert await ok.test_connection() is True
        assert await down.test_connection() is False

    async def test_table_schema_is_union_of_fields(self, config):
        transport = paged_transport(
            [[{"id": "r1", "fields": {"name": "a", "price": 1}}], [{"id": "r2", "fields": {"name": "b", "SKU": 7}}]]
        )
        client = AirtableClient(Context.REGULAR, config, transport=transport)

        assert await client.get_table_schema() == ["SKU", "name", "price"]


class TestProductConversion:
    def convert(self, config, context, fields):
        return AirtableClient(context, config).convert_record_to_product({"id": "recA", "fields": fields})

    def test_defaults_for_missing_values(self, config):
        product = self.convert(config, Context.VIRTUAL, {})

        assert product.id == "recA"
        assert product.name == "Sin Nombre"
        assert product.brand == "Sin Marca"
        assert product.price == 0
        assert product.stock == 0
        assert product.image_urls == []

    def test_regular_price_tiers(self, config):
        only_first = self.convert(config, Context.REGULAR, {"Price1": 10})
        both = self.convert(config, Context.REGULAR, {"Price1": 10, "Price2": 8})
        fallback = self.convert(config, Context.REGULAR, {"price": 7})

        assert (only_first.price1, only_first.price2) == (10, 10)
        assert (both.price1, both.price2) == (10, 8)
        assert (fallback.price1, fallback.price2) == (7, 7)

    def test_regular_stock_fills_quantity(self, config):
        product = self.convert(config, Context.REGULAR, {"stock": 4})
        assert product.quantity == 4

    def test_virtual_keeps_price_and_stock(self, config):
        product = self.convert(config, Context.VIRTUAL, {"price": 100, "Price1": 90, "stock": 3})

        assert product.price == 100
        assert product.stock == 3
        assert product.quantity == 0

    def test_sku_is_string(self, config):
        product = self.convert(config, Context.VIRTUAL, {"SKU": 12345})
        assert product.sku == "12345"

    def test_attachments_become_urls(self, config):
        product = self.convert(
            config,
            Context.VIRTUAL,
            {"imageURL": [{"url": "https://cdn/a.png", "filename": "a.png"}, {"url": "https://cdn/b.png"}]},
        )
        assert product.image_urls == ["https://cdn/a.png", "https://cdn/b.png"]

    def test_multi_select_fields_stay_lists(self, config):
        product = self.convert(
            config, Context.VIRTUAL, {"category": ["Hogar", "Cocina"], "subCategory": "Vasos"}
        )
        assert product.category == ["Hogar", "Cocina"]
        assert product.sub_category == "Vasos"

    def test_unknown_fields_go_to_extra_fields(self, config):
        product = self.convert(config, Context.VIRTUAL, {"name": "Vaso", "commercialName": "Vaso X"})
        assert product.extra_fields == {"commercialName": "Vaso X"}


class TestWebPhotoConversion:
    def test_name_normalized_and_first_attachment_used(self, config):
        client = AirtableClient(Context.VIRTUAL, config)

        name, url = client.convert_record_to_webphoto(
            {"id": "r", "fields": {"Name": "logo-reno", "Image": [{"url": "https://cdn/1.png"}, {"url": "https://cdn/2.png"}]}}
        )

        assert (name, url) == ("logo_reno", "https://cdn/1.png")

    async def test_fetch_web_photos_skips_incomplete_records(self, config):
        transport = paged_transport(
            [[
                {"id": "r1", "fields": {"name": "banner-1", "URL": "https://cdn/banner.jpg"}},
                {"id": "r2", "fields": {"name": "no_url"}},
                {"id": "r3", "fields": {"image": "https://cdn/orphan.jpg"}},
            ]]
        )
        client = AirtableClient(Context.VIRTUAL, config, transport=transport)

        assert await client.fetch_web_photos() == {"banner_1": "https://cdn/banner.jpg"}
