"""
Airtable REST client for the product and web photo tables.

Each storefront context reads its own Airtable base. Records are fetched page
by page and converted into the mirror's schemas; conversion is tolerant and
fills defaults rather than rejecting records.
"""

import logging
from typing import Any

import httpx

from quickorder.config import Settings, settings
from quickorder.context import Context
from quickorder.errors import RemoteFetchError
from quickorder.schemas.product import ProductCreate

logger = logging.getLogger(__name__)

PAGE_SIZE = 100

# Mirror column -> accepted Airtable field names, first match wins
PRODUCT_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "Name"),
    "brand": ("brand", "Brand"),
    "type": ("type", "Type"),
    "category": ("category", "Category"),
    "sub_category": ("subCategory", "sub_category", "SubCategory", "Subcategory"),
    "detail": ("detail", "Detail"),
    "sku": ("SKU", "sku", "SKN"),
    "price": ("price", "Price"),
    "price1": ("Price1", "price1"),
    "price2": ("Price2", "price2"),
    "stock": ("stock", "Stock"),
    "quantity": ("quantity", "Quantity"),
    "is_product_starred": ("isProductStarred", "is_product_starred"),
    "colors": ("colors", "Colors"),
    "materials": ("materials", "Materials"),
    "dimensions": ("dimensions", "Dimensions"),
    "capacity": ("capacity", "Capacity"),
    "image_urls": ("imageURL", "imageUrl", "ImageURL", "image", "Image", "images", "Images"),
}

WEBPHOTO_NAME_FIELDS = ("name", "Name")
WEBPHOTO_URL_FIELDS = ("image", "imageURL", "ImageURL", "URL", "Image", "Photo")


def extract_urls(value: Any) -> list[str]:
    """URLs of a field holding a string, an attachment object or a list of either."""
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        return [value["url"]] if value.get("url") else []
    if isinstance(value, list):
        urls = []
        for item in value:
            if isinstance(item, str) and item:
                urls.append(item)
            elif isinstance(item, dict) and item.get("url"):
                urls.append(item["url"])
        return urls
    return []


def to_number(value: Any) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, list):
        value = value[0] if value else None
        if value is None:
            return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int(value: Any) -> int | None:
    number = to_number(value)
    return int(number) if number is not None else None


def to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return ", ".join(str(v) for v in value if v is not None) or None
    text = str(value).strip()
    return text or None


def to_text_or_list(value: Any) -> str | list[str] | None:
    """Multi-select fields stay lists, everything else becomes a string."""
    if value is None:
        return None
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return to_text(value)


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "si", "sí")
    return bool(value)


def pick(fields: dict[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if fields.get(name) not in (None, ""):
            return fields[name]
    return None


class AirtableClient:
    """Client for one context's Airtable base."""

    def __init__(
        self,
        context: Context,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.context = context
        self.config = config or settings
        self.credentials = self.config.airtable_credentials(context)
        self.base_url = self.config.airtable_api_url.rstrip("/")
        self.timeout = self.config.airtable_timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self.credentials.api_key}"},
        )

    async def _fetch_page(
        self, client: httpx.AsyncClient, table: str, offset: str | None, page_size: int
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"pageSize": page_size}
        if self.config.airtable_view:
            params["view"] = self.config.airtable_view
        if offset:
            params["offset"] = offset
        url = f"{self.base_url}/{self.credentials.base_id}/{table}"
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:200] if e.response.text else "No details"
            raise RemoteFetchError(
                f"Airtable returned {e.response.status_code} for {table}: {detail}"
            ) from e
        except httpx.HTTPError as e:
            raise RemoteFetchError(f"Airtable request for {table} failed: {e}") from e
        except ValueError as e:
            raise RemoteFetchError(f"Airtable returned malformed JSON for {table}") from e

        if not isinstance(data, dict) or not isinstance(data.get("records"), list):
            raise RemoteFetchError(f"Unexpected Airtable payload for {table}")
        return data

    async def fetch_all_records(self, table: str | None = None) -> list[dict[str, Any]]:
        """
        Fetch every record of a table, following the pagination offset.

        Raises:
            RemoteFetchError: credentials missing or any request failed.
        """
        table = table or self.config.airtable_products_table
        if not self.credentials.configured:
            raise RemoteFetchError(f"Airtable credentials missing for {self.context.value} context")

        records: list[dict[str, Any]] = []
        offset: str | None = None
        async with self._client() as client:
            while True:
                data = await self._fetch_page(client, table, offset, PAGE_SIZE)
                records.extend(data["records"])
                offset = data.get("offset")
                if not offset:
                    break

        logger.info(f"[{self.context.value}] fetched {len(records)} records from {table}")
        return records

    def convert_record_to_product(self, record: dict[str, Any]) -> ProductCreate:
        """Map an Airtable record to a product, filling defaults for missing values."""
        fields: dict[str, Any] = record.get("fields") or {}
        consumed: set[str] = set()

        def value_of(column: str) -> Any:
            names = PRODUCT_FIELD_ALIASES[column]
            consumed.update(names)
            return pick(fields, names)

        price = to_number(value_of("price"))
        price1 = to_number(value_of("price1"))
        price2 = to_number(value_of("price2"))
        stock = to_int(value_of("stock"))
        quantity = to_int(value_of("quantity"))

        if self.context is Context.REGULAR:
            price1 = price1 if price1 is not None else price2
            price2 = price2 if price2 is not None else price1
            if price1 is None:
                price1 = price2 = price if price is not None else 0
            if quantity is None:
                quantity = stock if stock is not None else 0

        sku = value_of("sku")
        data = {
            "id": record.get("id"),
            "name": to_text(value_of("name")) or "Sin Nombre",
            "brand": to_text(value_of("brand")) or "Sin Marca",
            "type": to_text(value_of("type")),
            "category": to_text_or_list(value_of("category")),
            "sub_category": to_text_or_list(value_of("sub_category")),
            "detail": to_text(value_of("detail")),
            "sku": str(sku) if sku is not None else None,
            "price": price or 0,
            "price1": price1 or 0,
            "price2": price2 or 0,
            "stock": stock or 0,
            "quantity": quantity or 0,
            "is_product_starred": to_bool(value_of("is_product_starred")),
            "colors": to_text_or_list(value_of("colors")),
            "materials": to_text(value_of("materials")),
            "dimensions": to_text(value_of("dimensions")),
            "capacity": to_text(value_of("capacity")),
            "image_urls": extract_urls(value_of("image_urls")),
        }
        data["extra_fields"] = {
            name: value for name, value in fields.items() if name not in consumed
        }
        return ProductCreate(**data)

    async def fetch_all_webphoto_records(self) -> list[dict[str, Any]]:
        return await self.fetch_all_records(self.config.airtable_webphotos_table)

    def convert_record_to_webphoto(self, record: dict[str, Any]) -> tuple[str, str]:
        """Map a web photo record to (name, url). Either may come back empty."""
        fields: dict[str, Any] = record.get("fields") or {}
        name = to_text(pick(fields, WEBPHOTO_NAME_FIELDS)) or ""
        urls = extract_urls(pick(fields, WEBPHOTO_URL_FIELDS))
        return name.replace("-", "_"), urls[0] if urls else ""

    async def fetch_web_photos(self) -> dict[str, str]:
        """All web photos as name -> url, skipping records without either."""
        web_photos: dict[str, str] = {}
        for record in await self.fetch_all_webphoto_records():
            name, url = self.convert_record_to_webphoto(record)
            if name and url:
                web_photos[name] = url
            else:
                logger.debug(f"[{self.context.value}] skipping web photo record {record.get('id')}")
        return web_photos

    async def test_connection(self) -> bool:
        """Check that the products table answers with the configured credentials."""
        if not self.credentials.configured:
            return False
        try:
            async with self._client() as client:
                await self._fetch_page(client, self.config.airtable_products_table, None, 1)
            return True
        except RemoteFetchError as e:
            logger.warning(f"[{self.context.value}] Airtable connection test failed: {e}")
            return False

    async def get_table_schema(self) -> list[str]:
        """Union of the field names used by the records of the products table."""
        names: set[str] = set()
        for record in await self.fetch_all_records():
            names.update((record.get("fields") or {}).keys())
        return sorted(names)
