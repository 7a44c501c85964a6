"""
Local mirror store.

One MirrorStore exists per storefront context. Each wraps the context's own
SQLite file and exposes repositories for the mirrored entities. Writes are
last-write-wins; missing rows come back as None/False, I/O failures as
StorageError.
"""

import logging
import uuid
from datetime import datetime, UTC
from typing import Any

from sqlalchemy import Text, delete, func, or_, select, type_coerce

from quickorder.config import Settings
from quickorder.context import Context
from quickorder.database import MirrorDatabase, get_database
from quickorder.models import Product, WebPhoto
from quickorder.schemas.product import ProductCreate, ProductUpdate
from quickorder.services.category_relations import CategoryRelationRepository
from quickorder.services.devices import DeviceRepository
from quickorder.services.repository import Repository

logger = logging.getLogger(__name__)

FILTERABLE_FIELDS = ("brand", "type", "category", "sub_category")

# Columns a partial update may not clear to null
REQUIRED_FIELDS = frozenset(
    ["name", "brand", "price", "price1", "price2", "stock", "quantity", "is_product_starred"]
)


def normalize(value: Any) -> str:
    """Comparison form of a catalog value: trimmed and case folded."""
    return str(value).strip().casefold()


def field_values(value: Any) -> list[str]:
    """Flatten a possibly multi-valued column into its individual values."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value if v is not None and str(v).strip()]
    text = str(value)
    return [text] if text.strip() else []


def matches(value: Any, wanted: str) -> bool:
    """True when any value of a (possibly multi-valued) field equals wanted after normalization."""
    target = normalize(wanted)
    return any(normalize(v) == target for v in field_values(value))


class ProductRepository(Repository):
    """CRUD and lookups for mirrored products."""

    async def get_all(self) -> list[Product]:
        async with self.session() as session:
            result = await session.execute(select(Product).order_by(Product.name.asc()))
            return list(result.scalars().all())

    async def get_by_id(self, product_id: str) -> Product | None:
        async with self.session() as session:
            return await session.get(Product, product_id)

    async def create(self, data: ProductCreate) -> Product:
        """Insert a product. Products created by hand get a generated id."""
        values = data.model_dump()
        values["id"] = values.get("id") or f"rec{uuid.uuid4().hex[:14]}"
        product = Product(**values, last_updated=datetime.now(UTC))
        async with self.session() as session:
            session.add(product)
            await session.commit()
            await session.refresh(product)
        return product

    async def update(
        self, product_id: str, patch: ProductUpdate | dict[str, Any]
    ) -> Product | None:
        """
        Apply a partial update.

        Returns:
            The updated product, or None when the id is not in the mirror.
        """
        if isinstance(patch, ProductUpdate):
            patch = {
                field: value
                for field, value in patch.model_dump(exclude_unset=True).items()
                if value is not None or field not in REQUIRED_FIELDS
            }

        async with self.session() as session:
            product = await session.get(Product, product_id)
            if product is None:
                return None
            for field, value in patch.items():
                if field in ("id", "created_at", "updated_at"):
                    continue
                setattr(product, field, value)
            product.last_updated = datetime.now(UTC)
            await session.commit()
            await session.refresh(product)
            return product

    async def delete(self, product_id: str) -> bool:
        async with self.session() as session:
            result = await session.execute(delete(Product).where(Product.id == product_id))
            await session.commit()
            return result.rowcount > 0

    async def delete_many(self, product_ids: list[str]) -> tuple[int, int]:
        """Delete several products. Returns (deleted, not_found)."""
        deleted = 0
        for product_id in product_ids:
            if await self.delete(product_id):
                deleted += 1
        return deleted, len(product_ids) - deleted

    async def clear(self) -> int:
        async with self.session() as session:
            result = await session.execute(delete(Product))
            await session.commit()
            return result.rowcount

    async def count(self) -> int:
        async with self.session() as session:
            result = await session.execute(select(func.count()).select_from(Product))
            return result.scalar() or 0

    async def search(self, query: str) -> list[Product]:
        """Substring search over name, brand, type and category."""
        term = f"%{query.strip()}%"
        stmt = (
            select(Product)
            .where(
                or_(
                    Product.name.ilike(term),
                    Product.brand.ilike(term),
                    Product.type.ilike(term),
                    type_coerce(Product.category, Text).ilike(term),
                )
            )
            .order_by(Product.name.asc())
        )
        async with self.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def filter(
        self,
        search: str | None = None,
        category: str | None = None,
        sub_category: str | None = None,
        brand: str | None = None,
        type: str | None = None,
    ) -> list[Product]:
        """
        Products matching every given filter.

        Multi-valued columns are stored as JSON, so field filters run on the
        parsed values; the mirror is small enough for this to stay cheap.
        """
        products = await self.search(search) if search else await self.get_all()
        wanted = {
            "category": category,
            "sub_category": sub_category,
            "brand": brand,
            "type": type,
        }
        for field, value in wanted.items():
            if value:
                products = [p for p in products if matches(getattr(p, field), value)]
        return products

    async def get_by_category(self, category: str) -> list[Product]:
        return await self.filter(category=category)

    async def get_by_brand(self, brand: str) -> list[Product]:
        return await self.filter(brand=brand)

    async def get_by_type(self, type: str) -> list[Product]:
        return await self.filter(type=type)

    async def unique_values(self, field: str) -> list[str]:
        """Distinct values of a filterable field, multi-valued entries flattened."""
        if field not in FILTERABLE_FIELDS:
            raise ValueError(f"Cannot list values of '{field}'")
        values: set[str] = set()
        for product in await self.get_all():
            values.update(v.strip() for v in field_values(getattr(product, field)))
        return sorted(values)


class WebPhotoRepository(Repository):
    """Name -> url storage for web photos."""

    async def get_all(self) -> dict[str, str]:
        async with self.session() as session:
            result = await session.execute(select(WebPhoto).order_by(WebPhoto.name.asc()))
            return {photo.name: photo.image_url for photo in result.scalars().all()}

    async def get(self, name: str) -> WebPhoto | None:
        async with self.session() as session:
            result = await session.execute(select(WebPhoto).where(WebPhoto.name == name))
            return result.scalar_one_or_none()

    async def upsert(self, name: str, image_url: str) -> bool:
        """
        Create or update a web photo.

        Returns:
            True when a row was written, False when the stored url already matched.
        """
        async with self.session() as session:
            result = await session.execute(select(WebPhoto).where(WebPhoto.name == name))
            photo = result.scalar_one_or_none()
            if photo is None:
                session.add(WebPhoto(name=name, image_url=image_url))
            elif photo.image_url == image_url:
                return False
            else:
                photo.image_url = image_url
            await session.commit()
            return True

    async def delete(self, name: str) -> bool:
        async with self.session() as session:
            result = await session.execute(delete(WebPhoto).where(WebPhoto.name == name))
            await session.commit()
            return result.rowcount > 0

    async def clear(self) -> int:
        async with self.session() as session:
            result = await session.execute(delete(WebPhoto))
            await session.commit()
            return result.rowcount


class MirrorStore:
    """All repositories of one context's mirror."""

    def __init__(self, database: MirrorDatabase):
        self.database = database
        self.context = database.context
        self.products = ProductRepository(database)
        self.webphotos = WebPhotoRepository(database)
        self.relations = CategoryRelationRepository(database)
        self.devices = DeviceRepository(database)


_stores: dict[Context, MirrorStore] = {}


def get_mirror_store(context: Context, config: Settings | None = None) -> MirrorStore:
    """Get or create the mirror store of a context."""
    if context not in _stores:
        _stores[context] = MirrorStore(get_database(context, config))
    return _stores[context]


def reset_mirror_stores() -> None:
    """Forget cached stores. Call after the database engines are disposed."""
    _stores.clear()
