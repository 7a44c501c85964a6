"""Category/subcategory relations of a mirror."""

import logging
import uuid
from typing import Any

from sqlalchemy import delete, select

from quickorder.models import CategorySubcategoryRelation
from quickorder.services.repository import Repository

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Sin Categoría"


def _first_value(value: Any) -> str | None:
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _all_values(value: Any) -> list[str]:
    values = value if isinstance(value, list) else [value]
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def relation_pairs(products: list) -> list[tuple[str, str]]:
    """
    Category/subcategory pairs implied by a set of products.

    Every category yields a (category, "") pair; every subcategory is attached
    to the product's first category.
    """
    pairs: list[tuple[str, str]] = []
    seen: set[tuple[str, str]] = set()
    for product in products:
        for category in _all_values(product.category):
            pair = (category, "")
            if pair not in seen:
                seen.add(pair)
                pairs.append(pair)
        parent = _first_value(product.category) or DEFAULT_CATEGORY
        for subcategory in _all_values(product.sub_category):
            pair = (parent, subcategory)
            if pair not in seen:
                seen.add(pair)
                pairs.append(pair)
    return pairs


class CategoryRelationRepository(Repository):
    """CRUD for category/subcategory relations."""

    async def list_relations(self, active_only: bool = False) -> list[CategorySubcategoryRelation]:
        query = select(CategorySubcategoryRelation).order_by(
            CategorySubcategoryRelation.category.asc(),
            CategorySubcategoryRelation.subcategory.asc(),
        )
        if active_only:
            query = query.where(CategorySubcategoryRelation.is_active == True)
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get(self, relation_id: str) -> CategorySubcategoryRelation | None:
        async with self.session() as session:
            return await session.get(CategorySubcategoryRelation, relation_id)

    async def get_by_pair(
        self, category: str, subcategory: str
    ) -> CategorySubcategoryRelation | None:
        async with self.session() as session:
            result = await session.execute(
                select(CategorySubcategoryRelation).where(
                    CategorySubcategoryRelation.category == category,
                    CategorySubcategoryRelation.subcategory == subcategory,
                )
            )
            return result.scalar_one_or_none()

    async def create(
        self,
        category: str,
        subcategory: str,
        is_active: bool = True,
        relation_id: str | None = None,
    ) -> CategorySubcategoryRelation:
        relation = CategorySubcategoryRelation(
            id=relation_id or str(uuid.uuid4()),
            category=category,
            subcategory=subcategory,
            is_active=is_active,
        )
        async with self.session() as session:
            session.add(relation)
            await session.commit()
            await session.refresh(relation)
        return relation

    async def update(self, relation_id: str, **fields: Any) -> CategorySubcategoryRelation | None:
        """Update category, subcategory or is_active. Returns None when missing."""
        async with self.session() as session:
            relation = await session.get(CategorySubcategoryRelation, relation_id)
            if relation is None:
                return None
            for field in ("category", "subcategory", "is_active"):
                if fields.get(field) is not None:
                    setattr(relation, field, fields[field])
            await session.commit()
            await session.refresh(relation)
            return relation

    async def toggle(self, relation_id: str) -> CategorySubcategoryRelation | None:
        async with self.session() as session:
            relation = await session.get(CategorySubcategoryRelation, relation_id)
            if relation is None:
                return None
            relation.is_active = not relation.is_active
            await session.commit()
            await session.refresh(relation)
            return relation

    async def delete(self, relation_id: str) -> bool:
        async with self.session() as session:
            result = await session.execute(
                delete(CategorySubcategoryRelation).where(
                    CategorySubcategoryRelation.id == relation_id
                )
            )
            await session.commit()
            return result.rowcount > 0

    async def populate_from_products(self, products: list) -> int:
        """
        Add the relations implied by products that are not stored yet.

        Existing relations keep their is_active flag.

        Returns:
            Number of relations created.
        """
        async with self.session() as session:
            result = await session.execute(select(CategorySubcategoryRelation))
            existing = {(r.category, r.subcategory) for r in result.scalars().all()}

            created = 0
            for category, subcategory in relation_pairs(products):
                if (category, subcategory) in existing:
                    continue
                session.add(
                    CategorySubcategoryRelation(
                        id=str(uuid.uuid4()),
                        category=category,
                        subcategory=subcategory,
                        is_active=True,
                    )
                )
                created += 1
            await session.commit()

        if created:
            logger.info(f"[{self.context.value}] created {created} category relations")
        return created
