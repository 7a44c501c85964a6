"""Product model - one row per Airtable product record."""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from quickorder.database import Base
from quickorder.models.types import JSONText


class Product(Base):
    """A catalog product mirrored from the tabular source."""

    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_name", "name"),
        Index("ix_products_brand", "brand"),
        Index("ix_products_type", "type"),
    )

    # Airtable record id
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    brand: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[Any] = mapped_column(JSONText, nullable=True)  # str or list[str]
    sub_category: Mapped[Any] = mapped_column(JSONText, nullable=True)  # str or list[str]
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Price tiers: virtual uses price, regular uses price1/price2
    price: Mapped[float] = mapped_column(Float, default=0)
    price1: Mapped[float] = mapped_column(Float, default=0)
    price2: Mapped[float] = mapped_column(Float, default=0)

    stock: Mapped[int] = mapped_column(Integer, default=0)
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    is_product_starred: Mapped[bool] = mapped_column(Boolean, default=False)

    colors: Mapped[Any] = mapped_column(JSONText, nullable=True)
    materials: Mapped[str | None] = mapped_column(Text, nullable=True)
    dimensions: Mapped[str | None] = mapped_column(Text, nullable=True)
    capacity: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Remote URLs or local /images/... paths
    image_urls: Mapped[Any] = mapped_column(JSONText, nullable=True)

    # Airtable columns without a dedicated field
    extra_fields: Mapped[Any] = mapped_column(JSONText, nullable=True)

    # Timestamps
    last_updated: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Product(id='{self.id}', name='{self.name}', brand='{self.brand}')>"
