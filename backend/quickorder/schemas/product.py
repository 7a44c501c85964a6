"""Product schemas for API validation and sync comparison."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ProductBase(BaseModel):
    """Fields mirrored from the tabular source."""

    name: str = "Sin Nombre"
    brand: str = "Sin Marca"
    type: str | None = None
    category: str | list[str] | None = None
    sub_category: str | list[str] | None = None
    detail: str | None = None
    sku: str | None = None
    price: float = 0
    price1: float = 0
    price2: float = 0
    stock: int = 0
    quantity: int = 0
    is_product_starred: bool = False
    colors: str | list[str] | None = None
    materials: str | None = None
    dimensions: str | None = None
    capacity: str | None = None
    image_urls: list[str] = Field(default_factory=list)
    extra_fields: dict[str, Any] = Field(default_factory=dict)


# Fields compared during reconciliation; timestamps are volatile and excluded
TRACKED_FIELDS: tuple[str, ...] = tuple(ProductBase.model_fields)


class ProductCreate(ProductBase):
    """Schema for creating a product. Synced products carry their Airtable id."""

    id: str | None = None


class ProductUpdate(BaseModel):
    """Schema for a partial product update."""

    name: str | None = None
    brand: str | None = None
    type: str | None = None
    category: str | list[str] | None = None
    sub_category: str | list[str] | None = None
    detail: str | None = None
    sku: str | None = None
    price: float | None = None
    price1: float | None = None
    price2: float | None = None
    stock: int | None = None
    quantity: int | None = None
    is_product_starred: bool | None = None
    colors: str | list[str] | None = None
    materials: str | None = None
    dimensions: str | None = None
    capacity: str | None = None
    image_urls: list[str] | None = None
    extra_fields: dict[str, Any] | None = None


class ProductResponse(ProductBase):
    """Schema for product response."""

    id: str
    image_urls: Any = Field(default_factory=list)
    extra_fields: Any = Field(default_factory=dict)
    last_updated: datetime | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    """Products served from a mirror."""

    success: bool = True
    products: list[ProductResponse]
    count: int


class BulkDeleteRequest(BaseModel):
    ids: list[str]


class BulkDeleteResponse(BaseModel):
    success: bool = True
    message: str
    deleted_count: int
    failed_count: int
