"""Pydantic schemas for API request/response validation."""

from quickorder.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
)
from quickorder.schemas.webphoto import WebPhotoUpsert, WebPhotoListResponse
from quickorder.schemas.category_relation import (
    RelationCreate,
    RelationUpdate,
    RelationResponse,
    RelationListResponse,
)
from quickorder.schemas.common import ContextRequest, MessageResponse

__all__ = [
    "ProductCreate",
    "ProductUpdate",
    "ProductResponse",
    "ProductListResponse",
    "WebPhotoUpsert",
    "WebPhotoListResponse",
    "RelationCreate",
    "RelationUpdate",
    "RelationResponse",
    "RelationListResponse",
    "ContextRequest",
    "MessageResponse",
]
