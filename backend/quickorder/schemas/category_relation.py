"""Category/subcategory relation schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class RelationCreate(BaseModel):
    category: str = Field(min_length=1)
    subcategory: str = ""
    is_active: bool = True


class RelationUpdate(BaseModel):
    """Partial update; toggle flips is_active and ignores the other fields."""

    toggle: bool = False
    category: str | None = None
    subcategory: str | None = None
    is_active: bool | None = None


class RelationResponse(BaseModel):
    id: str
    category: str
    subcategory: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RelationListResponse(BaseModel):
    success: bool = True
    relations: list[RelationResponse]
    count: int
