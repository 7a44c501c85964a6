"""Common schemas used across the API."""

from pydantic import BaseModel, field_validator

from quickorder.context import Context


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
    success: bool = True


class ContextRequest(BaseModel):
    """Request body carrying a storefront context."""

    context: Context = Context.VIRTUAL

    @field_validator("context", mode="before")
    @classmethod
    def resolve_alias(cls, v):
        if isinstance(v, Context):
            return v
        return Context.from_alias(v)
