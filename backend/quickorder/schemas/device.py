"""Push token and badge count schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class PushTokenRegister(BaseModel):
    token: str = Field(min_length=1)
    user_id: str
    user_email: str
    device_platform: str = "iOS"
    device_version: str | None = None
    device_model: str | None = None


class PushTokenResponse(BaseModel):
    id: int
    token: str
    user_id: str
    user_email: str
    device_platform: str
    device_version: str | None = None
    device_model: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BadgeCountResponse(BaseModel):
    user_email: str
    badge_count: int
