"""WebPhoto schemas."""

from pydantic import BaseModel


class WebPhotoUpsert(BaseModel):
    image_url: str


class WebPhotoListResponse(BaseModel):
    """All web photos of a mirror as a name -> url mapping."""

    success: bool = True
    web_photos: dict[str, str]
    count: int
