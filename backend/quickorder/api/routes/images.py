"""Downloaded media, served outside the API prefix."""

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from quickorder.api.deps import AppSettings
from quickorder.context import Context
from quickorder.services.media_downloader import MEDIA_TYPES
from quickorder.utils.security import PathTraversalError, validate_path_in_directory

router = APIRouter()

MEDIA_CACHE_CONTROL = "public, max-age=31536000"


def serve_media(config, context: Context, media_type: str, filename: str) -> FileResponse:
    if media_type not in MEDIA_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown media type: {media_type}")

    directory = config.media_path(context, media_type)
    try:
        path = validate_path_in_directory(directory / filename, directory)
    except PathTraversalError:
        raise HTTPException(status_code=403, detail="Access denied")

    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")

    return FileResponse(path, headers={"Cache-Control": MEDIA_CACHE_CONTROL})


@router.get("/images/{context}/{media_type}/{filename}")
async def get_context_media(
    config: AppSettings, context: str, media_type: str, filename: str
) -> FileResponse:
    try:
        resolved = Context(context)
    except ValueError:
        raise HTTPException(status_code=404, detail="File not found")
    return serve_media(config, resolved, media_type, filename)


@router.get("/images/{media_type}/{filename}")
async def get_virtual_media(config: AppSettings, media_type: str, filename: str) -> FileResponse:
    """Virtual storefront media, kept at its historical location."""
    return serve_media(config, Context.VIRTUAL, media_type, filename)
