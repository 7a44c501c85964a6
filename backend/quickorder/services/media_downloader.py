"""
Media downloader for product images and web photos.

Files are named after a stable stem derived from the owning entity, so a
second sync finds the file already on disk and skips the network entirely.
"""

import logging
import re
from pathlib import Path
from urllib.parse import urlparse

import httpx

from quickorder.config import Settings, settings
from quickorder.context import Context
from quickorder.errors import DownloadError

logger = logging.getLogger(__name__)

MEDIA_TYPES = ("products", "webphotos")

CONTENT_TYPE_EXTENSIONS: dict[str, str] = {
    "application/pdf": ".pdf",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}
KNOWN_EXTENSIONS = frozenset([".pdf", ".png", ".gif", ".webp", ".svg", ".jpg", ".jpeg"])
DEFAULT_EXTENSION = ".jpg"

PARTIAL_SUFFIX = ".part"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def sanitize(name: str) -> str:
    """Filesystem-safe stem: runs of other characters collapse to one underscore."""
    cleaned = _UNSAFE_CHARS.sub("_", name.strip()).strip("_")
    return cleaned or "file"


def product_image_stem(product_id: str, brand: str, name: str, index: int) -> str:
    """Stable stem of the index-th image of a product."""
    return sanitize(f"{brand}_{name}_{product_id}_{index}")


def is_remote(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def extension_from_url(url: str) -> str:
    suffix = Path(urlparse(url).path).suffix.lower()
    if suffix == ".jpeg":
        return ".jpg"
    return suffix if suffix in KNOWN_EXTENSIONS else DEFAULT_EXTENSION


def extension_from_content_type(content_type: str | None) -> str | None:
    if not content_type:
        return None
    return CONTENT_TYPE_EXTENSIONS.get(content_type.split(";")[0].strip().lower())


class MediaDownloader:
    """Downloads media of one type into one context's media directory."""

    def __init__(
        self,
        context: Context,
        media_type: str,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if media_type not in MEDIA_TYPES:
            raise ValueError(f"Unknown media type: {media_type}")
        self.context = context
        self.media_type = media_type
        self.config = config or settings
        self.directory = self.config.media_path(context, media_type)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._transport = transport

    def public_path(self, filename: str) -> str:
        return f"/images/{self.context.value}/{self.media_type}/{filename}"

    def referenced_filename(self, reference: str) -> str | None:
        """Filename a stored reference points at, or None for remote or foreign paths."""
        prefix = f"/images/{self.context.value}/{self.media_type}/"
        if reference.startswith(prefix):
            return reference[len(prefix):]
        # Virtual media is also served without the context segment
        if self.context is Context.VIRTUAL and reference.startswith(f"/images/{self.media_type}/"):
            return reference[len(f"/images/{self.media_type}/"):]
        return None

    def find_existing(self, stem: str) -> Path | None:
        for path in sorted(self.directory.glob(f"{stem}.*")):
            if path.is_file() and path.suffix != PARTIAL_SUFFIX:
                return path
        return None

    async def resolve_extension(self, client: httpx.AsyncClient, url: str) -> str:
        """Extension from a HEAD probe, falling back to the URL suffix."""
        try:
            response = await client.head(url, timeout=self.config.probe_timeout)
            if response.is_success:
                extension = extension_from_content_type(response.headers.get("content-type"))
                if extension:
                    return extension
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.debug(f"HEAD probe failed for {url}: {e}")
        return extension_from_url(url)

    async def download(self, url: str, target_name: str) -> str:
        """
        Download url to <sanitized target_name>.<ext>.

        Returns:
            The public path of the local file.

        Raises:
            DownloadError: malformed url, transport failure, timeout or
                non-2xx response.
        """
        stem = sanitize(target_name)
        existing = self.find_existing(stem)
        if existing is not None:
            return self.public_path(existing.name)

        async with httpx.AsyncClient(
            timeout=self.config.download_timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            try:
                extension = await self.resolve_extension(client, url)
            except ValueError as e:
                raise DownloadError(url, str(e)) from e
            filename = f"{stem}{extension}"
            target = self.directory / filename
            partial = self.directory / f"{filename}{PARTIAL_SUFFIX}"
            try:
                response = await client.get(url)
                response.raise_for_status()
                partial.write_bytes(response.content)
                partial.replace(target)
            except httpx.HTTPStatusError as e:
                raise DownloadError(url, f"HTTP {e.response.status_code}") from e
            except httpx.HTTPError as e:
                raise DownloadError(url, str(e) or type(e).__name__) from e
            # Request construction rejects malformed urls (bad port, bad IDNA label)
            except (httpx.InvalidURL, ValueError) as e:
                raise DownloadError(url, str(e) or type(e).__name__) from e
            except OSError as e:
                raise DownloadError(url, str(e)) from e
            finally:
                partial.unlink(missing_ok=True)

        logger.debug(f"Downloaded {url} -> {target}")
        return self.public_path(filename)

    def cleanup_orphaned(self, valid_filenames: set[str]) -> int:
        """Delete every file in the directory that is not in valid_filenames."""
        deleted = 0
        for path in self.directory.iterdir():
            if not path.is_file() or path.name in valid_filenames:
                continue
            try:
                path.unlink()
                deleted += 1
            except OSError as e:
                logger.warning(f"Could not delete orphaned file {path}: {e}")
        if deleted:
            logger.info(
                f"[{self.context.value}] removed {deleted} orphaned {self.media_type} files"
            )
        return deleted
