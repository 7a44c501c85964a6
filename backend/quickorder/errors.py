"""Error types raised by the mirror, downloader and sync layers."""


class QuickOrderError(Exception):
    """Base class for all QuickOrder errors."""
    pass


class RemoteFetchError(QuickOrderError):
    """The tabular source could not be reached or returned an invalid response."""
    pass


class DownloadError(QuickOrderError):
    """A single media item could not be downloaded."""

    def __init__(self, url: str, cause: Exception | str):
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to download {url}: {cause}")


class StorageError(QuickOrderError):
    """The mirror database failed at the I/O level."""
    pass


class NotFound(QuickOrderError):
    """A requested entity does not exist in the mirror."""
    pass


class SyncInProgressError(QuickOrderError):
    """A sync for the same context and entity type is already running."""
    pass
