"""Last successful sync per context and entity type, kept in one JSON document."""

import json
import logging
from datetime import datetime, UTC
from pathlib import Path
from typing import Any

from quickorder.config import Settings, settings
from quickorder.context import Context
from quickorder.errors import StorageError

logger = logging.getLogger(__name__)

TIMESTAMP_KEYS = {
    "products": "last_product_sync",
    "webphotos": "last_webphotos_sync",
}


def empty_document() -> dict[str, dict[str, str | None]]:
    return {
        context.value: {key: None for key in TIMESTAMP_KEYS.values()}
        for context in Context
    }


class SyncTimestampStore:
    """Reads and writes the timestamps document as a whole."""

    def __init__(self, path: Path | None = None, config: Settings | None = None):
        self.path = path or (config or settings).timestamps_path

    def load(self) -> dict[str, dict[str, str | None]]:
        """The full document; missing or unreadable files read as all-None."""
        document = empty_document()
        if not self.path.exists():
            return document
        try:
            stored: Any = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable timestamps file {self.path}: {e}")
            return document
        if not isinstance(stored, dict):
            return document
        for context, values in stored.items():
            if context in document and isinstance(values, dict):
                document[context].update(
                    {k: v for k, v in values.items() if k in TIMESTAMP_KEYS.values()}
                )
        return document

    def get(self, context: Context) -> dict[str, str | None]:
        return self.load()[context.value]

    def record(
        self, context: Context, entity_type: str, timestamp: datetime | None = None
    ) -> datetime:
        """Store the sync time of an entity type for a context."""
        if entity_type not in TIMESTAMP_KEYS:
            raise ValueError(f"Unknown entity type: {entity_type}")
        timestamp = timestamp or datetime.now(UTC)
        document = self.load()
        document[context.value][TIMESTAMP_KEYS[entity_type]] = timestamp.isoformat()

        partial = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            partial.write_text(json.dumps(document, indent=2), encoding="utf-8")
            partial.replace(self.path)
        except OSError as e:
            raise StorageError(f"Cannot write sync timestamps to {self.path}: {e}") from e
        return timestamp
