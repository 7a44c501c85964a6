"""Base repository bound to one context's mirror database."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quickorder.database import MirrorDatabase
from quickorder.errors import StorageError

logger = logging.getLogger(__name__)


class Repository:
    """Base for repositories bound to one mirror database."""

    def __init__(self, database: MirrorDatabase):
        self.database = database
        self.context = database.context

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session whose database errors surface as StorageError."""
        try:
            async with self.database.session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"[{self.context.value}] mirror storage error: {e}")
            raise StorageError(f"{self.context.value} mirror storage error: {e}") from e
