"""Database connection and session management for the two mirror instances."""

import logging

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from quickorder.config import Settings, settings
from quickorder.context import Context
from quickorder.errors import StorageError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# SQLite connection settings for better concurrency
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Set SQLite pragmas for better concurrent access."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")  # Write-Ahead Logging for better concurrency
    cursor.execute("PRAGMA busy_timeout=30000")  # Wait up to 30 seconds if locked
    cursor.execute("PRAGMA synchronous=NORMAL")  # Balance between safety and speed
    cursor.close()


class MirrorDatabase:
    """Engine and session factory bound to one context's mirror file."""

    def __init__(self, context: Context, database_url: str, echo: bool = False):
        self.context = context
        self.database_url = database_url
        self.engine = create_async_engine(
            database_url,
            echo=echo,
            future=True,
            pool_pre_ping=True,  # Check connections before use
        )
        # Register the pragma setter for SQLite connections
        event.listen(self.engine.sync_engine, "connect", set_sqlite_pragma)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        """
        New session for use outside of FastAPI requests.

        Usage:
            async with database.session() as session:
                # use session
        """
        return self.session_maker()

    async def create_tables(self) -> None:
        """Create every mirror table that does not exist yet."""
        # Import models so their tables are registered on Base.metadata
        import quickorder.models  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot open {self.context.value} mirror: {e}") from e

    async def ping(self) -> bool:
        """Check that the mirror file answers a trivial query."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


_databases: dict[Context, MirrorDatabase] = {}


def get_database(context: Context, config: Settings | None = None) -> MirrorDatabase:
    """Get or create the mirror database for a context."""
    config = config or settings
    if context not in _databases:
        _databases[context] = MirrorDatabase(
            context, config.database_url(context), echo=config.debug
        )
    return _databases[context]


async def init_db(config: Settings | None = None) -> None:
    """Initialize the tables of both mirror instances."""
    for context in Context:
        await get_database(context, config).create_tables()
        logger.info(f"Mirror database ready for {context.value} context")


async def close_db() -> None:
    """Dispose every engine and forget the cached instances."""
    for database in list(_databases.values()):
        await database.dispose()
    _databases.clear()

