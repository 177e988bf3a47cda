"""Database configuration and session management."""

import threading
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from gatherer_mes.db.models import Base

logger = structlog.get_logger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./gatherer_mes.db"


def configure_sqlite_engine(engine: AsyncEngine) -> None:
    """Make SQLite honour foreign keys and SAVEPOINTs.

    The sqlite3 driver issues its own BEGIN lazily, which breaks
    ``begin_nested()``. Driver-level transaction handling is switched off and
    SQLAlchemy emits BEGIN itself.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable foreign keys and take over transaction control."""
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


class DatabaseConfig:
    """Database configuration and session factory."""

    def __init__(
        self,
        database_url: str = DEFAULT_DATABASE_URL,
        echo: bool = False,
        pool_size: int = 10,
    ) -> None:
        """Initialize database configuration.

        Args:
            database_url: SQLAlchemy database URL (async driver required)
            echo: Enable SQL query logging
            pool_size: Connection pool size for server databases
        """
        self.database_url = database_url
        self.is_sqlite = make_url(database_url).get_backend_name() == "sqlite"
        self.echo = echo
        self.pool_size = pool_size
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create async engine.

        Returns:
            AsyncEngine instance
        """
        if self._engine is None:
            engine_kwargs: dict = {
                "echo": self.echo,
            }

            if self.is_sqlite:
                engine_kwargs["poolclass"] = NullPool
            else:
                engine_kwargs["pool_size"] = self.pool_size
                engine_kwargs["max_overflow"] = 20
                engine_kwargs["pool_recycle"] = 3600
                engine_kwargs["pool_pre_ping"] = True

            self._engine = create_async_engine(
                self.database_url,
                **engine_kwargs,
            )

            if self.is_sqlite:
                configure_sqlite_engine(self._engine)

        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create async session factory.

        Returns:
            async_sessionmaker instance
        """
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_factory

    async def create_tables(self) -> None:
        """Create all database tables.

        Intended for tests and local development. In production,
        use Alembic migrations.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop all database tables.

        Warning: This will delete all data!
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Dispose of the engine and close all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Async context manager for database sessions.

        Commits on clean exit and rolls back when the block raises.

        Example:
            async with db_config.session() as session:
                result = await EquipmentService(session).get_by_id(equipment_id)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


# Global database instance
_db_config: Optional[DatabaseConfig] = None
_db_lock = threading.Lock()


def get_database() -> DatabaseConfig:
    """Get the global database configuration instance.

    Returns:
        DatabaseConfig instance
    """
    global _db_config
    if _db_config is None:
        with _db_lock:
            # Double-checked locking
            if _db_config is None:
                from gatherer_mes.core.config import get_settings

                settings = get_settings()
                if settings.database_url == DEFAULT_DATABASE_URL:
                    logger.info("database_url_resolved", source="default", dialect="sqlite")
                else:
                    logger.info(
                        "database_url_resolved",
                        source="environment",
                        dialect=make_url(settings.database_url).get_backend_name(),
                    )
                _db_config = DatabaseConfig(
                    database_url=settings.database_url,
                    echo=settings.db_echo,
                    pool_size=settings.pool_size,
                )
    return _db_config


def set_database(config: DatabaseConfig) -> None:
    """Set the global database configuration instance.

    Args:
        config: DatabaseConfig instance to use globally
    """
    global _db_config
    with _db_lock:
        _db_config = config


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session from the global database; commits when the caller finishes."""
    db = get_database()
    async with db.session() as session:
        yield session
