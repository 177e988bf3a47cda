"""Database layer for gatherer-mes."""

from gatherer_mes.db.database import (
    DatabaseConfig,
    configure_sqlite_engine,
    get_database,
    get_session,
    set_database,
)
from gatherer_mes.db.models import Base

__all__ = [
    "Base",
    "DatabaseConfig",
    "configure_sqlite_engine",
    "get_database",
    "get_session",
    "set_database",
]
