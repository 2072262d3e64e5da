"""SQLAlchemy 2.x async database setup using asyncpg and pgvector.

The engine and session factory are created on first use and never hard-code
connection credentials.
"""

from __future__ import annotations

from functools import lru_cache

from pgvector.asyncpg import register_vector
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Cached async engine with the pgvector codec registered per connection."""
    engine = create_async_engine(
        settings.db.url,
        echo=settings.db.echo,
        pool_size=settings.db.pool_size,
        max_overflow=settings.db.max_overflow,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _register_vector(dbapi_connection, connection_record):
        dbapi_connection.run_async(register_vector)

    return engine


@lru_cache(maxsize=1)
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Cached session factory bound to the engine."""
    return async_sessionmaker(bind=get_engine(), expire_on_commit=False, class_=AsyncSession)
