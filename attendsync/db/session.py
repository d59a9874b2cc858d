# attendsync/db/session.py
import os

from sqlalchemy import create_engine as create_sync_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from attendsync.core.config import get_settings
from attendsync.db.base import Base

# Register ORM models on Base.metadata before create_all runs.
from attendsync.models import attendance, meeting, user  # noqa: F401

settings = get_settings()

# Detect if we're running under pytest
IS_TEST = "PYTEST_CURRENT_TEST" in os.environ

# ---------------------------------------------------------------------------
# Main application engine + session factory
# ---------------------------------------------------------------------------
engine = create_async_engine(
    settings.DB_URL,
    echo=False,
    # NullPool in tests avoids reusing connections across event loops.
    poolclass=NullPool if IS_TEST else None,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    FastAPI dependency returning the session factory used by the stores.

    Stores open one session per operation, so handing them the factory
    (instead of a single request-scoped session) keeps concurrent reads safe.
    """
    return AsyncSessionLocal


async def init_db_for_startup() -> None:
    """
    Create missing tables on application startup.

    Typically you'd eventually replace this with Alembic migrations.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _build_sync_db_url(async_url: str) -> str:
    """
    Convert an async driver URL to its synchronous counterpart, e.g.
    'postgresql+asyncpg://...' -> 'postgresql://...' and
    'sqlite+aiosqlite:///x.db' -> 'sqlite:///x.db'.
    """
    for driver in ("+asyncpg", "+aiosqlite"):
        if driver in async_url:
            return async_url.replace(driver, "")
    return async_url


def reset_schema_sync(db_url: str | None = None) -> None:
    """
    Run drop_all + create_all using a synchronous SQLAlchemy engine.

    Used by tests to get a clean schema without touching any event loop.
    """
    sync_engine = create_sync_engine(_build_sync_db_url(db_url or settings.DB_URL))

    with sync_engine.begin() as conn:
        Base.metadata.drop_all(bind=conn)
        Base.metadata.create_all(bind=conn)

    sync_engine.dispose()
