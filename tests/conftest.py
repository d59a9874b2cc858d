# tests/conftest.py
import os

# Must be set before the app (and its cached settings) is imported.
os.environ["APP_ENV"] = "test"
os.environ["DB_CREATE_ON_STARTUP"] = "false"
os.environ.pop("DISCORD_BOT_TOKEN", None)
os.environ.pop("INTERNAL_API_KEY", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from attendsync.db.session import _build_sync_db_url, get_session_factory, reset_schema_sync  # noqa: E402
from attendsync.main import create_app  # noqa: E402


@pytest.fixture(scope="session")
def client() -> TestClient:
    """
    Shared TestClient for endpoints that do not touch the database.
    """
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_url(tmp_path) -> str:
    """
    Fresh SQLite database per test, schema created with a sync engine so no
    event loop is involved.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'attendsync_test.db'}"
    reset_schema_sync(url)
    return url


@pytest.fixture
def session_factory(db_url) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(db_url, poolclass=NullPool)
    return async_sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
        class_=AsyncSession,
    )


@pytest.fixture
def sync_session(db_url):
    """
    Plain synchronous Session for seeding rows in API tests.
    """
    engine = create_engine(_build_sync_db_url(db_url))
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def api_client(session_factory) -> TestClient:
    """
    TestClient whose stores all read and write the per-test database.
    """
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
