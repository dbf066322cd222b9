from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from libs.auth.security import create_access_token
from libs.common.rate_limit import limiter
from libs.db.base import Base
from libs.db.config import install_sqlite_pragmas
from libs.db.session import get_async_db
from services.store_service import models as _store_models  # noqa: F401


def auth_headers(user) -> dict:
    """Bearer header carrying a real token for ``user``."""
    token = create_access_token(user.id, email=user.email, is_admin=user.is_admin)
    return {"Authorization": f"Bearer {token}"}


async def seed(session_factory, *instances):
    """Insert ``instances`` in one committed transaction."""
    async with session_factory() as session:
        session.add_all(instances)
        await session.commit()
    return instances


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    A fresh SQLite file database per test.

    A file (not :memory:) with NullPool gives every session its own
    connection, so concurrent transactions really contend for locks.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'store.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 10},
    )
    install_sqlite_pragmas(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def store_app(session_factory):
    """A Store Service app wired to the per-test database."""
    from services.store_service.app.main import create_app

    app = create_app()

    async def _get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = _get_test_db
    limiter.enabled = False

    yield app

    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest_asyncio.fixture
async def client(store_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=store_app), base_url="http://test"
    ) as ac:
        yield ac
