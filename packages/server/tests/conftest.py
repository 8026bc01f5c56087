"""
Shared fixtures for directory tests.

Each test gets its own SQLite file database (aiosqlite) with the full
schema created from the SQLModel metadata and foreign keys enforced, so
ON DELETE cascades behave as they do in PostgreSQL.
"""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.database import get_session, get_session_context
from app.main import app as fastapi_app
from app.services import hierarchy, identity


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'directory.db'}")

    @event.listens_for(eng.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s
        await s.rollback()


@pytest.fixture
async def client(session_factory):
    """API client whose requests share the per-test database."""

    async def _override_session():
        async with get_session_context(session_factory) as s:
            yield s

    fastapi_app.dependency_overrides[get_session] = _override_session
    async with AsyncClient(
        transport=ASGITransport(app=fastapi_app), base_url="http://test"
    ) as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(session):
    async def _make(email: str, name: str | None = None):
        return await identity.create_user(
            session, email, name=name, username=email.split("@")[0]
        )

    return _make


@pytest.fixture
def make_org(session):
    async def _make(slug: str, name: str | None = None, owner_id=None):
        return await hierarchy.create_organization(
            name or slug, "", slug, owner_id, None, session
        )

    return _make


@pytest.fixture
def make_unit(session):
    async def _make(name: str, parent_id):
        return await hierarchy.create_unit(name, "", None, parent_id, session)

    return _make


@pytest.fixture
def seed_user(session_factory):
    """Commit a user outside any test session; for API tests."""

    async def _seed(email: str, name: str | None = None):
        async with session_factory() as s:
            user = await identity.create_user(s, email, name=name)
            await s.commit()
            return user

    return _seed
