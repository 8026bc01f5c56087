"""
Database connection and session management.

The session is the unit of work: every service call made through one
session runs inside a single transaction that is committed once on
success and rolled back on any failure or cancellation.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from app.core.config import get_settings

settings = get_settings()
log = structlog.get_logger()

# Shared pool; every organization bound to the "shared" strategy lives here.
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def init_db():
    """Create all tables. Development only; production runs alembic."""
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def get_session_context(
    factory: Optional[async_sessionmaker] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """One unit of work: commit on success, roll back on any exception."""
    async with (factory or async_session_factory)() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            await session.rollback()
            log.debug("db.rolled_back", error=type(exc).__name__)
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one unit of work per request."""
    async with get_session_context() as session:
        yield session
