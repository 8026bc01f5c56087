"""
Identity collaborator: resolves contact identifiers to member identities
and supplies the display fields shown next to a membership.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFound, UpstreamFailure, storage_errors
from app.models.user import User

log = structlog.get_logger()


@dataclass(frozen=True)
class MemberProfile:
    id: uuid.UUID
    name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[str] = None


class IdentityDirectory(Protocol):
    async def resolve_email(self, email: str) -> uuid.UUID: ...

    async def get_profiles(
        self, member_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, MemberProfile]: ...


class DatabaseIdentityDirectory:
    """IdentityDirectory backed by the users table of the shared store."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_email(self, email: str) -> uuid.UUID:
        normalized = email.strip().lower()
        with storage_errors("resolve member email", "users", normalized):
            result = await self.session.execute(
                select(User.id).where(func.lower(User.email) == normalized)
            )
            user_id = result.scalar_one_or_none()
        if user_id is None:
            raise NotFound("User not found", {"entity": "users", "key": normalized})
        return user_id

    async def get_profiles(
        self, member_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, MemberProfile]:
        ids = list(member_ids)
        if not ids:
            return {}
        with storage_errors("load member profiles", "users"):
            result = await self.session.execute(select(User).where(User.id.in_(ids)))
            users = result.scalars().all()
        return {
            u.id: MemberProfile(
                id=u.id,
                name=u.name,
                username=u.username,
                avatar_url=u.avatar_url,
                email=u.email,
            )
            for u in users
        }


async def create_user(
    session: AsyncSession,
    email: str,
    name: Optional[str] = None,
    username: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> User:
    """Insert a user row. Used by seeding and tests."""
    user = User(email=email.strip().lower(), name=name, username=username, avatar_url=avatar_url)
    with storage_errors("create user", "users", user.email):
        session.add(user)
        await session.flush()
    log.info("user.created", user_id=str(user.id))
    return user


def wrap_identity_failure(exc: Exception) -> UpstreamFailure:
    """Wrap a non-directory failure raised by an external identity provider."""
    return UpstreamFailure("identity provider unavailable", {"detail": type(exc).__name__})
