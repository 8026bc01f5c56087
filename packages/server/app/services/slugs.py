"""
Slug directory: maps human-readable slugs to organization identity.

Bindings are kept in slug_history. An entry with ended_at IS NULL is the
active binding; closed entries are never modified or deleted. The store's
partial unique indexes guarantee at most one open entry per slug and per
organization.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import Conflict, NotFound, ValidationFailed, storage_errors
from app.models.organization import Organization
from app.models.slug_history import SlugHistory
from orgdir_shared.schemas.common import SLUG_MAX_LENGTH, SLUG_PATTERN

log = structlog.get_logger()

_slug_re = re.compile(SLUG_PATTERN)


@dataclass(frozen=True)
class SlugStatus:
    available: bool
    org_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class SlugHistoryEntry:
    slug: str
    org_id: uuid.UUID
    org_name: Optional[str]
    created_at: datetime
    ended_at: Optional[datetime]


def validate_slug(slug: str) -> str:
    if not slug or len(slug) > SLUG_MAX_LENGTH or not _slug_re.match(slug):
        raise ValidationFailed("Org slug is invalid", {"entity": "slug", "key": slug})
    return slug


async def _open_entry_for_slug(slug: str, session: AsyncSession) -> Optional[SlugHistory]:
    with storage_errors("look up active slug", "slug_history", slug):
        result = await session.execute(
            select(SlugHistory).where(
                SlugHistory.slug == slug, SlugHistory.ended_at.is_(None)
            )
        )
        return result.scalar_one_or_none()


async def resolve(slug: str, session: AsyncSession) -> uuid.UUID:
    """Return the organization currently bound to ``slug``."""
    validate_slug(slug)
    entry = await _open_entry_for_slug(slug, session)
    if entry is None:
        raise NotFound("Org slug not found", {"entity": "slug_history", "key": slug})
    return entry.org_id


async def status(slug: str, session: AsyncSession) -> SlugStatus:
    validate_slug(slug)
    entry = await _open_entry_for_slug(slug, session)
    if entry is None:
        return SlugStatus(available=True)
    return SlugStatus(available=False, org_id=entry.org_id)


async def history(slug: str, session: AsyncSession) -> list[SlugHistoryEntry]:
    """Every binding the slug has had, most recent first."""
    validate_slug(slug)
    with storage_errors("list slug history", "slug_history", slug):
        result = await session.execute(
            select(SlugHistory, Organization.name)
            .outerjoin(Organization, Organization.id == SlugHistory.org_id)
            .where(SlugHistory.slug == slug)
            .order_by(SlugHistory.created_at.desc())
        )
        rows = result.all()
    return [
        SlugHistoryEntry(
            slug=entry.slug,
            org_id=entry.org_id,
            org_name=name,
            created_at=entry.created_at,
            ended_at=entry.ended_at,
        )
        for entry, name in rows
    ]


async def status_with_history(
    slug: str, session: AsyncSession
) -> tuple[SlugStatus, list[SlugHistoryEntry]]:
    return await status(slug, session), await history(slug, session)


async def current_slug(org_id: uuid.UUID, session: AsyncSession) -> str:
    with storage_errors("look up current slug", "slug_history", org_id):
        result = await session.execute(
            select(SlugHistory.slug).where(
                SlugHistory.org_id == org_id, SlugHistory.ended_at.is_(None)
            )
        )
        slug = result.scalar_one_or_none()
    if slug is None:
        raise NotFound("Organization has no active slug", {"entity": "slug_history", "key": str(org_id)})
    return slug


async def bind(slug: str, org_id: uuid.UUID, session: AsyncSession) -> SlugHistory:
    """Open the first binding for an organization."""
    validate_slug(slug)
    existing = await _open_entry_for_slug(slug, session)
    if existing is not None:
        if existing.org_id == org_id:
            return existing
        raise Conflict("Org slug already exists", {"entity": "slug_history", "key": slug})

    entry = SlugHistory(slug=slug, org_id=org_id)
    with storage_errors("bind slug", "slug_history", slug):
        session.add(entry)
        await session.flush()

    log.info("slug.bound", slug=slug, org_id=str(org_id))
    return entry


async def rebind(org_id: uuid.UUID, new_slug: str, session: AsyncSession) -> SlugHistory:
    """Close the organization's open binding and open one for ``new_slug``.

    Runs in the caller's transaction. Any failure propagates so the unit of
    work rolls back and the old binding stays the only open one.
    """
    validate_slug(new_slug)

    with storage_errors("lock current slug", "slug_history", org_id):
        result = await session.execute(
            select(SlugHistory)
            .where(SlugHistory.org_id == org_id, SlugHistory.ended_at.is_(None))
            .with_for_update()
        )
        current = result.scalar_one_or_none()

    if current is None:
        # Either the org never had a slug or a concurrent rebind won the lock.
        exists = await _org_has_history(org_id, session)
        if exists:
            raise Conflict("Slug was changed concurrently", {"entity": "slug_history", "key": str(org_id)})
        raise NotFound("Organization has no active slug", {"entity": "slug_history", "key": str(org_id)})

    if current.slug == new_slug:
        return current

    taken = await _open_entry_for_slug(new_slug, session)
    if taken is not None:
        raise Conflict("Org slug already exists", {"entity": "slug_history", "key": new_slug})

    old_slug = current.slug
    now = datetime.now(timezone.utc)
    with storage_errors("rebind slug", "slug_history", new_slug):
        # Close before opening: the per-org active index allows one open row.
        current.ended_at = now
        session.add(current)
        await session.flush()

        entry = SlugHistory(slug=new_slug, org_id=org_id)
        session.add(entry)
        org = await session.get(Organization, org_id)
        if org is not None:
            org.slug = new_slug
            org.updated_at = now
            session.add(org)
        await session.flush()

    log.info("slug.rebound", org_id=str(org_id), old_slug=old_slug, new_slug=new_slug)
    return entry


async def release(org_id: uuid.UUID, session: AsyncSession) -> None:
    """Close the organization's open binding, if any."""
    with storage_errors("release slug", "slug_history", org_id):
        result = await session.execute(
            select(SlugHistory).where(
                SlugHistory.org_id == org_id, SlugHistory.ended_at.is_(None)
            )
        )
        for entry in result.scalars().all():
            entry.ended_at = datetime.now(timezone.utc)
            session.add(entry)
        await session.flush()
    log.info("slug.released", org_id=str(org_id))


async def _org_has_history(org_id: uuid.UUID, session: AsyncSession) -> bool:
    with storage_errors("check slug history", "slug_history", org_id):
        result = await session.execute(
            select(SlugHistory.id).where(SlugHistory.org_id == org_id).limit(1)
        )
        return result.first() is not None
