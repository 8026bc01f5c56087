"""
Member service: membership of identities in units and organizations.

Organization membership is stored on the organization's default unit.
Adding someone to a regular unit also adds them to its organization;
removing someone from a unit leaves their organization membership alone.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

import structlog
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import DirectoryError, storage_errors
from app.models.membership import UnitMember
from app.models.unit import Unit
from app.services import hierarchy
from app.services.identity import (
    DatabaseIdentityDirectory,
    IdentityDirectory,
    MemberProfile,
    wrap_identity_failure,
)
from orgdir_shared.schemas.common import UnitType

log = structlog.get_logger()


def _insert_ignore(session: AsyncSession):
    """Dialect-specific INSERT that skips rows already present."""
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite.insert(UnitMember).on_conflict_do_nothing(
            index_elements=["unit_id", "member_id"]
        )
    return postgresql.insert(UnitMember).on_conflict_do_nothing(
        index_elements=["unit_id", "member_id"]
    )


async def _target_unit(unit_type: UnitType, unit_id: uuid.UUID, session: AsyncSession) -> Unit:
    """The unit row that holds the members of ``unit_id``."""
    await hierarchy.get_by_id(unit_id, unit_type, session)
    return await hierarchy.get_unit(unit_id, session)


async def _resolve_email(identity: IdentityDirectory, email: str) -> uuid.UUID:
    try:
        return await identity.resolve_email(email)
    except DirectoryError:
        raise
    except Exception as exc:
        log.error("identity.resolve_failed", error=type(exc).__name__)
        raise wrap_identity_failure(exc) from exc


async def _insert_membership(
    unit_id: uuid.UUID, member_id: uuid.UUID, session: AsyncSession
) -> UnitMember:
    with storage_errors("add member to unit", "unit_members", unit_id):
        await session.execute(
            _insert_ignore(session).values(
                unit_id=unit_id,
                member_id=member_id,
                created_at=datetime.now(timezone.utc),
            )
        )
        result = await session.execute(
            select(UnitMember).where(
                UnitMember.unit_id == unit_id, UnitMember.member_id == member_id
            )
        )
        return result.scalar_one()


async def add_member(
    unit_type: UnitType,
    unit_id: uuid.UUID,
    email: str,
    session: AsyncSession,
    identity: Optional[IdentityDirectory] = None,
) -> UnitMember:
    """Add the identity behind ``email`` to a unit or organization.

    Idempotent: adding an existing member returns the stored membership.
    """
    unit = await _target_unit(unit_type, unit_id, session)
    identity = identity or DatabaseIdentityDirectory(session)
    member_id = await _resolve_email(identity, email)

    membership = await _insert_membership(unit.id, member_id, session)
    if not unit.is_default:
        await _insert_membership(unit.org_id, member_id, session)

    log.info(
        "member.added",
        unit_id=str(unit.id),
        org_id=str(unit.org_id),
        member_id=str(member_id),
    )
    return membership


async def list_member_ids(
    unit_type: UnitType, unit_id: uuid.UUID, session: AsyncSession
) -> list[uuid.UUID]:
    unit = await _target_unit(unit_type, unit_id, session)
    with storage_errors("list member ids", "unit_members", unit_id):
        result = await session.execute(
            select(UnitMember.member_id)
            .where(UnitMember.unit_id == unit.id)
            .order_by(UnitMember.created_at, UnitMember.member_id)
        )
        return list(result.scalars().all())


async def list_members(
    unit_type: UnitType,
    unit_id: uuid.UUID,
    session: AsyncSession,
    identity: Optional[IdentityDirectory] = None,
) -> list[MemberProfile]:
    """Members of a unit with their display fields.

    Identities the directory no longer knows are returned with only an id.
    """
    member_ids = await list_member_ids(unit_type, unit_id, session)
    identity = identity or DatabaseIdentityDirectory(session)
    try:
        profiles = await identity.get_profiles(member_ids)
    except DirectoryError:
        raise
    except Exception as exc:
        log.error("identity.profiles_failed", error=type(exc).__name__)
        raise wrap_identity_failure(exc) from exc
    return [profiles.get(mid) or MemberProfile(id=mid) for mid in member_ids]


async def list_members_for_units(
    unit_ids: Iterable[uuid.UUID], session: AsyncSession
) -> dict[uuid.UUID, list[uuid.UUID]]:
    """Member ids per unit in one lookup. Units without members have no key."""
    ids = list(unit_ids)
    if not ids:
        return {}
    with storage_errors("list members for units", "unit_members"):
        result = await session.execute(
            select(UnitMember.unit_id, UnitMember.member_id)
            .where(UnitMember.unit_id.in_(ids))
            .order_by(UnitMember.created_at, UnitMember.member_id)
        )
        rows = result.all()

    grouped: dict[uuid.UUID, list[uuid.UUID]] = {}
    for unit_id, member_id in rows:
        grouped.setdefault(unit_id, []).append(member_id)
    return grouped


async def remove_member(
    unit_type: UnitType, unit_id: uuid.UUID, member_id: uuid.UUID, session: AsyncSession
) -> None:
    """Remove a membership. Removing a non-member is a no-op."""
    unit = await _target_unit(unit_type, unit_id, session)
    with storage_errors("remove member from unit", "unit_members", unit_id):
        membership = await session.get(UnitMember, (unit.id, member_id))
        if membership is None:
            return
        await session.delete(membership)
        await session.flush()

    log.info("member.removed", unit_id=str(unit.id), member_id=str(member_id))
