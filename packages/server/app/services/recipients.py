"""
Recipient resolution: flattens organizations and units into the set of
member ids that should receive a notification.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFound, storage_errors
from app.models.organization import Organization
from app.models.unit import Unit
from app.services import members

log = structlog.get_logger()


def _dedupe(ids: Iterable[uuid.UUID]) -> list[uuid.UUID]:
    return list(dict.fromkeys(ids))


async def _ensure_exist(query, ids: list[uuid.UUID], entity: str, session: AsyncSession) -> None:
    if not ids:
        return
    with storage_errors(f"check {entity} exist", entity):
        result = await session.execute(query)
        found = set(result.scalars().all())
    missing = [i for i in ids if i not in found]
    if missing:
        raise NotFound(
            f"{entity.capitalize()} not found",
            {"entity": entity, "key": ",".join(str(m) for m in missing)},
        )


async def get_recipients(
    org_ids: Iterable[uuid.UUID],
    unit_ids: Iterable[uuid.UUID],
    session: AsyncSession,
    *,
    within_org: Optional[uuid.UUID] = None,
) -> list[uuid.UUID]:
    """Distinct member ids of the given organizations and units.

    First-seen order is kept. Any unknown id fails the whole request.
    With ``within_org`` set, ids outside that organization count as unknown.
    """
    orgs = _dedupe(org_ids)
    units = _dedupe(unit_ids)
    if not orgs and not units:
        return []

    org_query = select(Organization.id).where(Organization.id.in_(orgs))
    unit_query = select(Unit.id).where(Unit.id.in_(units), Unit.is_default.is_(False))
    if within_org is not None:
        org_query = org_query.where(Organization.id == within_org)
        unit_query = unit_query.where(Unit.org_id == within_org)

    await _ensure_exist(org_query, orgs, "organizations", session)
    await _ensure_exist(unit_query, units, "units", session)

    # Organization members live on the default unit, which shares the org id.
    by_unit = await members.list_members_for_units(orgs + units, session)
    recipients = _dedupe(
        member_id for unit_id in orgs + units for member_id in by_unit.get(unit_id, [])
    )

    log.info(
        "recipients.resolved",
        org_count=len(orgs),
        unit_count=len(units),
        recipient_count=len(recipients),
    )
    return recipients


async def get_org_recipients(org_id: uuid.UUID, session: AsyncSession) -> list[uuid.UUID]:
    return await get_recipients([org_id], [], session)
