"""
Hierarchy service: organizations, units and the parent/child tree.

An organization is always created together with its default unit (same id,
is_default=True), its tenant binding, its root edge marker and its first
slug binding. All of it runs in the caller's session, so a failure in any
step rolls the whole organization back.

Unit lifecycle: attached (edge to a parent) → detached (edge removed,
unit still exists) → attached again via reparent → deleted. The default
unit stays attached at the root and can never be deleted.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Union

import structlog
from sqlalchemy import delete as sa_delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import Conflict, InvariantViolation, NotFound, storage_errors
from app.models.membership import UnitMember
from app.models.organization import Organization
from app.models.unit import ParentChild, Unit
from app.models.user import User
from app.services import slugs, tenants
from orgdir_shared.schemas.common import DbStrategy, UnitState, UnitType

log = structlog.get_logger()


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marks an update field the caller did not supply ("" is a real value).
UNSET: Any = _Unset()

Node = Union[Organization, Unit]


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

async def create_organization(
    name: str,
    description: str,
    slug: str,
    owner_id: Optional[uuid.UUID],
    metadata: Optional[bytes],
    session: AsyncSession,
    *,
    db_strategy: DbStrategy | str = DbStrategy.SHARED,
) -> Organization:
    """Create an organization with its tenant binding, default unit and slug."""
    slugs.validate_slug(slug)
    if owner_id is not None and await session.get(User, owner_id) is None:
        raise NotFound("Owner not found", {"entity": "users", "key": str(owner_id)})

    current = await slugs.status(slug, session)
    if not current.available:
        raise Conflict("Org slug already exists", {"entity": "slug_history", "key": slug})

    org = Organization(
        name=name or None,
        description=description,
        meta=metadata,
        slug=slug,
        owner_id=owner_id,
    )
    with storage_errors("create organization", "organizations", slug):
        session.add(org)
        await session.flush()

    await tenants.create_binding(org.id, owner_id, session, strategy=db_strategy)

    default_unit = Unit(
        id=org.id,
        org_id=org.id,
        name=org.name,
        description=org.description,
        meta=metadata,
        is_default=True,
    )
    root_edge = ParentChild(child_id=org.id, parent_id=None, org_id=org.id)
    with storage_errors("create default unit", "units", org.id):
        session.add(default_unit)
        await session.flush()
        session.add(root_edge)
        await session.flush()

    await slugs.bind(slug, org.id, session)

    log.info(
        "org.created",
        org_id=str(org.id),
        slug=slug,
        owner_id=str(owner_id) if owner_id else None,
    )
    return org


async def create_unit(
    name: str,
    description: str,
    metadata: Optional[bytes],
    parent_id: uuid.UUID,
    session: AsyncSession,
) -> Unit:
    """Create a unit under ``parent_id``; the unit joins the parent's organization."""
    parent = await get_unit(parent_id, session)

    unit = Unit(
        org_id=parent.org_id,
        name=name or None,
        description=description,
        meta=metadata,
    )
    with storage_errors("create unit", "units", parent_id):
        session.add(unit)
        await session.flush()
        session.add(ParentChild(child_id=unit.id, parent_id=parent.id, org_id=parent.org_id))
        await session.flush()

    log.info(
        "unit.created",
        unit_id=str(unit.id),
        org_id=str(unit.org_id),
        parent_id=str(parent.id),
    )
    return unit


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

async def get_unit(unit_id: uuid.UUID, session: AsyncSession) -> Unit:
    """Any unit row, default units included."""
    with storage_errors("get unit by id", "units", unit_id):
        unit = await session.get(Unit, unit_id)
    if unit is None:
        raise NotFound("Unit not found", {"entity": "units", "key": str(unit_id)})
    return unit


async def get_by_id(unit_id: uuid.UUID, unit_type: UnitType, session: AsyncSession) -> Node:
    """Type-tagged lookup: the stored row's kind must match ``unit_type``."""
    if unit_type == UnitType.ORGANIZATION:
        with storage_errors("get organization by id", "organizations", unit_id):
            org = await session.get(Organization, unit_id)
        if org is None:
            raise NotFound("Organization not found", {"entity": "organizations", "key": str(unit_id)})
        return org

    with storage_errors("get unit by id", "units", unit_id):
        unit = await session.get(Unit, unit_id)
    if unit is None or unit.is_default:
        raise NotFound("Unit not found", {"entity": "units", "key": str(unit_id)})
    return unit


async def get_organization_by_slug(slug: str, session: AsyncSession) -> Organization:
    org_id = await slugs.resolve(slug, session)
    return await get_by_id(org_id, UnitType.ORGANIZATION, session)


async def list_organizations(session: AsyncSession) -> list[Organization]:
    with storage_errors("list organizations", "organizations"):
        result = await session.execute(
            select(Organization).order_by(Organization.created_at, Organization.id)
        )
        return list(result.scalars().all())


async def list_organizations_of_member(
    member_id: uuid.UUID, session: AsyncSession
) -> list[Organization]:
    """Organizations whose default unit lists ``member_id``."""
    with storage_errors("list organizations of member", "organizations", member_id):
        result = await session.execute(
            select(Organization)
            .join(UnitMember, UnitMember.unit_id == Organization.id)
            .where(UnitMember.member_id == member_id)
            .order_by(Organization.created_at, Organization.id)
        )
        return list(result.scalars().all())


async def list_children(parent_id: uuid.UUID, session: AsyncSession) -> list[Unit]:
    """Direct children of ``parent_id``; empty when there are none."""
    with storage_errors("list sub units", "parent_child", parent_id):
        result = await session.execute(
            select(Unit)
            .join(ParentChild, ParentChild.child_id == Unit.id)
            .where(ParentChild.parent_id == parent_id)
            .order_by(Unit.created_at, Unit.id)
        )
        children = list(result.scalars().all())

    log.debug("unit.children_listed", parent_id=str(parent_id), count=len(children))
    return children


async def list_child_ids(parent_id: uuid.UUID, session: AsyncSession) -> list[uuid.UUID]:
    with storage_errors("list sub unit ids", "parent_child", parent_id):
        result = await session.execute(
            select(ParentChild.child_id)
            .join(Unit, Unit.id == ParentChild.child_id)
            .where(ParentChild.parent_id == parent_id)
            .order_by(Unit.created_at, Unit.id)
        )
        return list(result.scalars().all())


async def unit_state(unit_id: uuid.UUID, session: AsyncSession) -> UnitState:
    """Whether the unit is reachable from its organization's root."""
    unit = await get_unit(unit_id, session)
    if unit.is_default:
        return UnitState.ROOT_ATTACHED

    seen: set[uuid.UUID] = set()
    current = unit.id
    while current not in seen:
        seen.add(current)
        edge = await _get_edge(current, session)
        if edge is None or edge.parent_id is None:
            return UnitState.ATTACHED if current == unit.org_id else UnitState.DETACHED
        current = edge.parent_id
    return UnitState.DETACHED


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------

async def update(
    unit_id: uuid.UUID,
    unit_type: UnitType,
    session: AsyncSession,
    *,
    name: Any = UNSET,
    description: Any = UNSET,
    metadata: Any = UNSET,
) -> Node:
    """Partial update; fields left as UNSET keep their stored value."""
    node = await get_by_id(unit_id, unit_type, session)
    targets: list[Node] = [node]
    if unit_type == UnitType.ORGANIZATION:
        # Keep the default unit's descriptive fields in step with the org.
        targets.append(await get_unit(unit_id, session))

    changed = []
    for target in targets:
        if name is not UNSET:
            target.name = name or None
        if description is not UNSET:
            target.description = description
        if metadata is not UNSET:
            target.meta = metadata
        target.updated_at = datetime.now(timezone.utc)
        session.add(target)

    for field, value in (("name", name), ("description", description), ("metadata", metadata)):
        if value is not UNSET:
            changed.append(field)

    with storage_errors(f"update {unit_type.value}", "units", unit_id):
        await session.flush()

    log.info(f"{unit_type.value}.updated", id=str(unit_id), fields=changed)
    return node


async def reparent(
    unit_id: uuid.UUID, new_parent_id: Optional[uuid.UUID], session: AsyncSession
) -> Unit:
    """Replace the unit's parent edge; ``None`` detaches the unit."""
    unit = await get_unit(unit_id, session)
    if unit.is_default:
        raise InvariantViolation(
            "The default unit cannot be moved", {"entity": "units", "key": str(unit_id)}
        )

    edge = await _get_edge(unit_id, session)

    if new_parent_id is None:
        if edge is not None:
            with storage_errors("remove parent-child relationship", "parent_child", unit_id):
                await session.delete(edge)
                await session.flush()
        log.info("unit.detached", unit_id=str(unit_id), org_id=str(unit.org_id))
        return unit

    parent = await get_unit(new_parent_id, session)
    if parent.org_id != unit.org_id:
        raise InvariantViolation(
            "Parent unit belongs to a different organization",
            {"entity": "units", "key": str(new_parent_id)},
        )
    await _ensure_not_descendant(unit_id, parent.id, session)

    with storage_errors("add parent-child relationship", "parent_child", unit_id):
        if edge is None:
            session.add(ParentChild(child_id=unit_id, parent_id=parent.id, org_id=unit.org_id))
        else:
            edge.parent_id = parent.id
            session.add(edge)
        await session.flush()

    log.info(
        "unit.reparented",
        unit_id=str(unit_id),
        parent_id=str(parent.id),
        org_id=str(unit.org_id),
    )
    return unit


async def delete(unit_id: uuid.UUID, unit_type: UnitType, session: AsyncSession) -> None:
    """Delete a unit or an organization.

    Default units are refused here, not left to a storage constraint.
    Deleting an organization releases its slug and lets the store cascade
    units, edges, memberships and the tenant binding.
    """
    if unit_type == UnitType.UNIT:
        unit = await get_unit(unit_id, session)
        if unit.is_default:
            raise InvariantViolation(
                "The default unit of an organization cannot be deleted",
                {"entity": "units", "key": str(unit_id)},
            )
        with storage_errors("delete unit", "units", unit_id):
            await session.execute(sa_delete(Unit).where(Unit.id == unit_id))
            await session.flush()
        log.info("unit.deleted", unit_id=str(unit_id), org_id=str(unit.org_id))
        # Cascaded rows are gone from the store but not from the identity map.
        session.expunge_all()
        return

    org = await get_by_id(unit_id, UnitType.ORGANIZATION, session)
    await slugs.release(org.id, session)
    with storage_errors("delete organization", "organizations", unit_id):
        await session.execute(sa_delete(Organization).where(Organization.id == org.id))
        await session.flush()
    log.info("org.deleted", org_id=str(unit_id), slug=org.slug)
    session.expunge_all()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _get_edge(child_id: uuid.UUID, session: AsyncSession) -> Optional[ParentChild]:
    with storage_errors("get parent-child relationship", "parent_child", child_id):
        return await session.get(ParentChild, child_id)


async def _ensure_not_descendant(
    unit_id: uuid.UUID, candidate_parent_id: uuid.UUID, session: AsyncSession
) -> None:
    """Walk up from the candidate parent; meeting ``unit_id`` means a cycle."""
    seen: set[uuid.UUID] = set()
    current: Optional[uuid.UUID] = candidate_parent_id
    while current is not None and current not in seen:
        if current == unit_id:
            raise InvariantViolation(
                "A unit cannot be moved under itself or its descendants",
                {"entity": "parent_child", "key": str(unit_id)},
            )
        seen.add(current)
        edge = await _get_edge(current, session)
        current = edge.parent_id if edge is not None else None
