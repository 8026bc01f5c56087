"""
Unit endpoints: sub-units of an organization and their place in the tree.

Units are addressed by id under the slug of the organization they belong
to; a unit of another organization is reported as not found.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.responses import encode_metadata, unit_response
from app.core.database import get_session
from app.core.errors import NotFound
from app.core.tenancy import TenantContext, get_tenant_context
from app.models.unit import Unit
from app.services import hierarchy
from orgdir_shared.schemas.common import UnitType
from orgdir_shared.schemas.units import (
    ReparentRequest,
    UnitCreateRequest,
    UnitIDListResponse,
    UnitListResponse,
    UnitResponse,
    UnitUpdateRequest,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_unit_in_org(
    unit_id: uuid.UUID, tenant: TenantContext, session: AsyncSession
) -> Unit:
    unit = await hierarchy.get_by_id(unit_id, UnitType.UNIT, session)
    if unit.org_id != tenant.org_id:
        raise NotFound("Unit not found", {"entity": "units", "key": str(unit_id)})
    return unit


async def _parent_in_org(
    parent_id: uuid.UUID, tenant: TenantContext, session: AsyncSession
) -> uuid.UUID:
    # The organization itself (its default unit) is a valid parent.
    if parent_id == tenant.org_id:
        return parent_id
    return (await get_unit_in_org(parent_id, tenant, session)).id


# ---------------------------------------------------------------------------
# Org-level collection
# ---------------------------------------------------------------------------


@router.post("/units", response_model=UnitResponse, status_code=201)
async def create_unit(
    body: UnitCreateRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    """Create a unit under the org root, or under ``parent_id``."""
    parent_id = tenant.org_id
    if body.parent_id is not None:
        parent_id = await _parent_in_org(body.parent_id, tenant, session)

    unit = await hierarchy.create_unit(
        body.name, body.description, encode_metadata(body.metadata), parent_id, session
    )
    state = await hierarchy.unit_state(unit.id, session)
    return unit_response(unit, state)


@router.get("/units", response_model=UnitListResponse)
async def list_units(
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    """Direct children of the organization root."""
    units = await hierarchy.list_children(tenant.org_id, session)
    return UnitListResponse(data=[unit_response(u) for u in units])


@router.get("/unit-ids", response_model=UnitIDListResponse)
async def list_unit_ids(
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    return UnitIDListResponse(data=await hierarchy.list_child_ids(tenant.org_id, session))


# ---------------------------------------------------------------------------
# Single unit
# ---------------------------------------------------------------------------


@router.get("/units/{unitId}", response_model=UnitResponse)
async def get_unit(
    unitId: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    unit = await get_unit_in_org(unitId, tenant, session)
    state = await hierarchy.unit_state(unit.id, session)
    return unit_response(unit, state)


@router.patch("/units/{unitId}", response_model=UnitResponse)
async def update_unit(
    unitId: uuid.UUID,
    body: UnitUpdateRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    await get_unit_in_org(unitId, tenant, session)
    fields = body.model_dump(exclude_unset=True)

    changes = {}
    for key in ("name", "description"):
        if key in fields:
            changes[key] = fields[key] if fields[key] is not None else ""
    if "metadata" in fields:
        changes["metadata"] = encode_metadata(fields["metadata"])

    unit = await hierarchy.update(unitId, UnitType.UNIT, session, **changes)
    state = await hierarchy.unit_state(unit.id, session)
    return unit_response(unit, state)


@router.delete("/units/{unitId}", status_code=204)
async def delete_unit(
    unitId: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    await get_unit_in_org(unitId, tenant, session)
    await hierarchy.delete(unitId, UnitType.UNIT, session)


@router.put("/units/{unitId}/parent", response_model=UnitResponse)
async def reparent_unit(
    unitId: uuid.UUID,
    body: ReparentRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    """Move a unit under another parent; a null parent detaches it."""
    await get_unit_in_org(unitId, tenant, session)
    unit = await hierarchy.reparent(unitId, body.parent_id, session)
    state = await hierarchy.unit_state(unit.id, session)
    return unit_response(unit, state)


@router.get("/units/{unitId}/subunits", response_model=UnitListResponse)
async def list_subunits(
    unitId: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    await get_unit_in_org(unitId, tenant, session)
    units = await hierarchy.list_children(unitId, session)
    return UnitListResponse(data=[unit_response(u) for u in units])


@router.get("/units/{unitId}/subunit-ids", response_model=UnitIDListResponse)
async def list_subunit_ids(
    unitId: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    await get_unit_in_org(unitId, tenant, session)
    return UnitIDListResponse(data=await hierarchy.list_child_ids(unitId, session))
