"""
Membership endpoints for organizations and their units.

Organization-level routes act on the organization's default unit. Adding
a member to a unit also makes them a member of the organization.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.responses import member_response
from app.api.v1.units import get_unit_in_org
from app.core.database import get_session
from app.core.tenancy import TenantContext, get_tenant_context
from app.services import members
from orgdir_shared.schemas.common import UnitType
from orgdir_shared.schemas.members import (
    MemberAddRequest,
    MemberListResponse,
    MembershipResponse,
)

router = APIRouter()


def _membership_response(record) -> MembershipResponse:
    return MembershipResponse(
        unit_id=record.unit_id,
        member_id=record.member_id,
        created_at=record.created_at,
    )


# ---------------------------------------------------------------------------
# Organization members
# ---------------------------------------------------------------------------


@router.get("/members", response_model=MemberListResponse)
async def list_org_members(
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    profiles = await members.list_members(UnitType.ORGANIZATION, tenant.org_id, session)
    return MemberListResponse(data=[member_response(p) for p in profiles])


@router.post("/members", response_model=MembershipResponse, status_code=201)
async def add_org_member(
    body: MemberAddRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    record = await members.add_member(UnitType.ORGANIZATION, tenant.org_id, body.email, session)
    return _membership_response(record)


@router.delete("/members/{memberId}", status_code=204)
async def remove_org_member(
    memberId: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    await members.remove_member(UnitType.ORGANIZATION, tenant.org_id, memberId, session)


# ---------------------------------------------------------------------------
# Unit members
# ---------------------------------------------------------------------------


@router.get("/units/{unitId}/members", response_model=MemberListResponse)
async def list_unit_members(
    unitId: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    await get_unit_in_org(unitId, tenant, session)
    profiles = await members.list_members(UnitType.UNIT, unitId, session)
    return MemberListResponse(data=[member_response(p) for p in profiles])


@router.post("/units/{unitId}/members", response_model=MembershipResponse, status_code=201)
async def add_unit_member(
    unitId: uuid.UUID,
    body: MemberAddRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    await get_unit_in_org(unitId, tenant, session)
    record = await members.add_member(UnitType.UNIT, unitId, body.email, session)
    return _membership_response(record)


@router.delete("/units/{unitId}/members/{memberId}", status_code=204)
async def remove_unit_member(
    unitId: uuid.UUID,
    memberId: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    await get_unit_in_org(unitId, tenant, session)
    await members.remove_member(UnitType.UNIT, unitId, memberId, session)
