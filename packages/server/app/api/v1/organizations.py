"""
Organization API endpoints.

GET    /api/v1/orgs              — List orgs (optionally those of one member)
POST   /api/v1/orgs              — Create a new org owned by the caller
GET    /api/v1/orgs/{orgSlug}    — Get org details
PATCH  /api/v1/orgs/{orgSlug}    — Update fields, change slug or storage strategy
DELETE /api/v1/orgs/{orgSlug}    — Delete the org; its slug becomes available
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.responses import encode_metadata, org_response
from app.core.auth import get_current_user_id
from app.core.config import get_settings
from app.core.database import get_session
from app.core.tenancy import TenantContext, get_tenant_context
from app.services import hierarchy, slugs, tenants
from orgdir_shared.schemas.common import UnitType
from orgdir_shared.schemas.organizations import (
    OrgCreateRequest,
    OrgListResponse,
    OrgResponse,
    OrgUpdateRequest,
)

log = structlog.get_logger()

# ---------------------------------------------------------------------------
# Non-org-scoped routes (no orgSlug in path)
# ---------------------------------------------------------------------------
router_global = APIRouter()


@router_global.get("/orgs", response_model=OrgListResponse, tags=["Organizations"])
async def list_orgs(
    member_id: Optional[uuid.UUID] = Query(None),
    session: AsyncSession = Depends(get_session),
):
    """List all orgs, or the orgs a member belongs to."""
    if member_id is not None:
        orgs = await hierarchy.list_organizations_of_member(member_id, session)
    else:
        orgs = await hierarchy.list_organizations(session)
    return OrgListResponse(data=[org_response(o) for o in orgs])


@router_global.post("/orgs", response_model=OrgResponse, status_code=201, tags=["Organizations"])
async def create_org(
    body: OrgCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The caller becomes its owner."""
    strategy = body.db_strategy
    if "db_strategy" not in body.model_fields_set:
        strategy = get_settings().default_db_strategy

    org = await hierarchy.create_organization(
        body.name,
        body.description,
        body.slug,
        user_id,
        encode_metadata(body.metadata),
        session,
        db_strategy=strategy,
    )
    return org_response(org)


# ---------------------------------------------------------------------------
# Org-scoped routes (orgSlug in path)
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.get("", response_model=OrgResponse, tags=["Organizations"])
async def get_org(
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    org = await hierarchy.get_by_id(tenant.org_id, UnitType.ORGANIZATION, session)
    return org_response(org)


@router_scoped.patch("", response_model=OrgResponse, tags=["Organizations"])
async def update_org(
    body: OrgUpdateRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    """Partial update. A new slug is rebound; the old one stays in history."""
    fields = body.model_dump(exclude_unset=True)

    changes = {}
    for key in ("name", "description"):
        if key in fields:
            changes[key] = fields[key] if fields[key] is not None else ""
    if "metadata" in fields:
        changes["metadata"] = encode_metadata(fields["metadata"])

    if changes:
        await hierarchy.update(tenant.org_id, UnitType.ORGANIZATION, session, **changes)
    if fields.get("slug"):
        await slugs.rebind(tenant.org_id, fields["slug"], session)
    if fields.get("db_strategy"):
        await tenants.update_strategy(tenant.org_id, fields["db_strategy"], session)

    org = await hierarchy.get_by_id(tenant.org_id, UnitType.ORGANIZATION, session)
    return org_response(org)


@router_scoped.delete("", status_code=204, tags=["Organizations"])
async def delete_org(
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    """Delete the org with all of its units and memberships."""
    await hierarchy.delete(tenant.org_id, UnitType.ORGANIZATION, session)
