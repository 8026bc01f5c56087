"""
Recipient endpoint for the notification service.

POST /api/v1/orgs/{orgSlug}/recipients: flatten this org and its units to member ids
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.tenancy import TenantContext, get_tenant_context
from app.services import recipients
from orgdir_shared.schemas.members import RecipientsRequest, RecipientsResponse

router = APIRouter()


@router.post("/recipients", response_model=RecipientsResponse)
async def resolve_recipients(
    body: RecipientsRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
):
    """Distinct member ids within this org; an empty body resolves its own members."""
    if not body.org_ids and not body.unit_ids:
        ids = await recipients.get_org_recipients(tenant.org_id, session)
    else:
        ids = await recipients.get_recipients(
            body.org_ids, body.unit_ids, session, within_org=tenant.org_id
        )
    return RecipientsResponse(data=ids)
