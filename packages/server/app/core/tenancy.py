"""
Tenant context for org-scoped routes.

Every request under /orgs/{orgSlug} resolves the slug to an organization
and routes it to its storage binding before any handler code runs.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.errors import ValidationFailed
from app.services import routing, slugs
from app.services.routing import TenantBinding

log = structlog.get_logger()


@dataclass(frozen=True)
class TenantContext:
    org_id: uuid.UUID
    org_slug: str
    binding: TenantBinding


async def resolve_tenant(org_slug: str, session: AsyncSession) -> TenantContext:
    if not org_slug:
        raise ValidationFailed("Org slug is required", {"entity": "slug"})

    org_id = await slugs.resolve(org_slug, session)
    binding = await routing.binding_for(org_id, session)

    structlog.contextvars.bind_contextvars(org_id=str(org_id), org_slug=org_slug)
    return TenantContext(org_id=org_id, org_slug=org_slug, binding=binding)


async def get_tenant_context(
    orgSlug: str,
    session: AsyncSession = Depends(get_session),
) -> TenantContext:
    """FastAPI dependency: slug → organization → tenant binding."""
    return await resolve_tenant(orgSlug, session)
