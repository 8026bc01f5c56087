"""
Tenant bindings: persisted storage strategy per organization.

Only this module writes the tenants table; request-time routing reads it
through app.services.routing.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound, ValidationFailed, storage_errors
from app.models.tenant import Tenant
from orgdir_shared.schemas.common import DbStrategy

log = structlog.get_logger()


def _coerce_strategy(strategy: DbStrategy | str) -> DbStrategy:
    try:
        return DbStrategy(strategy)
    except ValueError:
        raise ValidationFailed(
            f"Unknown database strategy '{strategy}'",
            {"entity": "tenants", "key": str(strategy)},
        )


async def get_binding(org_id: uuid.UUID, session: AsyncSession) -> Tenant:
    with storage_errors("get tenant by id", "tenants", org_id):
        tenant = await session.get(Tenant, org_id)
    if tenant is None:
        raise NotFound("Tenant not found", {"entity": "tenants", "key": str(org_id)})
    return tenant


async def create_binding(
    org_id: uuid.UUID,
    owner_id: Optional[uuid.UUID],
    session: AsyncSession,
    strategy: DbStrategy | str = DbStrategy.SHARED,
) -> Tenant:
    tenant = Tenant(
        id=org_id,
        db_strategy=_coerce_strategy(strategy).value,
        owner_id=owner_id,
    )
    with storage_errors("create tenant", "tenants", org_id):
        session.add(tenant)
        await session.flush()

    log.info("tenant.created", tenant_id=str(org_id), db_strategy=tenant.db_strategy)
    return tenant


async def update_strategy(
    org_id: uuid.UUID, strategy: DbStrategy | str, session: AsyncSession
) -> Tenant:
    """Migrate a tenant to another storage strategy."""
    target = _coerce_strategy(strategy)
    tenant = await get_binding(org_id, session)
    if tenant.db_strategy == target.value:
        return tenant

    previous = tenant.db_strategy
    tenant.db_strategy = target.value
    with storage_errors("update tenant", "tenants", org_id):
        session.add(tenant)
        await session.flush()

    log.info(
        "tenant.strategy_changed",
        tenant_id=str(org_id),
        previous=previous,
        db_strategy=tenant.db_strategy,
    )
    return tenant
