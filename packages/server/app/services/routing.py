"""
Tenant router: picks the storage binding for a resolved organization.

Read-only and uncached: every call reflects the persisted tenants row, so a
tenant migrated to another strategy is routed correctly on its next request.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import UnsupportedConfiguration
from app.services import tenants as tenant_store
from orgdir_shared.schemas.common import DbStrategy

log = structlog.get_logger()


@dataclass(frozen=True)
class TenantBinding:
    org_id: uuid.UUID
    strategy: DbStrategy
    connection_descriptor: str


def shared_pool_descriptor() -> str:
    """The shared pool's database URL with credentials masked."""
    return make_url(get_settings().database_url).render_as_string(hide_password=True)


async def binding_for(org_id: uuid.UUID, session: AsyncSession) -> TenantBinding:
    tenant = await tenant_store.get_binding(org_id, session)

    try:
        strategy = DbStrategy(tenant.db_strategy)
    except ValueError:
        strategy = None

    if strategy == DbStrategy.SHARED:
        return TenantBinding(
            org_id=org_id,
            strategy=strategy,
            connection_descriptor=shared_pool_descriptor(),
        )

    log.error(
        "tenant.unsupported_strategy",
        tenant_id=str(org_id),
        db_strategy=tenant.db_strategy,
    )
    raise UnsupportedConfiguration(
        "Tenant database strategy is not supported",
        {"entity": "tenants", "key": str(org_id), "strategy": tenant.db_strategy},
    )
