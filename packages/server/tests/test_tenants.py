"""
Tenant binding and routing tests.
"""

from __future__ import annotations

import uuid

import pytest

from app.core.errors import NotFound, UnsupportedConfiguration, ValidationFailed
from app.core.tenancy import resolve_tenant
from app.services import routing, tenants
from orgdir_shared.schemas.common import DbStrategy


async def test_new_org_routes_to_shared_pool(session, make_org):
    org = await make_org("alpha-slug")

    binding = await routing.binding_for(org.id, session)

    assert binding.org_id == org.id
    assert binding.strategy == DbStrategy.SHARED
    assert binding.connection_descriptor == routing.shared_pool_descriptor()


def test_shared_pool_descriptor_hides_password(monkeypatch):
    from app.core.config import Settings

    settings = Settings(database_url="postgresql+asyncpg://svc:s3cret@db:5432/directory")
    monkeypatch.setattr(routing, "get_settings", lambda: settings)

    descriptor = routing.shared_pool_descriptor()
    assert "s3cret" not in descriptor
    assert descriptor == "postgresql+asyncpg://svc:***@db:5432/directory"


async def test_isolated_strategy_is_unsupported(session, make_org):
    org = await make_org("alpha-slug")
    await tenants.update_strategy(org.id, DbStrategy.ISOLATED, session)

    with pytest.raises(UnsupportedConfiguration):
        await routing.binding_for(org.id, session)


async def test_routing_follows_migration_back(session, make_org):
    org = await make_org("alpha-slug")
    await tenants.update_strategy(org.id, "isolated", session)
    await tenants.update_strategy(org.id, "shared", session)

    binding = await routing.binding_for(org.id, session)
    assert binding.strategy == DbStrategy.SHARED


async def test_unknown_stored_strategy_is_unsupported(session, make_org):
    org = await make_org("alpha-slug")
    tenant = await tenants.get_binding(org.id, session)
    tenant.db_strategy = "sharded"
    session.add(tenant)
    await session.flush()

    with pytest.raises(UnsupportedConfiguration):
        await routing.binding_for(org.id, session)


async def test_missing_binding(session):
    with pytest.raises(NotFound):
        await routing.binding_for(uuid.uuid4(), session)


async def test_update_rejects_unknown_strategy(session, make_org):
    org = await make_org("alpha-slug")
    with pytest.raises(ValidationFailed):
        await tenants.update_strategy(org.id, "sharded", session)


async def test_org_created_with_isolated_strategy(session):
    from app.services import hierarchy

    org = await hierarchy.create_organization(
        "Iso", "", "iso-slug", None, None, session, db_strategy=DbStrategy.ISOLATED
    )
    tenant = await tenants.get_binding(org.id, session)
    assert tenant.db_strategy == "isolated"


# ---------------------------------------------------------------------------
# Request-time tenant context
# ---------------------------------------------------------------------------

async def test_resolve_tenant(session, make_org):
    org = await make_org("alpha-slug")
    ctx = await resolve_tenant("alpha-slug", session)
    assert ctx.org_id == org.id
    assert ctx.org_slug == "alpha-slug"
    assert ctx.binding.strategy == DbStrategy.SHARED


async def test_resolve_tenant_empty_slug(session):
    with pytest.raises(ValidationFailed):
        await resolve_tenant("", session)


async def test_resolve_tenant_unknown_slug(session):
    with pytest.raises(NotFound):
        await resolve_tenant("ghost", session)
