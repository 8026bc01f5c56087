"""
Hierarchy tests: organizations, units, the parent/child tree and deletion.
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func
from sqlmodel import select

from app.core.database import get_session_context
from app.core.errors import Conflict, InvariantViolation, NotFound, UpstreamFailure
from app.models.membership import UnitMember
from app.models.organization import Organization
from app.models.tenant import Tenant
from app.models.unit import ParentChild, Unit
from app.services import hierarchy, members, slugs, tenants
from orgdir_shared.schemas.common import UnitState, UnitType


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Organization creation
# ---------------------------------------------------------------------------

class TestCreateOrganization:
    async def test_alpha_scenario(self, session, make_org, make_unit):
        alpha = await make_org("alpha-slug", name="alpha")

        default_unit = await hierarchy.get_unit(alpha.id, session)
        assert default_unit.id == alpha.id
        assert default_unit.is_default is True
        assert default_unit.org_id == alpha.id

        assert await hierarchy.list_children(alpha.id, session) == []

        eng = await make_unit("eng", alpha.id)
        assert await hierarchy.list_child_ids(alpha.id, session) == [eng.id]

    async def test_creates_tenant_edge_and_slug(self, session, make_user):
        owner = await make_user("owner@example.com")
        org = await hierarchy.create_organization(
            "Alpha", "first org", "alpha-slug", owner.id, b'{"k":"v"}', session
        )

        tenant = await tenants.get_binding(org.id, session)
        assert tenant.db_strategy == "shared"
        assert tenant.owner_id == owner.id

        edge = await session.get(ParentChild, org.id)
        assert edge is not None
        assert edge.parent_id is None
        assert edge.org_id == org.id

        assert await slugs.resolve("alpha-slug", session) == org.id
        assert org.meta == b'{"k":"v"}'
        assert org.owner_id == owner.id

    async def test_default_unit_mirrors_org_fields(self, session):
        org = await hierarchy.create_organization("Alpha", "desc", "alpha-slug", None, b"m", session)
        default_unit = await hierarchy.get_unit(org.id, session)
        assert (default_unit.name, default_unit.description, default_unit.meta) == ("Alpha", "desc", b"m")

    async def test_unknown_owner_is_not_found(self, session):
        with pytest.raises(NotFound):
            await hierarchy.create_organization("Alpha", "", "alpha-slug", uuid.uuid4(), None, session)
        assert await _count(session, Organization) == 0

    async def test_empty_name_is_stored_as_null(self, session):
        org = await hierarchy.create_organization("", "", "nameless", None, None, session)
        assert org.name is None

    async def test_taken_slug_leaves_nothing_behind(self, session_factory):
        async with get_session_context(session_factory) as s:
            await hierarchy.create_organization("alpha", "", "alpha-slug", None, None, s)

        with pytest.raises(Conflict):
            async with get_session_context(session_factory) as s:
                await hierarchy.create_organization("dup", "", "alpha-slug", None, None, s)

        async with get_session_context(session_factory) as s:
            assert await _count(s, Organization) == 1
            assert await _count(s, Unit) == 1
            assert await _count(s, Tenant) == 1
            assert await _count(s, ParentChild) == 1

    async def test_failure_midway_rolls_back(self, session_factory, monkeypatch):
        async def _broken_binding(*args, **kwargs):
            raise UpstreamFailure("tenant store unavailable")

        monkeypatch.setattr(tenants, "create_binding", _broken_binding)

        with pytest.raises(UpstreamFailure):
            async with get_session_context(session_factory) as s:
                await hierarchy.create_organization("alpha", "", "alpha-slug", None, None, s)

        async with get_session_context(session_factory) as s:
            assert await _count(s, Organization) == 0
            assert await _count(s, Unit) == 0
            assert (await slugs.status("alpha-slug", s)).available is True


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

class TestGetById:
    async def test_kind_must_match(self, session, make_org, make_unit):
        org = await make_org("alpha-slug")
        unit = await make_unit("eng", org.id)

        assert (await hierarchy.get_by_id(org.id, UnitType.ORGANIZATION, session)).id == org.id
        assert (await hierarchy.get_by_id(unit.id, UnitType.UNIT, session)).id == unit.id

        with pytest.raises(NotFound):
            await hierarchy.get_by_id(unit.id, UnitType.ORGANIZATION, session)
        # The default unit stands for the organization, not for a unit.
        with pytest.raises(NotFound):
            await hierarchy.get_by_id(org.id, UnitType.UNIT, session)

    async def test_unknown_id(self, session):
        with pytest.raises(NotFound):
            await hierarchy.get_by_id(uuid.uuid4(), UnitType.UNIT, session)

    async def test_get_organization_by_slug(self, session, make_org):
        org = await make_org("alpha-slug")
        assert (await hierarchy.get_organization_by_slug("alpha-slug", session)).id == org.id


async def test_list_organizations(session, make_org):
    a = await make_org("a-slug")
    b = await make_org("b-slug")
    assert [o.id for o in await hierarchy.list_organizations(session)] == [a.id, b.id]


async def test_list_organizations_of_member(session, make_org, make_unit, make_user):
    alice = await make_user("alice@example.com")
    a = await make_org("a-slug")
    await make_org("b-slug")
    unit = await make_unit("eng", a.id)

    await members.add_member(UnitType.UNIT, unit.id, "alice@example.com", session)

    orgs = await hierarchy.list_organizations_of_member(alice.id, session)
    assert [o.id for o in orgs] == [a.id]


# ---------------------------------------------------------------------------
# Units and children
# ---------------------------------------------------------------------------

class TestUnits:
    async def test_unit_inherits_parent_org(self, session, make_org, make_unit):
        org = await make_org("alpha-slug")
        eng = await make_unit("eng", org.id)
        backend = await make_unit("backend", eng.id)

        assert backend.org_id == org.id
        assert await hierarchy.list_child_ids(eng.id, session) == [backend.id]
        assert await hierarchy.list_child_ids(org.id, session) == [eng.id]

    async def test_unknown_parent(self, session):
        with pytest.raises(NotFound):
            await hierarchy.create_unit("eng", "", None, uuid.uuid4(), session)

    async def test_children_in_creation_order(self, session, make_org, make_unit):
        org = await make_org("alpha-slug")
        created = [await make_unit(name, org.id) for name in ("one", "two", "three")]
        children = await hierarchy.list_children(org.id, session)
        assert [c.id for c in children] == [u.id for u in created]

    async def test_leaf_has_no_children(self, session, make_org, make_unit):
        org = await make_org("alpha-slug")
        leaf = await make_unit("leaf", org.id)
        assert await hierarchy.list_children(leaf.id, session) == []
        assert await hierarchy.list_child_ids(leaf.id, session) == []


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

class TestUpdate:
    async def test_partial_update_keeps_unset_fields(self, session, make_org, make_unit):
        org = await make_org("alpha-slug")
        unit = await hierarchy.create_unit("eng", "engineering", b"x", org.id, session)

        updated = await hierarchy.update(unit.id, UnitType.UNIT, session, description="")

        assert updated.name == "eng"
        assert updated.description == ""
        assert updated.meta == b"x"

    async def test_org_update_mirrors_default_unit(self, session, make_org):
        org = await make_org("alpha-slug", name="Alpha")
        await hierarchy.update(org.id, UnitType.ORGANIZATION, session, name="Alpha Corp", metadata=b"{}")

        default_unit = await hierarchy.get_unit(org.id, session)
        assert default_unit.name == "Alpha Corp"
        assert default_unit.meta == b"{}"

    async def test_update_wrong_kind(self, session, make_org):
        org = await make_org("alpha-slug")
        with pytest.raises(NotFound):
            await hierarchy.update(org.id, UnitType.UNIT, session, name="x")


# ---------------------------------------------------------------------------
# Reparent and state
# ---------------------------------------------------------------------------

class TestReparent:
    async def test_move_between_parents(self, session, make_org, make_unit):
        org = await make_org("alpha-slug")
        eng = await make_unit("eng", org.id)
        ops = await make_unit("ops", org.id)
        team = await make_unit("team", eng.id)

        await hierarchy.reparent(team.id, ops.id, session)

        assert await hierarchy.list_child_ids(eng.id, session) == []
        assert await hierarchy.list_child_ids(ops.id, session) == [team.id]
        assert await hierarchy.unit_state(team.id, session) == UnitState.ATTACHED

    async def test_detach_and_reattach(self, session, make_org, make_unit):
        org = await make_org("alpha-slug")
        eng = await make_unit("eng", org.id)
        team = await make_unit("team", eng.id)

        await hierarchy.reparent(eng.id, None, session)
        assert await hierarchy.unit_state(eng.id, session) == UnitState.DETACHED
        # Descendants of a detached unit are unreachable from the root too.
        assert await hierarchy.unit_state(team.id, session) == UnitState.DETACHED
        assert await hierarchy.list_child_ids(org.id, session) == []

        await hierarchy.reparent(eng.id, org.id, session)
        assert await hierarchy.unit_state(eng.id, session) == UnitState.ATTACHED
        assert await hierarchy.list_child_ids(org.id, session) == [eng.id]

    async def test_default_unit_cannot_move(self, session, make_org):
        a = await make_org("a-slug")
        with pytest.raises(InvariantViolation):
            await hierarchy.reparent(a.id, None, session)

    async def test_cross_org_parent(self, session, make_org, make_unit):
        a = await make_org("a-slug")
        b = await make_org("b-slug")
        unit = await make_unit("eng", a.id)
        with pytest.raises(InvariantViolation):
            await hierarchy.reparent(unit.id, b.id, session)

    async def test_cycle_into_descendant(self, session, make_org, make_unit):
        org = await make_org("alpha-slug")
        eng = await make_unit("eng", org.id)
        team = await make_unit("team", eng.id)
        squad = await make_unit("squad", team.id)

        with pytest.raises(InvariantViolation):
            await hierarchy.reparent(eng.id, squad.id, session)
        with pytest.raises(InvariantViolation):
            await hierarchy.reparent(eng.id, eng.id, session)

        assert await hierarchy.list_child_ids(org.id, session) == [eng.id]

    async def test_unknown_parent(self, session, make_org, make_unit):
        org = await make_org("alpha-slug")
        eng = await make_unit("eng", org.id)
        with pytest.raises(NotFound):
            await hierarchy.reparent(eng.id, uuid.uuid4(), session)

    async def test_default_unit_state(self, session, make_org):
        org = await make_org("alpha-slug")
        assert await hierarchy.unit_state(org.id, session) == UnitState.ROOT_ATTACHED

    async def test_reachable_units_are_attached_not_root(self, session, make_org, make_unit):
        org = await make_org("alpha-slug")
        eng = await make_unit("eng", org.id)
        team = await make_unit("team", eng.id)

        assert await hierarchy.unit_state(eng.id, session) == UnitState.ATTACHED
        assert await hierarchy.unit_state(team.id, session) == UnitState.ATTACHED
        assert await hierarchy.unit_state(org.id, session) == UnitState.ROOT_ATTACHED


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

class TestDelete:
    async def test_delete_unit_but_not_default(self, session, make_org, make_unit):
        alpha = await make_org("alpha-slug")
        eng = await make_unit("eng", alpha.id)

        await hierarchy.delete(eng.id, UnitType.UNIT, session)
        with pytest.raises(NotFound):
            await hierarchy.get_by_id(eng.id, UnitType.UNIT, session)

        with pytest.raises(InvariantViolation):
            await hierarchy.delete(alpha.id, UnitType.UNIT, session)
        assert (await hierarchy.get_unit(alpha.id, session)).is_default is True

    async def test_deleting_parent_detaches_children(self, session, make_org, make_unit):
        org = await make_org("alpha-slug")
        eng = await make_unit("eng", org.id)
        team = await make_unit("team", eng.id)

        await hierarchy.delete(eng.id, UnitType.UNIT, session)

        assert (await hierarchy.get_unit(team.id, session)).id == team.id
        assert await hierarchy.unit_state(team.id, session) == UnitState.DETACHED

    async def test_delete_unknown_unit(self, session):
        with pytest.raises(NotFound):
            await hierarchy.delete(uuid.uuid4(), UnitType.UNIT, session)

    async def test_delete_org_cascades_and_frees_slug(self, session, make_org, make_unit, make_user):
        await make_user("alice@example.com")
        org = await make_org("alpha-slug")
        eng = await make_unit("eng", org.id)
        await members.add_member(UnitType.UNIT, eng.id, "alice@example.com", session)

        await hierarchy.delete(org.id, UnitType.ORGANIZATION, session)

        assert await _count(session, Organization) == 0
        assert await _count(session, Unit) == 0
        assert await _count(session, ParentChild) == 0
        assert await _count(session, UnitMember) == 0
        assert await _count(session, Tenant) == 0
        assert (await slugs.status("alpha-slug", session)).available is True
        assert len(await slugs.history("alpha-slug", session)) == 1
