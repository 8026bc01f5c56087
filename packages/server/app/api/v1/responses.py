"""
Conversions between stored rows and API schemas.

The core stores metadata as opaque bytes; over HTTP it is a flat
string-to-string JSON object.
"""

from __future__ import annotations

import json
from typing import Optional

import structlog

from app.models.organization import Organization
from app.models.unit import Unit
from app.services.identity import MemberProfile
from orgdir_shared.schemas.common import UnitState
from orgdir_shared.schemas.members import MemberResponse
from orgdir_shared.schemas.organizations import OrgResponse
from orgdir_shared.schemas.units import UnitResponse

log = structlog.get_logger()


def encode_metadata(metadata: Optional[dict[str, str]]) -> Optional[bytes]:
    if metadata is None:
        return None
    return json.dumps(metadata, sort_keys=True).encode()


def decode_metadata(raw: Optional[bytes]) -> dict[str, str]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        log.warning("metadata.undecodable", size=len(raw))
        return {}
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items()}


def org_response(org: Organization) -> OrgResponse:
    return OrgResponse(
        id=org.id,
        name=org.name,
        description=org.description,
        slug=org.slug,
        owner_id=org.owner_id,
        metadata=decode_metadata(org.meta),
        created_at=org.created_at,
        updated_at=org.updated_at,
    )


def unit_response(unit: Unit, state: Optional[UnitState] = None) -> UnitResponse:
    return UnitResponse(
        id=unit.id,
        org_id=unit.org_id,
        name=unit.name,
        description=unit.description,
        metadata=decode_metadata(unit.meta),
        is_default=unit.is_default,
        state=state,
        created_at=unit.created_at,
        updated_at=unit.updated_at,
    )


def member_response(profile: MemberProfile) -> MemberResponse:
    return MemberResponse(
        id=profile.id,
        name=profile.name,
        username=profile.username,
        avatar_url=profile.avatar_url,
        email=profile.email,
    )
