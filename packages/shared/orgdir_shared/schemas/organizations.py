"""
Organization and slug schemas shared between the server and its clients.

Covers: org create/update requests, org responses, slug availability
status and slug history.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import SLUG_MAX_LENGTH, SLUG_PATTERN, DbStrategy


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Organization display name")
    description: str = Field(default="", max_length=255)
    slug: str = Field(
        ...,
        min_length=1,
        max_length=SLUG_MAX_LENGTH,
        pattern=SLUG_PATTERN,
        description="URL-safe org identifier",
    )
    metadata: dict[str, str] = Field(default_factory=dict)
    db_strategy: DbStrategy = DbStrategy.SHARED


class OrgUpdateRequest(BaseModel):
    """Partial update. Omitted fields are left unchanged; "" is a value."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=255)
    metadata: Optional[dict[str, str]] = None
    slug: Optional[str] = Field(
        None, min_length=1, max_length=SLUG_MAX_LENGTH, pattern=SLUG_PATTERN
    )
    db_strategy: Optional[DbStrategy] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgResponse(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    description: Optional[str] = None
    slug: str
    owner_id: Optional[uuid.UUID] = None
    metadata: dict[str, str] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class OrgListResponse(BaseModel):
    data: list[OrgResponse]


class SlugStatusResponse(BaseModel):
    available: bool
    org_id: Optional[uuid.UUID] = None


class SlugHistoryItem(BaseModel):
    slug: str
    org_id: uuid.UUID
    org_name: Optional[str] = None
    created_at: datetime
    ended_at: Optional[datetime] = None


class SlugHistoryResponse(BaseModel):
    current: SlugStatusResponse
    history: list[SlugHistoryItem]
