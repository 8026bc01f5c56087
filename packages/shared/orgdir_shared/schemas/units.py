"""Unit (sub-organization) schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import UnitState


class UnitCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=255)
    metadata: dict[str, str] = Field(default_factory=dict)
    parent_id: Optional[uuid.UUID] = Field(
        None, description="Parent unit; defaults to the organization's root"
    )


class UnitUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=255)
    metadata: Optional[dict[str, str]] = None


class ReparentRequest(BaseModel):
    """Move a unit under a new parent; null detaches it from the tree."""
    parent_id: Optional[uuid.UUID] = None


class UnitResponse(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    name: Optional[str] = None
    description: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)
    is_default: bool = False
    state: Optional[UnitState] = None
    created_at: datetime
    updated_at: datetime


class UnitListResponse(BaseModel):
    data: list[UnitResponse]


class UnitIDListResponse(BaseModel):
    data: list[uuid.UUID]
