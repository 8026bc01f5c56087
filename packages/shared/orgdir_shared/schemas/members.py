"""Membership and recipient schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class MemberAddRequest(BaseModel):
    """Add a member by contact address; resolved to a user identity server-side."""
    email: EmailStr


class MembershipResponse(BaseModel):
    unit_id: uuid.UUID
    member_id: uuid.UUID
    created_at: Optional[datetime] = None


class MemberResponse(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[str] = None


class MemberListResponse(BaseModel):
    data: List[MemberResponse]


class RecipientsRequest(BaseModel):
    org_ids: List[uuid.UUID] = Field(default_factory=list)
    unit_ids: List[uuid.UUID] = Field(default_factory=list)


class RecipientsResponse(BaseModel):
    data: List[uuid.UUID]
