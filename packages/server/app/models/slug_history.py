"""Slug history: append-only record of slug → organization bindings."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class SlugHistory(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "slug_history"
    __table_args__ = (
        sa.Index(
            "uq_slug_history_active_slug",
            "slug",
            unique=True,
            postgresql_where=sa.text("ended_at IS NULL"),
            sqlite_where=sa.text("ended_at IS NULL"),
        ),
        sa.Index(
            "uq_slug_history_active_org",
            "org_id",
            unique=True,
            postgresql_where=sa.text("ended_at IS NULL"),
            sqlite_where=sa.text("ended_at IS NULL"),
        ),
    )

    slug: str = Field(nullable=False, index=True, max_length=255)
    # No foreign key: history outlives the organization.
    org_id: uuid.UUID = Field(nullable=False)
    ended_at: Optional[datetime] = Field(
        default=None, nullable=True, sa_type=sa.DateTime(timezone=True)
    )
