"""Organization (tenant root) model."""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import DescribedMixin, TimestampMixin, UUIDMixin


class Organization(UUIDMixin, TimestampMixin, DescribedMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    owner_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="users.id", ondelete="SET NULL", nullable=True
    )
    # Opaque to the core; stored and returned as-is.
    meta: Optional[bytes] = Field(
        default=None, sa_column=sa.Column("metadata", sa.LargeBinary, nullable=True)
    )
    # Current slug; slug_history is the authority for resolution.
    slug: str = Field(unique=True, nullable=False, index=True, max_length=255)
