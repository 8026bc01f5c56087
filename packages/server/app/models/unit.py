"""Unit model and the parent/child edge table."""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import DescribedMixin, TimestampMixin, UUIDMixin


class Unit(UUIDMixin, TimestampMixin, DescribedMixin, SQLModel, table=True):
    __tablename__ = "units"
    __table_args__ = (
        # Exactly one default unit per organization.
        sa.Index(
            "uq_units_default_per_org",
            "org_id",
            unique=True,
            postgresql_where=sa.text("is_default"),
            sqlite_where=sa.text("is_default"),
        ),
    )

    org_id: uuid.UUID = Field(
        foreign_key="organizations.id", ondelete="CASCADE", nullable=False, index=True
    )
    meta: Optional[bytes] = Field(
        default=None, sa_column=sa.Column("metadata", sa.LargeBinary, nullable=True)
    )
    # The unit that stands for the organization itself; its id equals org_id.
    is_default: bool = Field(default=False, nullable=False)


class ParentChild(SQLModel, table=True):
    __tablename__ = "parent_child"

    # One edge per child: re-parenting replaces the row.
    child_id: uuid.UUID = Field(
        foreign_key="units.id", ondelete="CASCADE", primary_key=True
    )
    parent_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="units.id", ondelete="SET NULL", nullable=True, index=True
    )
    org_id: uuid.UUID = Field(
        foreign_key="organizations.id", ondelete="CASCADE", nullable=False
    )
