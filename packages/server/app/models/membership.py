"""Unit membership (join table). Org membership lives on the default unit."""

import uuid

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin


class UnitMember(CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "unit_members"

    unit_id: uuid.UUID = Field(
        foreign_key="units.id", ondelete="CASCADE", primary_key=True
    )
    member_id: uuid.UUID = Field(primary_key=True)
