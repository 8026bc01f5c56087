"""Tenant storage binding, one row per organization."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel


class Tenant(SQLModel, table=True):
    __tablename__ = "tenants"

    id: uuid.UUID = Field(
        foreign_key="organizations.id", ondelete="CASCADE", primary_key=True
    )
    db_strategy: str = Field(nullable=False, default="shared")  # shared | isolated
    owner_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="users.id", ondelete="SET NULL", nullable=True
    )
