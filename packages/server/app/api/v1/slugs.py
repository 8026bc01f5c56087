"""
Slug endpoints: availability and the history of who held a slug.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.services import slugs
from orgdir_shared.schemas.organizations import (
    SlugHistoryItem,
    SlugHistoryResponse,
    SlugStatusResponse,
)

router = APIRouter()


@router.get("/{slug}/status", response_model=SlugStatusResponse)
async def get_slug_status(slug: str, session: AsyncSession = Depends(get_session)):
    status = await slugs.status(slug, session)
    return SlugStatusResponse(available=status.available, org_id=status.org_id)


@router.get("/{slug}/history", response_model=SlugHistoryResponse)
async def get_slug_history(slug: str, session: AsyncSession = Depends(get_session)):
    """Current status plus every past binding, most recent first."""
    status, entries = await slugs.status_with_history(slug, session)
    return SlugHistoryResponse(
        current=SlugStatusResponse(available=status.available, org_id=status.org_id),
        history=[
            SlugHistoryItem(
                slug=e.slug,
                org_id=e.org_id,
                org_name=e.org_name,
                created_at=e.created_at,
                ended_at=e.ended_at,
            )
            for e in entries
        ],
    )
