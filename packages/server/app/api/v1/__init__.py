"""
API v1 Router

All org-scoped endpoints are prefixed with /orgs/{orgSlug}.
"""

from fastapi import APIRouter
from orgdir_shared.schemas.common import ErrorResponse
from . import members, recipients, slugs, units
from .organizations import router_global as orgs_global_router
from .organizations import router_scoped as orgs_scoped_router

router = APIRouter()

# Error shapes shared by every org-scoped route.
SCOPED_ERRORS = {
    404: {"model": ErrorResponse, "description": "Unknown org slug or entity"},
    500: {"model": ErrorResponse, "description": "Tenant storage strategy not supported"},
}

# Organization routes (non-org-scoped: list, create)
router.include_router(orgs_global_router)

# Organization routes (org-scoped: get, update, delete)
router.include_router(orgs_scoped_router, prefix="/orgs/{orgSlug}", tags=["Organizations"], responses=SCOPED_ERRORS)

# Slug availability and history
router.include_router(slugs.router, prefix="/slugs", tags=["Slugs"])

# Include resource routers
router.include_router(units.router, prefix="/orgs/{orgSlug}", tags=["Units"], responses=SCOPED_ERRORS)
router.include_router(members.router, prefix="/orgs/{orgSlug}", tags=["Members"], responses=SCOPED_ERRORS)
router.include_router(recipients.router, prefix="/orgs/{orgSlug}", tags=["Recipients"], responses=SCOPED_ERRORS)


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/orgs",
            "/slugs/{slug}/status",
            "/slugs/{slug}/history",
            "/orgs/{orgSlug}/units",
            "/orgs/{orgSlug}/members",
            "/orgs/{orgSlug}/recipients",
        ],
    }
