"""API router aggregator.

All endpoint routers are mounted here under /api.
"""

from fastapi import APIRouter

from guestlist.api.routes import auth, guests

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(guests.router, prefix="/guests", tags=["guests"])
