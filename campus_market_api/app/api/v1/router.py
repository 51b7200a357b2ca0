"""
Top‑level router for version 1 of the API.

This router aggregates domain‑specific routers (auth, listings,
requests, matches, etc.) under a unified prefix.  When new endpoints
are added or when new domains are introduced, update this file to
include their routers.
"""

from fastapi import APIRouter

from .endpoints import (
    auth,
    profiles,
    listings,
    need_requests,
    matches,
    messages,
    ratings,
    notifications,
    uploads,
)

# Create a router for version 1 and include sub‑routers for each domain.
router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
router.include_router(listings.router, prefix="/listings", tags=["listings"])
router.include_router(need_requests.router, prefix="/requests", tags=["requests"])
router.include_router(matches.router, prefix="/matches", tags=["matches"])
# Chat routes live below /matches/{match_id}/messages.
router.include_router(messages.router, prefix="/matches", tags=["messages"])
router.include_router(ratings.router, prefix="/ratings", tags=["ratings"])
router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
router.include_router(uploads.router, prefix="/uploads", tags=["uploads"])
