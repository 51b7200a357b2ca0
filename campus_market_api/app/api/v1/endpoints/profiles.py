"""
Profile endpoints.

Profiles are public within the marketplace: any signed‑in student can
look up the seller of a listing or the partner of a match.  Only the
owner may edit a profile, through ``/profiles/me``.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends, Query

from campus_market_api.app.core.errors import to_http_exception
from campus_market_api.app.core.security import get_current_user
from campus_market_api.app.schemas.profile import ProfileRead, ProfileUpdate
from campus_market_api.app.services.profile_service import ProfileService


router = APIRouter()


@router.get("/", response_model=List[ProfileRead])
async def list_profiles(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
) -> List[ProfileRead]:
    return await ProfileService.list_profiles(limit=limit, offset=offset)


@router.get("/by-ids", response_model=Dict[str, ProfileRead])
async def get_profiles_by_ids(
    ids: List[str] = Query(..., description="Profile ids; repeat the parameter for each id"),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, ProfileRead]:
    """Batch lookup used to render names next to listings and chats."""
    return await ProfileService.get_profiles_by_ids(ids)


@router.get("/me", response_model=ProfileRead)
async def read_me(current_user: dict = Depends(get_current_user)) -> ProfileRead:
    try:
        return await ProfileService.get_profile(current_user["user_id"])
    except ValueError as e:
        raise to_http_exception(e)


@router.put("/me", response_model=ProfileRead)
async def update_me(
    data: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
) -> ProfileRead:
    try:
        return await ProfileService.update_profile(current_user["user_id"], data)
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/{profile_id}", response_model=ProfileRead)
async def read_profile(profile_id: str, current_user: dict = Depends(get_current_user)) -> ProfileRead:
    try:
        return await ProfileService.get_profile(profile_id)
    except ValueError as e:
        raise to_http_exception(e)
