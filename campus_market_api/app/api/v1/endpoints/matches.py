"""
API endpoints for matches.

Matches are created from ``POST /listings/{id}/interest`` and
``POST /requests/{id}/offer``.  The routes here let the two
participants follow the match through its lifecycle.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from campus_market_api.app.core.errors import to_http_exception
from campus_market_api.app.core.security import get_current_user
from campus_market_api.app.schemas.match import MatchRead, MatchStatus, MatchUpdate, MeetingSchedule
from campus_market_api.app.services.match_service import MatchService


router = APIRouter()


@router.get("/", response_model=List[MatchRead])
async def list_my_matches(
    status_filter: Optional[MatchStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
) -> List[MatchRead]:
    return await MatchService.list_for_user(current_user, status=status_filter, limit=limit, offset=offset)


@router.get("/{match_id}", response_model=MatchRead)
async def get_match(match_id: str, current_user: dict = Depends(get_current_user)) -> MatchRead:
    try:
        return await MatchService.get_match(match_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.patch("/{match_id}", response_model=MatchRead)
async def update_match(
    match_id: str,
    data: MatchUpdate,
    current_user: dict = Depends(get_current_user),
) -> MatchRead:
    try:
        return await MatchService.update_match(match_id, data, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.post("/{match_id}/schedule", response_model=MatchRead)
async def schedule_meeting(
    match_id: str,
    data: MeetingSchedule,
    current_user: dict = Depends(get_current_user),
) -> MatchRead:
    """Suggest a meeting point; posts a system message in the chat."""
    try:
        return await MatchService.schedule_meeting(match_id, data, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.post("/{match_id}/complete", response_model=MatchRead)
async def complete_match(match_id: str, current_user: dict = Depends(get_current_user)) -> MatchRead:
    try:
        return await MatchService.complete_match(match_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.post("/{match_id}/cancel", response_model=MatchRead)
async def cancel_match(match_id: str, current_user: dict = Depends(get_current_user)) -> MatchRead:
    try:
        return await MatchService.cancel_match(match_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)
