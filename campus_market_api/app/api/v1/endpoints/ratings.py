"""
API endpoints for exchange ratings.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from campus_market_api.app.core.errors import to_http_exception
from campus_market_api.app.core.security import get_current_user
from campus_market_api.app.schemas.rating import RatingCreate, RatingRead
from campus_market_api.app.services.rating_service import RatingService


router = APIRouter()


@router.post("/", response_model=RatingRead, status_code=status.HTTP_201_CREATED)
async def create_rating(data: RatingCreate, current_user: dict = Depends(get_current_user)) -> RatingRead:
    """Rate the other party of a completed match.

    Updates the rated user's trust score.  Each participant may rate a
    match once.
    """
    try:
        return await RatingService.create_rating(data, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/user/{user_id}", response_model=List[RatingRead])
async def list_user_ratings(
    user_id: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> List[RatingRead]:
    return await RatingService.list_by_user(user_id, limit=limit, offset=offset)


@router.get("/match/{match_id}", response_model=List[RatingRead])
async def list_match_ratings(match_id: str, current_user: dict = Depends(get_current_user)) -> List[RatingRead]:
    try:
        return await RatingService.list_by_match(match_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.post("/{rating_id}/flag", response_model=RatingRead)
async def flag_rating(rating_id: str, current_user: dict = Depends(get_current_user)) -> RatingRead:
    try:
        return await RatingService.flag_rating(rating_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)
