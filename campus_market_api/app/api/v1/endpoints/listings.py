"""
API endpoints for listings.

Browsing defaults to available items; ``status`` may be passed to see
reserved or sold ones, or ``status=all`` for every listing.  Creating,
editing and deleting require authentication, and edits are limited to
the seller.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from campus_market_api.app.core.errors import to_http_exception
from campus_market_api.app.core.security import get_current_user
from campus_market_api.app.schemas.common import CampusLocation, Category
from campus_market_api.app.schemas.listing import (
    ListingCreate,
    ListingRead,
    ListingStatusFilter,
    ListingUpdate,
)
from campus_market_api.app.schemas.match import MatchRead
from campus_market_api.app.services.listing_service import ListingService
from campus_market_api.app.services.match_service import MatchService


router = APIRouter()


@router.get("/", response_model=List[ListingRead])
async def list_listings(
    status_filter: ListingStatusFilter = Query("available", alias="status", description="\"all\" disables the filter"),
    category: Optional[Category] = Query(None),
    location: Optional[CampusLocation] = Query(None),
    q: Optional[str] = Query(None, max_length=100, description="Search title and description"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> List[ListingRead]:
    """Browse listings, newest first."""
    return await ListingService.list_listings(
        status=None if status_filter == "all" else status_filter,
        category=category,
        location=location,
        q=q,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=ListingRead, status_code=status.HTTP_201_CREATED)
async def create_listing(
    data: ListingCreate,
    current_user: dict = Depends(get_current_user),
) -> ListingRead:
    try:
        return await ListingService.create_listing(data, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/mine", response_model=List[ListingRead])
async def list_my_listings(current_user: dict = Depends(get_current_user)) -> List[ListingRead]:
    """All listings of the caller in every status."""
    return await ListingService.list_listings(status=None, seller_id=current_user["user_id"], limit=500)


@router.get("/{listing_id}", response_model=ListingRead)
async def get_listing(listing_id: str) -> ListingRead:
    try:
        return await ListingService.get_listing(listing_id)
    except ValueError as e:
        raise to_http_exception(e)


@router.patch("/{listing_id}", response_model=ListingRead)
async def update_listing(
    listing_id: str,
    data: ListingUpdate,
    current_user: dict = Depends(get_current_user),
) -> ListingRead:
    try:
        return await ListingService.update_listing(listing_id, data, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.delete("/{listing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_listing(listing_id: str, current_user: dict = Depends(get_current_user)) -> Response:
    try:
        await ListingService.delete_listing(listing_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{listing_id}/interest", response_model=MatchRead, status_code=status.HTTP_201_CREATED)
async def express_interest(listing_id: str, current_user: dict = Depends(get_current_user)) -> MatchRead:
    """Show interest in a listing; creates a match with the seller."""
    try:
        return await MatchService.express_interest(listing_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)
