"""
API endpoints for need requests (want‑ads).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from campus_market_api.app.core.errors import to_http_exception
from campus_market_api.app.core.security import get_current_user
from campus_market_api.app.schemas.common import CampusLocation, Category
from campus_market_api.app.schemas.match import MatchRead
from campus_market_api.app.schemas.need_request import (
    NeedRequestCreate,
    NeedRequestRead,
    NeedRequestUpdate,
    NeedStatusFilter,
)
from campus_market_api.app.services.match_service import MatchService
from campus_market_api.app.services.need_request_service import NeedRequestService


router = APIRouter()


@router.get("/", response_model=List[NeedRequestRead])
async def list_requests(
    status_filter: NeedStatusFilter = Query("open", alias="status", description="\"all\" disables the filter"),
    category: Optional[Category] = Query(None),
    location: Optional[CampusLocation] = Query(None, description="Preferred meeting location"),
    q: Optional[str] = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> List[NeedRequestRead]:
    return await NeedRequestService.list_requests(
        status=None if status_filter == "all" else status_filter,
        category=category,
        location=location,
        q=q,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=NeedRequestRead, status_code=status.HTTP_201_CREATED)
async def create_request(
    data: NeedRequestCreate,
    current_user: dict = Depends(get_current_user),
) -> NeedRequestRead:
    try:
        return await NeedRequestService.create_request(data, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/mine", response_model=List[NeedRequestRead])
async def list_my_requests(current_user: dict = Depends(get_current_user)) -> List[NeedRequestRead]:
    return await NeedRequestService.list_requests(
        status=None, requester_id=current_user["user_id"], limit=500
    )


@router.get("/{request_id}", response_model=NeedRequestRead)
async def get_request(request_id: str) -> NeedRequestRead:
    try:
        return await NeedRequestService.get_request(request_id)
    except ValueError as e:
        raise to_http_exception(e)


@router.patch("/{request_id}", response_model=NeedRequestRead)
async def update_request(
    request_id: str,
    data: NeedRequestUpdate,
    current_user: dict = Depends(get_current_user),
) -> NeedRequestRead:
    try:
        return await NeedRequestService.update_request(request_id, data, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_request(request_id: str, current_user: dict = Depends(get_current_user)) -> Response:
    try:
        await NeedRequestService.delete_request(request_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{request_id}/offer", response_model=MatchRead, status_code=status.HTTP_201_CREATED)
async def offer_item(request_id: str, current_user: dict = Depends(get_current_user)) -> MatchRead:
    """Offer an item against a request; creates a match with the requester."""
    try:
        return await MatchService.offer_item(request_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)
