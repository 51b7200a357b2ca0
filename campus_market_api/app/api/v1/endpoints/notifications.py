"""
API endpoints for the caller's notifications.

``GET /notifications/stream`` emits a ``notification`` event whenever a
notification is created for the caller.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from campus_market_api.app.core.config import settings
from campus_market_api.app.core.errors import to_http_exception
from campus_market_api.app.core.realtime import hub, notifications_channel
from campus_market_api.app.core.security import get_current_user, get_stream_user
from campus_market_api.app.schemas.notification import (
    MarkAllReadResult,
    NotificationList,
    NotificationRead,
)
from campus_market_api.app.services.notification_service import NotificationService


router = APIRouter()


@router.get("/", response_model=NotificationList)
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
) -> NotificationList:
    return await NotificationService.list_for_user(
        current_user["user_id"], unread_only=unread_only, limit=limit, offset=offset
    )


@router.post("/read-all", response_model=MarkAllReadResult)
async def mark_all_read(current_user: dict = Depends(get_current_user)) -> MarkAllReadResult:
    updated = await NotificationService.mark_all_read(current_user)
    return MarkAllReadResult(updated=updated)


@router.get("/stream")
async def stream_notifications(current_user: dict = Depends(get_stream_user)) -> StreamingResponse:
    return StreamingResponse(
        hub.stream(notifications_channel(current_user["user_id"]), settings.sse_heartbeat_seconds),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(notification_id: str, current_user: dict = Depends(get_current_user)) -> NotificationRead:
    try:
        return await NotificationService.mark_read(notification_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)
