"""
Chat endpoints of a match.

``GET /matches/{id}/messages/stream`` is a Server‑Sent Events stream
that emits a ``message`` event for every new chat message.  Because
``EventSource`` cannot send headers, the token may be passed as
``?access_token=``.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse

from campus_market_api.app.core.config import settings
from campus_market_api.app.core.errors import to_http_exception
from campus_market_api.app.core.realtime import hub, messages_channel
from campus_market_api.app.core.security import get_current_user, get_stream_user
from campus_market_api.app.schemas.message import MessageCreate, MessageRead
from campus_market_api.app.services.match_service import MatchService
from campus_market_api.app.services.message_service import MessageService


router = APIRouter()

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


@router.get("/{match_id}/messages", response_model=List[MessageRead])
async def list_messages(match_id: str, current_user: dict = Depends(get_current_user)) -> List[MessageRead]:
    try:
        return await MessageService.list_messages(match_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.post("/{match_id}/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def send_message(
    match_id: str,
    data: MessageCreate,
    current_user: dict = Depends(get_current_user),
) -> MessageRead:
    try:
        return await MessageService.send_message(match_id, data, current_user)
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/{match_id}/messages/stream")
async def stream_messages(match_id: str, current_user: dict = Depends(get_stream_user)) -> StreamingResponse:
    try:
        await MatchService.get_match(match_id, current_user)
    except ValueError as e:
        raise to_http_exception(e)
    return StreamingResponse(
        hub.stream(messages_channel(match_id), settings.sse_heartbeat_seconds),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
