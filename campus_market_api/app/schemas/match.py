"""
Pydantic models for matches between a seller and a buyer.

A match is created either from a listing (a buyer shows interest) or
from a need request (a seller offers an item).  Exactly one of
``listing_id`` and ``request_id`` is set.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .common import CampusLocation


MatchStatus = Literal["pending", "chatting", "meeting-scheduled", "completed", "cancelled"]


class MatchRead(BaseModel):
    id: str
    listing_id: Optional[str] = None
    request_id: Optional[str] = None
    seller_id: str
    buyer_id: str
    status: MatchStatus
    match_score: float
    meeting_location: Optional[CampusLocation] = None
    meeting_time: Optional[str] = None
    created_at: str
    updated_at: str

    model_config = {
        "from_attributes": True,
    }


class MatchUpdate(BaseModel):
    """Partial update of a match.

    ``status`` changes are validated against the match lifecycle by
    ``MatchService.update_match``.
    """

    status: Optional[MatchStatus] = None
    meeting_time: Optional[datetime] = None
    meeting_location: Optional[CampusLocation] = None


class MeetingSchedule(BaseModel):
    """Body of ``POST /matches/{id}/schedule``.

    When ``location`` is omitted the match's suggested location is kept.
    """

    location: Optional[CampusLocation] = None
    time: Optional[datetime] = Field(None, description="Proposed meeting time (ISO‑8601)")
