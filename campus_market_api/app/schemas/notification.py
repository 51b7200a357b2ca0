"""
Pydantic schemas for in‑app notifications.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel


NotificationType = Literal["match", "message", "rating-reminder", "request-expiring", "system"]


class NotificationRead(BaseModel):
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    link: Optional[str] = None
    is_read: bool
    created_at: str

    model_config = {
        "from_attributes": True,
    }


class NotificationList(BaseModel):
    unread_count: int
    items: List[NotificationRead]


class MarkAllReadResult(BaseModel):
    updated: int
