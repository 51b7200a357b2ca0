"""
Service layer for in‑app notifications.

Notifications are written by the other services when something
happens that a user should learn about: interest in their listing, an
offer against their request, a chat message, a rating, an expiring
request.  Every insert is also published on the user's realtime
channel so an open notifications view can refresh immediately.
"""

import logging
import sqlite3
from typing import Optional

from campus_market_api.app.core.db import get_connection, new_id, utc_now_iso
from campus_market_api.app.core.errors import NotFoundError, PermissionDeniedError
from campus_market_api.app.core.realtime import hub, notifications_channel
from campus_market_api.app.schemas.notification import NotificationList, NotificationRead


logger = logging.getLogger(__name__)

NOTIFICATION_COLUMNS = "id, user_id, type, title, message, link, is_read, created_at"


def _row_to_notification(row: sqlite3.Row) -> NotificationRead:
    return NotificationRead(
        id=row["id"],
        user_id=row["user_id"],
        type=row["type"],
        title=row["title"],
        message=row["message"],
        link=row["link"],
        is_read=bool(row["is_read"]),
        created_at=row["created_at"],
    )


class NotificationService:
    """Service for creating and reading notifications."""

    @classmethod
    async def create(
        cls,
        user_id: str,
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> NotificationRead:
        """Insert a notification and publish it on the user's channel."""
        conn = get_connection()
        try:
            notification_id = new_id()
            conn.execute(
                f"INSERT INTO notifications ({NOTIFICATION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, 0, ?)",
                (notification_id, user_id, type, title, message, link, utc_now_iso()),
            )
            conn.commit()
            row = conn.execute(
                f"SELECT {NOTIFICATION_COLUMNS} FROM notifications WHERE id = ?",
                (notification_id,),
            ).fetchone()
        except Exception as e:
            conn.rollback()
            logger.error("Failed to create notification for %s: %s", user_id, e)
            raise
        finally:
            conn.close()
        notification = _row_to_notification(row)
        hub.publish(notifications_channel(user_id), "notification", notification.model_dump())
        logger.info("Notified %s (%s): %s", user_id, type, title)
        return notification

    @classmethod
    async def list_for_user(
        cls,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> NotificationList:
        """Return the user's notifications, newest first, with the unread count."""
        conn = get_connection()
        try:
            query = f"SELECT {NOTIFICATION_COLUMNS} FROM notifications WHERE user_id = ?"
            if unread_only:
                query += " AND is_read = 0"
            query += " ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
            rows = conn.execute(query, (user_id, limit, offset)).fetchall()
            unread = conn.execute(
                "SELECT COUNT(*) AS count FROM notifications WHERE user_id = ? AND is_read = 0",
                (user_id,),
            ).fetchone()["count"]
            return NotificationList(
                unread_count=unread,
                items=[_row_to_notification(row) for row in rows],
            )
        finally:
            conn.close()

    @classmethod
    async def mark_read(cls, notification_id: str, current_user: dict) -> NotificationRead:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT user_id FROM notifications WHERE id = ?",
                (notification_id,),
            ).fetchone()
            if not row:
                raise NotFoundError(f"Notification {notification_id} not found")
            if row["user_id"] != current_user.get("user_id"):
                raise PermissionDeniedError("Not authorized to update this notification")
            conn.execute("UPDATE notifications SET is_read = 1 WHERE id = ?", (notification_id,))
            conn.commit()
            updated = conn.execute(
                f"SELECT {NOTIFICATION_COLUMNS} FROM notifications WHERE id = ?",
                (notification_id,),
            ).fetchone()
            return _row_to_notification(updated)
        finally:
            conn.close()

    @classmethod
    async def mark_all_read(cls, current_user: dict) -> int:
        """Mark every unread notification of the caller as read.

        Returns the number of notifications changed.
        """
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE notifications SET is_read = 1 WHERE user_id = ? AND is_read = 0",
                (current_user.get("user_id"),),
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()
