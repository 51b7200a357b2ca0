"""
Service layer for chat messages within a match.

Only the seller and the buyer of a match can read or write its chat.
Sending the first message on a ``pending`` match moves it to
``chatting``.  Every stored message is published on the match's
realtime channel; user messages also notify the other party.
"""

import logging
import sqlite3
from typing import List

from campus_market_api.app.core.db import get_connection, new_id, utc_now_iso
from campus_market_api.app.core.errors import ConflictError
from campus_market_api.app.core.realtime import hub, messages_channel
from campus_market_api.app.schemas.message import MessageCreate, MessageRead
from campus_market_api.app.services.match_service import (
    TERMINAL_STATUSES,
    ensure_participant,
    fetch_match_row,
    other_party,
)
from campus_market_api.app.services.notification_service import NotificationService


logger = logging.getLogger(__name__)

MESSAGE_COLUMNS = "id, match_id, sender_id, content, is_system_message, created_at"
SYSTEM_SENDER = "system"
PREVIEW_LENGTH = 80


def _row_to_message(row: sqlite3.Row) -> MessageRead:
    return MessageRead(
        id=row["id"],
        match_id=row["match_id"],
        sender_id=row["sender_id"],
        content=row["content"],
        is_system_message=bool(row["is_system_message"]),
        created_at=row["created_at"],
    )


def _preview(content: str) -> str:
    if len(content) <= PREVIEW_LENGTH:
        return content
    return content[: PREVIEW_LENGTH - 1].rstrip() + "…"


class MessageService:
    """Service for reading and sending chat messages."""

    @classmethod
    def _insert(
        cls,
        cursor: sqlite3.Cursor,
        match_id: str,
        sender_id: str,
        content: str,
        is_system: bool,
    ) -> MessageRead:
        message_id = new_id()
        cursor.execute(
            f"INSERT INTO messages ({MESSAGE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            (message_id, match_id, sender_id, content, 1 if is_system else 0, utc_now_iso()),
        )
        row = cursor.execute(
            f"SELECT {MESSAGE_COLUMNS} FROM messages WHERE id = ?", (message_id,)
        ).fetchone()
        return _row_to_message(row)

    @classmethod
    def insert_system_message(cls, cursor: sqlite3.Cursor, match_id: str, content: str) -> MessageRead:
        """Insert a system message in the caller's transaction.

        The caller commits and then calls ``publish``.
        """
        return cls._insert(cursor, match_id, SYSTEM_SENDER, content, True)

    @classmethod
    def publish(cls, message: MessageRead) -> None:
        hub.publish(messages_channel(message.match_id), "message", message.model_dump())

    @classmethod
    async def list_messages(cls, match_id: str, current_user: dict) -> List[MessageRead]:
        """Return the chat of a match, oldest first."""
        conn = get_connection()
        try:
            row = fetch_match_row(conn, match_id)
            ensure_participant(row, current_user.get("user_id"))
            rows = conn.execute(
                f"SELECT {MESSAGE_COLUMNS} FROM messages WHERE match_id = ? "
                "ORDER BY created_at ASC, rowid ASC",
                (match_id,),
            ).fetchall()
            return [_row_to_message(r) for r in rows]
        finally:
            conn.close()

    @classmethod
    async def send_message(cls, match_id: str, data: MessageCreate, current_user: dict) -> MessageRead:
        user_id = current_user.get("user_id")
        conn = get_connection()
        try:
            match = fetch_match_row(conn, match_id)
            ensure_participant(match, user_id)
            if match["status"] in TERMINAL_STATUSES:
                raise ConflictError(f"This exchange is {match['status']}; the chat is closed.")
            cursor = conn.cursor()
            message = cls._insert(cursor, match_id, user_id, data.content, False)
            if match["status"] == "pending":
                cursor.execute(
                    "UPDATE matches SET status = 'chatting', updated_at = ? WHERE id = ?",
                    (utc_now_iso(), match_id),
                )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        cls.publish(message)
        logger.info("User %s sent message %s in match %s", user_id, message.id, match_id)
        await NotificationService.create(
            other_party(match, user_id),
            "message",
            f"New message from {current_user.get('name')}",
            _preview(data.content),
            link=f"/chat/{match_id}",
        )
        return message

    @classmethod
    async def post_system_message(cls, match_id: str, content: str) -> MessageRead:
        """Store and publish a system message on its own connection."""
        conn = get_connection()
        try:
            fetch_match_row(conn, match_id)
            message = cls.insert_system_message(conn.cursor(), match_id, content)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        cls.publish(message)
        return message
