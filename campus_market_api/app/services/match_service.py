"""
Business logic for matches.

A match pairs a seller with a buyer around either a listing (the buyer
expressed interest) or a need request (the seller offered an item).
There is no ranking: every interest or offer creates a match at once
with a fixed score of 100.

Match status moves forward only::

    pending -> chatting -> meeting-scheduled -> completed

``cancelled`` may be reached from any state that is not terminal.
``completed`` and ``cancelled`` are terminal.  Status changes that the
other party should see in the chat (scheduling, completion,
cancellation) post a system message.
"""

import logging
import sqlite3
from typing import List, Optional

from campus_market_api.app.core.db import get_connection, new_id, utc_now_iso
from campus_market_api.app.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from campus_market_api.app.schemas.common import location_label
from campus_market_api.app.schemas.match import MatchRead, MatchUpdate, MeetingSchedule
from campus_market_api.app.services.listing_service import ListingService
from campus_market_api.app.services.need_request_service import NeedRequestService
from campus_market_api.app.services.notification_service import NotificationService


logger = logging.getLogger(__name__)

DEFAULT_MATCH_SCORE = 100

STATUS_ORDER = ["pending", "chatting", "meeting-scheduled", "completed"]
TERMINAL_STATUSES = {"completed", "cancelled"}

MATCH_COLUMNS = (
    "id, listing_id, request_id, seller_id, buyer_id, status, match_score, "
    "meeting_location, meeting_time, created_at, updated_at"
)

COMPLETED_MESSAGE = "✅ Exchange marked as completed! Don't forget to rate each other."
SUPERSEDED_MESSAGE = "❌ This exchange was closed because the item went to someone else."


def can_transition(current: str, new: str) -> bool:
    """Return True when ``current`` may change to ``new``.

    Staying in the same non‑terminal status is allowed so a meeting can
    be rescheduled.
    """
    if current in TERMINAL_STATUSES:
        return False
    if new == "cancelled":
        return True
    return STATUS_ORDER.index(new) >= STATUS_ORDER.index(current)


def ensure_transition(current: str, new: str) -> None:
    if not can_transition(current, new):
        raise ConflictError(f"Cannot change match status from {current} to {new}")


def fetch_match_row(conn: sqlite3.Connection, match_id: str) -> sqlite3.Row:
    row = conn.execute(f"SELECT {MATCH_COLUMNS} FROM matches WHERE id = ?", (match_id,)).fetchone()
    if not row:
        raise NotFoundError(f"Match {match_id} not found")
    return row


def ensure_participant(row: sqlite3.Row, user_id: Optional[str]) -> None:
    if user_id not in (row["seller_id"], row["buyer_id"]):
        raise PermissionDeniedError("You are not part of this match")


def other_party(row: sqlite3.Row, user_id: str) -> str:
    return row["buyer_id"] if row["seller_id"] == user_id else row["seller_id"]


def _row_to_match(row: sqlite3.Row) -> MatchRead:
    return MatchRead(
        id=row["id"],
        listing_id=row["listing_id"],
        request_id=row["request_id"],
        seller_id=row["seller_id"],
        buyer_id=row["buyer_id"],
        status=row["status"],
        match_score=float(row["match_score"]),
        meeting_location=row["meeting_location"],
        meeting_time=row["meeting_time"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class MatchService:
    """Service for creating matches and driving their lifecycle."""

    @classmethod
    async def express_interest(cls, listing_id: str, current_user: dict) -> MatchRead:
        """Create a match for the caller as buyer of ``listing_id``."""
        user_id = current_user.get("user_id")
        conn = get_connection()
        try:
            listing = conn.execute(
                "SELECT id, seller_id, title, location, status FROM listings WHERE id = ?",
                (listing_id,),
            ).fetchone()
            if not listing:
                raise NotFoundError(f"Listing {listing_id} not found")
            if listing["seller_id"] == user_id:
                raise ValueError("This is your listing")
            existing = conn.execute(
                "SELECT id FROM matches WHERE listing_id = ? AND buyer_id = ?",
                (listing_id, user_id),
            ).fetchone()
            if existing:
                raise ConflictError("You have already shown interest in this listing.")
            if listing["status"] != "available":
                raise ConflictError("This item is no longer available.")
            match_id = new_id()
            now = utc_now_iso()
            try:
                conn.execute(
                    f"INSERT INTO matches ({MATCH_COLUMNS}) VALUES (?, ?, NULL, ?, ?, 'pending', ?, ?, NULL, ?, ?)",
                    (
                        match_id,
                        listing_id,
                        listing["seller_id"],
                        user_id,
                        DEFAULT_MATCH_SCORE,
                        listing["location"],
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError:
                raise ConflictError("You have already shown interest in this listing.")
            conn.commit()
            row = fetch_match_row(conn, match_id)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("User %s is interested in listing %s (match %s)", user_id, listing_id, match_id)
        await NotificationService.create(
            listing["seller_id"],
            "match",
            "New Interest!",
            f'{current_user.get("name")} is interested in "{listing["title"]}"',
            link="/matches",
        )
        return _row_to_match(row)

    @classmethod
    async def offer_item(cls, request_id: str, current_user: dict) -> MatchRead:
        """Create a match for the caller as seller against ``request_id``."""
        user_id = current_user.get("user_id")
        conn = get_connection()
        try:
            request = conn.execute(
                "SELECT id, requester_id, title, preferred_location, status FROM need_requests WHERE id = ?",
                (request_id,),
            ).fetchone()
            if not request:
                raise NotFoundError(f"Request {request_id} not found")
            if request["requester_id"] == user_id:
                raise ValueError("This is your request")
            existing = conn.execute(
                "SELECT id FROM matches WHERE request_id = ? AND seller_id = ?",
                (request_id, user_id),
            ).fetchone()
            if existing:
                raise ConflictError("You have already offered to help with this request.")
            if request["status"] != "open":
                raise ConflictError("This request is no longer open.")
            match_id = new_id()
            now = utc_now_iso()
            try:
                conn.execute(
                    f"INSERT INTO matches ({MATCH_COLUMNS}) VALUES (?, NULL, ?, ?, ?, 'pending', ?, ?, NULL, ?, ?)",
                    (
                        match_id,
                        request_id,
                        user_id,
                        request["requester_id"],
                        DEFAULT_MATCH_SCORE,
                        request["preferred_location"],
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError:
                raise ConflictError("You have already offered to help with this request.")
            conn.commit()
            row = fetch_match_row(conn, match_id)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("User %s offered against request %s (match %s)", user_id, request_id, match_id)
        await NotificationService.create(
            request["requester_id"],
            "match",
            "Someone has what you need!",
            f'{current_user.get("name")} might have "{request["title"]}"',
            link="/matches",
        )
        return _row_to_match(row)

    @classmethod
    async def list_for_user(
        cls,
        current_user: dict,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[MatchRead]:
        """Return matches in which the caller is seller or buyer, newest first."""
        user_id = current_user.get("user_id")
        conn = get_connection()
        try:
            query = f"SELECT {MATCH_COLUMNS} FROM matches WHERE (seller_id = ? OR buyer_id = ?)"
            params: list = [user_id, user_id]
            if status:
                query += " AND status = ?"
                params.append(status)
            query += " ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
            params.extend([limit, offset])
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_row_to_match(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_match(cls, match_id: str, current_user: dict) -> MatchRead:
        conn = get_connection()
        try:
            row = fetch_match_row(conn, match_id)
            ensure_participant(row, current_user.get("user_id"))
            return _row_to_match(row)
        finally:
            conn.close()

    @classmethod
    async def update_match(cls, match_id: str, data: MatchUpdate, current_user: dict) -> MatchRead:
        """Partially update a match.

        Meeting details are stored as given.  A status change is checked
        against the lifecycle; completing or cancelling goes through
        ``complete_match`` / ``cancel_match`` so their side effects run.
        """
        updates = data.model_dump(exclude_unset=True)
        status = updates.pop("status", None)
        if updates.get("meeting_time") is not None:
            updates["meeting_time"] = updates["meeting_time"].isoformat()
        conn = get_connection()
        try:
            row = fetch_match_row(conn, match_id)
            ensure_participant(row, current_user.get("user_id"))
            if status is not None:
                ensure_transition(row["status"], status)
            elif updates and row["status"] in TERMINAL_STATUSES:
                raise ConflictError(f"Match is already {row['status']}")
            if status is not None and status not in TERMINAL_STATUSES:
                updates["status"] = status
            if updates:
                assignments = ", ".join(f"{column} = ?" for column in updates)
                conn.execute(
                    f"UPDATE matches SET {assignments}, updated_at = ? WHERE id = ?",
                    (*updates.values(), utc_now_iso(), match_id),
                )
                conn.commit()
                logger.info("Match %s updated: %s", match_id, sorted(updates))
            row = fetch_match_row(conn, match_id)
        finally:
            conn.close()
        if status == "completed":
            return await cls.complete_match(match_id, current_user)
        if status == "cancelled":
            return await cls.cancel_match(match_id, current_user)
        return _row_to_match(row)

    @classmethod
    async def schedule_meeting(
        cls,
        match_id: str,
        data: MeetingSchedule,
        current_user: dict,
    ) -> MatchRead:
        """Propose a meeting point and move the match to ``meeting-scheduled``."""
        from campus_market_api.app.services.message_service import MessageService

        conn = get_connection()
        try:
            row = fetch_match_row(conn, match_id)
            ensure_participant(row, current_user.get("user_id"))
            ensure_transition(row["status"], "meeting-scheduled")
            location = data.location or row["meeting_location"]
            meeting_time = data.time.isoformat() if data.time else row["meeting_time"]
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE matches SET status = 'meeting-scheduled', meeting_location = ?, meeting_time = ?, "
                "updated_at = ? WHERE id = ?",
                (location, meeting_time, utc_now_iso(), match_id),
            )
            content = (
                f"📍 Suggested meeting point: {location_label(location)}\n\n"
                f"{current_user.get('name')} wants to schedule a meeting. Please confirm a date and time."
            )
            message = MessageService.insert_system_message(cursor, match_id, content)
            conn.commit()
            row = fetch_match_row(conn, match_id)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Meeting scheduled for match %s at %s", match_id, location)
        MessageService.publish(message)
        return _row_to_match(row)

    @classmethod
    def _close_competing(cls, cursor: sqlite3.Cursor, row: sqlite3.Row) -> list:
        """Cancel the other open matches on the same listing or request.

        Returns the system messages posted, for publishing after commit.
        """
        from campus_market_api.app.services.message_service import MessageService

        column = "listing_id" if row["listing_id"] else "request_id"
        others = cursor.execute(
            f"SELECT id FROM matches WHERE {column} = ? AND id != ? "
            "AND status NOT IN ('completed', 'cancelled')",
            (row[column], row["id"]),
        ).fetchall()
        messages = []
        for other in others:
            cursor.execute(
                "UPDATE matches SET status = 'cancelled', updated_at = ? WHERE id = ?",
                (utc_now_iso(), other["id"]),
            )
            messages.append(MessageService.insert_system_message(cursor, other["id"], SUPERSEDED_MESSAGE))
        return messages

    @classmethod
    async def complete_match(cls, match_id: str, current_user: dict) -> MatchRead:
        """Mark the exchange as done.

        The listing becomes ``sold`` or the request ``matched``, and both
        parties are reminded to rate each other.  The first match to
        complete wins: completing is refused once the item is gone, and
        every other open match on the same item is cancelled.
        """
        from campus_market_api.app.services.message_service import MessageService

        conn = get_connection()
        try:
            row = fetch_match_row(conn, match_id)
            ensure_participant(row, current_user.get("user_id"))
            ensure_transition(row["status"], "completed")
            if row["listing_id"]:
                listing = conn.execute(
                    "SELECT status FROM listings WHERE id = ?", (row["listing_id"],)
                ).fetchone()
                if listing and listing["status"] == "sold":
                    raise ConflictError("This item has already been sold.")
            if row["request_id"]:
                request = conn.execute(
                    "SELECT status FROM need_requests WHERE id = ?", (row["request_id"],)
                ).fetchone()
                if request and request["status"] == "matched":
                    raise ConflictError("This request has already been fulfilled.")
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE matches SET status = 'completed', updated_at = ? WHERE id = ?",
                (utc_now_iso(), match_id),
            )
            if row["listing_id"]:
                ListingService.set_status(cursor, row["listing_id"], "sold")
            if row["request_id"]:
                NeedRequestService.set_status(cursor, row["request_id"], "matched")
            superseded = cls._close_competing(cursor, row)
            message = MessageService.insert_system_message(cursor, match_id, COMPLETED_MESSAGE)
            names = {
                profile["id"]: profile["name"]
                for profile in cursor.execute(
                    "SELECT id, name FROM profiles WHERE id IN (?, ?)",
                    (row["seller_id"], row["buyer_id"]),
                ).fetchall()
            }
            conn.commit()
            row = fetch_match_row(conn, match_id)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Match %s completed by %s", match_id, current_user.get("user_id"))
        if superseded:
            logger.info("Cancelled %d competing match(es) for match %s", len(superseded), match_id)
        for closed in superseded:
            MessageService.publish(closed)
        MessageService.publish(message)
        for participant in (row["seller_id"], row["buyer_id"]):
            partner = names.get(other_party(row, participant), "your partner")
            await NotificationService.create(
                participant,
                "rating-reminder",
                "Rate your exchange",
                f"How did your exchange with {partner} go? Leave a rating.",
                link=f"/rate/{match_id}",
            )
        return _row_to_match(row)

    @classmethod
    async def cancel_match(cls, match_id: str, current_user: dict) -> MatchRead:
        from campus_market_api.app.services.message_service import MessageService

        conn = get_connection()
        try:
            row = fetch_match_row(conn, match_id)
            ensure_participant(row, current_user.get("user_id"))
            ensure_transition(row["status"], "cancelled")
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE matches SET status = 'cancelled', updated_at = ? WHERE id = ?",
                (utc_now_iso(), match_id),
            )
            message = MessageService.insert_system_message(
                cursor, match_id, f"❌ {current_user.get('name')} cancelled this exchange."
            )
            conn.commit()
            row = fetch_match_row(conn, match_id)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Match %s cancelled by %s", match_id, current_user.get("user_id"))
        MessageService.publish(message)
        return _row_to_match(row)
