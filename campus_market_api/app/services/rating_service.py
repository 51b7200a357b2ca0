"""
Business logic for ratings.

Once a match is completed each participant may rate the other party
exactly once.  Storing a rating recomputes the rated user's trust
score in the same transaction.  A rated user can flag a rating they
consider abusive; flagged ratings still count until a moderator acts
on them.
"""

import logging
import sqlite3
from typing import List

from campus_market_api.app.core.db import get_connection, new_id, utc_now_iso
from campus_market_api.app.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from campus_market_api.app.schemas.rating import RatingCreate, RatingRead
from campus_market_api.app.services.match_service import ensure_participant, fetch_match_row, other_party
from campus_market_api.app.services.notification_service import NotificationService
from campus_market_api.app.services.profile_service import ProfileService


logger = logging.getLogger(__name__)

RATING_COLUMNS = (
    "id, match_id, rater_id, rated_user_id, overall_rating, communication_rating, "
    "accuracy_rating, punctuality_rating, review, is_flagged, created_at"
)

DUPLICATE_MESSAGE = "You have already rated this exchange."


def _row_to_rating(row: sqlite3.Row) -> RatingRead:
    overall = row["overall_rating"]
    return RatingRead(
        id=row["id"],
        match_id=row["match_id"],
        rater_id=row["rater_id"],
        rated_user_id=row["rated_user_id"],
        overall_rating=overall,
        communication_rating=row["communication_rating"] or overall,
        accuracy_rating=row["accuracy_rating"] or overall,
        punctuality_rating=row["punctuality_rating"] or overall,
        review=row["review"],
        is_flagged=bool(row["is_flagged"]),
        created_at=row["created_at"],
    )


class RatingService:
    """Service for rating exchange partners."""

    @classmethod
    async def create_rating(cls, data: RatingCreate, current_user: dict) -> RatingRead:
        """Rate the other party of a completed match.

        Detailed ratings that are not given take the overall value.
        """
        user_id = current_user.get("user_id")
        conn = get_connection()
        try:
            match = fetch_match_row(conn, data.match_id)
            ensure_participant(match, user_id)
            if match["status"] != "completed":
                raise ValueError("You can only rate an exchange after it is completed.")
            existing = conn.execute(
                "SELECT id FROM ratings WHERE match_id = ? AND rater_id = ?",
                (data.match_id, user_id),
            ).fetchone()
            if existing:
                raise ConflictError(DUPLICATE_MESSAGE)
            rated_user_id = other_party(match, user_id)
            overall = data.overall_rating
            rating_id = new_id()
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"INSERT INTO ratings ({RATING_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?)",
                    (
                        rating_id,
                        data.match_id,
                        user_id,
                        rated_user_id,
                        overall,
                        data.communication_rating or overall,
                        data.accuracy_rating or overall,
                        data.punctuality_rating or overall,
                        data.review,
                        utc_now_iso(),
                    ),
                )
            except sqlite3.IntegrityError:
                raise ConflictError(DUPLICATE_MESSAGE)
            ProfileService.refresh_trust_score(cursor, rated_user_id)
            conn.commit()
            row = conn.execute(
                f"SELECT {RATING_COLUMNS} FROM ratings WHERE id = ?", (rating_id,)
            ).fetchone()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("User %s rated %s %d/5 for match %s", user_id, rated_user_id, overall, data.match_id)
        await NotificationService.create(
            rated_user_id,
            "rating-reminder",
            "You received a rating!",
            f"{current_user.get('name')} rated your exchange",
            link="/profile",
        )
        return _row_to_rating(row)

    @classmethod
    async def list_by_user(cls, user_id: str, limit: int = 50, offset: int = 0) -> List[RatingRead]:
        """Return ratings received by ``user_id``, newest first."""
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {RATING_COLUMNS} FROM ratings WHERE rated_user_id = ? "
                "ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
                (user_id, limit, offset),
            ).fetchall()
            return [_row_to_rating(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def list_by_match(cls, match_id: str, current_user: dict) -> List[RatingRead]:
        conn = get_connection()
        try:
            match = fetch_match_row(conn, match_id)
            ensure_participant(match, current_user.get("user_id"))
            rows = conn.execute(
                f"SELECT {RATING_COLUMNS} FROM ratings WHERE match_id = ? ORDER BY created_at ASC, rowid ASC",
                (match_id,),
            ).fetchall()
            return [_row_to_rating(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def flag_rating(cls, rating_id: str, current_user: dict) -> RatingRead:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT rated_user_id FROM ratings WHERE id = ?", (rating_id,)
            ).fetchone()
            if not row:
                raise NotFoundError(f"Rating {rating_id} not found")
            if row["rated_user_id"] != current_user.get("user_id"):
                raise PermissionDeniedError("Only the rated user can flag this rating")
            conn.execute("UPDATE ratings SET is_flagged = 1 WHERE id = ?", (rating_id,))
            conn.commit()
            logger.warning("Rating %s flagged by %s", rating_id, current_user.get("user_id"))
            updated = conn.execute(
                f"SELECT {RATING_COLUMNS} FROM ratings WHERE id = ?", (rating_id,)
            ).fetchone()
            return _row_to_rating(updated)
        finally:
            conn.close()
