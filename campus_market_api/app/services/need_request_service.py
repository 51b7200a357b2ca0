"""
Business logic for need requests.

A need request is a want‑ad: a student describes what they are looking
for and sellers offer items against it.  Requests stay ``open`` for
``settings.request_ttl_days`` days.  The periodic sweep closes expired
requests and reminds owners once when less than a day is left.
"""

import logging
import sqlite3
from datetime import datetime, timedelta
from typing import List, Optional

from campus_market_api.app.core.config import settings
from campus_market_api.app.core.db import get_connection, new_id, utc_now, utc_now_iso
from campus_market_api.app.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from campus_market_api.app.schemas.need_request import (
    NeedRequestCreate,
    NeedRequestRead,
    NeedRequestUpdate,
)
from campus_market_api.app.services.listing_service import has_open_matches, search_clause
from campus_market_api.app.services.notification_service import NotificationService


logger = logging.getLogger(__name__)

REQUEST_COLUMNS = (
    "id, requester_id, title, description, max_budget, category, preferred_location, "
    "status, expires_at, created_at, updated_at"
)

EXPIRING_WINDOW = timedelta(hours=24)


def is_expiring_soon(expires_at: str, status: str, now: Optional[datetime] = None) -> bool:
    if status != "open":
        return False
    now = now or utc_now()
    remaining = datetime.fromisoformat(expires_at) - now
    return timedelta(0) < remaining < EXPIRING_WINDOW


def _row_to_request(row: sqlite3.Row) -> NeedRequestRead:
    return NeedRequestRead(
        id=row["id"],
        requester_id=row["requester_id"],
        title=row["title"],
        description=row["description"],
        max_budget=float(row["max_budget"]),
        category=row["category"],
        preferred_location=row["preferred_location"],
        status=row["status"],
        expires_at=row["expires_at"],
        expires_soon=is_expiring_soon(row["expires_at"], row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class NeedRequestService:
    """Service for want‑ads posted by buyers."""

    @classmethod
    async def create_request(cls, data: NeedRequestCreate, current_user: dict) -> NeedRequestRead:
        conn = get_connection()
        try:
            request_id = new_id()
            now = utc_now()
            expires_at = now + timedelta(days=settings.request_ttl_days)
            conn.execute(
                f"INSERT INTO need_requests ({REQUEST_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, 'open', ?, ?, ?)",
                (
                    request_id,
                    current_user.get("user_id"),
                    data.title,
                    data.description,
                    data.max_budget,
                    data.category,
                    data.preferred_location,
                    expires_at.isoformat(),
                    now.isoformat(),
                    now.isoformat(),
                ),
            )
            conn.commit()
            row = conn.execute(
                f"SELECT {REQUEST_COLUMNS} FROM need_requests WHERE id = ?", (request_id,)
            ).fetchone()
            logger.info("User %s posted request %s", current_user.get("user_id"), request_id)
            return _row_to_request(row)
        except Exception as e:
            conn.rollback()
            logger.error("Failed to create request: %s", e)
            raise
        finally:
            conn.close()

    @classmethod
    async def list_requests(
        cls,
        status: Optional[str] = "open",
        category: Optional[str] = None,
        location: Optional[str] = None,
        q: Optional[str] = None,
        requester_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[NeedRequestRead]:
        conn = get_connection()
        try:
            params: list = []
            where_clauses = []
            for column, value in (
                ("status", status),
                ("category", category),
                ("preferred_location", location),
                ("requester_id", requester_id),
            ):
                if value is not None:
                    where_clauses.append(f"{column} = ?")
                    params.append(value)
            clause, search_params = search_clause(q)
            if clause:
                where_clauses.append(clause)
                params.extend(search_params)
            query = f"SELECT {REQUEST_COLUMNS} FROM need_requests"
            if where_clauses:
                query += " WHERE " + " AND ".join(where_clauses)
            query += " ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
            params.extend([limit, offset])
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_row_to_request(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_request(cls, request_id: str) -> NeedRequestRead:
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {REQUEST_COLUMNS} FROM need_requests WHERE id = ?", (request_id,)
            ).fetchone()
            if not row:
                raise NotFoundError(f"Request {request_id} not found")
            return _row_to_request(row)
        finally:
            conn.close()

    @classmethod
    async def update_request(
        cls,
        request_id: str,
        data: NeedRequestUpdate,
        current_user: dict,
    ) -> NeedRequestRead:
        updates = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None}
        for key in ("title", "description"):
            if key in updates:
                updates[key] = updates[key].strip()
                if not updates[key]:
                    raise ValueError(f"{key.capitalize()} must not be blank")
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT requester_id FROM need_requests WHERE id = ?", (request_id,)
            ).fetchone()
            if not row:
                raise NotFoundError(f"Request {request_id} not found")
            if row["requester_id"] != current_user.get("user_id"):
                raise PermissionDeniedError("Only the requester can edit this request")
            if updates:
                assignments = ", ".join(f"{column} = ?" for column in updates)
                conn.execute(
                    f"UPDATE need_requests SET {assignments}, updated_at = ? WHERE id = ?",
                    (*updates.values(), utc_now_iso(), request_id),
                )
                conn.commit()
                logger.info("Request %s updated: %s", request_id, sorted(updates))
            updated = conn.execute(
                f"SELECT {REQUEST_COLUMNS} FROM need_requests WHERE id = ?", (request_id,)
            ).fetchone()
            return _row_to_request(updated)
        finally:
            conn.close()

    @classmethod
    async def delete_request(cls, request_id: str, current_user: dict) -> None:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT requester_id FROM need_requests WHERE id = ?", (request_id,)
            ).fetchone()
            if not row:
                raise NotFoundError(f"Request {request_id} not found")
            if row["requester_id"] != current_user.get("user_id"):
                raise PermissionDeniedError("Only the requester can delete this request")
            if has_open_matches(conn, "request_id", request_id):
                raise ConflictError("This request has an exchange in progress. Complete or cancel it first.")
            conn.execute("DELETE FROM need_requests WHERE id = ?", (request_id,))
            conn.commit()
            logger.info("Request %s deleted by %s", request_id, current_user.get("user_id"))
        finally:
            conn.close()

    @classmethod
    def set_status(cls, cursor: sqlite3.Cursor, request_id: str, status: str) -> None:
        """Change a request's status within the caller's transaction."""
        cursor.execute(
            "UPDATE need_requests SET status = ?, updated_at = ? WHERE id = ?",
            (status, utc_now_iso(), request_id),
        )

    @classmethod
    async def close_expired(cls) -> int:
        """Close every open request whose ``expires_at`` has passed.

        Returns the number of requests closed.
        """
        now = utc_now_iso()
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE need_requests SET status = 'closed', updated_at = ? "
                "WHERE status = 'open' AND expires_at <= ?",
                (now, now),
            )
            conn.commit()
            closed = cursor.rowcount
        finally:
            conn.close()
        if closed:
            logger.info("Closed %d expired request(s)", closed)
        return closed

    @classmethod
    async def notify_expiring(cls) -> int:
        """Remind owners of open requests that expire within a day.

        Each request is reminded at most once.  Returns the number of
        reminders sent.
        """
        now = utc_now()
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT id, requester_id, title FROM need_requests "
                "WHERE status = 'open' AND expiry_notified = 0 AND expires_at > ? AND expires_at <= ?",
                (now.isoformat(), (now + EXPIRING_WINDOW).isoformat()),
            ).fetchall()
            if rows:
                conn.executemany(
                    "UPDATE need_requests SET expiry_notified = 1 WHERE id = ?",
                    [(row["id"],) for row in rows],
                )
                conn.commit()
        finally:
            conn.close()
        for row in rows:
            await NotificationService.create(
                row["requester_id"],
                "request-expiring",
                "Request expiring soon",
                f'Your request "{row["title"]}" expires in less than 24 hours',
                link=f"/requests/{row['id']}",
            )
        return len(rows)
