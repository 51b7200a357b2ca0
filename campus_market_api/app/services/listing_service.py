"""
Business logic for listings.

A listing is an item a student offers for sale.  Listings are created
``available``; a completed match marks them ``sold``.  Image URLs are
stored as a JSON array in the ``images`` column.  Only the seller may
update or delete their listing.
"""

import json
import logging
import sqlite3
from typing import List, Optional, Tuple

from campus_market_api.app.core.config import settings
from campus_market_api.app.core.db import get_connection, new_id, utc_now_iso
from campus_market_api.app.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from campus_market_api.app.schemas.listing import ListingCreate, ListingRead, ListingUpdate


logger = logging.getLogger(__name__)

LISTING_COLUMNS = (
    "id, seller_id, title, description, price, category, location, images, status, "
    "created_at, updated_at"
)


def search_clause(q: Optional[str]) -> Tuple[str, list]:
    """Return a case-insensitive title/description substring filter.

    ``%`` and ``_`` typed by the user are matched literally.
    """
    term = (q or "").strip().lower()
    if not term:
        return "", []
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return (
        "(LOWER(title) LIKE ? ESCAPE '\\' OR LOWER(description) LIKE ? ESCAPE '\\')",
        [pattern, pattern],
    )


def has_open_matches(conn: sqlite3.Connection, column: str, item_id: str) -> bool:
    """True when a match on the item is neither completed nor cancelled."""
    row = conn.execute(
        f"SELECT 1 FROM matches WHERE {column} = ? AND status NOT IN ('completed', 'cancelled') LIMIT 1",
        (item_id,),
    ).fetchone()
    return row is not None


def _validate_images(images: List[str]) -> None:
    if not images:
        raise ValueError("Please upload at least one image of your item.")
    if len(images) > settings.max_listing_images:
        raise ValueError(f"You can upload a maximum of {settings.max_listing_images} images.")


def _row_to_listing(row: sqlite3.Row) -> ListingRead:
    return ListingRead(
        id=row["id"],
        seller_id=row["seller_id"],
        title=row["title"],
        description=row["description"],
        price=float(row["price"]),
        category=row["category"],
        location=row["location"],
        images=json.loads(row["images"]) if row["images"] else [],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class ListingService:
    """Service for creating, searching and maintaining listings."""

    @classmethod
    async def create_listing(cls, data: ListingCreate, current_user: dict) -> ListingRead:
        _validate_images(data.images)
        conn = get_connection()
        try:
            listing_id = new_id()
            now = utc_now_iso()
            conn.execute(
                f"INSERT INTO listings ({LISTING_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'available', ?, ?)",
                (
                    listing_id,
                    current_user.get("user_id"),
                    data.title,
                    data.description,
                    data.price,
                    data.category,
                    data.location,
                    json.dumps(data.images),
                    now,
                    now,
                ),
            )
            conn.commit()
            row = conn.execute(
                f"SELECT {LISTING_COLUMNS} FROM listings WHERE id = ?", (listing_id,)
            ).fetchone()
            logger.info("User %s created listing %s", current_user.get("user_id"), listing_id)
            return _row_to_listing(row)
        except Exception as e:
            conn.rollback()
            logger.error("Failed to create listing: %s", e)
            raise
        finally:
            conn.close()

    @classmethod
    async def list_listings(
        cls,
        status: Optional[str] = "available",
        category: Optional[str] = None,
        location: Optional[str] = None,
        q: Optional[str] = None,
        seller_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ListingRead]:
        """List listings, newest first.

        ``status=None`` returns listings in every status.  ``q`` matches
        title or description case-insensitively.
        """
        conn = get_connection()
        try:
            params: list = []
            where_clauses = []
            for column, value in (
                ("status", status),
                ("category", category),
                ("location", location),
                ("seller_id", seller_id),
            ):
                if value is not None:
                    where_clauses.append(f"{column} = ?")
                    params.append(value)
            clause, search_params = search_clause(q)
            if clause:
                where_clauses.append(clause)
                params.extend(search_params)
            query = f"SELECT {LISTING_COLUMNS} FROM listings"
            if where_clauses:
                query += " WHERE " + " AND ".join(where_clauses)
            query += " ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
            params.extend([limit, offset])
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_row_to_listing(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_listing(cls, listing_id: str) -> ListingRead:
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {LISTING_COLUMNS} FROM listings WHERE id = ?", (listing_id,)
            ).fetchone()
            if not row:
                raise NotFoundError(f"Listing {listing_id} not found")
            return _row_to_listing(row)
        finally:
            conn.close()

    @classmethod
    async def update_listing(
        cls,
        listing_id: str,
        data: ListingUpdate,
        current_user: dict,
    ) -> ListingRead:
        """Apply a partial update; only the seller may edit a listing."""
        updates = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None}
        if "images" in updates:
            _validate_images(updates["images"])
            updates["images"] = json.dumps(updates["images"])
        for key in ("title", "description"):
            if key in updates:
                updates[key] = updates[key].strip()
                if not updates[key]:
                    raise ValueError(f"{key.capitalize()} must not be blank")
        conn = get_connection()
        try:
            row = conn.execute("SELECT seller_id FROM listings WHERE id = ?", (listing_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Listing {listing_id} not found")
            if row["seller_id"] != current_user.get("user_id"):
                raise PermissionDeniedError("Only the seller can edit this listing")
            if updates:
                assignments = ", ".join(f"{column} = ?" for column in updates)
                conn.execute(
                    f"UPDATE listings SET {assignments}, updated_at = ? WHERE id = ?",
                    (*updates.values(), utc_now_iso(), listing_id),
                )
                conn.commit()
                logger.info("Listing %s updated: %s", listing_id, sorted(updates))
            updated = conn.execute(
                f"SELECT {LISTING_COLUMNS} FROM listings WHERE id = ?", (listing_id,)
            ).fetchone()
            return _row_to_listing(updated)
        finally:
            conn.close()

    @classmethod
    async def delete_listing(cls, listing_id: str, current_user: dict) -> None:
        """Delete a listing.

        Refused while an exchange on the listing is still in progress.
        Finished matches keep their chat history; their ``listing_id`` is
        set to NULL by the foreign key.
        """
        conn = get_connection()
        try:
            row = conn.execute("SELECT seller_id FROM listings WHERE id = ?", (listing_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Listing {listing_id} not found")
            if row["seller_id"] != current_user.get("user_id"):
                raise PermissionDeniedError("Only the seller can delete this listing")
            if has_open_matches(conn, "listing_id", listing_id):
                raise ConflictError("This listing has an exchange in progress. Complete or cancel it first.")
            conn.execute("DELETE FROM listings WHERE id = ?", (listing_id,))
            conn.commit()
            logger.info("Listing %s deleted by %s", listing_id, current_user.get("user_id"))
        finally:
            conn.close()

    @classmethod
    def set_status(cls, cursor: sqlite3.Cursor, listing_id: str, status: str) -> None:
        """Change a listing's status within the caller's transaction."""
        cursor.execute(
            "UPDATE listings SET status = ?, updated_at = ? WHERE id = ?",
            (status, utc_now_iso(), listing_id),
        )
