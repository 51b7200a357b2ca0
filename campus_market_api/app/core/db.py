"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``), applying migrations on application start
(``init_db``) and small helpers shared by the services for generating
row identifiers and timestamps.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import os
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from .config import settings


def resolve_path(value: str) -> str:
    """Resolve a configured path.

    Absolute paths are returned unchanged, relative paths are resolved
    against the package root (``campus_market_api/``).
    """
    if os.path.isabs(value):
        return value
    base_dir = Path(__file__).resolve().parent.parent.parent  # campus_market_api/
    return str((base_dir / value).resolve())


def get_database_path() -> str:
    """Compute the path to the SQLite database file."""
    return resolve_path(settings.database_url)


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Timestamps are stored as ISO‑8601 strings generated by
    ``utc_now`` and returned unchanged.
    """
    conn = sqlite3.connect(get_database_path())
    conn.row_factory = sqlite3.Row
    # Foreign key support is disabled by default in SQLite and must be
    # enabled per connection.
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


def new_id() -> str:
    """Return a new random row identifier."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: Initial schema
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS profiles (
            id TEXT PRIMARY KEY,
            email TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            password TEXT NOT NULL,
            avatar_url TEXT,
            college_domain TEXT NOT NULL,
            trust_score REAL NOT NULL DEFAULT 0,
            total_ratings INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS listings (
            id TEXT PRIMARY KEY,
            seller_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            price REAL NOT NULL,
            category TEXT NOT NULL,
            location TEXT NOT NULL,
            images TEXT NOT NULL DEFAULT '[]',
            status TEXT NOT NULL DEFAULT 'available',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(seller_id) REFERENCES profiles(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS need_requests (
            id TEXT PRIMARY KEY,
            requester_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            max_budget REAL NOT NULL,
            category TEXT NOT NULL,
            preferred_location TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'open',
            expires_at TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(requester_id) REFERENCES profiles(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS matches (
            id TEXT PRIMARY KEY,
            listing_id TEXT,
            request_id TEXT,
            seller_id TEXT NOT NULL,
            buyer_id TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            match_score REAL NOT NULL DEFAULT 100,
            meeting_location TEXT,
            meeting_time TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(listing_id) REFERENCES listings(id) ON DELETE SET NULL,
            FOREIGN KEY(request_id) REFERENCES need_requests(id) ON DELETE SET NULL,
            FOREIGN KEY(seller_id) REFERENCES profiles(id),
            FOREIGN KEY(buyer_id) REFERENCES profiles(id)
        );

        CREATE TABLE IF NOT EXISTS messages (
            id TEXT PRIMARY KEY,
            match_id TEXT NOT NULL,
            sender_id TEXT NOT NULL,
            content TEXT NOT NULL,
            is_system_message INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            FOREIGN KEY(match_id) REFERENCES matches(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS ratings (
            id TEXT PRIMARY KEY,
            match_id TEXT NOT NULL,
            rater_id TEXT NOT NULL,
            rated_user_id TEXT NOT NULL,
            overall_rating INTEGER NOT NULL,
            communication_rating INTEGER,
            accuracy_rating INTEGER,
            punctuality_rating INTEGER,
            review TEXT,
            is_flagged INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            FOREIGN KEY(match_id) REFERENCES matches(id) ON DELETE CASCADE,
            FOREIGN KEY(rater_id) REFERENCES profiles(id),
            FOREIGN KEY(rated_user_id) REFERENCES profiles(id)
        );

        CREATE TABLE IF NOT EXISTS notifications (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            type TEXT NOT NULL,
            title TEXT NOT NULL,
            message TEXT NOT NULL,
            link TEXT,
            is_read INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            FOREIGN KEY(user_id) REFERENCES profiles(id) ON DELETE CASCADE
        );
        """,
    ),
    # Migration 2: uniqueness of interest, offers and ratings plus lookup indices
    (
        2,
        """
        -- A buyer may show interest in a listing once and a seller may offer
        -- against a request once.  NULL listing/request ids never collide.
        CREATE UNIQUE INDEX IF NOT EXISTS uq_matches_listing_buyer ON matches(listing_id, buyer_id);
        CREATE UNIQUE INDEX IF NOT EXISTS uq_matches_request_seller ON matches(request_id, seller_id);
        CREATE UNIQUE INDEX IF NOT EXISTS uq_ratings_match_rater ON ratings(match_id, rater_id);

        CREATE INDEX IF NOT EXISTS idx_listings_seller_id ON listings(seller_id);
        CREATE INDEX IF NOT EXISTS idx_need_requests_requester_id ON need_requests(requester_id);
        CREATE INDEX IF NOT EXISTS idx_matches_seller_id ON matches(seller_id);
        CREATE INDEX IF NOT EXISTS idx_matches_buyer_id ON matches(buyer_id);
        CREATE INDEX IF NOT EXISTS idx_messages_match_id ON messages(match_id);
        CREATE INDEX IF NOT EXISTS idx_ratings_rated_user_id ON ratings(rated_user_id);
        CREATE INDEX IF NOT EXISTS idx_notifications_user_id ON notifications(user_id);
        """,
    ),
    # Migration 3: remember which requests already got an expiry reminder
    (
        3,
        """
        ALTER TABLE need_requests ADD COLUMN expiry_notified INTEGER NOT NULL DEFAULT 0;
        """,
    ),
]


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any new migrations defined in
    ``MIGRATIONS``.  If you add a new migration, append it with an
    incremented version number.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version
