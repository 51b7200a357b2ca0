"""
Business logic for student profiles.

Handles registration with a college email address, password
authentication and profile reads.  The trust score of a profile is the
arithmetic mean of the overall ratings it received, rounded to one
decimal; ``refresh_trust_score`` recomputes it inside the rating
transaction.  Badges are derived from the score and rating count when a
profile is read.
"""

import logging
import math
import sqlite3
from typing import Dict, List, Optional

from campus_market_api.app.core.config import settings
from campus_market_api.app.core.db import get_connection, new_id, utc_now_iso
from campus_market_api.app.core.errors import ConflictError, NotFoundError
from campus_market_api.app.core.security import hash_password, verify_password
from campus_market_api.app.schemas.profile import ProfileRead, ProfileRegister, ProfileUpdate


logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MIN_NAME_LENGTH = 2

# ``total_exchanges`` counts completed matches the profile took part in.
PROFILE_SELECT = (
    "SELECT p.id, p.email, p.name, p.avatar_url, p.college_domain, p.trust_score, "
    "p.total_ratings, p.created_at, "
    "(SELECT COUNT(*) FROM matches m WHERE m.status = 'completed' "
    "AND (m.seller_id = p.id OR m.buyer_id = p.id)) AS total_exchanges "
    "FROM profiles p"
)


def email_domain(email: str) -> str:
    return email.split("@", 1)[1].lower() if "@" in email else ""


def is_college_email(email: str, allowed_domains: Optional[List[str]] = None) -> bool:
    """Return True when the email domain ends with an allowed suffix."""
    domain = email_domain(email)
    if not domain:
        return False
    allowed = allowed_domains if allowed_domains is not None else settings.allowed_email_domains
    return any(domain == suffix or domain.endswith("." + suffix) for suffix in allowed)


def extract_college_name(email: str) -> str:
    """``asha@iitb.ac.in`` → ``IITB``; anything unusual → ``University``."""
    parts = email_domain(email).split(".")
    if len(parts) >= 2 and parts[0]:
        return parts[0].upper()
    return "University"


def compute_badge(trust_score: float, total_ratings: int) -> str:
    if total_ratings >= 25 and trust_score >= 4.5:
        return "top-seller"
    if total_ratings >= 10 and trust_score >= 4.0:
        return "trusted"
    return "new"


def _row_to_profile(row: sqlite3.Row) -> ProfileRead:
    trust_score = float(row["trust_score"] or 0)
    total_ratings = row["total_ratings"] or 0
    return ProfileRead(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        avatar_url=row["avatar_url"],
        college=extract_college_name(row["email"]),
        college_domain=row["college_domain"],
        trust_score=trust_score,
        total_ratings=total_ratings,
        total_exchanges=row["total_exchanges"] or 0,
        badge=compute_badge(trust_score, total_ratings),
        created_at=row["created_at"],
    )


class ProfileService:
    """Service for registering, authenticating and reading profiles."""

    @classmethod
    async def register(cls, data: ProfileRegister) -> ProfileRead:
        """Create a new profile.

        Validation mirrors what the sign‑up form tells the user: a valid
        college email that is not yet registered, a password of at least
        six characters and a full name.
        """
        email = data.email.strip().lower()
        name = data.name.strip()
        if "@" not in email:
            raise ValueError("Please enter a valid email address")
        if not is_college_email(email):
            raise ValueError(
                "Please use your college email address (must end with .edu, .ac.in, etc.)"
            )
        if len(data.password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if len(name) < MIN_NAME_LENGTH:
            raise ValueError("Please enter your full name")

        conn = get_connection()
        try:
            existing = conn.execute("SELECT id FROM profiles WHERE email = ?", (email,)).fetchone()
            if existing:
                raise ConflictError("An account with this email already exists")
            profile_id = new_id()
            now = utc_now_iso()
            try:
                conn.execute(
                    "INSERT INTO profiles (id, email, name, password, college_domain, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (profile_id, email, name, hash_password(data.password), email_domain(email), now, now),
                )
            except sqlite3.IntegrityError:
                raise ConflictError("An account with this email already exists")
            conn.commit()
            row = conn.execute(f"{PROFILE_SELECT} WHERE p.id = ?", (profile_id,)).fetchone()
            logger.info("Registered profile %s (%s)", profile_id, email)
            return _row_to_profile(row)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def authenticate(cls, email: str, password: str) -> ProfileRead:
        """Check credentials and return the profile.

        Raises ``ValueError`` with the message to show on the login form.
        """
        email = email.strip().lower()
        if "@" not in email:
            raise ValueError("Please enter a valid email address")
        conn = get_connection()
        try:
            stored = conn.execute(
                "SELECT id, password FROM profiles WHERE email = ?", (email,)
            ).fetchone()
            if not stored:
                raise ValueError("No account found with this email")
            if not verify_password(password, stored["password"]):
                raise ValueError("Incorrect password")
            row = conn.execute(f"{PROFILE_SELECT} WHERE p.id = ?", (stored["id"],)).fetchone()
            return _row_to_profile(row)
        finally:
            conn.close()

    @classmethod
    async def get_profile(cls, profile_id: str) -> ProfileRead:
        conn = get_connection()
        try:
            row = conn.execute(f"{PROFILE_SELECT} WHERE p.id = ?", (profile_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Profile {profile_id} not found")
            return _row_to_profile(row)
        finally:
            conn.close()

    @classmethod
    async def list_profiles(cls, limit: int = 100, offset: int = 0) -> List[ProfileRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"{PROFILE_SELECT} ORDER BY p.created_at ASC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
            return [_row_to_profile(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_profiles_by_ids(cls, profile_ids: List[str]) -> Dict[str, ProfileRead]:
        """Return a mapping of id → profile; unknown ids are left out."""
        ids = list(dict.fromkeys(pid for pid in profile_ids if pid))
        if not ids:
            return {}
        conn = get_connection()
        try:
            placeholders = ", ".join("?" for _ in ids)
            rows = conn.execute(
                f"{PROFILE_SELECT} WHERE p.id IN ({placeholders})", tuple(ids)
            ).fetchall()
            return {row["id"]: _row_to_profile(row) for row in rows}
        finally:
            conn.close()

    @classmethod
    async def update_profile(cls, profile_id: str, data: ProfileUpdate) -> ProfileRead:
        updates = data.model_dump(exclude_unset=True)
        if updates.get("name", "") is None:
            del updates["name"]
        if "name" in updates:
            updates["name"] = updates["name"].strip()
            if len(updates["name"]) < MIN_NAME_LENGTH:
                raise ValueError("Please enter your full name")
        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM profiles WHERE id = ?", (profile_id,)).fetchone():
                raise NotFoundError(f"Profile {profile_id} not found")
            if updates:
                assignments = ", ".join(f"{column} = ?" for column in updates)
                conn.execute(
                    f"UPDATE profiles SET {assignments}, updated_at = ? WHERE id = ?",
                    (*updates.values(), utc_now_iso(), profile_id),
                )
                conn.commit()
                logger.info("Profile %s updated: %s", profile_id, sorted(updates))
            row = conn.execute(f"{PROFILE_SELECT} WHERE p.id = ?", (profile_id,)).fetchone()
            return _row_to_profile(row)
        finally:
            conn.close()

    @classmethod
    def refresh_trust_score(cls, cursor: sqlite3.Cursor, profile_id: str) -> None:
        """Recompute trust score and rating count from received ratings.

        Runs on the caller's cursor so it commits together with the
        rating that triggered it.
        """
        row = cursor.execute(
            "SELECT AVG(overall_rating) AS average, COUNT(*) AS count FROM ratings WHERE rated_user_id = ?",
            (profile_id,),
        ).fetchone()
        count = row["count"] or 0
        # Half-up rounding to one decimal (4.25 -> 4.3).
        trust_score = math.floor(float(row["average"]) * 10 + 0.5) / 10 if count else 0
        cursor.execute(
            "UPDATE profiles SET trust_score = ?, total_ratings = ?, updated_at = ? WHERE id = ?",
            (trust_score, count, utc_now_iso(), profile_id),
        )
