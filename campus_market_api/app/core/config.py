"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
API can be started locally without any setup.  In a production
deployment you should override at least ``SECRET_KEY`` and
``PUBLIC_BASE_URL``.
"""

import os
from dataclasses import dataclass, field
from typing import List


def _split_csv(value: str) -> List[str]:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Campus Market API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Path or connection string for the SQLite database.  If a relative
    # path is provided, it will be resolved relative to the project root
    # by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "campus_market.db")

    # Uploaded listing images are written below this directory and served
    # under ``/media``.  Relative paths resolve like ``database_url``.
    media_dir: str = os.getenv("MEDIA_DIR", "media")
    # Prefix used to build public URLs for uploaded files, e.g.
    # ``https://market.example.edu``.  Empty means root-relative URLs.
    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "")

    # Registration is restricted to college email addresses.  An email is
    # accepted when its domain ends with one of these suffixes.
    allowed_email_domains: List[str] = field(
        default_factory=lambda: _split_csv(
            os.getenv(
                "ALLOWED_EMAIL_DOMAINS",
                "edu,ac.in,edu.in,university.edu,college.edu,iit.ac.in,nit.ac.in,iiit.ac.in",
            )
        )
    )

    request_ttl_days: int = int(os.getenv("REQUEST_TTL_DAYS", "7"))
    max_listing_images: int = int(os.getenv("MAX_LISTING_IMAGES", "4"))
    sse_heartbeat_seconds: float = float(os.getenv("SSE_HEARTBEAT_SECONDS", "30"))
    # Minutes between sweeps that close expired requests and send expiry
    # reminders.  0 disables the background sweeper.
    request_sweep_minutes: float = float(os.getenv("REQUEST_SWEEP_MINUTES", "15"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# should be set before importing this module.
settings = Settings()
