"""
Local file storage for listing images.

Files are written below ``settings.media_dir`` and served by the app
under ``/media``.  Object names follow ``<bucket>/<user_id>/<epoch
ms>-<random>.<ext>`` so two uploads never overwrite each other.
"""

import logging
import os
import secrets
import time
from pathlib import Path

from .config import settings
from .db import resolve_path


logger = logging.getLogger(__name__)

MEDIA_URL_PREFIX = "/media"
ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
MAX_UPLOAD_BYTES = 5 * 1024 * 1024


def media_root() -> Path:
    return Path(resolve_path(settings.media_dir))


def build_object_name(bucket: str, user_id: str, filename: str) -> str:
    """Return a unique object name for ``filename`` uploaded by ``user_id``.

    Raises ``ValueError`` for files without an allowed image extension.
    """
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValueError(
            "Unsupported image type; allowed: " + ", ".join(sorted(ALLOWED_IMAGE_EXTENSIONS))
        )
    return f"{bucket}/{user_id}/{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"


def public_url(object_name: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}{MEDIA_URL_PREFIX}/{object_name}"


def save_object(object_name: str, content: bytes) -> str:
    """Write ``content`` under the media root and return its public URL."""
    if not content:
        raise ValueError("Uploaded file is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise ValueError(f"File exceeds {MAX_UPLOAD_BYTES // (1024 * 1024)} MB limit")
    target = media_root() / object_name
    os.makedirs(target.parent, exist_ok=True)
    target.write_bytes(content)
    logger.info("Stored %s (%d bytes)", object_name, len(content))
    return public_url(object_name)
