"""
Main entrypoint for the Campus Market API.

This module assembles the FastAPI application, sets up logging and
includes versioned routers.  The ``create_app`` function builds
and configures the app, which is then instantiated at module
import time as ``app``.  Importing the app here makes it easy to
run with uvicorn or another ASGI server, e.g.::

    uvicorn campus_market_api.app.main:app --reload

Uploaded images are served as static files under ``/media``.  While
the app runs, a background task periodically closes expired need
requests and reminds owners of requests about to expire.
"""

import asyncio
import logging
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .core.config import settings
from .core.logging_config import setup_logging
from .api.v1.router import router as v1_router
from .core.db import init_db
from .core.storage import MEDIA_URL_PREFIX, media_root
from .services.need_request_service import NeedRequestService


logger = logging.getLogger(__name__)


async def sweep_requests_once() -> None:
    closed = await NeedRequestService.close_expired()
    reminded = await NeedRequestService.notify_expiring()
    logger.debug("Request sweep: %d closed, %d reminded", closed, reminded)


async def request_sweeper(interval_seconds: float) -> None:
    """Run ``sweep_requests_once`` forever, ``interval_seconds`` apart."""
    while True:
        try:
            await sweep_requests_once()
        except Exception:
            logger.exception("Request sweep failed")
        await asyncio.sleep(interval_seconds)


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    This function performs one‑time setup tasks such as configuring
    logging, mounting the media directory and including versioned API
    routers.  It returns a fully configured FastAPI instance ready to
    be served.
    """
    # Initialise logging before anything else so that imports below can
    # safely log messages.
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)

    # Mount versioned routes under /api/v1.
    app.include_router(v1_router, prefix="/api/v1")

    media_dir = media_root()
    os.makedirs(media_dir, exist_ok=True)
    app.mount(MEDIA_URL_PREFIX, StaticFiles(directory=str(media_dir)), name="media")

    sweeper: dict[str, Optional[asyncio.Task]] = {"task": None}

    @app.on_event("startup")
    async def startup_event() -> None:
        # Apply migrations at startup.  This will create the database
        # file if it does not exist and ensure all tables are up to date.
        init_db()
        if settings.request_sweep_minutes > 0:
            sweeper["task"] = asyncio.create_task(request_sweeper(settings.request_sweep_minutes * 60))
            logger.info("Request sweeper started (every %s min)", settings.request_sweep_minutes)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        task = sweeper["task"]
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
