"""
Logging setup for the marketplace API.

Each service logs under its module name, so a line such as
``campus_market_api.app.services.match_service: Match ... completed``
says which part of the market wrote it.  INFO covers the writes users
care about: sign-ups, new listings and requests, interest and offers,
match status changes, chat messages, ratings and the request sweeper's
closures and reminders.  WARNING marks flagged ratings and realtime
events dropped for a slow subscriber.  ERROR marks failed writes.

``setup_logging`` attaches a console handler and, when ``LOG_FILE`` is
set, a file handler.  It runs once even when ``create_app`` is called
repeatedly, as it is in the tests.
"""

import logging
from pathlib import Path
from typing import Optional


NOISY_LOGGERS = ("multipart", "httpx", "uvicorn.access")


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure root logger.

    If no handlers are attached to the root logger, attach a
    console handler and optionally a file handler.  The root
    logger's level is set based on the provided ``level``.

    Parameters
    ----------
    level : str
        Logging level name (e.g. ``"DEBUG"``, ``"INFO"``).  Case
        insensitive.
    logfile : Optional[str]
        Path to a file to log messages to.  If omitted, no file
        handler is added.
    """
    logger = logging.getLogger()
    if logger.handlers:
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if logfile:
        log_path = Path(logfile).resolve()
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Form parsing and per-request access lines drown out service logs
    # at DEBUG.
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
