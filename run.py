"""Entry point for serving the Campus Market API.

Host, port and reload mode are read from ``HOST``, ``PORT`` and
``RELOAD``.  Application settings (database path, secret key, etc.)
are read by ``campus_market_api.app.core.config`` from the same
environment.

Usage:
    python run.py
"""
import os

import uvicorn


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "false").lower() in {"1", "true", "yes"}
    uvicorn.run(
        "campus_market_api.app.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    try:
        main()
    except (KeyboardInterrupt, SystemExit):
        pass
