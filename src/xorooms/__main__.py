"""Entry point for running xorooms via ``python -m xorooms``."""

from __future__ import annotations

import logging

import uvicorn

from .config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def main() -> None:
    """Start the realtime room server."""

    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
    logging.getLogger(__name__).info(
        "Listening on %s:%d", settings.host, settings.port
    )
    uvicorn.run(
        "xorooms.server:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        reload=False,
    )


if __name__ == "__main__":
    main()
