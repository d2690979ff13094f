"""Entry point for running the hub via ``python -m gameshub``."""

from __future__ import annotations

import logging

import uvicorn

from .config import ServerSettings


def main() -> None:
    """Start the FastAPI-powered games hub."""

    settings = ServerSettings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "gameshub.ui:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
