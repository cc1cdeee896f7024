"""Run the relay with uvicorn: ``python -m coach_relay``."""
from __future__ import annotations

import logging

import uvicorn

from .core.config import settings
from .core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(settings.log_level)
    logger.info("Server running:")
    logger.info("  Local:  http://localhost:%d/health", settings.port)
    uvicorn.run("coach_relay.main:app", host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
