"""structlog setup shared by the simulation and its tests."""

import logging
from typing import Optional

import structlog

from .config import Settings, settings as default_settings


def configure_logging(config: Optional[Settings] = None, force: bool = False) -> None:
    """Configure structlog on top of the stdlib logging module.

    Does nothing when structlog is already configured, unless ``force`` is set.
    """
    if structlog.is_configured() and not force:
        return

    config = config or default_settings
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    if config.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
