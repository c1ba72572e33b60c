"""
Logging setup shared by the service, fetchers and CLI.

structlog is wired on top of the standard library ``logging`` module so that
third-party loggers (aiohttp, asyncio) end up in the same stream.
"""

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...). Unknown names fall back to INFO.
        json: Render events as JSON lines instead of the console renderer.
    """
    log_level = getattr(logging, str(level or "INFO").upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level, force=True)

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    return structlog.get_logger(name)
