"""Logging for the storefront.

structlog on top of the standard library root logger. Output goes to stdout;
set STOREFRONT_LOG_FILE to also keep a rotating log file. Production and
staging render JSON, every other environment renders for the console.
"""

import logging
import logging.handlers
import os
import sys

import structlog

from storefront.shared.settings import current_environment

LEVEL_BY_ENVIRONMENT = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}
JSON_ENVIRONMENTS = ("production", "staging")
QUIET_LIBRARIES = ("urllib3", "asyncio", "stripe", "protean")


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", LEVEL_BY_ENVIRONMENT.get(current_environment(), "INFO"))


def setup_stdlib_logging() -> None:
    log_level = get_log_level()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_file = os.getenv("STOREFRONT_LOG_FILE")
    if log_file:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
        )

    logging.basicConfig(level=log_level, format="%(message)s", handlers=handlers, force=True)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_structlog() -> None:
    if current_environment() in JSON_ENVIRONMENTS:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
        )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging() -> None:
    """Configure all logging for the application."""
    setup_stdlib_logging()
    setup_structlog()
