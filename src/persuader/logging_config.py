"""Structured logging configuration using structlog.

Persuader is a library, so its handler is attached to the ``persuader``
logger rather than the root logger: the host application's own logging
setup is left alone. JSON output is used in production, pretty console
output everywhere else.

A per-run ``log_level`` (see ``Options.log_level``) only changes the level
of the ``persuader`` logger; handlers are installed once per process.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import EventDict, WrappedLogger

from persuader.config import settings

PACKAGE_LOGGER = "persuader"

_handler: Optional[logging.Handler] = None


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every event with the application name."""
    event_dict.setdefault("app", settings.APP_NAME)
    return event_dict


def _level(log_level: str) -> int:
    return getattr(logging, log_level.upper(), logging.INFO)


def configure_logging(log_level: Optional[str] = None, environment: Optional[str] = None) -> None:
    """Configure structlog and the ``persuader`` log handler.

    Args:
        log_level: Level name (debug, info, warning, error, critical), any case;
            defaults to settings.LOG_LEVEL
        environment: development or production; defaults to settings.ENVIRONMENT

    Calling this again only updates the level; the handler and renderer
    chosen by the first call stay in place.
    """
    global _handler

    log_level = log_level or settings.LOG_LEVEL
    environment = environment or settings.ENVIRONMENT
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(_level(log_level))
    if _handler is not None:
        _handler.setLevel(_level(log_level))
        return

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]

    is_production = environment.lower() == "production"
    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors)
    )
    handler.setLevel(_level(log_level))
    package_logger.addHandler(handler)
    package_logger.propagate = False
    _handler = handler

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    structlog.get_logger(__name__).debug(
        "Logging configured",
        log_level=log_level,
        environment=environment,
        renderer="json" if is_production else "console",
    )


def reset_logging() -> None:
    """Detach the ``persuader`` handler installed by ``configure_logging``."""
    global _handler

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        package_logger.removeHandler(_handler)
        _handler = None
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
