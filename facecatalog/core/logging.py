"""Logging configuration for the face catalog."""
import logging
import sys
from typing import List, Optional, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

from facecatalog.core.config import settings

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


def setup_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    """Configure structlog on top of the standard logging module.

    Development gets colored console output, every other environment gets
    one JSON object per line.

    Args:
        level: Log level name, defaults to settings.LOG_LEVEL
        stream: Output stream, defaults to stdout
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    if settings.ENVIRONMENT == "development":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()
        processors.insert(-1, structlog.processors.format_exc_info)

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(ProcessorFormatter(processor=renderer))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    get_logger(__name__).debug(
        "Logging configured",
        environment=settings.ENVIRONMENT,
        level=level_name
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to a module name.

    Args:
        name: Name for the logger, typically __name__
    """
    return structlog.get_logger(name)
