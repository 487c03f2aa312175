"""
Structured logging for sessionkit's own loggers.

sessionkit modules log through stdlib ``logging.getLogger(__name__)``. The
package installs a ``NullHandler`` on import and never touches the root
logger; applications opt in to structlog rendering with ``setup_logging()``
or reuse ``build_formatter()`` on their own handlers.
"""

import logging
import sys
from typing import IO, Optional

import structlog

from .config import settings

LOGGER_NAME = "sessionkit"

SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def build_formatter(json_output: bool = True) -> structlog.stdlib.ProcessorFormatter:
    """
    Formatter rendering stdlib records through structlog.

    Context bound with ``structlog.contextvars`` (the account binds the
    session hash and account address per build) is merged into every record.
    """
    if json_output:
        pre_chain = [*SHARED_PROCESSORS, structlog.processors.format_exc_info]
        renderer = structlog.processors.JSONRenderer()
    else:
        pre_chain = list(SHARED_PROCESSORS)
        renderer = structlog.dev.ConsoleRenderer()

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def setup_logging(log_level: Optional[str] = None, stream: Optional[IO[str]] = None) -> logging.Logger:
    """Attach a structlog-formatted handler to the ``sessionkit`` logger.

    JSON at INFO and above, the console renderer at DEBUG. Calling it again
    replaces the handler it installed earlier; handlers on other loggers are
    left alone.

    Args:
        log_level: Override log level (default: from settings.log_level)
        stream: Output stream (default: stdout)
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(build_formatter(json_output=level != logging.DEBUG))
    handler.set_name(LOGGER_NAME)

    logger = logging.getLogger(LOGGER_NAME)
    for existing in list(logger.handlers):
        if existing.get_name() == LOGGER_NAME:
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
