"""Structured logging configuration.

Logs go through structlog on top of the standard logging module and are
written to stderr, leaving stdout to command output.
"""

import logging
import os
import sys
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import Processor

LOG_LEVEL_ENV = "CARDRECON_LOG_LEVEL"
LOG_JSON_ENV = "CARDRECON_LOG_JSON"
DEFAULT_LOG_LEVEL = "WARNING"


def _build_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _select_renderer(json_output: bool) -> Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def configure_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """Configure structlog and the root logger.

    Args:
        level: Log level name. Defaults to CARDRECON_LOG_LEVEL, then WARNING.
        json_output: Render JSON lines. Defaults to CARDRECON_LOG_JSON.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)
    if json_output is None:
        json_output = os.environ.get(LOG_JSON_ENV, "").lower() in {"1", "true", "yes"}

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level '{level}'")

    processors = _build_processors()

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=_select_renderer(json_output),
        foreign_pre_chain=processors,
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    # force replaces handlers bound to streams from an earlier invocation
    logging.basicConfig(handlers=[handler], level=numeric_level, force=True)


def get_logger(name: Optional[str] = None) -> BoundLogger:
    """Get a structured logger."""
    return structlog.get_logger(name)
