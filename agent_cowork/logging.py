"""Logging configuration for Agent Cowork."""

import logging
import sys
from typing import TextIO

import structlog

from agent_cowork.config import Config, get_config


def configure_logging(
    config: Config | None = None,
    verbose: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for Agent Cowork.

    Args:
        config: Optional config override (defaults to the global config)
        verbose: Force DEBUG level regardless of config
        stream: Output stream for rendered log lines (default stderr)
    """
    config = config or get_config()

    level_name = "DEBUG" if verbose else config.logging.level.upper()
    log_level = getattr(logging, level_name, logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if config.logging.format == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger instance.

    Args:
        name: Optional logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


log = get_logger(__name__)
