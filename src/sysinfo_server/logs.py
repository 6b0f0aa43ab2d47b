"""Structured logging configuration using structlog."""

import sys

import structlog

from sysinfo_server.config import Settings


def _stderr_logger_factory(*args) -> structlog.PrintLogger:
    # Resolve sys.stderr per logger so redirected streams are honoured.
    return structlog.PrintLogger(sys.stderr)


_LEVELS = {"debug": 10, "info": 20, "warning": 30, "warn": 30, "error": 40, "critical": 50}


def setup_logging(settings: Settings) -> None:
    """Configure structlog for sysinfo-server.

    Uses console renderer for development, JSON for production. Everything
    is written to stderr since stdout carries the MCP stdio transport.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.log_format.lower() == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _LEVELS.get(settings.log_level.lower(), 20)
        ),
        context_class=dict,
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger, optionally bound to a component name.

    Initial values keep the proxy lazy, so module-level loggers pick up
    whatever setup_logging() configures later.
    """
    if name:
        return structlog.get_logger(component=name)
    return structlog.get_logger()
