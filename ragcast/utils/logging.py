"""Structured logging setup using structlog.

Console rendering for local development, JSON lines in production.  Both
renderers share one processor chain (context vars, level, ISO timestamps,
exception info) so a log line carries the same keys either way.

Standard-library ``logging`` is routed through the same formatter, which
keeps uvicorn and the openai SDK in the same format as our own events.
Chatty HTTP client loggers are capped at WARNING.
"""

from __future__ import annotations

import logging
import sys

import structlog

_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "multipart")


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    app_env: str = "development",
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON output regardless of *app_env*.
        app_env: Deployment environment; ``"production"`` selects JSON.

    Returns:
        A configured structlog BoundLogger.
    """
    use_json = json_output or app_env == "production"
    level = logging.getLevelName(log_level.upper())

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        # JSON cannot carry exc_info objects; format them to a string first.
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared_processors,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a named structlog logger, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)
