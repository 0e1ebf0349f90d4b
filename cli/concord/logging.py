"""Structured logging configuration for Concord."""

import sys
import logging
from typing import Optional

import structlog

# Third-party loggers that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(debug: bool = False, json_logs: Optional[bool] = None):
    """
    Configure structlog for the consensus engine and its HTTP server.

    Output is pretty-printed on a TTY and JSON elsewhere unless json_logs
    forces one or the other. Context bound with bind_tenant() is merged
    into every event.

    Args:
        debug: Enable debug-level logging
        json_logs: Force JSON (True) or console (False) rendering
    """
    log_level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    if json_logs is None:
        json_logs = not sys.stderr.isatty()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_logger_name,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_tenant(tenant_id: str) -> None:
    """Tag subsequent log events in this context with the tenant."""
    structlog.contextvars.bind_contextvars(tenant_id=tenant_id)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structured logger for a module, e.g. get_logger("concord.policy")."""
    return structlog.get_logger(name)
