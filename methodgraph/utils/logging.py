"""structlog configuration shared by the API, the CLI scripts and the view host."""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog

# Third-party loggers re-routed through the root handler.
_ROUTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "sse_starlette")
# Chatty below WARNING (font cache scans, per-request client lines).
_QUIET_LOGGERS = ("matplotlib", "PIL", "httpx")

FLOAT_DIGITS = 4


def round_floats(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Trim float context (alpha, strength, scale) to ``FLOAT_DIGITS`` places."""
    for key, value in event_dict.items():
        if isinstance(value, float):
            event_dict[key] = round(value, FLOAT_DIGITS)
    return event_dict


def _renderer(log_format: str, stream: TextIO) -> structlog.types.Processor:
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=stream.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(log_level: str = "INFO", log_format: str = "json", stream: TextIO | None = None) -> None:
    """Route structlog and stdlib logging through one handler on ``stream`` (stdout by default)."""
    stream = stream or sys.stdout
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        round_floats,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format, stream),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers.clear()
        routed.propagate = True
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_request(request_id: str) -> None:
    """Start a fresh per-request context tagged with ``request_id``."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
