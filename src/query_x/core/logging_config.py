"""Structured logging configuration using structlog.

Call ``configure_logging()`` once at application startup (the FastAPI app
factory does this).  Modules may then log through either API:

Stdlib usage::

    import logging
    logger = logging.getLogger(__name__)
    logger.warning("scraper: cleanup failed for %s", handles)

Structlog usage (context binding)::

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("scraper: batch_started", url_count=3, workers=3)

``request_id_var`` is set by the request-logging middleware in
``api/main.py`` and merged into every record emitted while that request is
being served, including records from the scrape workers it spawns.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

import structlog
from structlog.types import EventDict, WrappedLogger

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
"""ID of the HTTP request currently being served, or ``None``."""


#: Lower-cased substrings of event-dict keys whose values are never rendered.
#: Proxy credentials and cookies can end up in browser launch options.
_SECRET_SUBSTRINGS: frozenset[str] = frozenset({
    "password",
    "secret",
    "token",
    "cookie",
    "authorization",
    "proxy_auth",
})


def _redact_secrets(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Replace the values of secret-bearing keys with ``"[REDACTED]"``.

    Top-level keys and the keys of directly nested dicts are checked.
    """
    redacted = "[REDACTED]"
    for key in list(event_dict.keys()):
        if any(secret in key.lower() for secret in _SECRET_SUBSTRINGS):
            event_dict[key] = redacted
            continue
        value = event_dict[key]
        if isinstance(value, dict):
            for nested_key in list(value.keys()):
                if any(secret in str(nested_key).lower() for secret in _SECRET_SUBSTRINGS):
                    value[nested_key] = redacted
    return event_dict


def _inject_request_id(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Add ``request_id`` from :data:`request_id_var` when it is set."""
    rid = request_id_var.get()
    if rid is not None and "request_id" not in event_dict:
        event_dict["request_id"] = rid
    return event_dict


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog and the stdlib root logger.

    At ``DEBUG`` the console renderer is used; any other level renders
    newline-delimited JSON.  Every record carries ``timestamp``, ``level``,
    ``logger`` and ``event``, plus ``request_id`` inside an HTTP request.

    Safe to call repeatedly: existing root handlers are replaced.

    Args:
        log_level: One of ``DEBUG``, ``INFO``, ``WARNING``, ``ERROR``,
            ``CRITICAL`` (case-insensitive).  Unknown values mean ``INFO``.
    """
    level_upper = log_level.upper()
    numeric_level = getattr(logging, level_upper, logging.INFO)
    is_development = level_upper == "DEBUG"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _inject_request_id,
        _redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if is_development:
        final_renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(
            colors=True,
        )
    else:
        final_renderer = structlog.processors.JSONRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            final_renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    # Playwright's driver and the ASGI server are chatty at INFO.
    if not is_development:
        for noisy_logger in ("uvicorn.access", "asyncio", "playwright"):
            logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
