"""Unit tests for the structured logging configuration.

Verifies that ``configure_logging()`` produces well-formed output, that the
``request_id_var`` context variable is propagated, and that secret-bearing
keys are redacted.
"""

from __future__ import annotations

import json
import logging
from io import StringIO

import structlog

from query_x.core.logging_config import _redact_secrets, configure_logging, request_id_var


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _capture_log_output(log_level: str, emit) -> str:
    """Configure logging, run *emit*, and return what the root handler wrote.

    Args:
        log_level: Logging level string (e.g. ``"INFO"``).
        emit: Zero-argument callable that emits the records under test.

    Returns:
        The raw text captured from the stream handler's output.
    """
    configure_logging(log_level)

    buffer = StringIO()
    root = logging.getLogger()
    original_streams = []
    for handler in root.handlers:
        if hasattr(handler, "stream"):
            original_streams.append((handler, handler.stream))
            handler.stream = buffer

    try:
        emit()
    finally:
        for handler, stream in original_streams:
            handler.flush()
            handler.stream = stream

    return buffer.getvalue()


def _records(output: str) -> list[dict]:
    return [json.loads(line) for line in output.strip().splitlines() if line.strip()]


def _find(output: str, event: str) -> dict | None:
    return next((r for r in _records(output) if r.get("event") == event), None)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestConfigureLoggingJson:
    """Verify INFO-level (production) JSON output."""

    def test_stdlib_record_rendered_as_json(self) -> None:
        output = _capture_log_output(
            "INFO", lambda: logging.getLogger("test.scraper").info("scraper: stdlib_event")
        )

        target = _find(output, "scraper: stdlib_event")
        assert target is not None, f"Expected record not found in {output!r}"
        assert target["level"] == "info"
        assert target["logger"] == "test.scraper"
        assert "timestamp" in target

    def test_structlog_record_carries_bound_fields(self) -> None:
        def emit() -> None:
            structlog.get_logger("test.structlog").info(
                "scraper: batch_started", url_count=3, workers=3
            )

        target = _find(_capture_log_output("INFO", emit), "scraper: batch_started")

        assert target is not None
        assert target["url_count"] == 3
        assert target["workers"] == 3

    def test_debug_records_dropped_at_info(self) -> None:
        output = _capture_log_output(
            "INFO", lambda: logging.getLogger("test.scraper").debug("hidden_event")
        )
        assert _find(output, "hidden_event") is None

    def test_debug_level_uses_console_renderer(self) -> None:
        output = _capture_log_output(
            "DEBUG", lambda: logging.getLogger("test.scraper").debug("console_event")
        )

        assert "console_event" in output
        assert not output.lstrip().startswith("{")


class TestRequestIdContextVar:
    """Verify that the request_id ContextVar is propagated into log records."""

    def test_request_id_appears_in_json_output(self) -> None:
        token = request_id_var.set("req-1234")
        try:
            output = _capture_log_output(
                "INFO", lambda: logging.getLogger("test.req").info("with_request_id")
            )
        finally:
            request_id_var.reset(token)

        target = _find(output, "with_request_id")
        assert target is not None
        assert target.get("request_id") == "req-1234"

    def test_no_request_id_when_var_unset(self) -> None:
        token = request_id_var.set(None)
        try:
            output = _capture_log_output(
                "INFO", lambda: logging.getLogger("test.req").info("without_request_id")
            )
        finally:
            request_id_var.reset(token)

        target = _find(output, "without_request_id")
        assert target is not None
        assert target.get("request_id") is None


class TestRedactSecrets:
    def test_top_level_secret_keys_redacted(self) -> None:
        event = {"event": "launch", "proxy_auth": "user:pw", "Cookie": "a=b", "url": "x"}

        result = _redact_secrets(None, "info", event)

        assert result["proxy_auth"] == "[REDACTED]"
        assert result["Cookie"] == "[REDACTED]"
        assert result["url"] == "x"

    def test_nested_dict_keys_redacted(self) -> None:
        event = {"event": "launch", "options": {"password": "pw", "headless": True}}

        result = _redact_secrets(None, "info", event)

        assert result["options"] == {"password": "[REDACTED]", "headless": True}


class TestConfigureLoggingIdempotent:
    """Verify configure_logging() is safe to call multiple times."""

    def test_calling_twice_does_not_duplicate_handlers(self) -> None:
        configure_logging("INFO")
        configure_logging("INFO")

        assert len(logging.getLogger().handlers) == 1

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging("LOUD")

        assert logging.getLogger().level == logging.INFO
