"""Health check route handler.

``GET /api/health``
    Liveness check: reports whether the process is up, whether the shared
    Chromium instance is connected, and how many browsing contexts and
    in-flight loads exist.  Always returns HTTP 200; the ``status`` field
    distinguishes ``"ok"`` from ``"degraded"``.

This endpoint is diagnostic and must never raise HTTP 5xx errors.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from query_x import __version__

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


def _browser_state(state: Any) -> dict[str, Any]:
    """Summarise the browser and engine stored on ``app.state``."""
    browser = getattr(state, "browser", None)
    dispatcher = getattr(state, "dispatcher", None)
    try:
        running = bool(browser is not None and browser.is_running)
        open_contexts = len(browser.open_handles) if browser is not None else 0
        in_flight = dispatcher.deduplicator.in_flight_count if dispatcher is not None else 0
    except Exception:
        logger.exception("Health check: browser state unavailable")
        return {"browser": "error", "open_contexts": 0, "in_flight": 0}
    return {
        "browser": "ok" if running else "down",
        "open_contexts": open_contexts,
        "in_flight": in_flight,
    }


@router.get("/api/health", include_in_schema=True)
async def system_health(request: Request) -> JSONResponse:
    """Return process-level health including the browser state.

    Returns:
        JSON with keys: ``status``, ``version``, ``browser``,
        ``open_contexts``, ``in_flight``, ``timestamp``.
    """
    browser_state = _browser_state(request.app.state)
    payload = {
        "status": "ok" if browser_state["browser"] == "ok" else "degraded",
        "version": __version__,
        **browser_state,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    logger.info("system_health_check", extra={"health": payload})
    return JSONResponse(payload)
