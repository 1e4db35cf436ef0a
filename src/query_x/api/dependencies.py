"""FastAPI dependency injection providers.

The browser, dispatcher and message router are created by the application
lifespan and stored on ``app.state``; route handlers obtain them through the
dependencies below, so tests can install fakes on ``app.state`` directly.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from query_x.scraper.messaging import MessageRouter


def get_message_router(request: Request) -> MessageRouter:
    """Return the application's :class:`MessageRouter`.

    Raises:
        HTTPException 503: If the lifespan has not finished starting the
            browser.
    """
    message_router: MessageRouter | None = getattr(request.app.state, "message_router", None)
    if message_router is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Scraper is not ready.",
        )
    return message_router
