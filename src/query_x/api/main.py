"""FastAPI application factory and entry point.

Creates the application instance, registers middleware, and mounts the
scrape and health routers.  The lifespan launches one headless Chromium and
wires the scraping engine onto ``app.state``.

Usage::

    # Development server (from project root)
    uvicorn query_x.api.main:app --reload

    # Production
    uvicorn query_x.api.main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from query_x import __version__
from query_x.config.settings import get_settings
from query_x.core.logging_config import configure_logging, request_id_var

# ---------------------------------------------------------------------------
# Logging configuration is applied once at module import time so that log
# records emitted during app construction are captured correctly.
# The log level is re-applied inside create_app() after settings are loaded.
# ---------------------------------------------------------------------------

configure_logging("INFO")

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Start the browser and the scraping engine; stop the browser on exit.

    Stopping the browser closes every remaining browsing context, which ends
    any batch still in progress.
    """
    from query_x.scraper.dispatcher import build_dispatcher  # noqa: PLC0415
    from query_x.scraper.messaging import MessageRouter  # noqa: PLC0415
    from query_x.scraper.playwright_browser import PlaywrightBrowser  # noqa: PLC0415

    settings = get_settings()
    browser = PlaywrightBrowser(
        headless=settings.browser_headless,
        user_agent=settings.browser_user_agent,
        navigation_timeout_seconds=settings.navigation_timeout_seconds,
    )
    await browser.start()

    dispatcher = build_dispatcher(browser, max_concurrency=settings.max_concurrency)
    application.state.browser = browser
    application.state.dispatcher = dispatcher
    application.state.message_router = MessageRouter(dispatcher)
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        debug=settings.debug,
        log_level=settings.log_level,
        headless=settings.browser_headless,
    )
    try:
        yield
    finally:
        application.state.message_router = None
        await browser.stop()
        logger.info("application_shutdown")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application.

    Separated from the module-level ``app`` singleton so that tests can
    call ``create_app()`` with a patched settings environment before the
    singleton is created.

    Returns:
        A fully configured ``FastAPI`` instance.
    """
    settings = get_settings()

    # Re-apply logging configuration with the correct level from settings.
    configure_logging(settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        description="Batch web-page text and image extraction.",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # ---- Middleware --------------------------------------------------------

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---- Request logging middleware ----------------------------------------

    @application.middleware("http")
    async def request_logging_middleware(
        request: Request, call_next: Callable
    ) -> Response:
        """Log every incoming request and its response status + duration.

        Attaches a unique ``request_id`` to the structlog context so that all
        log lines emitted during a request, including those of the scrape
        workers it starts, can be correlated.
        """
        request_id = str(uuid.uuid4())
        request_id_var.set(request_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("unhandled_exception", exc_info=exc)
            raise
        finally:
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = getattr(response, "status_code", 500)
            log_fn = logger.warning if status_code >= 400 else logger.info
            log_fn(
                "request_complete",
                status_code=status_code,
                elapsed_ms=elapsed_ms,
            )

        response.headers["X-Request-ID"] = request_id
        return response

    # ---- Routers -----------------------------------------------------------

    from query_x.api.routes import health as health_routes  # noqa: PLC0415
    from query_x.scraper.router import router as scrape_router  # noqa: PLC0415

    # Health endpoint (/api/health)
    application.include_router(health_routes.router)
    application.include_router(scrape_router, prefix="/scrape", tags=["scrape"])

    return application


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

app = create_app()
"""The FastAPI application instance.

This is the ASGI callable passed to Uvicorn.
"""
