"""Application settings loaded from environment variables.

Uses Pydantic Settings v2.  Read configuration through :func:`get_settings`
rather than calling ``os.getenv`` elsewhere in the codebase.

Usage::

    from query_x.config.settings import get_settings

    settings = get_settings()
    headless = settings.browser_headless

The page-readiness protocol constants (poll interval, scroll budget, worker
cap) are fixed and live in :mod:`query_x.scraper.config`, not here.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration backed by environment variables and an optional .env file.

    Every field has a default, so the service starts with an empty
    environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Application behaviour
    # ------------------------------------------------------------------

    app_name: str = "Query X"
    """Name shown in the OpenAPI docs."""

    debug: bool = False
    """Enable FastAPI debug mode.  Never True in production."""

    log_level: str = "INFO"
    """Logging verbosity.  One of: DEBUG, INFO, WARNING, ERROR, CRITICAL."""

    allowed_origins: list[str] = ["http://localhost:8000"]
    """Origins permitted by the CORS middleware."""

    # ------------------------------------------------------------------
    # Browser
    # ------------------------------------------------------------------

    browser_headless: bool = True
    """Launch Chromium without a visible window."""

    browser_user_agent: str = (
        "Mozilla/5.0 (X11; Linux x86_64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    """User-agent string applied to every browsing context."""

    navigation_timeout_seconds: int = Field(default=30, ge=1, le=300)
    """Upper bound for the initial navigation commit of a new context.

    This only bounds the request/response handshake; waiting for the page to
    finish loading is governed by the fixed readiness poll.
    """

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    max_concurrency: int = Field(default=5, ge=1)
    """Requested worker-pool size.  The dispatcher never exceeds 5."""


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings singleton.

    In tests, call ``get_settings.cache_clear()`` after patching environment
    variables.
    """
    return Settings()
