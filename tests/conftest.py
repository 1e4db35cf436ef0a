"""Shared pytest fixtures for Query X tests.

Fixture summary
---------------
fake_browser    : Scripted in-memory browser implementing both collaborator
                  protocols (context management and script evaluation).
dispatcher      : Dispatcher wired to ``fake_browser`` with an instant sleep.
client          : httpx.AsyncClient against the FastAPI app, with the
                  message router on ``app.state`` backed by ``fake_browser``.

No test needs a real Chromium: every orchestration test runs against
``FakeBrowser``.  The Playwright backend itself is tested with mocks in
``tests/scraper/test_playwright_browser.py``.
"""

from __future__ import annotations

import asyncio
import itertools
import os
from collections.abc import AsyncGenerator
from typing import Any, Iterable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Set env vars before any application modules are imported so that the
# cached Settings() instance never picks up a developer's local .env.

_TEST_ENV_DEFAULTS: dict[str, str] = {
    "LOG_LEVEL": "INFO",
    "BROWSER_HEADLESS": "true",
    "MAX_CONCURRENCY": "5",
}

for _key, _default in _TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(_key, _default)

# ---------------------------------------------------------------------------
# Application imports (after env bootstrap)
# ---------------------------------------------------------------------------

from query_x.config.settings import get_settings  # noqa: E402
from query_x.core.exceptions import CleanupError, ExtractionError, LoadError  # noqa: E402
from query_x.scraper.config import STATUS_COMPLETE  # noqa: E402
from query_x.scraper.dispatcher import Dispatcher, build_dispatcher  # noqa: E402
from query_x.scraper.messaging import MessageRouter  # noqa: E402
from query_x.scraper.page_extractor import SCROLL_STEP_SCRIPT, SNAPSHOT_SCRIPT  # noqa: E402

# Clear the lru_cache so Settings() re-reads from the patched environment.
get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def instant_sleep(_seconds: float) -> None:
    """Stand-in for ``asyncio.sleep`` that only yields to the event loop."""
    await asyncio.sleep(0)


def make_payload(
    url: str,
    text: str = "Hello world",
    *,
    title: str = "Test page",
    images: Iterable[str] = (),
    nodes: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a snapshot payload in the shape ``SNAPSHOT_SCRIPT`` returns."""
    return {
        "title": title,
        "url": url,
        "baseUrl": url,
        "textNodes": nodes
        if nodes is not None
        else [
            {
                "text": text,
                "hasParent": True,
                "display": "block",
                "visibility": "visible",
                "opacity": "1",
            }
        ],
        "imageSources": list(images),
        "imageSrcsets": [],
        "sourceSrcsets": [],
    }


class FakeBrowser:
    """In-memory stand-in for :class:`~query_x.scraper.playwright_browser.PlaywrightBrowser`.

    Behaviour is scripted per URL:

    * ``statuses[url]``: a status string, or a list consumed one probe at a
      time (the last entry repeats).  Defaults to ``"complete"``.
    * ``pages[url]``: the snapshot payload; defaults to :func:`make_payload`.
    * ``create_errors[url]`` / ``snapshot_errors[url]``: exception raised by
      ``create`` / the snapshot script.
    * ``close_failures``: handles whose closure fails (they stay open).
    * ``create_gate``: when set, ``create`` waits on it before returning.
    """

    def __init__(self) -> None:
        self.statuses: dict[str, Any] = {}
        self.pages: dict[str, dict[str, Any]] = {}
        self.create_errors: dict[str, Exception] = {}
        self.snapshot_errors: dict[str, Exception] = {}
        self.close_failures: set[int] = set()
        self.create_gate: asyncio.Event | None = None
        self.scroll_height = 800
        self.is_running = True

        self.created: list[tuple[int, str]] = []
        self.open: dict[int, str] = {}
        self.closed: list[int] = []
        self.close_calls: list[list[int]] = []
        self.status_probes = 0
        self.waiting = 0
        self.scroll_ticks = 0
        self._handles = itertools.count(1)

    @property
    def create_count(self) -> int:
        return len(self.created)

    @property
    def open_handles(self) -> list[int]:
        return sorted(self.open)

    async def create(self, url: str) -> int:
        if self.create_gate is not None:
            self.waiting += 1
            try:
                await self.create_gate.wait()
            finally:
                self.waiting -= 1
        if url in self.create_errors:
            raise self.create_errors[url]
        handle = next(self._handles)
        self.created.append((handle, url))
        self.open[handle] = url
        return handle

    async def get_status(self, handle: int) -> str:
        self.status_probes += 1
        url = self.open.get(handle)
        if url is None:
            raise LoadError(f"browsing context {handle} is closed", handle=handle)
        scripted = self.statuses.get(url, STATUS_COMPLETE)
        if isinstance(scripted, list):
            return scripted.pop(0) if len(scripted) > 1 else scripted[0]
        return scripted

    async def evaluate(self, handle: int, script: str, arg: Any = None) -> Any:
        url = self.open.get(handle)
        if url is None:
            raise ExtractionError(f"browsing context {handle} is closed", handle=handle)
        if script == SCROLL_STEP_SCRIPT:
            self.scroll_ticks += 1
            return self.scroll_height
        if script == SNAPSHOT_SCRIPT:
            if url in self.snapshot_errors:
                raise self.snapshot_errors[url]
            return self.pages.get(url) or make_payload(url)
        raise AssertionError(f"unexpected script: {script!r}")

    async def close_many(self, handles: Iterable[int]) -> None:
        handles = list(handles)
        self.close_calls.append(handles)
        failures: dict[int, str] = {}
        for handle in handles:
            if handle not in self.open:
                continue
            if handle in self.close_failures:
                failures[handle] = "target closed unexpectedly"
                continue
            del self.open[handle]
            self.closed.append(handle)
        if failures:
            raise CleanupError(
                f"failed to close {len(failures)} browsing contexts",
                handles=handles,
                failures=failures,
            )


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_browser() -> FakeBrowser:
    """Return a fresh scripted browser."""
    return FakeBrowser()


@pytest.fixture
def dispatcher(fake_browser: FakeBrowser) -> Dispatcher:
    """Return a dispatcher over ``fake_browser`` that never sleeps."""
    return build_dispatcher(fake_browser, sleep=instant_sleep)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    fake_browser: FakeBrowser, dispatcher: Dispatcher
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx.AsyncClient wired to the FastAPI application.

    ``ASGITransport`` does not run the lifespan, so the engine objects the
    lifespan would create are placed on ``app.state`` by hand.
    """
    from query_x.api.main import create_app  # noqa: PLC0415

    app = create_app()
    app.state.browser = fake_browser
    app.state.dispatcher = dispatcher
    app.state.message_router = MessageRouter(dispatcher)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
