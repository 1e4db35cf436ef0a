"""Playwright-backed browsing contexts for the scraping engine.

One headless Chromium instance is launched per process.  Every handle is a
fresh ``BrowserContext`` with a single ``Page``, so cookies, storage and
cache are never shared between two URLs.

:class:`PlaywrightBrowser` implements both collaborator protocols from
:mod:`query_x.scraper.runtime`.

Install Playwright and download the Chromium browser binary::

    pip install playwright>=1.48
    playwright install chromium
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Iterable

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from query_x.core.exceptions import CleanupError, ExtractionError, LoadError
from query_x.scraper.config import STATUS_COMPLETE, STATUS_LOADING

logger = logging.getLogger(__name__)


class PlaywrightBrowser:
    """Headless Chromium exposing integer browsing-context handles.

    Use as an async context manager, or call :meth:`start` / :meth:`stop`
    (the FastAPI lifespan does the latter)::

        async with PlaywrightBrowser() as browser:
            handle = await browser.create("https://example.com")

    Args:
        headless: Launch without a visible window.
        user_agent: User-agent applied to every context.
        navigation_timeout_seconds: Timeout for the initial navigation commit.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        user_agent: str | None = None,
        navigation_timeout_seconds: int = 30,
    ) -> None:
        self._headless = headless
        self._user_agent = user_agent
        self._navigation_timeout_ms = navigation_timeout_seconds * 1000
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._pages: dict[int, tuple[BrowserContext, Page]] = {}
        self._handles = itertools.count(1)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    @property
    def open_handles(self) -> list[int]:
        return sorted(self._pages)

    async def start(self) -> None:
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self._headless)
        logger.info("scraper: chromium started (headless=%s)", self._headless)

    async def stop(self) -> None:
        """Close every open context, then the browser and the driver."""
        try:
            if self._pages:
                await self.close_many(list(self._pages))
        except CleanupError as exc:
            logger.warning("scraper: contexts left open at shutdown: %s", exc)
        finally:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
        logger.info("scraper: chromium stopped")

    async def __aenter__(self) -> PlaywrightBrowser:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # BrowsingContextManager
    # ------------------------------------------------------------------

    async def create(self, url: str) -> int:
        """Open *url* in a new isolated context and return its handle.

        Only the navigation commit is awaited; the rest of the load is
        observed through :meth:`get_status`.  If navigation fails the
        half-created context is closed here, since no handle escapes.

        Raises:
            LoadError: If the browser is not running, or the context cannot
                be created or navigated.
        """
        if self._browser is None:
            raise LoadError("browser is not running", url=url)
        try:
            context = await self._browser.new_context(user_agent=self._user_agent)
        except PlaywrightError as exc:
            raise LoadError(f"could not open browsing context: {exc}", url=url) from exc

        try:
            page = await context.new_page()
            await page.goto(url, timeout=self._navigation_timeout_ms, wait_until="commit")
        except PlaywrightError as exc:
            try:
                await context.close()
            except PlaywrightError as close_exc:
                logger.warning("scraper: could not discard context for %s: %s", url, close_exc)
            raise LoadError(f"navigation failed: {exc}", url=url) from exc

        handle = next(self._handles)
        self._pages[handle] = (context, page)
        logger.debug("scraper: opened handle %d for %s", handle, url)
        return handle

    async def get_status(self, handle: int) -> str:
        """Return ``"complete"`` once ``document.readyState`` says so.

        The execution context is torn down on every redirect; an evaluation
        that fails while the page is still open counts as ``"loading"``.

        Raises:
            LoadError: If *handle* is unknown or its page was closed.
        """
        page = self._page(handle)
        if page is None or page.is_closed():
            raise LoadError(f"browsing context {handle} is closed", handle=handle)
        try:
            ready_state = await page.evaluate("document.readyState")
        except PlaywrightError:
            return STATUS_LOADING
        return STATUS_COMPLETE if ready_state == STATUS_COMPLETE else STATUS_LOADING

    async def close_many(self, handles: Iterable[int]) -> None:
        """Close all known *handles* concurrently; unknown ids are ignored.

        Raises:
            CleanupError: After every closure was attempted, if any failed.
        """
        targets = [
            (handle, self._pages.pop(handle))
            for handle in dict.fromkeys(handles)
            if handle in self._pages
        ]
        if not targets:
            return
        outcomes = await asyncio.gather(
            *(context.close() for _, (context, _page) in targets),
            return_exceptions=True,
        )
        failures = {
            handle: str(outcome)
            for (handle, _), outcome in zip(targets, outcomes)
            if isinstance(outcome, BaseException)
        }
        if failures:
            raise CleanupError(
                f"failed to close {len(failures)} of {len(targets)} browsing contexts",
                handles=[handle for handle, _ in targets],
                failures=failures,
            )

    # ------------------------------------------------------------------
    # PageRuntime
    # ------------------------------------------------------------------

    async def evaluate(self, handle: int, script: str, arg: Any = None) -> Any:
        """Evaluate *script* in the main world of the page behind *handle*.

        Raises:
            ExtractionError: If the context is closed or the script throws.
        """
        page = self._page(handle)
        if page is None or page.is_closed():
            raise ExtractionError(f"browsing context {handle} is closed", handle=handle)
        try:
            return await page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise ExtractionError(f"script failed: {exc}", handle=handle) from exc

    def _page(self, handle: int) -> Page | None:
        entry = self._pages.get(handle)
        return entry[1] if entry else None
