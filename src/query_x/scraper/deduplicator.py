"""In-flight load registry.

Concurrent requests for the same normalized URL share one
:meth:`PageLoader.load` invocation, and therefore one browsing context.  The
registry is an explicit object owned by the dispatcher; overlapping batches
served by the same dispatcher share it.

All access happens on one event loop and the get-or-insert in
:meth:`TaskDeduplicator.run_once` contains no ``await``, so no lock is needed.
"""

from __future__ import annotations

import asyncio
import logging

from query_x.scraper.models import ScrapeResult
from query_x.scraper.page_loader import PageLoader

logger = logging.getLogger(__name__)


class TaskDeduplicator:
    """Maps a normalized URL to the task currently loading it.

    Args:
        loader: Performs the actual page load.
    """

    def __init__(self, loader: PageLoader) -> None:
        self._loader = loader
        self._in_flight: dict[str, asyncio.Task[ScrapeResult]] = {}

    @property
    def in_flight_count(self) -> int:
        """Number of URLs currently being loaded."""
        return len(self._in_flight)

    def is_in_flight(self, url: str) -> bool:
        return url in self._in_flight

    def pending_task(self, url: str) -> asyncio.Task[ScrapeResult] | None:
        """Return the unsettled load task for *url*, or ``None``."""
        task = self._in_flight.get(url)
        return task if task is not None and not task.done() else None

    def _forget(self, url: str, task: asyncio.Task[ScrapeResult]) -> None:
        # Only drop the entry if it still belongs to this task.
        if self._in_flight.get(url) is task:
            del self._in_flight[url]

    def _get_or_start(self, url: str) -> asyncio.Task[ScrapeResult]:
        task = self._in_flight.get(url)
        # A settled task whose done-callback has not run yet is not in flight.
        if task is not None and not task.done():
            logger.debug("scraper: joining in-flight load for %s", url)
            return task
        task = asyncio.create_task(self._loader.load(url), name=f"load:{url}")
        self._in_flight[url] = task
        task.add_done_callback(lambda done: self._forget(url, done))
        return task

    async def run_once(self, url: str) -> ScrapeResult:
        """Return the result of loading *url*, sharing any load already running.

        The entry is removed when the load settles, whatever the outcome, so a
        later batch loads the URL afresh.  Cancelling one caller does not
        cancel the shared load.

        Args:
            url: Normalized URL.

        Returns:
            The shared :class:`ScrapeResult`.
        """
        return await asyncio.shield(self._get_or_start(url))
