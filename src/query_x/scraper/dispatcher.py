"""Batch scraping engine.

:meth:`Dispatcher.run` takes the raw ``urls`` of a scrape request and:

1. drops non-string and blank entries, normalizes the rest, and removes
   duplicates (an empty result is rejected with ``"No URLs provided"``);
2. fills one shared queue with the distinct URLs and starts
   ``min(5, len(urls))`` workers;
3. each worker pops a URL, loads it through the
   :class:`~query_x.scraper.deduplicator.TaskDeduplicator`, and appends the
   result, until the queue is empty;
4. once all workers finish, closes every browsing context referenced by the
   results in a single ``close_many`` call.  Closure failures are logged and
   never reach the caller.

Results are returned in completion order.  Per-URL failures arrive as
``ok=False`` results; the batch itself only fails when it is empty.

Usage::

    dispatcher = build_dispatcher(browser)
    response = await dispatcher.run(["https://example.com/a", "https://example.com/b"])
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Any, Iterable

from query_x.core.exceptions import CleanupError, InputError
from query_x.scraper.config import MAX_CONCURRENCY, NO_URLS_MESSAGE
from query_x.scraper.deduplicator import TaskDeduplicator
from query_x.scraper.models import BatchResponse, ScrapeResult
from query_x.scraper.page_extractor import PageExtractor
from query_x.scraper.page_loader import PageLoader
from query_x.scraper.polling import ClockFn, SleepFn
from query_x.scraper.runtime import BrowsingContextManager, PageRuntime
from query_x.scraper.urls import prepare_batch

logger = logging.getLogger(__name__)


class Dispatcher:
    """Runs scrape batches on a bounded worker pool.

    Args:
        contexts: Browsing-context manager used for the cleanup sweep.
        deduplicator: In-flight registry shared by every batch this
            dispatcher serves.
        max_concurrency: Requested worker-pool size; clamped to 1..5.
    """

    def __init__(
        self,
        contexts: BrowsingContextManager,
        deduplicator: TaskDeduplicator,
        *,
        max_concurrency: int = MAX_CONCURRENCY,
    ) -> None:
        self._contexts = contexts
        self._deduplicator = deduplicator
        self._max_concurrency = max(1, min(max_concurrency, MAX_CONCURRENCY))
        self.last_worker_count = 0
        self._late_sweeps: set[asyncio.Task[None]] = set()

    @property
    def deduplicator(self) -> TaskDeduplicator:
        return self._deduplicator

    @staticmethod
    def _prepare(raw_urls: Iterable[Any] | None) -> list[str]:
        urls = prepare_batch(raw_urls)
        if not urls:
            raise InputError(NO_URLS_MESSAGE)
        return urls

    async def _worker(
        self,
        queue: asyncio.Queue[str],
        started: list[str],
        results: list[ScrapeResult],
    ) -> None:
        while True:
            try:
                url = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            started.append(url)
            result = await self._deduplicator.run_once(url)
            results.append(result)

    def _sweep_when_settled(self, batch_id: str, urls: Iterable[str]) -> None:
        """Close the contexts of loads this batch left running once they settle.

        Only happens when :meth:`run` is cancelled; the shared loads keep
        going and their handles never reach the batch's results.
        """
        for url in urls:
            task = self._deduplicator.pending_task(url)
            if task is None:
                continue
            logger.info("scraper: batch %s cancelled, closing %s when it settles", batch_id, url)
            task.add_done_callback(lambda done: self._start_late_sweep(batch_id, done))

    def _start_late_sweep(self, batch_id: str, task: asyncio.Task[ScrapeResult]) -> None:
        if task.cancelled() or task.exception() is not None:
            return
        sweep = asyncio.get_running_loop().create_task(self._sweep(batch_id, [task.result()]))
        self._late_sweeps.add(sweep)
        sweep.add_done_callback(self._late_sweeps.discard)

    async def _sweep(self, batch_id: str, results: list[ScrapeResult]) -> None:
        """Close every browsing context referenced by *results*, once."""
        handles = sorted(
            {r.browsing_context_id for r in results if r.browsing_context_id is not None}
        )
        if not handles:
            return
        try:
            await self._contexts.close_many(handles)
        except CleanupError as exc:
            logger.warning(
                "scraper: batch %s failed to close contexts %s: %s",
                batch_id,
                sorted(exc.failures) or handles,
                exc,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "scraper: batch %s cleanup of %d contexts failed: %s",
                batch_id,
                len(handles),
                exc,
            )
        else:
            logger.debug("scraper: batch %s closed %d contexts", batch_id, len(handles))

    async def run(self, raw_urls: Iterable[Any] | None) -> BatchResponse:
        """Scrape every distinct URL in *raw_urls*.

        Args:
            raw_urls: Raw request URLs; may contain duplicates, blanks and
                non-string values.

        Returns:
            ``BatchResponse(ok=True, results=[...])`` in completion order, or
            ``BatchResponse(ok=False, error_message="No URLs provided")``
            when nothing usable was supplied.
        """
        try:
            urls = self._prepare(raw_urls)
        except InputError as exc:
            logger.info("scraper: rejected batch: %s", exc)
            return BatchResponse.rejected(str(exc))

        batch_id = uuid.uuid4().hex[:8]
        queue: asyncio.Queue[str] = asyncio.Queue()
        for url in urls:
            queue.put_nowait(url)

        started: list[str] = []
        results: list[ScrapeResult] = []
        worker_count = min(self._max_concurrency, len(urls))
        self.last_worker_count = worker_count
        started_at = time.monotonic()
        logger.info(
            "scraper: batch %s started, %d URLs, %d workers",
            batch_id,
            len(urls),
            worker_count,
        )

        try:
            await asyncio.gather(
                *(self._worker(queue, started, results) for _ in range(worker_count))
            )
        finally:
            self._sweep_when_settled(batch_id, started)
            await self._sweep(batch_id, results)

        failed = sum(1 for r in results if not r.ok)
        logger.info(
            "scraper: batch %s completed in %.2fs, %d ok, %d failed",
            batch_id,
            time.monotonic() - started_at,
            len(results) - failed,
            failed,
        )
        return BatchResponse(ok=True, results=results)


def build_dispatcher(
    browser: Any,
    *,
    contexts: BrowsingContextManager | None = None,
    runtime: PageRuntime | None = None,
    max_concurrency: int = MAX_CONCURRENCY,
    sleep: SleepFn = asyncio.sleep,
    clock: ClockFn = time.monotonic,
) -> Dispatcher:
    """Wire a :class:`Dispatcher` with its loader, extractor and registry.

    Args:
        browser: Object implementing both
            :class:`~query_x.scraper.runtime.BrowsingContextManager` and
            :class:`~query_x.scraper.runtime.PageRuntime`.
        contexts: Overrides *browser* as the context manager.
        runtime: Overrides *browser* as the page runtime.
        max_concurrency: Worker-pool size (clamped to 1..5).
        sleep: Async sleep shared by the load poll and the scroll drive.
        clock: Monotonic clock shared by the same.

    Returns:
        A ready-to-use dispatcher.
    """
    contexts = contexts or browser
    runtime = runtime or browser
    extractor = PageExtractor(runtime, sleep=sleep, clock=clock)
    loader = PageLoader(contexts, extractor, sleep=sleep, clock=clock)
    return Dispatcher(contexts, TaskDeduplicator(loader), max_concurrency=max_concurrency)
