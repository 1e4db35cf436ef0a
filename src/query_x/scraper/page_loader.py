"""Single-URL load protocol.

:meth:`PageLoader.load` walks one URL through::

    CREATING -> POLLING_READY -> EXTRACTING -> DONE
        \\            \\               \\
         +-------------+---------------+----> ERROR

and always returns a :class:`~query_x.scraper.models.ScrapeResult`; it never
raises for a per-URL problem.

Readiness is best-effort: the load status is probed every 250 ms, at most 60
times (~15 s).  A page that never reports ``"complete"`` is still extracted.

The loader does not close the browsing context it creates.  The handle is
attached to the result (success or failure) and the dispatcher's cleanup
sweep closes it, so concurrent teardown never double-closes a context.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time

from query_x.core.exceptions import ExtractionError, LoadError
from query_x.scraper.config import (
    READY_POLL_INTERVAL_MS,
    READY_POLL_MAX_ATTEMPTS,
    SCROLL_BUDGET_MS,
    STATUS_COMPLETE,
)
from query_x.scraper.models import ScrapeResult
from query_x.scraper.page_extractor import PageExtractor
from query_x.scraper.polling import ClockFn, SleepFn, poll_until
from query_x.scraper.runtime import BrowsingContextManager

logger = logging.getLogger(__name__)


class LoadState(str, enum.Enum):
    """Steps of the per-URL load protocol."""

    CREATING = "creating"
    POLLING_READY = "polling_ready"
    EXTRACTING = "extracting"
    DONE = "done"
    ERROR = "error"


class PageLoader:
    """Loads one URL into a fresh browsing context and extracts it.

    Args:
        contexts: Creates browsing contexts and reports their load status.
        extractor: Runs the scroll-and-snapshot routine in a loaded context.
        poll_interval_ms: Delay between load-status probes.
        poll_max_attempts: Maximum number of load-status probes.
        scroll_budget_ms: Time budget handed to the extractor.
        sleep: Async sleep used between probes.
        clock: Monotonic clock, only used for timing logs.
    """

    def __init__(
        self,
        contexts: BrowsingContextManager,
        extractor: PageExtractor,
        *,
        poll_interval_ms: int = READY_POLL_INTERVAL_MS,
        poll_max_attempts: int = READY_POLL_MAX_ATTEMPTS,
        scroll_budget_ms: int = SCROLL_BUDGET_MS,
        sleep: SleepFn = asyncio.sleep,
        clock: ClockFn = time.monotonic,
    ) -> None:
        self._contexts = contexts
        self._extractor = extractor
        self._poll_interval_ms = poll_interval_ms
        self._poll_max_attempts = poll_max_attempts
        self._scroll_budget_ms = scroll_budget_ms
        self._sleep = sleep
        self._clock = clock

    @staticmethod
    def _transition(url: str, state: LoadState, handle: int | None = None) -> LoadState:
        logger.debug("scraper: %s -> %s (handle=%s)", url, state.value, handle)
        return state

    async def _wait_until_ready(self, url: str, handle: int) -> bool:
        async def is_complete() -> bool:
            try:
                status = await self._contexts.get_status(handle)
            except LoadError:
                raise
            except Exception as exc:  # noqa: BLE001
                raise LoadError(
                    f"status probe failed: {exc}", url=url, handle=handle
                ) from exc
            return status == STATUS_COMPLETE

        return await poll_until(
            is_complete,
            self._poll_interval_ms,
            self._poll_max_attempts,
            sleep=self._sleep,
        )

    async def load(self, url: str) -> ScrapeResult:
        """Open *url*, wait for it to load, and extract its content.

        Args:
            url: Normalized URL to load.

        Returns:
            ``ok=True`` with an extraction record, or ``ok=False`` with the
            stringified error.  ``browsing_context_id`` is set whenever a
            context was created.
        """
        started = self._clock()
        handle: int | None = None
        state = self._transition(url, LoadState.CREATING)
        try:
            handle = await self._contexts.create(url)

            state = self._transition(url, LoadState.POLLING_READY, handle)
            ready = await self._wait_until_ready(url, handle)
            if not ready:
                logger.info(
                    "scraper: %s not complete after %d probes; extracting anyway",
                    url,
                    self._poll_max_attempts,
                )

            state = self._transition(url, LoadState.EXTRACTING, handle)
            record = await self._extractor.extract(handle, self._scroll_budget_ms, url=url)

        except (LoadError, ExtractionError) as exc:
            logger.warning(
                "scraper: %s failed while %s (handle=%s): %s",
                url,
                state.value,
                handle,
                exc,
            )
            self._transition(url, LoadState.ERROR, handle)
            return ScrapeResult.failure(url, exc, browsing_context_id=handle)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "scraper: unexpected error for %s while %s (handle=%s): %s",
                url,
                state.value,
                handle,
                exc,
            )
            self._transition(url, LoadState.ERROR, handle)
            return ScrapeResult.failure(url, exc, browsing_context_id=handle)

        self._transition(url, LoadState.DONE, handle)
        logger.debug(
            "scraper: %s extracted %d chars, %d images in %.2fs",
            url,
            record.text_length,
            len(record.image_urls),
            self._clock() - started,
        )
        return ScrapeResult.success(url, record, browsing_context_id=handle)
