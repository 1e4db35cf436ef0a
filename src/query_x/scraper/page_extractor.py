"""Visible-text and image extraction from a loaded page.

The extractor drives the page through a
:class:`~query_x.scraper.runtime.PageRuntime`:

1. **Scroll drive**: every 150 ms the viewport is scrolled down by a fixed
   step until the time budget runs out or the scrolled distance reaches the
   document's scroll height.  This is a heuristic to trigger lazy-loaded
   content, not a completion signal.
2. **Snapshot**: one script walks all text nodes under ``<body>`` and
   reports each with its parent's computed style, plus the page title,
   location, base URI and the raw image attributes.
3. **Assembly**: hidden and whitespace-only nodes are dropped, the rest are
   joined with newlines and passed through
   :func:`~query_x.scraper.text_normalizer.clean`; image URLs go through
   :func:`~query_x.scraper.image_collector.collect`.

Any failure is raised as :class:`~query_x.core.exceptions.ExtractionError`
for the page loader to turn into a failed result.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any

from query_x.core.exceptions import ExtractionError
from query_x.scraper.config import SCROLL_BUDGET_MS, SCROLL_STEP_PX, SCROLL_TICK_MS
from query_x.scraper.image_collector import collect
from query_x.scraper.models import DocumentSnapshot, ExtractionRecord, TextNode
from query_x.scraper.polling import ClockFn, SleepFn, poll_until
from query_x.scraper.runtime import PageRuntime
from query_x.scraper.text_normalizer import clean

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# In-page scripts
# ---------------------------------------------------------------------------

#: Scrolls by ``distance`` pixels and returns the document's scroll height.
SCROLL_STEP_SCRIPT = """
(distance) => {
  window.scrollBy(0, distance);
  const body = document.body;
  return body ? body.scrollHeight : 0;
}
"""

#: Returns the raw page model consumed by :meth:`DocumentSnapshot.from_payload`.
SNAPSHOT_SCRIPT = """
() => {
  const textNodes = [];
  if (document.body) {
    const walker = document.createTreeWalker(document.body, NodeFilter.SHOW_TEXT);
    while (walker.nextNode()) {
      const node = walker.currentNode;
      const parent = node.parentElement;
      if (!parent) {
        textNodes.push({ text: node.nodeValue || "", hasParent: false });
        continue;
      }
      const style = window.getComputedStyle(parent);
      textNodes.push({
        text: node.nodeValue || "",
        hasParent: true,
        display: style.display,
        visibility: style.visibility,
        opacity: style.opacity,
      });
    }
  }
  const images = Array.from(document.images);
  return {
    title: document.title,
    url: location.href,
    baseUrl: document.baseURI,
    textNodes,
    imageSources: images.map((img) => img.currentSrc || img.src || "").filter(Boolean),
    imageSrcsets: images.map((img) => img.getAttribute("srcset") || "").filter(Boolean),
    sourceSrcsets: Array.from(document.querySelectorAll("source[srcset]"))
      .map((el) => el.getAttribute("srcset") || ""),
  };
}
"""

_WHITESPACE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Text-node filtering
# ---------------------------------------------------------------------------


def _parse_opacity(value: str) -> float:
    try:
        return float(value or "1")
    except ValueError:
        return 1.0


def is_visible_text(node: TextNode) -> bool:
    """Return ``True`` if *node* contributes to the page's visible text.

    A node is rejected when it has no parent element, when that parent is
    ``display: none``, ``visibility: hidden`` or fully transparent, or when
    its whitespace-collapsed text is empty.
    """
    if not node.has_parent:
        return False
    if node.display == "none" or node.visibility == "hidden":
        return False
    if _parse_opacity(node.opacity) == 0:
        return False
    return bool(_WHITESPACE.sub(" ", node.text).strip())


def build_record(snapshot: DocumentSnapshot) -> ExtractionRecord:
    """Assemble an :class:`ExtractionRecord` from a page snapshot."""
    raw_text = "\n".join(node.text for node in snapshot.text_nodes if is_visible_text(node))
    cleaned = clean(raw_text)
    return ExtractionRecord(
        cleaned_text=cleaned,
        text_length=len(cleaned),
        page_title=snapshot.title,
        final_url=snapshot.url,
        image_urls=collect(snapshot),
    )


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class PageExtractor:
    """Scrolls a page, snapshots it, and builds its extraction record.

    Args:
        runtime: Script-execution capability for the browsing context.
        tick_ms: Delay between scroll ticks.
        step_px: Pixels scrolled per tick.
        sleep: Async sleep used between ticks.
        clock: Monotonic clock used for the time budget.
    """

    def __init__(
        self,
        runtime: PageRuntime,
        *,
        tick_ms: int = SCROLL_TICK_MS,
        step_px: int = SCROLL_STEP_PX,
        sleep: SleepFn = asyncio.sleep,
        clock: ClockFn = time.monotonic,
    ) -> None:
        self._runtime = runtime
        self._tick_ms = tick_ms
        self._step_px = step_px
        self._sleep = sleep
        self._clock = clock

    async def _scroll(self, handle: int, max_duration_ms: int) -> int:
        """Scroll until the budget is spent or the page bottom is reached.

        Returns:
            Total distance scrolled in pixels.
        """
        scrolled = 0

        async def tick() -> bool:
            nonlocal scrolled
            height = await self._runtime.evaluate(handle, SCROLL_STEP_SCRIPT, self._step_px)
            scrolled += self._step_px
            try:
                return scrolled >= float(height or 0)
            except (TypeError, ValueError):
                return True

        reached_bottom = await poll_until(
            tick,
            self._tick_ms,
            max(1, max_duration_ms // self._tick_ms),
            deadline_ms=max_duration_ms,
            sleep=self._sleep,
            clock=self._clock,
        )
        logger.debug(
            "scraper: handle %s scrolled %d px (bottom reached: %s)",
            handle,
            scrolled,
            reached_bottom,
        )
        return scrolled

    async def extract(
        self,
        handle: int,
        max_duration_ms: int = SCROLL_BUDGET_MS,
        *,
        url: str | None = None,
    ) -> ExtractionRecord:
        """Extract visible text and images from the page behind *handle*.

        Args:
            handle: Browsing context to extract from.
            max_duration_ms: Scroll budget in milliseconds.
            url: Normalized URL, only used to annotate errors.

        Returns:
            The page's :class:`ExtractionRecord`.

        Raises:
            ExtractionError: If scrolling, the snapshot script, or record
                assembly fails.
        """
        try:
            await self._scroll(handle, max_duration_ms)
            payload: Any = await self._runtime.evaluate(handle, SNAPSHOT_SCRIPT)
            snapshot = DocumentSnapshot.from_payload(payload)
            return build_record(snapshot)
        except ExtractionError as exc:
            exc.url = exc.url or url
            exc.handle = handle if exc.handle is None else exc.handle
            raise
        except Exception as exc:  # noqa: BLE001
            raise ExtractionError(str(exc) or type(exc).__name__, url=url, handle=handle) from exc
