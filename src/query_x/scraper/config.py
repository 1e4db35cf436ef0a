"""Constants and tuning parameters for the page scraper."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

#: Hard cap on simultaneous page loads per batch, independent of batch size.
MAX_CONCURRENCY: int = 5

#: Error message returned when a batch is empty after filtering.
NO_URLS_MESSAGE: str = "No URLs provided"

#: Message ``type`` accepted by the scrape handler.
SCRAPE_MESSAGE_TYPE: str = "SCRAPE_URLS"

# ---------------------------------------------------------------------------
# Page readiness
# ---------------------------------------------------------------------------

#: Delay between two load-status probes (milliseconds).
READY_POLL_INTERVAL_MS: int = 250

#: Maximum number of load-status probes.  250 ms x 60 is a ~15 s ceiling.
READY_POLL_MAX_ATTEMPTS: int = 60

#: Status value a browsing context reports once the page has loaded.
STATUS_COMPLETE: str = "complete"

#: Status value a browsing context reports while the page is loading.
STATUS_LOADING: str = "loading"

# ---------------------------------------------------------------------------
# Lazy-load scrolling
# ---------------------------------------------------------------------------

#: Total time budget for the scroll drive (milliseconds).
SCROLL_BUDGET_MS: int = 3000

#: Delay between two scroll ticks (milliseconds).
SCROLL_TICK_MS: int = 150

#: Vertical distance scrolled per tick (CSS pixels).
SCROLL_STEP_PX: int = 400
