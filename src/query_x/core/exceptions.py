"""Application-wide exception hierarchy for Query X.

All custom exceptions subclass ``QueryXError`` so that callers can catch the
whole family with a single ``except`` clause when needed.

Hierarchy::

    QueryXError
    ├── InputError          (empty batch after filtering)
    ├── LoadError           (url, handle)
    ├── ExtractionError     (url, handle)
    └── CleanupError        (handles, failures)

Per-URL errors (``LoadError``, ``ExtractionError``) never escape a worker:
the page loader converts them into failed
:class:`~query_x.scraper.models.ScrapeResult` values.  ``CleanupError`` is
logged by the dispatcher and never surfaced to the caller.
"""

from __future__ import annotations


class QueryXError(Exception):
    """Base class for all Query X exceptions."""


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------


class InputError(QueryXError):
    """Raised when a scrape request contains no usable URLs."""


# ---------------------------------------------------------------------------
# Per-page exceptions
# ---------------------------------------------------------------------------


class LoadError(QueryXError):
    """Raised when a browsing context cannot be created, navigated or probed.

    Args:
        message: Human-readable description of the failure.
        url: The normalized URL being loaded.
        handle: Browsing-context id, or ``None`` if creation itself failed.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        handle: int | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.handle = handle


class ExtractionError(QueryXError):
    """Raised when the in-page extraction routine fails.

    Covers script errors, closed contexts, and snapshots that do not have the
    expected shape.

    Args:
        message: Human-readable description of the failure.
        url: The normalized URL being extracted.
        handle: Browsing-context id the script ran in.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        handle: int | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.handle = handle


# ---------------------------------------------------------------------------
# Resource cleanup
# ---------------------------------------------------------------------------


class CleanupError(QueryXError):
    """Raised when one or more browsing contexts fail to close.

    Args:
        message: Summary of the failure.
        handles: Every handle that closure was attempted for.
        failures: Mapping of handle id to the error raised while closing it.
    """

    def __init__(
        self,
        message: str,
        handles: list[int] | None = None,
        failures: dict[int, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.handles = handles or []
        self.failures = failures or {}
