"""Collaborator interfaces the scraping engine consumes.

The engine never talks to a browser directly.  It needs two capabilities:

``BrowsingContextManager``
    Creates isolated page instances, reports their load status, and closes
    them in bulk.

``PageRuntime``
    Evaluates a script inside a page with full page-global access (the live
    DOM and computed styles), not inside an isolated sandbox.

:class:`~query_x.scraper.playwright_browser.PlaywrightBrowser` implements
both; tests use an in-memory fake.
"""

from __future__ import annotations

from typing import Any, Iterable, Protocol, runtime_checkable


@runtime_checkable
class BrowsingContextManager(Protocol):
    async def create(self, url: str) -> int:
        """Open a new, inactive browsing context at *url* and return its handle.

        Raises:
            LoadError: If the context cannot be created or navigation fails.
        """
        ...

    async def get_status(self, handle: int) -> str:
        """Return ``"loading"`` or ``"complete"`` for *handle*."""
        ...

    async def close_many(self, handles: Iterable[int]) -> None:
        """Close every handle in *handles*, best-effort.

        Unknown or already-closed handles are ignored.

        Raises:
            CleanupError: After attempting all closures, if any failed.
        """
        ...


@runtime_checkable
class PageRuntime(Protocol):
    async def evaluate(self, handle: int, script: str, arg: Any = None) -> Any:
        """Run the JavaScript function *script* in the page behind *handle*.

        *arg* is passed as the function's single argument; the JSON-compatible
        return value is returned.
        """
        ...
