"""Image URL collection from a :class:`~query_x.scraper.models.DocumentSnapshot`."""

from __future__ import annotations

import logging
import urllib.parse

from query_x.scraper.models import DocumentSnapshot

logger = logging.getLogger(__name__)


def _srcset_urls(srcset: str) -> list[str]:
    """Return the URL token of every comma-separated ``srcset`` candidate.

    ``"a.png 1x, b.png 2x"`` gives ``["a.png", "b.png"]``.  Candidates with no
    URL token are skipped.
    """
    urls: list[str] = []
    for candidate in srcset.split(","):
        parts = candidate.split()
        if parts:
            urls.append(parts[0])
    return urls


def _resolve(url: str, base_url: str) -> str:
    """Resolve *url* against *base_url*; on failure return *url* unchanged."""
    if not base_url:
        return url
    try:
        return urllib.parse.urljoin(base_url, url)
    except ValueError:
        logger.debug("scraper: could not resolve image url %r against %r", url, base_url)
        return url


def collect(document: DocumentSnapshot) -> frozenset[str]:
    """Gather the de-duplicated, absolute image URLs referenced by *document*.

    Sources, in order: every ``<img>`` source, every ``<img>`` ``srcset``
    candidate, every ``<source>`` ``srcset`` candidate.  Relative URLs are
    resolved against the document's base URL (or its location when the page
    reported no base).

    Args:
        document: Snapshot returned by the page extraction script.

    Returns:
        Frozen set of image URLs.  Order is not significant.
    """
    base_url = document.base_url or document.url
    raw: list[str] = [src.strip() for src in document.image_sources]
    for srcset in (*document.image_srcsets, *document.source_srcsets):
        raw.extend(_srcset_urls(srcset))
    return frozenset(_resolve(url, base_url) for url in raw if url)
