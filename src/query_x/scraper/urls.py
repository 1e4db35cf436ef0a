"""URL normalization and batch preparation.

All functions in this module are pure (no I/O).
"""

from __future__ import annotations

import urllib.parse
from typing import Any, Iterable


def normalize_url(url: str) -> str:
    """Return the canonical key for *url*.

    Surrounding whitespace and the fragment are removed; nothing else is
    touched because the key is also the address the browser navigates to.
    If the URL cannot be parsed the trimmed input is returned.

    Args:
        url: Raw URL string.

    Returns:
        Normalized URL string, used for deduplication and navigation.
    """
    trimmed = url.strip()
    try:
        parsed = urllib.parse.urlsplit(trimmed)
        return urllib.parse.urlunsplit(
            (parsed.scheme, parsed.netloc, parsed.path, parsed.query, "")
        )
    except ValueError:
        return trimmed


def prepare_batch(raw_urls: Iterable[Any] | None) -> list[str]:
    """Filter, normalize and deduplicate a raw batch of URLs.

    Non-string and blank entries are dropped.  URLs that normalize to the same
    key are kept once, in first-occurrence order.

    Args:
        raw_urls: The ``urls`` value of a scrape request; may be ``None``.

    Returns:
        Distinct normalized URLs.
    """
    seen: set[str] = set()
    result: list[str] = []
    for raw in raw_urls or []:
        if not isinstance(raw, str) or not raw.strip():
            continue
        key = normalize_url(raw)
        if key and key not in seen:
            seen.add(key)
            result.append(key)
    return result
