"""Batch page scraper.

Submodules:

- ``text_normalizer``: markdown-artifact cleanup of extracted text.
- ``image_collector``: absolute image URLs from ``img``/``source`` elements.
- ``urls``: request URL normalization and deduplication.
- ``polling``: the shared ``poll_until`` helper.
- ``page_extractor``: scroll drive plus in-page text/image snapshot.
- ``page_loader``: per-URL create, readiness poll and extract protocol.
- ``deduplicator``: in-flight registry shared between batches.
- ``dispatcher``: bounded worker pool and cleanup sweep.
- ``playwright_browser``: Chromium-backed browsing contexts.
- ``messaging`` / ``router``: the ``SCRAPE_URLS`` message channels.
"""
