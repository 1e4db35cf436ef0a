"""Pydantic request/response schemas for the scrape message endpoint.

Used by :mod:`query_x.scraper.router` for validation, serialisation, and
OpenAPI documentation generation.  The engine itself works on the
dataclasses in :mod:`query_x.scraper.models`; the ``from_*`` constructors
below convert them.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from query_x.scraper.models import BatchResponse, ExtractionRecord, ScrapeResult


class ScrapeUrlsMessage(BaseModel):
    """Inbound scrape message.

    ``urls`` is deliberately untyped: non-string entries are dropped by the
    dispatcher and a non-list value counts as an empty batch, so neither is a
    validation error.

    Attributes:
        type: Must be ``"SCRAPE_URLS"``; anything else is answered with 400.
        urls: Raw URLs to scrape.
    """

    model_config = ConfigDict(extra="allow")

    type: str
    urls: Any = None


class ExtractionRecordRead(BaseModel):
    """Cleaned content of one page."""

    cleaned_text: str
    text_length: int
    page_title: str
    final_url: str
    image_urls: List[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: ExtractionRecord) -> ExtractionRecordRead:
        return cls(
            cleaned_text=record.cleaned_text,
            text_length=record.text_length,
            page_title=record.page_title,
            final_url=record.final_url,
            image_urls=sorted(record.image_urls),
        )


class ScrapeResultRead(BaseModel):
    """Outcome for one distinct URL of a batch."""

    requested_url: str
    ok: bool
    browsing_context_id: Optional[int] = None
    extraction_record: Optional[ExtractionRecordRead] = None
    error_message: Optional[str] = None

    @classmethod
    def from_result(cls, result: ScrapeResult) -> ScrapeResultRead:
        record = result.extraction_record
        return cls(
            requested_url=result.requested_url,
            ok=result.ok,
            browsing_context_id=result.browsing_context_id,
            extraction_record=ExtractionRecordRead.from_record(record) if record else None,
            error_message=result.error_message,
        )


class BatchResponseRead(BaseModel):
    """Reply to a ``SCRAPE_URLS`` message.

    ``results`` is in completion order.  ``ok`` is ``False`` only when no
    usable URL was supplied.
    """

    ok: bool
    results: List[ScrapeResultRead] = Field(default_factory=list)
    error_message: Optional[str] = None

    @classmethod
    def from_batch(cls, batch: BatchResponse) -> BatchResponseRead:
        return cls(
            ok=batch.ok,
            results=[ScrapeResultRead.from_result(r) for r in batch.results],
            error_message=batch.error_message,
        )
