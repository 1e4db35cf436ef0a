"""Data records passed between the scraper components.

Everything here is a plain dataclass.  The HTTP layer mirrors
:class:`BatchResponse` with Pydantic schemas in
:mod:`query_x.core.schemas.scraping`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from query_x.core.exceptions import ExtractionError


# ---------------------------------------------------------------------------
# Page model (as reported by the in-page snapshot script)
# ---------------------------------------------------------------------------


@dataclass
class TextNode:
    """A text-bearing DOM node together with its parent's computed style.

    Attributes:
        text: The node's raw ``nodeValue``.
        has_parent: ``False`` when the node has no parent element.
        display: Parent's computed ``display`` value.
        visibility: Parent's computed ``visibility`` value.
        opacity: Parent's computed ``opacity`` as reported (a string in CSS).
    """

    text: str
    has_parent: bool = True
    display: str = "block"
    visibility: str = "visible"
    opacity: str = "1"


@dataclass
class DocumentSnapshot:
    """What the extraction script saw once scrolling stopped.

    Attributes:
        title: ``document.title``.
        url: ``location.href``, the final URL after redirects.
        base_url: ``document.baseURI``; relative image URLs resolve against it.
        text_nodes: Every text node under ``<body>`` in document order.
        image_sources: Raw ``src`` attribute of every ``<img>``.
        image_srcsets: Raw ``srcset`` attribute of every ``<img>`` that has one.
        source_srcsets: Raw ``srcset`` attribute of every ``<source>``.
    """

    title: str = ""
    url: str = ""
    base_url: str = ""
    text_nodes: list[TextNode] = field(default_factory=list)
    image_sources: list[str] = field(default_factory=list)
    image_srcsets: list[str] = field(default_factory=list)
    source_srcsets: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> DocumentSnapshot:
        """Build a snapshot from the JSON-compatible dict the page script returns.

        Raises:
            ExtractionError: If *payload* is not a dict.
        """
        if not isinstance(payload, dict):
            raise ExtractionError(
                f"snapshot payload must be an object, got {type(payload).__name__}"
            )
        nodes = [
            TextNode(
                text=str(node.get("text") or ""),
                has_parent=bool(node.get("hasParent", True)),
                display=str(node.get("display") or ""),
                visibility=str(node.get("visibility") or ""),
                opacity=str(node.get("opacity") or "1"),
            )
            for node in payload.get("textNodes") or []
            if isinstance(node, dict)
        ]
        return cls(
            title=str(payload.get("title") or ""),
            url=str(payload.get("url") or ""),
            base_url=str(payload.get("baseUrl") or ""),
            text_nodes=nodes,
            image_sources=_strings(payload.get("imageSources")),
            image_srcsets=_strings(payload.get("imageSrcsets")),
            source_srcsets=_strings(payload.get("sourceSrcsets")),
        )


def _strings(values: Any) -> list[str]:
    if not isinstance(values, list):
        return []
    return [v for v in values if isinstance(v, str)]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExtractionRecord:
    """Cleaned content of one successfully extracted page.

    Attributes:
        cleaned_text: Visible text after markdown-artifact cleanup.
        text_length: ``len(cleaned_text)``.
        page_title: Document title at extraction time.
        final_url: Location of the page at extraction time.
        image_urls: Absolute image URLs found on the page.
    """

    cleaned_text: str
    text_length: int
    page_title: str
    final_url: str
    image_urls: frozenset[str] = frozenset()


@dataclass(frozen=True)
class ScrapeResult:
    """Outcome of loading one normalized URL.

    Build with :meth:`success` or :meth:`failure`; workers never raise across
    task boundaries.

    Attributes:
        requested_url: The normalized URL that was loaded.
        ok: ``True`` when extraction succeeded.
        browsing_context_id: Handle of the context used, or ``None`` if none
            was created.
        extraction_record: Present when ``ok`` is ``True``.
        error_message: Present when ``ok`` is ``False``.
    """

    requested_url: str
    ok: bool
    browsing_context_id: int | None = None
    extraction_record: ExtractionRecord | None = None
    error_message: str | None = None

    @classmethod
    def success(
        cls,
        requested_url: str,
        record: ExtractionRecord,
        browsing_context_id: int | None,
    ) -> ScrapeResult:
        return cls(
            requested_url=requested_url,
            ok=True,
            browsing_context_id=browsing_context_id,
            extraction_record=record,
        )

    @classmethod
    def failure(
        cls,
        requested_url: str,
        error: BaseException | str,
        browsing_context_id: int | None = None,
    ) -> ScrapeResult:
        return cls(
            requested_url=requested_url,
            ok=False,
            browsing_context_id=browsing_context_id,
            error_message=str(error) or type(error).__name__,
        )


@dataclass
class BatchResponse:
    """Reply to one ``SCRAPE_URLS`` request.

    ``results`` is in completion order, one entry per distinct normalized
    URL.  When the batch was empty ``ok`` is ``False`` and ``error_message``
    explains why.
    """

    ok: bool
    results: list[ScrapeResult] = field(default_factory=list)
    error_message: str | None = None

    @classmethod
    def rejected(cls, message: str) -> BatchResponse:
        return cls(ok=False, error_message=message)
