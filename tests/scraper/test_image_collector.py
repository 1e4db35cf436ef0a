"""Unit tests for image URL collection from document snapshots."""

from __future__ import annotations

from query_x.scraper.image_collector import collect
from query_x.scraper.models import DocumentSnapshot

_PAGE = "https://example.com/articles/page.html"


def _snapshot(**kwargs) -> DocumentSnapshot:
    kwargs.setdefault("url", _PAGE)
    kwargs.setdefault("base_url", _PAGE)
    return DocumentSnapshot(**kwargs)


class TestCollect:
    def test_relative_src_resolved_against_base(self) -> None:
        result = collect(_snapshot(image_sources=["img/a.png", "/static/b.png"]))
        assert result == frozenset(
            {
                "https://example.com/articles/img/a.png",
                "https://example.com/static/b.png",
            }
        )

    def test_srcset_first_token_of_each_candidate(self) -> None:
        result = collect(
            _snapshot(
                image_srcsets=["small.jpg 480w, large.jpg 1080w"],
                source_srcsets=["https://cdn.example.com/hero.webp 2x"],
            )
        )
        assert result == frozenset(
            {
                "https://example.com/articles/small.jpg",
                "https://example.com/articles/large.jpg",
                "https://cdn.example.com/hero.webp",
            }
        )

    def test_duplicates_collapse(self) -> None:
        result = collect(
            _snapshot(
                image_sources=["https://example.com/a.png", "/a.png"],
                image_srcsets=["/a.png 1x"],
            )
        )
        assert result == frozenset({"https://example.com/a.png"})

    def test_blank_values_skipped(self) -> None:
        result = collect(_snapshot(image_sources=["", "   "], image_srcsets=[" , ,"]))
        assert result == frozenset()

    def test_base_falls_back_to_document_url(self) -> None:
        result = collect(_snapshot(base_url="", image_sources=["a.png"]))
        assert result == frozenset({"https://example.com/articles/a.png"})

    def test_no_base_keeps_raw_value(self) -> None:
        result = collect(DocumentSnapshot(image_sources=["a.png"]))
        assert result == frozenset({"a.png"})

    def test_data_uri_kept_verbatim(self) -> None:
        data_uri = "data:image/gif;base64,R0lGODlhAQABAAAAACw="
        assert collect(_snapshot(image_sources=[data_uri])) == frozenset({data_uri})

    def test_empty_document(self) -> None:
        assert collect(_snapshot()) == frozenset()
