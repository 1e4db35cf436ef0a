"""Unit tests for the SCRAPE_URLS message channels."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from query_x.core.exceptions import InputError
from query_x.scraper.config import NO_URLS_MESSAGE
from query_x.scraper.messaging import MessageRouter, is_scrape_message, message_urls
from query_x.scraper.models import BatchResponse


def _mock_dispatcher() -> MagicMock:
    dispatcher = MagicMock()
    dispatcher.run = AsyncMock(return_value=BatchResponse(ok=True, results=[]))
    return dispatcher


class TestMessageHelpers:
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ({"type": "SCRAPE_URLS", "urls": []}, True),
            ({"type": "SCRAPE_URLS"}, True),
            ({"type": "PING"}, False),
            ({}, False),
            ("SCRAPE_URLS", False),
            (None, False),
        ],
    )
    def test_is_scrape_message(self, message, expected: bool) -> None:
        assert is_scrape_message(message) is expected

    @pytest.mark.parametrize("urls", [None, "https://a/", {"u": 1}, 3])
    def test_non_list_urls_are_empty(self, urls) -> None:
        assert message_urls({"type": "SCRAPE_URLS", "urls": urls}) == []

    def test_list_urls_passed_through(self) -> None:
        assert message_urls({"urls": ["a", 1]}) == ["a", 1]


@pytest.mark.asyncio
class TestExternalChannel:
    async def test_forwards_urls_to_dispatcher(self) -> None:
        dispatcher = _mock_dispatcher()
        router = MessageRouter(dispatcher)

        response = await router.on_external_message(
            {"type": "SCRAPE_URLS", "urls": ["https://a/"]}
        )

        assert response.ok is True
        dispatcher.run.assert_awaited_once_with(["https://a/"])

    async def test_other_type_never_reaches_dispatcher(self) -> None:
        dispatcher = _mock_dispatcher()
        router = MessageRouter(dispatcher)

        with pytest.raises(InputError, match="Unsupported message type"):
            await router.on_external_message({"type": "PING", "urls": ["https://a/"]})

        dispatcher.run.assert_not_awaited()

    async def test_non_list_urls_rejected_as_empty(self, dispatcher, fake_browser) -> None:
        router = MessageRouter(dispatcher)

        response = await router.on_external_message(
            {"type": "SCRAPE_URLS", "urls": "https://a/"}
        )

        assert response.ok is False
        assert response.error_message == NO_URLS_MESSAGE
        assert fake_browser.create_count == 0


@pytest.mark.asyncio
class TestInternalChannel:
    async def test_forwards_to_external_handler(self) -> None:
        dispatcher = _mock_dispatcher()
        router = MessageRouter(dispatcher)
        message = {"type": "SCRAPE_URLS", "urls": ["https://a/"]}

        response = await router.on_internal_message(message)

        assert response is dispatcher.run.return_value
        dispatcher.run.assert_awaited_once_with(["https://a/"])

    @pytest.mark.parametrize("message", [{"type": "PING"}, "SCRAPE_URLS", None])
    async def test_other_messages_ignored(self, message) -> None:
        dispatcher = _mock_dispatcher()
        router = MessageRouter(dispatcher)

        assert await router.on_internal_message(message) is None
        dispatcher.run.assert_not_awaited()

    async def test_end_to_end_batch(self, dispatcher, fake_browser) -> None:
        router = MessageRouter(dispatcher)

        response = await router.on_internal_message(
            {"type": "SCRAPE_URLS", "urls": ["https://a.example/", "https://b.example/"]}
        )

        assert response is not None
        assert response.ok is True
        assert len(response.results) == 2
        assert fake_browser.open == {}
