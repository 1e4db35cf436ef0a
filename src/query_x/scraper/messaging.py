"""Inbound ``SCRAPE_URLS`` message handling.

The service accepts the same message on two channels:

* **external**: the ``POST /scrape/messages`` route in
  :mod:`query_x.scraper.router` calls :meth:`MessageRouter.on_external_message`.
* **internal**: in-process callers use
  :meth:`MessageRouter.on_internal_message`, which forwards to the external
  handler unchanged.

Message shape::

    {"type": "SCRAPE_URLS", "urls": ["https://example.com", ...]}
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from query_x.core.exceptions import InputError
from query_x.scraper.config import SCRAPE_MESSAGE_TYPE
from query_x.scraper.dispatcher import Dispatcher
from query_x.scraper.models import BatchResponse

logger = logging.getLogger(__name__)


def is_scrape_message(message: Any) -> bool:
    """Return ``True`` if *message* is a mapping with ``type == "SCRAPE_URLS"``."""
    return isinstance(message, Mapping) and message.get("type") == SCRAPE_MESSAGE_TYPE


def message_urls(message: Mapping[str, Any]) -> list[Any]:
    """Return the raw ``urls`` of *message*; anything but a list counts as empty."""
    urls = message.get("urls")
    return urls if isinstance(urls, list) else []


class MessageRouter:
    """Routes scrape messages from either channel to one :class:`Dispatcher`.

    Args:
        dispatcher: Engine that runs each accepted batch.
    """

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    async def on_external_message(self, message: Any) -> BatchResponse:
        """Run the batch described by *message*.

        Raises:
            InputError: If *message* is not a ``SCRAPE_URLS`` message.  The
                dispatcher is never reached in that case.
        """
        if not is_scrape_message(message):
            kind = message.get("type") if isinstance(message, Mapping) else None
            raise InputError(f"Unsupported message type: {kind!r}")
        return await self._dispatcher.run(message_urls(message))

    async def on_internal_message(self, message: Any) -> BatchResponse | None:
        """Forward a ``SCRAPE_URLS`` message; ignore (return ``None``) anything else."""
        if not is_scrape_message(message):
            logger.debug("scraper: ignoring internal message %r", message)
            return None
        return await self.on_external_message(message)
