"""FastAPI router for the scrape message channel.

Routes:
    POST /scrape/messages    run a ``SCRAPE_URLS`` batch and return its results
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from query_x.api.dependencies import get_message_router
from query_x.core.exceptions import InputError
from query_x.core.schemas.scraping import BatchResponseRead, ScrapeUrlsMessage
from query_x.scraper.messaging import MessageRouter

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/messages", response_model=BatchResponseRead)
async def post_scrape_message(
    message: ScrapeUrlsMessage,
    message_router: Annotated[MessageRouter, Depends(get_message_router)],
) -> BatchResponseRead:
    """Scrape every distinct URL in the message.

    A batch with no usable URLs is answered with HTTP 200 and
    ``{"ok": false, "error_message": "No URLs provided"}``; per-URL failures
    appear as ``ok: false`` entries in ``results``.

    Raises:
        HTTPException 400: If ``type`` is not ``"SCRAPE_URLS"``.
    """
    try:
        batch = await message_router.on_external_message(message.model_dump())
    except InputError as exc:
        logger.info("scraper: message_rejected", message_type=message.type)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    logger.info(
        "scraper: message_handled",
        ok=batch.ok,
        result_count=len(batch.results),
    )
    return BatchResponseRead.from_batch(batch)
