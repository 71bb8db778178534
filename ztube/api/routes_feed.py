"""Subscription feed and shorts shelf endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from ztube.api.dependencies import get_pipeline
from ztube.api.schemas import SubscriptionFeedResponse, WatchedContentItem
from ztube.content.models import ContentItem
from ztube.db import crud
from ztube.db.session import get_session
from ztube.errors import SourceFetchError
from ztube.feed.pipeline import ContentPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["feed"])
limiter = Limiter(key_func=get_remote_address)


@router.get("/subscriptions/feed", response_model=SubscriptionFeedResponse)
@limiter.limit("120/minute")
async def subscription_feed(
    request: Request,
    pipeline: ContentPipeline = Depends(get_pipeline),
    db: AsyncSession = Depends(get_session),
):
    """
    Newest uploads from every subscribed channel.

    This endpoint:
    1. Fetches each channel's feed from Redis cache (or YouTube on a cache miss)
    2. Aggregates all feeds, dropping duplicates, newest first
    3. Splits videos from shorts and removes blocked content
    4. Annotates each item with the viewer's watch progress

    A channel whose feed cannot be fetched is skipped.
    """
    groups = await pipeline.subscription_feed()

    ids = [item.id for items in groups.values() for item in items]
    history = await crud.get_watch_history_batch(db, ids)

    def annotate(item: ContentItem) -> WatchedContentItem:
        entry = history.get(item.id)
        return WatchedContentItem(
            **item.model_dump(),
            watched=entry is not None,
            watched_seconds=entry.watched_seconds if entry else None,
        )

    return SubscriptionFeedResponse(
        videos=[annotate(i) for i in groups["videos"]],
        shorts=[annotate(i) for i in groups["shorts"]],
    )


@router.get("/shorts/subscriptions", response_model=list[ContentItem])
@limiter.limit("30/minute")
async def subscription_shorts(
    request: Request,
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    """Shorts among recent uploads of subscribed channels."""
    return await pipeline.subscription_shorts()


@router.get("/shorts/search", response_model=list[ContentItem])
@limiter.limit("60/minute")
async def shorts_search(
    request: Request,
    query: str = Query(min_length=1, max_length=200),
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    """Only the shorts among search results."""
    query = query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Missing search query")

    try:
        return await pipeline.shorts_search(query)
    except SourceFetchError:
        logger.warning("Shorts search failed for %r", query, exc_info=True)
        raise HTTPException(status_code=502, detail="Shorts search failed")


@router.get("/shorts/trending", response_model=list[ContentItem])
@limiter.limit("60/minute")
async def shorts_trending(
    request: Request,
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    """Only the shorts among popular videos."""
    try:
        return await pipeline.shorts_trending()
    except SourceFetchError:
        logger.warning("Trending shorts lookup failed", exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to retrieve trending shorts")
