"""Search and trending endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ztube.api.dependencies import get_pipeline
from ztube.api.schemas import ContentGroupsResponse
from ztube.errors import SourceFetchError
from ztube.feed.pipeline import ContentPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["search"])
limiter = Limiter(key_func=get_remote_address)


@router.get("/search", response_model=ContentGroupsResponse)
@limiter.limit("60/minute")
async def search(
    request: Request,
    query: str = Query(min_length=1, max_length=200, description="Search terms"),
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    """
    Search YouTube.

    Results keep their relevance order and are split into videos and shorts,
    with blocked channels and keywords removed.
    """
    query = query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Missing search query")

    try:
        groups = await pipeline.search(query)
    except SourceFetchError:
        logger.warning("Search failed for %r", query, exc_info=True)
        raise HTTPException(status_code=502, detail="Search failed")

    return ContentGroupsResponse(**groups)


@router.get("/trending", response_model=ContentGroupsResponse)
@limiter.limit("60/minute")
async def trending(
    request: Request,
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    """Popular videos, split into videos and shorts and block-list filtered."""
    try:
        groups = await pipeline.trending()
    except SourceFetchError:
        logger.warning("Trending lookup failed", exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to retrieve trending videos")

    return ContentGroupsResponse(**groups)
