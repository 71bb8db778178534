"""Single video endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ztube.api.dependencies import get_pipeline, valid_video_id
from ztube.api.schemas import CommentsResponse
from ztube.content.models import ContentItem, VideoDetails
from ztube.errors import MalformedItemError, SourceFetchError
from ztube.feed.pipeline import ContentPipeline
from ztube.youtube.client import decode_continuation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/video", tags=["video"])
limiter = Limiter(key_func=get_remote_address)


@router.get("/{video_id}", response_model=VideoDetails)
@limiter.limit("120/minute")
async def video_details(
    request: Request,
    video_id: str = Depends(valid_video_id),
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    """
    Metadata for one video, including chapters.

    A blocked video is still returned: opening it by id is an explicit request.
    """
    try:
        return await pipeline.video_details(video_id)
    except (SourceFetchError, MalformedItemError):
        logger.warning(
            "Could not load video %s", video_id, exc_info=True, extra={"video_id": video_id}
        )
        raise HTTPException(status_code=502, detail="Failed to retrieve video details")


@router.get("/{video_id}/recommendations", response_model=list[ContentItem])
@limiter.limit("60/minute")
async def recommendations(
    request: Request,
    video_id: str = Depends(valid_video_id),
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    """Videos related to ``video_id``, block-list filtered."""
    try:
        return await pipeline.recommendations(video_id)
    except SourceFetchError:
        logger.warning("Recommendations for %s failed", video_id, exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to retrieve recommendations")


@router.get("/{video_id}/comments", response_model=CommentsResponse)
@limiter.limit("60/minute")
async def comments(
    request: Request,
    video_id: str = Depends(valid_video_id),
    continuation: str | None = Query(
        default=None, max_length=512, description="Token from the previous page"
    ),
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    """
    One page of a video's top-level comments, top-ranked first.

    Returns:
        JSON response with:
            - comments: id, text, author, like and reply counts, publish time
            - continuation: token for the next page (null on the last page)
    """
    if continuation:
        try:
            decode_continuation(continuation, video_id)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid continuation token")

    try:
        page = await pipeline.comments(video_id, continuation)
    except SourceFetchError:
        logger.warning(
            "Comments for %s failed", video_id, exc_info=True, extra={"video_id": video_id}
        )
        raise HTTPException(status_code=502, detail="Failed to retrieve comments")

    return CommentsResponse(**page)
