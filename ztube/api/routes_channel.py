"""Channel page endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ztube.api.dependencies import get_pipeline, valid_channel_id
from ztube.api.schemas import ChannelVideosResponse
from ztube.content.models import ChannelDetails
from ztube.errors import MalformedItemError, SourceFetchError
from ztube.feed.pipeline import ContentPipeline
from ztube.youtube.client import decode_continuation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/channel", tags=["channel"])
limiter = Limiter(key_func=get_remote_address)


# Upstream messages that mean the channel is gone rather than unreachable
CHANNEL_MISSING_MARKERS = ("404", "does not exist", "not found")


@router.get("/{channel_id}", response_model=ChannelDetails)
@limiter.limit("60/minute")
async def channel_details(
    request: Request,
    channel_id: str = Depends(valid_channel_id),
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    """
    Channel header: name, avatar, banner, description, subscriber and video counts.

    Raises:
        HTTPException: 404 if the channel does not exist, 502 if it cannot be retrieved
    """
    try:
        return await pipeline.channel_details(channel_id)
    except SourceFetchError as exc:
        if any(marker in exc.reason.lower() for marker in CHANNEL_MISSING_MARKERS):
            raise HTTPException(status_code=404, detail="Channel not found")
        logger.warning(
            "Channel details for %s failed",
            channel_id,
            exc_info=True,
            extra={"channel_id": channel_id},
        )
        raise HTTPException(status_code=502, detail="Failed to retrieve channel details")
    except MalformedItemError:
        logger.warning("Unexpected channel record for %s", channel_id, exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to retrieve channel details")


@router.get("/{channel_id}/videos", response_model=ChannelVideosResponse)
@limiter.limit("60/minute")
async def channel_videos(
    request: Request,
    channel_id: str = Depends(valid_channel_id),
    continuation: str | None = Query(
        default=None, max_length=512, description="Token from the previous page"
    ),
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    """
    One page of a channel's uploads, newest first.

    Returns:
        JSON response with:
            - videos / shorts: the page split by the short classifier
            - continuation: token for the next page (null on the last page)
    """
    if continuation:
        try:
            decode_continuation(continuation, channel_id)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid continuation token")

    try:
        page = await pipeline.channel_videos(channel_id, continuation)
    except SourceFetchError:
        logger.warning(
            "Listing channel %s failed",
            channel_id,
            exc_info=True,
            extra={"channel_id": channel_id},
        )
        raise HTTPException(status_code=502, detail="Failed to retrieve channel videos")

    return ChannelVideosResponse(**page)
