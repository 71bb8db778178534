"""FastAPI dependencies for API routers."""

import re
from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from ztube.config import get_settings
from ztube.db.session import get_session
from ztube.feed.pipeline import ContentPipeline
from ztube.youtube.client import YouTubeClient

_redis_client: Redis | None = None


async def get_redis() -> AsyncGenerator[Redis, None]:
    """Dependency for FastAPI routes to get an async Redis connection.

    Yields:
        Async Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        settings = get_settings()
        _redis_client = Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=False,
        )

    yield _redis_client


async def close_redis() -> None:
    """Close the shared Redis connection, if one was opened."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


def get_youtube(request: Request) -> YouTubeClient:
    """The retrieval client created by the application lifespan."""
    return request.app.state.youtube


def get_pipeline(
    youtube: YouTubeClient = Depends(get_youtube),
    redis: Redis = Depends(get_redis),
    db: AsyncSession = Depends(get_session),
) -> ContentPipeline:
    """Request-scoped content pipeline."""
    return ContentPipeline(youtube, redis, db, get_settings())


# YouTube channel IDs start with UC and are 24 characters (alphanumeric, -, _)
CHANNEL_ID_PATTERN = re.compile(r"^UC[\w-]{22}$")
# Video IDs are 11 characters from the URL-safe base64 alphabet
VIDEO_ID_PATTERN = re.compile(r"^[\w-]{11}$")


def valid_channel_id(channel_id: str) -> str:
    """Path dependency rejecting malformed channel IDs with a 400."""
    if not CHANNEL_ID_PATTERN.match(channel_id):
        raise HTTPException(
            status_code=400,
            detail="Invalid channel_id format. Must be a valid YouTube channel ID (UC...)",
        )
    return channel_id


def valid_video_id(video_id: str) -> str:
    """Path dependency rejecting malformed video IDs with a 400."""
    if not VIDEO_ID_PATTERN.match(video_id):
        raise HTTPException(status_code=400, detail="Invalid video_id format")
    return video_id
