"""Watch history endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from ztube.config import get_settings
from ztube.db import crud
from ztube.db.models import WatchHistory
from ztube.db.session import get_session

router = APIRouter(prefix="/api/watch-history", tags=["watch-history"])
limiter = Limiter(key_func=get_remote_address)


class WatchHistoryRequest(BaseModel):
    """Request model for recording a watch."""

    video_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    channel_name: str = Field(min_length=1)
    channel_id: str = Field(min_length=1)
    duration_seconds: int = Field(ge=0)
    watched_seconds: int = Field(ge=0)
    thumbnail_url: str | None = None


class WatchProgressRequest(BaseModel):
    watched_seconds: int = Field(ge=0)


class WatchHistoryResponse(BaseModel):
    """Response model for a watch history entry."""

    video_id: str
    title: str
    channel_name: str
    channel_id: str
    duration_seconds: int
    watched_seconds: int
    thumbnail_url: str | None
    watched_at: datetime


class WatchHistoryListResponse(BaseModel):
    items: list[WatchHistoryResponse]
    limit: int
    offset: int


def _entry(entry: WatchHistory) -> WatchHistoryResponse:
    return WatchHistoryResponse(
        video_id=entry.video_id,
        title=entry.title,
        channel_name=entry.channel_name,
        channel_id=entry.channel_id,
        duration_seconds=entry.duration_seconds,
        watched_seconds=entry.watched_seconds,
        thumbnail_url=entry.thumbnail_url,
        watched_at=entry.watched_at,
    )


@router.get("", response_model=WatchHistoryListResponse)
@limiter.limit("120/minute")
async def list_history(
    request: Request,
    limit: int | None = Query(default=None, ge=1, description="Entries per page"),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_session),
):
    """
    List watch history, most recently watched first.

    ``limit`` defaults to ``history_page_size_default`` and is capped at
    ``history_page_size_max``.
    """
    settings = get_settings()
    limit = min(limit or settings.history_page_size_default, settings.history_page_size_max)

    entries = await crud.list_watch_history(db, limit=limit, offset=offset)
    return WatchHistoryListResponse(
        items=[_entry(e) for e in entries], limit=limit, offset=offset
    )


@router.post("", status_code=201, response_model=WatchHistoryResponse)
@limiter.limit("240/minute")
async def record_watch(
    request: Request,
    body: WatchHistoryRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Record that a video was watched. An existing entry for the video is replaced.
    """
    entry = await crud.upsert_watch_history(
        db,
        video_id=body.video_id,
        title=body.title,
        channel_name=body.channel_name,
        channel_id=body.channel_id,
        duration_seconds=body.duration_seconds,
        watched_seconds=body.watched_seconds,
        thumbnail_url=body.thumbnail_url,
    )
    return _entry(entry)


@router.delete("", status_code=204)
@limiter.limit("10/minute")
async def clear_history(
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    """Delete the whole watch history."""
    await crud.clear_watch_history(db)


@router.get("/{video_id}", response_model=WatchHistoryResponse)
@limiter.limit("240/minute")
async def get_history_entry(
    request: Request,
    video_id: str,
    db: AsyncSession = Depends(get_session),
):
    """
    Get the watch history entry of one video.

    Raises:
        HTTPException: 404 if the video has not been watched
    """
    entry = await crud.get_watch_history_entry(db, video_id)
    if not entry:
        raise HTTPException(status_code=404, detail="No watch history for this video")
    return _entry(entry)


@router.put("/{video_id}/progress", status_code=204)
@limiter.limit("240/minute")
async def update_progress(
    request: Request,
    video_id: str,
    body: WatchProgressRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Update how far into a video playback got.

    Raises:
        HTTPException: 404 if the video has not been watched
    """
    if not await crud.update_watch_progress(db, video_id, body.watched_seconds):
        raise HTTPException(status_code=404, detail="No watch history for this video")


@router.delete("/{video_id}", status_code=204)
@limiter.limit("60/minute")
async def delete_history_entry(
    request: Request,
    video_id: str,
    db: AsyncSession = Depends(get_session),
):
    """
    Remove one video from the watch history.

    Raises:
        HTTPException: 404 if the video has not been watched
    """
    if not await crud.delete_watch_history_entry(db, video_id):
        raise HTTPException(status_code=404, detail="No watch history for this video")
