"""Playlist endpoints."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from ztube.db import crud
from ztube.db.models import Playlist, PlaylistVideo
from ztube.db.session import get_session
from ztube.errors import (
    DefaultPlaylistProtectedError,
    DuplicatePlaylistNameError,
    PlaylistNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/playlists", tags=["playlists"])
limiter = Limiter(key_func=get_remote_address)


class PlaylistRequest(BaseModel):
    """Request model for creating or renaming a playlist."""

    name: str = Field(min_length=1, max_length=200)
    description: str = ""


class PlaylistVideoRequest(BaseModel):
    """Request model for adding a video to a playlist."""

    video_id: str = Field(min_length=1)
    title: str | None = None
    channel_name: str | None = None
    thumbnail_url: str | None = None


class VideoOrderEntry(BaseModel):
    video_id: str = Field(min_length=1)
    sort_order: int


class VideoOrderRequest(BaseModel):
    """Request model for reordering the videos of a playlist."""

    video_order: list[VideoOrderEntry]


class PlaylistResponse(BaseModel):
    """Response model for a playlist without its videos."""

    id: int
    name: str
    description: str
    is_default: bool
    created_at: datetime


class PlaylistVideoResponse(BaseModel):
    video_id: str
    title: str | None
    channel_name: str | None
    thumbnail_url: str | None
    sort_order: int
    added_at: datetime


class PlaylistDetailResponse(PlaylistResponse):
    """Response model for a playlist with its videos in playlist order."""

    videos: list[PlaylistVideoResponse]


class PlaylistListResponse(BaseModel):
    playlists: list[PlaylistResponse]


def _playlist(playlist: Playlist) -> PlaylistResponse:
    return PlaylistResponse(
        id=playlist.id,
        name=playlist.name,
        description=playlist.description or "",
        is_default=playlist.is_default,
        created_at=playlist.created_at,
    )


def _video(entry: PlaylistVideo) -> PlaylistVideoResponse:
    return PlaylistVideoResponse(
        video_id=entry.video_id,
        title=entry.title,
        channel_name=entry.channel_name,
        thumbnail_url=entry.thumbnail_url,
        sort_order=entry.sort_order,
        added_at=entry.added_at,
    )


@router.get("", response_model=PlaylistListResponse)
@limiter.limit("120/minute")
async def list_playlists(
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    """
    List all playlists, the default playlist first.

    Returns:
        Playlists without their videos
    """
    playlists = await crud.list_playlists(db)
    return PlaylistListResponse(playlists=[_playlist(p) for p in playlists])


@router.post("", status_code=201, response_model=PlaylistResponse)
@limiter.limit("30/minute")
async def create_playlist(
    request: Request,
    body: PlaylistRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Create a playlist.

    Raises:
        HTTPException: 400 if the name is blank, 409 if it is already taken
    """
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name cannot be empty")

    try:
        playlist = await crud.create_playlist(db, name, body.description)
    except DuplicatePlaylistNameError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    return _playlist(playlist)


@router.get("/{playlist_id}", response_model=PlaylistDetailResponse)
@limiter.limit("120/minute")
async def get_playlist(
    request: Request,
    playlist_id: int,
    db: AsyncSession = Depends(get_session),
):
    """
    Get a playlist and its videos ordered by sort order, then by date added.

    Raises:
        HTTPException: 404 if the playlist does not exist
    """
    playlist = await crud.get_playlist(db, playlist_id)
    if not playlist:
        raise HTTPException(status_code=404, detail="Playlist not found")

    videos = await crud.list_playlist_videos(db, playlist_id)
    return PlaylistDetailResponse(
        **_playlist(playlist).model_dump(),
        videos=[_video(v) for v in videos],
    )


@router.put("/{playlist_id}", response_model=PlaylistResponse)
@limiter.limit("30/minute")
async def update_playlist(
    request: Request,
    playlist_id: int,
    body: PlaylistRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Rename a playlist or change its description.

    Raises:
        HTTPException: 404 if the playlist does not exist, 409 on a name clash
    """
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name cannot be empty")

    try:
        playlist = await crud.update_playlist(db, playlist_id, name, body.description)
    except PlaylistNotFoundError:
        raise HTTPException(status_code=404, detail="Playlist not found")
    except DuplicatePlaylistNameError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    return _playlist(playlist)


@router.delete("/{playlist_id}", status_code=204)
@limiter.limit("30/minute")
async def delete_playlist(
    request: Request,
    playlist_id: int,
    db: AsyncSession = Depends(get_session),
):
    """
    Delete a playlist and its entries.

    Raises:
        HTTPException: 404 if the playlist does not exist, 400 for the default playlist
    """
    try:
        await crud.delete_playlist(db, playlist_id)
    except PlaylistNotFoundError:
        raise HTTPException(status_code=404, detail="Playlist not found")
    except DefaultPlaylistProtectedError:
        raise HTTPException(status_code=400, detail="Cannot delete the default playlist")


@router.post("/{playlist_id}/default", response_model=PlaylistResponse)
@limiter.limit("30/minute")
async def set_default_playlist(
    request: Request,
    playlist_id: int,
    db: AsyncSession = Depends(get_session),
):
    """
    Make a playlist the default (bookmark) playlist.

    Raises:
        HTTPException: 404 if the playlist does not exist
    """
    try:
        playlist = await crud.set_default_playlist(db, playlist_id)
    except PlaylistNotFoundError:
        raise HTTPException(status_code=404, detail="Playlist not found")

    logger.info("Default playlist is now %s", playlist_id, extra={"playlist_id": playlist_id})
    return _playlist(playlist)


@router.post("/{playlist_id}/videos", status_code=201, response_model=PlaylistVideoResponse)
@limiter.limit("120/minute")
async def add_video(
    request: Request,
    playlist_id: int,
    body: PlaylistVideoRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Append a video to a playlist. Adding a video that is already there is a no-op.

    Raises:
        HTTPException: 404 if the playlist does not exist
    """
    try:
        entry = await crud.add_video_to_playlist(
            db,
            playlist_id,
            body.video_id,
            title=body.title,
            channel_name=body.channel_name,
            thumbnail_url=body.thumbnail_url,
        )
    except PlaylistNotFoundError:
        raise HTTPException(status_code=404, detail="Playlist not found")

    return _video(entry)


@router.delete("/{playlist_id}/videos/{video_id}", status_code=204)
@limiter.limit("120/minute")
async def remove_video(
    request: Request,
    playlist_id: int,
    video_id: str,
    db: AsyncSession = Depends(get_session),
):
    """
    Remove a video from a playlist. Removing an absent video is a no-op.

    Raises:
        HTTPException: 404 if the playlist does not exist
    """
    if not await crud.get_playlist(db, playlist_id):
        raise HTTPException(status_code=404, detail="Playlist not found")

    await crud.remove_video_from_playlist(db, playlist_id, video_id)


@router.put("/{playlist_id}/videos/order", status_code=204)
@limiter.limit("60/minute")
async def reorder_videos(
    request: Request,
    playlist_id: int,
    body: VideoOrderRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Set the sort order of videos in a playlist, all in one transaction.

    Raises:
        HTTPException: 404 if the playlist does not exist
    """
    try:
        await crud.reorder_playlist_videos(
            db, playlist_id, [(e.video_id, e.sort_order) for e in body.video_order]
        )
    except PlaylistNotFoundError:
        raise HTTPException(status_code=404, detail="Playlist not found")
