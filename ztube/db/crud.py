"""CRUD utilities for database operations."""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ztube.db.models import (
    HiddenChannel,
    HiddenKeyword,
    Playlist,
    PlaylistVideo,
    Setting,
    Subscription,
    WatchHistory,
)
from ztube.errors import (
    DefaultPlaylistProtectedError,
    DuplicatePlaylistNameError,
    PlaylistNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "theme": "dark",
    "autoplay": "true",
    "default_quality": "auto",
}

DEFAULT_PLAYLIST_NAME = "Watch Later"


# --- Hidden channels ---


async def list_blocked_channels(db: AsyncSession) -> list[HiddenChannel]:
    """List blocked channels ordered by name (case-insensitive)."""
    result = await db.execute(
        select(HiddenChannel).order_by(func.lower(HiddenChannel.name))
    )
    return list(result.scalars().all())


async def is_channel_blocked(db: AsyncSession, channel_id: str) -> bool:
    result = await db.execute(
        select(HiddenChannel.channel_id).where(HiddenChannel.channel_id == channel_id)
    )
    return result.scalar_one_or_none() is not None


async def add_blocked_channel(
    db: AsyncSession, channel_id: str, name: str
) -> HiddenChannel:
    """Block a channel. Blocking an already-blocked channel is a no-op."""
    channel = await db.get(HiddenChannel, channel_id)
    if channel:
        return channel

    channel = HiddenChannel(channel_id=channel_id, name=name)
    db.add(channel)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent block of the same channel
        await db.rollback()
        return await db.get(HiddenChannel, channel_id)
    await db.refresh(channel)
    logger.info("Blocked channel %s (%s)", channel_id, name)
    return channel


async def remove_blocked_channel(db: AsyncSession, channel_id: str) -> bool:
    """Unblock a channel.

    Returns:
        True if a block was removed, False if the channel was not blocked
    """
    result = await db.execute(
        delete(HiddenChannel).where(HiddenChannel.channel_id == channel_id)
    )
    await db.commit()
    return result.rowcount > 0


# --- Hidden keywords ---


async def list_blocked_keywords(db: AsyncSession) -> list[str]:
    """List blocked keywords in alphabetical order."""
    result = await db.execute(
        select(HiddenKeyword.keyword).order_by(func.lower(HiddenKeyword.keyword))
    )
    return list(result.scalars().all())


async def _find_keyword(db: AsyncSession, keyword: str) -> HiddenKeyword | None:
    result = await db.execute(
        select(HiddenKeyword).where(
            func.lower(HiddenKeyword.keyword) == keyword.lower()
        )
    )
    return result.scalars().first()


async def add_blocked_keyword(db: AsyncSession, keyword: str) -> HiddenKeyword:
    """Block a keyword. Keywords differing only in case are the same keyword."""
    keyword = keyword.strip()
    existing = await _find_keyword(db, keyword)
    if existing:
        return existing

    entry = HiddenKeyword(keyword=keyword)
    db.add(entry)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent block of the same keyword, in any case
        await db.rollback()
        return await _find_keyword(db, keyword)
    await db.refresh(entry)
    logger.info("Blocked keyword %r", keyword)
    return entry


async def remove_blocked_keyword(db: AsyncSession, keyword: str) -> bool:
    result = await db.execute(
        delete(HiddenKeyword).where(
            func.lower(HiddenKeyword.keyword) == keyword.strip().lower()
        )
    )
    await db.commit()
    return result.rowcount > 0


# --- Subscriptions ---


async def list_subscriptions(db: AsyncSession) -> list[Subscription]:
    result = await db.execute(
        select(Subscription).order_by(func.lower(Subscription.name))
    )
    return list(result.scalars().all())


async def add_subscription(
    db: AsyncSession, channel_id: str, name: str, avatar_url: str | None = None
) -> Subscription:
    """Subscribe to a channel. Re-subscribing keeps the existing row."""
    subscription = await db.get(Subscription, channel_id)
    if subscription:
        return subscription

    subscription = Subscription(channel_id=channel_id, name=name, avatar_url=avatar_url)
    db.add(subscription)
    await db.commit()
    await db.refresh(subscription)
    return subscription


async def remove_subscription(db: AsyncSession, channel_id: str) -> bool:
    result = await db.execute(
        delete(Subscription).where(Subscription.channel_id == channel_id)
    )
    await db.commit()
    return result.rowcount > 0


async def is_subscribed(db: AsyncSession, channel_id: str) -> bool:
    return await db.get(Subscription, channel_id) is not None


# --- Playlists ---


async def list_playlists(db: AsyncSession) -> list[Playlist]:
    """List playlists, the default one first, then by name."""
    result = await db.execute(
        select(Playlist).order_by(Playlist.is_default.desc(), func.lower(Playlist.name))
    )
    return list(result.scalars().all())


async def get_playlist(db: AsyncSession, playlist_id: int) -> Playlist | None:
    return await db.get(Playlist, playlist_id)


async def list_playlist_videos(
    db: AsyncSession, playlist_id: int
) -> list[PlaylistVideo]:
    result = await db.execute(
        select(PlaylistVideo)
        .where(PlaylistVideo.playlist_id == playlist_id)
        .order_by(PlaylistVideo.sort_order, PlaylistVideo.added_at)
    )
    return list(result.scalars().all())


async def get_default_playlist(db: AsyncSession) -> Playlist | None:
    result = await db.execute(select(Playlist).where(Playlist.is_default))
    return result.scalars().first()


async def create_playlist(
    db: AsyncSession, name: str, description: str = ""
) -> Playlist:
    """Create a playlist.

    Raises:
        DuplicatePlaylistNameError: If the name is already taken
    """
    playlist = Playlist(name=name, description=description or "")
    db.add(playlist)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicatePlaylistNameError(name) from exc
    await db.refresh(playlist)
    return playlist


async def update_playlist(
    db: AsyncSession, playlist_id: int, name: str, description: str = ""
) -> Playlist:
    playlist = await db.get(Playlist, playlist_id)
    if not playlist:
        raise PlaylistNotFoundError(playlist_id)

    playlist.name = name
    playlist.description = description or ""
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicatePlaylistNameError(name) from exc
    await db.refresh(playlist)
    return playlist


async def delete_playlist(db: AsyncSession, playlist_id: int) -> None:
    """Delete a playlist and its entries.

    Raises:
        PlaylistNotFoundError: If the playlist does not exist
        DefaultPlaylistProtectedError: If it is the default playlist
    """
    playlist = await db.get(Playlist, playlist_id)
    if not playlist:
        raise PlaylistNotFoundError(playlist_id)
    if playlist.is_default:
        raise DefaultPlaylistProtectedError("Cannot delete the default playlist")

    await db.execute(delete(PlaylistVideo).where(PlaylistVideo.playlist_id == playlist_id))
    await db.execute(delete(Playlist).where(Playlist.id == playlist_id))
    await db.commit()


async def set_default_playlist(db: AsyncSession, playlist_id: int) -> Playlist:
    """Make ``playlist_id`` the default playlist.

    Unsetting the old default and setting the new one commit together, so
    there is never a moment with zero or two defaults.

    Raises:
        PlaylistNotFoundError: If the playlist does not exist (nothing changes)
    """
    try:
        await db.execute(
            update(Playlist).where(Playlist.is_default).values(is_default=False)
        )
        result = await db.execute(
            update(Playlist).where(Playlist.id == playlist_id).values(is_default=True)
        )
        if result.rowcount == 0:
            raise PlaylistNotFoundError(playlist_id)
    except Exception:
        await db.rollback()
        raise
    await db.commit()

    playlist = await db.get(Playlist, playlist_id)
    await db.refresh(playlist)
    return playlist


async def ensure_default_playlist(db: AsyncSession) -> Playlist:
    """Return the default playlist, creating "Watch Later" if there is none."""
    playlist = await get_default_playlist(db)
    if playlist:
        return playlist

    result = await db.execute(select(Playlist).where(Playlist.name == DEFAULT_PLAYLIST_NAME))
    playlist = result.scalar_one_or_none()
    if playlist is None:
        playlist = Playlist(name=DEFAULT_PLAYLIST_NAME, description="", is_default=True)
        db.add(playlist)
    else:
        playlist.is_default = True
    await db.commit()
    await db.refresh(playlist)
    return playlist


async def add_video_to_playlist(
    db: AsyncSession,
    playlist_id: int,
    video_id: str,
    title: str | None = None,
    channel_name: str | None = None,
    thumbnail_url: str | None = None,
) -> PlaylistVideo:
    """Append a video to a playlist; adding it twice is a no-op."""
    if not await db.get(Playlist, playlist_id):
        raise PlaylistNotFoundError(playlist_id)

    entry = await db.get(PlaylistVideo, (playlist_id, video_id))
    if entry:
        return entry

    result = await db.execute(
        select(func.max(PlaylistVideo.sort_order)).where(
            PlaylistVideo.playlist_id == playlist_id
        )
    )
    last = result.scalar_one_or_none()

    entry = PlaylistVideo(
        playlist_id=playlist_id,
        video_id=video_id,
        title=title,
        channel_name=channel_name,
        thumbnail_url=thumbnail_url,
        sort_order=0 if last is None else last + 1,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


async def remove_video_from_playlist(
    db: AsyncSession, playlist_id: int, video_id: str
) -> bool:
    result = await db.execute(
        delete(PlaylistVideo).where(
            PlaylistVideo.playlist_id == playlist_id,
            PlaylistVideo.video_id == video_id,
        )
    )
    await db.commit()
    return result.rowcount > 0


async def reorder_playlist_videos(
    db: AsyncSession, playlist_id: int, order: Sequence[tuple[str, int]]
) -> None:
    """Apply ``(video_id, sort_order)`` pairs in one transaction."""
    if not await db.get(Playlist, playlist_id):
        raise PlaylistNotFoundError(playlist_id)

    try:
        for video_id, sort_order in order:
            await db.execute(
                update(PlaylistVideo)
                .where(
                    PlaylistVideo.playlist_id == playlist_id,
                    PlaylistVideo.video_id == video_id,
                )
                .values(sort_order=sort_order)
            )
    except Exception:
        await db.rollback()
        raise
    await db.commit()


# --- Watch history ---


async def upsert_watch_history(
    db: AsyncSession,
    video_id: str,
    title: str,
    channel_name: str,
    channel_id: str,
    duration_seconds: int,
    watched_seconds: int,
    thumbnail_url: str | None = None,
    watched_at: datetime | None = None,
) -> WatchHistory:
    """Record a watch; an existing row for the video is overwritten."""
    watched_at = watched_at or datetime.now(timezone.utc)
    entry = await db.get(WatchHistory, video_id)

    if entry:
        entry.title = title
        entry.channel_name = channel_name
        entry.channel_id = channel_id
        entry.duration_seconds = duration_seconds
        entry.watched_seconds = watched_seconds
        entry.thumbnail_url = thumbnail_url
        entry.watched_at = watched_at
    else:
        entry = WatchHistory(
            video_id=video_id,
            title=title,
            channel_name=channel_name,
            channel_id=channel_id,
            duration_seconds=duration_seconds,
            watched_seconds=watched_seconds,
            thumbnail_url=thumbnail_url,
            watched_at=watched_at,
        )
        db.add(entry)

    await db.commit()
    await db.refresh(entry)
    return entry


async def update_watch_progress(
    db: AsyncSession, video_id: str, watched_seconds: int
) -> bool:
    result = await db.execute(
        update(WatchHistory)
        .where(WatchHistory.video_id == video_id)
        .values(watched_seconds=watched_seconds, watched_at=datetime.now(timezone.utc))
    )
    await db.commit()
    return result.rowcount > 0


async def get_watch_history_entry(
    db: AsyncSession, video_id: str
) -> WatchHistory | None:
    return await db.get(WatchHistory, video_id)


async def list_watch_history(
    db: AsyncSession, limit: int = 50, offset: int = 0
) -> list[WatchHistory]:
    result = await db.execute(
        select(WatchHistory)
        .order_by(WatchHistory.watched_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def get_watch_history_batch(
    db: AsyncSession, video_ids: Sequence[str]
) -> dict[str, WatchHistory]:
    """Look up history rows for many videos at once; unwatched ids are absent."""
    if not video_ids:
        return {}
    result = await db.execute(
        select(WatchHistory).where(WatchHistory.video_id.in_(set(video_ids)))
    )
    return {entry.video_id: entry for entry in result.scalars().all()}


async def delete_watch_history_entry(db: AsyncSession, video_id: str) -> bool:
    result = await db.execute(delete(WatchHistory).where(WatchHistory.video_id == video_id))
    await db.commit()
    return result.rowcount > 0


async def clear_watch_history(db: AsyncSession) -> int:
    result = await db.execute(delete(WatchHistory))
    await db.commit()
    return result.rowcount


# --- Settings ---


async def get_all_settings(db: AsyncSession) -> dict[str, str]:
    result = await db.execute(select(Setting))
    return {s.key: s.value for s in result.scalars().all()}


async def get_setting(db: AsyncSession, key: str) -> str | None:
    setting = await db.get(Setting, key)
    return setting.value if setting else None


async def set_setting(db: AsyncSession, key: str, value: str) -> Setting:
    setting = await db.get(Setting, key)
    if setting:
        setting.value = value
    else:
        setting = Setting(key=key, value=value)
        db.add(setting)
    await db.commit()
    await db.refresh(setting)
    return setting


async def seed_defaults(db: AsyncSession) -> None:
    """Insert default settings that are missing and ensure a default playlist."""
    existing = await get_all_settings(db)
    for key, value in DEFAULT_SETTINGS.items():
        if key not in existing:
            db.add(Setting(key=key, value=value))
    await db.commit()
    await ensure_default_playlist(db)
