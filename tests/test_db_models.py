"""Tests for database models and CRUD operations."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ztube.db import crud
from ztube.db.models import Base, Playlist, PlaylistVideo
from ztube.db.session import init_db, make_engine
from ztube.errors import (
    DefaultPlaylistProtectedError,
    DuplicatePlaylistNameError,
    PlaylistNotFoundError,
)


@pytest_asyncio.fixture
async def db_engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create a database session for testing."""
    async_session = async_sessionmaker(db_engine, expire_on_commit=False)
    async with async_session() as session:
        yield session


def test_make_engine_upgrades_plain_sqlite_url():
    engine = make_engine("sqlite:///:memory:")

    assert engine.url.drivername == "sqlite+aiosqlite"


@pytest.mark.asyncio
async def test_init_db_seeds_defaults_once(db_engine, db_session: AsyncSession):
    await init_db(db_engine)
    await init_db(db_engine)

    settings = await crud.get_all_settings(db_session)
    assert settings == {"theme": "dark", "autoplay": "true", "default_quality": "auto"}

    playlists = await crud.list_playlists(db_session)
    assert [(p.name, p.is_default) for p in playlists] == [("Watch Later", True)]


@pytest.mark.asyncio
async def test_seed_keeps_user_settings(db_engine, db_session: AsyncSession):
    await crud.set_setting(db_session, "theme", "light")

    await init_db(db_engine)

    assert await crud.get_setting(db_session, "theme") == "light"


@pytest.mark.asyncio
async def test_set_default_playlist_moves_flag(db_session: AsyncSession):
    first = await crud.ensure_default_playlist(db_session)
    second = await crud.create_playlist(db_session, "Music")

    updated = await crud.set_default_playlist(db_session, second.id)

    assert updated.is_default is True
    defaults = (await db_session.execute(select(Playlist).where(Playlist.is_default))).scalars().all()
    assert [p.id for p in defaults] == [second.id]
    await db_session.refresh(first)
    assert first.is_default is False


@pytest.mark.asyncio
async def test_set_default_to_missing_playlist_changes_nothing(db_session: AsyncSession):
    original = await crud.ensure_default_playlist(db_session)

    with pytest.raises(PlaylistNotFoundError):
        await crud.set_default_playlist(db_session, 999)

    default = await crud.get_default_playlist(db_session)
    assert default is not None
    assert default.id == original.id


@pytest.mark.asyncio
async def test_duplicate_playlist_name(db_session: AsyncSession):
    await crud.create_playlist(db_session, "Music")

    with pytest.raises(DuplicatePlaylistNameError):
        await crud.create_playlist(db_session, "Music")

    # The session is still usable after the rollback
    assert [p.name for p in await crud.list_playlists(db_session)] == ["Music"]


@pytest.mark.asyncio
async def test_delete_playlist_rules(db_session: AsyncSession):
    default = await crud.ensure_default_playlist(db_session)
    other = await crud.create_playlist(db_session, "Temp")
    await crud.add_video_to_playlist(db_session, other.id, "v1")

    with pytest.raises(DefaultPlaylistProtectedError):
        await crud.delete_playlist(db_session, default.id)
    with pytest.raises(PlaylistNotFoundError):
        await crud.delete_playlist(db_session, 999)

    await crud.delete_playlist(db_session, other.id)

    assert await crud.get_playlist(db_session, other.id) is None
    remaining = await db_session.scalar(select(func.count()).select_from(PlaylistVideo))
    assert remaining == 0


@pytest.mark.asyncio
async def test_playlist_videos_append_and_reorder(db_session: AsyncSession):
    playlist = await crud.create_playlist(db_session, "Queue")

    for video_id in ("a", "b", "c"):
        await crud.add_video_to_playlist(db_session, playlist.id, video_id, title=video_id.upper())
    again = await crud.add_video_to_playlist(db_session, playlist.id, "b")

    assert again.sort_order == 1
    videos = await crud.list_playlist_videos(db_session, playlist.id)
    assert [(v.video_id, v.sort_order) for v in videos] == [("a", 0), ("b", 1), ("c", 2)]

    await crud.reorder_playlist_videos(db_session, playlist.id, [("c", 0), ("a", 1), ("b", 2)])

    videos = await crud.list_playlist_videos(db_session, playlist.id)
    assert [v.video_id for v in videos] == ["c", "a", "b"]

    assert await crud.remove_video_from_playlist(db_session, playlist.id, "a") is True
    assert await crud.remove_video_from_playlist(db_session, playlist.id, "a") is False


@pytest.mark.asyncio
async def test_add_video_to_missing_playlist(db_session: AsyncSession):
    with pytest.raises(PlaylistNotFoundError):
        await crud.add_video_to_playlist(db_session, 42, "v1")


@pytest.mark.asyncio
async def test_watch_history_last_watch_wins(db_session: AsyncSession):
    now = datetime.now(timezone.utc)
    await crud.upsert_watch_history(
        db_session, "v1", "One", "Chan", "UC1", 600, 100, watched_at=now - timedelta(hours=2)
    )
    await crud.upsert_watch_history(
        db_session, "v2", "Two", "Chan", "UC1", 300, 10, watched_at=now - timedelta(hours=1)
    )
    await crud.upsert_watch_history(db_session, "v1", "One", "Chan", "UC1", 600, 500, watched_at=now)

    history = await crud.list_watch_history(db_session)
    assert [h.video_id for h in history] == ["v1", "v2"]
    assert history[0].watched_seconds == 500

    page = await crud.list_watch_history(db_session, limit=1, offset=1)
    assert [h.video_id for h in page] == ["v2"]


@pytest.mark.asyncio
async def test_watch_progress_and_batch(db_session: AsyncSession):
    await crud.upsert_watch_history(db_session, "v1", "One", "Chan", "UC1", 600, 0)

    assert await crud.update_watch_progress(db_session, "v1", 321) is True
    assert await crud.update_watch_progress(db_session, "missing", 1) is False

    batch = await crud.get_watch_history_batch(db_session, ["v1", "v2", "v1"])
    assert set(batch) == {"v1"}
    assert batch["v1"].watched_seconds == 321
    assert await crud.get_watch_history_batch(db_session, []) == {}


@pytest.mark.asyncio
async def test_clear_and_delete_watch_history(db_session: AsyncSession):
    for video_id in ("v1", "v2", "v3"):
        await crud.upsert_watch_history(db_session, video_id, "T", "C", "UC1", 10, 5)

    assert await crud.delete_watch_history_entry(db_session, "v1") is True
    assert await crud.get_watch_history_entry(db_session, "v1") is None
    assert await crud.clear_watch_history(db_session) == 2


@pytest.mark.asyncio
async def test_subscriptions(db_session: AsyncSession):
    await crud.add_subscription(db_session, "UC2", "beta")
    await crud.add_subscription(db_session, "UC1", "Alpha", "https://x/a.png")
    await crud.add_subscription(db_session, "UC1", "Renamed")

    subs = await crud.list_subscriptions(db_session)
    assert [(s.channel_id, s.name) for s in subs] == [("UC1", "Alpha"), ("UC2", "beta")]
    assert await crud.is_subscribed(db_session, "UC1") is True

    assert await crud.remove_subscription(db_session, "UC1") is True
    assert await crud.is_subscribed(db_session, "UC1") is False
