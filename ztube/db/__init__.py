"""Database module for ztube."""

from ztube.db.models import (
    Base,
    HiddenChannel,
    HiddenKeyword,
    Playlist,
    PlaylistVideo,
    Setting,
    Subscription,
    WatchHistory,
)
from ztube.db.session import get_engine, get_session, get_sessionmaker, init_db

__all__ = [
    "Base",
    "HiddenChannel",
    "HiddenKeyword",
    "Playlist",
    "PlaylistVideo",
    "Setting",
    "Subscription",
    "WatchHistory",
    "get_session",
    "get_engine",
    "get_sessionmaker",
    "init_db",
]
