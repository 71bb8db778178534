"""SQLAlchemy models for ztube."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Subscription(Base):
    """A subscribed channel."""

    __tablename__ = "subscriptions"

    channel_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String)
    avatar_url: Mapped[str | None] = mapped_column(String, nullable=True)
    subscribed_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class Playlist(Base):
    """A user playlist; at most one is the default save-for-later list."""

    __tablename__ = "playlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, unique=True)
    description: Mapped[str] = mapped_column(Text, default="")
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class PlaylistVideo(Base):
    """Playlist membership with per-entry sort order."""

    __tablename__ = "playlist_videos"

    playlist_id: Mapped[int] = mapped_column(
        ForeignKey("playlists.id", ondelete="CASCADE"), primary_key=True
    )
    video_id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    channel_name: Mapped[str | None] = mapped_column(String, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    added_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class WatchHistory(Base):
    """Watch history, one row per video; the latest watch wins."""

    __tablename__ = "watch_history"

    video_id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String)
    channel_name: Mapped[str] = mapped_column(String)
    channel_id: Mapped[str] = mapped_column(String, index=True)
    duration_seconds: Mapped[int] = mapped_column(Integer, default=0)
    watched_seconds: Mapped[int] = mapped_column(Integer, default=0)
    thumbnail_url: Mapped[str | None] = mapped_column(String, nullable=True)
    watched_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), index=True
    )


class Setting(Base):
    """Key/value user setting."""

    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(String)


class HiddenChannel(Base):
    """A blocked channel."""

    __tablename__ = "hidden_channels"

    channel_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String)
    hidden_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class HiddenKeyword(Base):
    """A blocked title keyword, matched case-insensitively."""

    __tablename__ = "hidden_keywords"

    keyword: Mapped[str] = mapped_column(String(collation="NOCASE"), primary_key=True)
    hidden_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
