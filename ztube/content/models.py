"""Pydantic models for content items shown in result lists."""

from datetime import datetime

from pydantic import BaseModel, Field

UNTITLED = "Untitled"
UNKNOWN_CHANNEL = "Unknown"


class Thumbnail(BaseModel):
    """A single thumbnail rendition."""

    url: str
    width: int | None = None
    height: int | None = None

    @property
    def is_portrait(self) -> bool:
        """True when both dimensions are known and the image is taller than wide."""
        if not self.width or not self.height:
            return False
        return self.height > self.width


class ChannelRef(BaseModel):
    """The channel an item belongs to."""

    id: str | None = None
    name: str = UNKNOWN_CHANNEL
    verified: bool = False
    avatar_url: str | None = None


class ContentItem(BaseModel):
    """A video-like item from any content source.

    ``duration_seconds`` is ``None`` when the duration is unknown; ``0`` is a
    known (if degenerate) duration. ``id`` is the only identity key: items with
    the same id from different sources are the same logical item.
    """

    id: str
    title: str = UNTITLED
    description: str | None = None
    duration_seconds: int | None = Field(default=None, ge=0)
    duration_text: str | None = None
    is_live: bool = False
    channel: ChannelRef = Field(default_factory=ChannelRef)
    published: datetime | None = None
    published_text: str | None = None
    view_count: int | None = None
    view_count_text: str | None = None
    thumbnails: list[Thumbnail] = Field(default_factory=list)
    source_url: str | None = None
    endpoint_hint: str | None = None
    source_type: str | None = None
    short_hint: bool | None = None
    is_short: bool = False

    @property
    def primary_thumbnail(self) -> Thumbnail | None:
        """The first thumbnail, treated as the primary one."""
        return self.thumbnails[0] if self.thumbnails else None


class Chapter(BaseModel):
    title: str
    start_seconds: float = Field(ge=0)


class VideoDetails(ContentItem):
    """A single video opened directly, with the extra watch-page metadata."""

    like_count: int | None = None
    chapters: list[Chapter] = Field(default_factory=list)


class CommentAuthor(BaseModel):
    id: str | None = None
    name: str = UNKNOWN_CHANNEL
    avatar_url: str | None = None
    is_uploader: bool = False


class Comment(BaseModel):
    """A top-level comment on a video."""

    id: str
    text: str = ""
    author: CommentAuthor = Field(default_factory=CommentAuthor)
    like_count: int | None = None
    reply_count: int | None = None
    published: datetime | None = None
    published_text: str | None = None
    is_pinned: bool = False


class ChannelDetails(BaseModel):
    """Header metadata of a channel page.

    Counts are ``None`` when the source does not expose them; the ``*_text``
    fields carry display text either way.
    """

    id: str
    name: str = UNKNOWN_CHANNEL
    description: str | None = None
    verified: bool = False
    avatar_url: str | None = None
    banner_url: str | None = None
    subscriber_count: int | None = None
    subscriber_count_text: str | None = None
    video_count: int | None = None
    video_count_text: str | None = None
