"""Pydantic models for RSS feed entries."""

from datetime import datetime

from pydantic import BaseModel, HttpUrl

from ztube.content.formatters import format_relative_date, format_view_count
from ztube.content.models import ChannelRef, ContentItem, Thumbnail


class FeedEntry(BaseModel):
    """Represents a single video entry from a YouTube channel RSS feed."""

    video_id: str
    channel_id: str
    channel_name: str
    title: str
    link: HttpUrl
    published: datetime
    thumbnail_url: str
    thumbnail_width: int | None = None
    thumbnail_height: int | None = None
    view_count: int | None = None
    description: str | None = None

    def to_content_item(self, avatar_url: str | None = None) -> ContentItem:
        """Convert to a ContentItem. Feeds carry no duration, so it stays unknown."""
        return ContentItem(
            id=self.video_id,
            title=self.title,
            description=self.description,
            channel=ChannelRef(
                id=self.channel_id, name=self.channel_name, avatar_url=avatar_url
            ),
            published=self.published,
            published_text=format_relative_date(self.published),
            view_count=self.view_count,
            view_count_text=format_view_count(self.view_count),
            thumbnails=[
                Thumbnail(
                    url=self.thumbnail_url,
                    width=self.thumbnail_width,
                    height=self.thumbnail_height,
                )
            ],
            source_url=str(self.link),
        )
