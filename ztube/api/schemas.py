"""Response models shared by the content endpoints."""

from pydantic import BaseModel

from ztube.content.models import Comment, ContentItem


class ContentGroupsResponse(BaseModel):
    """A result list split into regular videos and shorts."""

    videos: list[ContentItem]
    shorts: list[ContentItem]


class ChannelVideosResponse(ContentGroupsResponse):
    continuation: str | None = None


class WatchedContentItem(ContentItem):
    """A content item annotated with the viewer's progress."""

    watched: bool = False
    watched_seconds: int | None = None


class SubscriptionFeedResponse(BaseModel):
    videos: list[WatchedContentItem]
    shorts: list[WatchedContentItem]


class CommentsResponse(BaseModel):
    comments: list[Comment]
    continuation: str | None = None
