"""Content models, classification and block-list filtering."""

from .blocklist import BlockList, BlockSnapshot
from .filter import ContentFilter, filter_items
from .models import (
    ChannelDetails,
    ChannelRef,
    Comment,
    ContentItem,
    Thumbnail,
    VideoDetails,
)
from .shorts import is_short, separate_videos_and_shorts

__all__ = [
    "BlockList",
    "BlockSnapshot",
    "ChannelDetails",
    "ChannelRef",
    "Comment",
    "ContentFilter",
    "ContentItem",
    "Thumbnail",
    "VideoDetails",
    "filter_items",
    "is_short",
    "separate_videos_and_shorts",
]
