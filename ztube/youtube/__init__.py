"""YouTube retrieval client."""

from .client import ChannelPage, YouTubeClient

__all__ = ["ChannelPage", "YouTubeClient"]
