"""RSS feed module for ztube."""

from .cache import fetch_and_cache_feed, parse_feed
from .models import FeedEntry

__all__ = ["FeedEntry", "fetch_and_cache_feed", "parse_feed"]
