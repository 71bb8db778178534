"""RSS feed fetching and caching with Redis."""

import json
import logging
import random
import xml.etree.ElementTree as ET
from datetime import datetime

import httpx
from pydantic import ValidationError
from redis.asyncio import Redis

from ztube.config import get_settings
from ztube.errors import SourceFetchError

from .models import FeedEntry

logger = logging.getLogger(__name__)

# XML namespaces for YouTube RSS feeds
NAMESPACES = {
    "yt": "http://www.youtube.com/xml/schemas/2015",
    "atom": "http://www.w3.org/2005/Atom",
    "media": "http://search.yahoo.com/mrss/",
}

FEED_URL = "https://www.youtube.com/feeds/videos.xml?channel_id={channel_id}"
THUMBNAIL_FALLBACK = "https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"


def _key(channel_id: str) -> str:
    """Generate Redis key for a channel's feed cache."""
    return f"zt:feed:{channel_id}"


def _text(entry: ET.Element, path: str) -> str | None:
    elem = entry.find(path, NAMESPACES)
    if elem is None or not elem.text:
        return None
    return elem.text.strip() or None


def _int_attr(elem: ET.Element | None, name: str) -> int | None:
    if elem is None:
        return None
    value = elem.attrib.get(name)
    if value is None or not value.isdigit():
        return None
    return int(value)


def parse_feed(xml_text: str, channel_id: str, fallback_name: str | None = None) -> list[FeedEntry]:
    """Parse a channel's Atom feed into entries.

    Entries missing an id, title, link or publish date are skipped. Entries
    without a thumbnail get the standard hqdefault image for the video.

    Raises:
        xml.etree.ElementTree.ParseError: If the document is not valid XML
    """
    xml_root = ET.fromstring(xml_text)
    feed_author = _text(xml_root, "atom:author/atom:name")

    entries = []
    for entry in xml_root.findall("atom:entry", NAMESPACES):
        try:
            video_id = _text(entry, "yt:videoId")
            title = _text(entry, "atom:title")
            published_str = _text(entry, "atom:published")
            link_elem = entry.find("atom:link", NAMESPACES)
            link = link_elem.attrib.get("href") if link_elem is not None else None
            thumb_elem = entry.find("media:group/media:thumbnail", NAMESPACES)
            thumbnail_url = thumb_elem.attrib.get("url") if thumb_elem is not None else None

            # Skip entries with missing required fields
            if not video_id or not title or not published_str or not link:
                logger.debug("Skipping incomplete entry in feed for %s", channel_id)
                continue

            stats_elem = entry.find(
                "media:group/media:community/media:statistics", NAMESPACES
            )

            entries.append(
                FeedEntry(
                    video_id=video_id,
                    channel_id=_text(entry, "yt:channelId") or channel_id,
                    channel_name=_text(entry, "atom:author/atom:name")
                    or feed_author
                    or fallback_name
                    or "Unknown",
                    title=title,
                    link=link,  # type: ignore[arg-type]  # Pydantic handles str -> HttpUrl
                    # Parse ISO 8601 datetime (convert Z to +00:00 for proper parsing)
                    published=datetime.fromisoformat(published_str.replace("Z", "+00:00")),
                    thumbnail_url=thumbnail_url
                    or THUMBNAIL_FALLBACK.format(video_id=video_id),
                    thumbnail_width=_int_attr(thumb_elem, "width"),
                    thumbnail_height=_int_attr(thumb_elem, "height"),
                    view_count=_int_attr(stats_elem, "views"),
                    description=_text(entry, "media:group/media:description"),
                )
            )
        except (AttributeError, KeyError, ValueError, ValidationError):
            # Skip malformed entries
            continue

    return entries


async def fetch_and_cache_feed(
    redis: Redis, channel_id: str, channel_name: str | None = None
) -> list[FeedEntry]:
    """
    Fetch and cache a YouTube channel's RSS feed.

    First checks Redis cache. If cache hit, returns cached data.
    On cache miss, fetches from YouTube RSS endpoint, parses XML,
    and caches the result with TTL + randomized splay.

    Args:
        redis: Async Redis client
        channel_id: YouTube channel ID
        channel_name: Stored channel name, used when the feed omits the author

    Returns:
        List of FeedEntry objects representing recent videos

    Raises:
        SourceFetchError: If the HTTP request fails or the feed is not valid XML
    """
    settings = get_settings()
    base_ttl = settings.feed_ttl_seconds
    splay = settings.feed_ttl_splay_max
    ttl = base_ttl + random.randint(0, splay)

    key = _key(channel_id)

    # Check cache first
    if cached_data := await redis.get(key):
        items_data = json.loads(cached_data)
        return [FeedEntry(**item) for item in items_data]

    # Cache miss - fetch from YouTube
    url = FEED_URL.format(channel_id=channel_id)

    try:
        async with httpx.AsyncClient(timeout=settings.source_timeout_seconds) as client:
            response = await client.get(url)
            response.raise_for_status()
            response_text = response.text
    except httpx.HTTPError as exc:
        raise SourceFetchError(channel_id, str(exc)) from exc

    try:
        items = parse_feed(response_text, channel_id, channel_name)
    except ET.ParseError as exc:
        raise SourceFetchError(channel_id, "invalid feed XML") from exc

    # Cache the results using mode='json' to handle datetime serialization
    serialized_items = [item.model_dump(mode="json") for item in items]
    await redis.setex(key, ttl, json.dumps(serialized_items))

    return items
