"""Tests for RSS feed caching functionality."""

import json
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from redis.asyncio import Redis

from ztube.errors import SourceFetchError
from ztube.rss.cache import fetch_and_cache_feed, parse_feed

CHANNEL_ID = "UCuAXFkgsw1L7xaCfnd5JJOw"

# Sample YouTube RSS feed XML
SAMPLE_RSS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015" xmlns:media="http://search.yahoo.com/mrss/" xmlns="http://www.w3.org/2005/Atom">
  <title>Channel Title</title>
  <author><name>Channel Title</name></author>
  <entry>
    <yt:videoId>dQw4w9WgXcQ</yt:videoId>
    <yt:channelId>UCuAXFkgsw1L7xaCfnd5JJOw</yt:channelId>
    <title>Test Video 1</title>
    <link rel="alternate" href="https://www.youtube.com/watch?v=dQw4w9WgXcQ"/>
    <published>2024-01-15T10:30:00+00:00</published>
    <media:group>
      <media:thumbnail url="https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg" width="480" height="360"/>
      <media:description>First description</media:description>
      <media:community>
        <media:statistics views="12345"/>
      </media:community>
    </media:group>
  </entry>
  <entry>
    <yt:videoId>jNQXAC9IVRw</yt:videoId>
    <yt:channelId>UCuAXFkgsw1L7xaCfnd5JJOw</yt:channelId>
    <title>Test Video 2</title>
    <link rel="alternate" href="https://www.youtube.com/watch?v=jNQXAC9IVRw"/>
    <published>2024-01-14T15:45:00Z</published>
    <media:group>
      <media:thumbnail url="https://i.ytimg.com/vi/jNQXAC9IVRw/hqdefault.jpg" width="480" height="360"/>
    </media:group>
  </entry>
</feed>
"""

# Invalid XML for error handling tests
INVALID_XML = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015" xmlns="http://www.w3.org/2005/Atom">
  <title>Channel Title</title>
  <entry>
    <yt:videoId>incomplete
"""


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    redis = AsyncMock(spec=Redis)
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock()
    return redis


@pytest.fixture
def mock_settings():
    """Mock settings with test values."""
    with patch("ztube.rss.cache.get_settings") as mock_get_settings:
        settings = MagicMock()
        settings.feed_ttl_seconds = 1800
        settings.feed_ttl_splay_max = 300
        settings.source_timeout_seconds = 5.0
        mock_get_settings.return_value = settings
        yield settings


def mock_http_client(text=None, side_effect=None):
    """Create a mock httpx.AsyncClient context manager."""
    mock_response = MagicMock()
    mock_response.text = text
    mock_response.raise_for_status = MagicMock()

    client = AsyncMock()
    if side_effect is not None:
        client.get = AsyncMock(side_effect=side_effect)
    else:
        client.get = AsyncMock(return_value=mock_response)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


@pytest.mark.asyncio
async def test_cache_hit_returns_cached_data_without_http_call(mock_redis, mock_settings):
    """Test that cache hit returns cached data without making HTTP request."""
    cached_items = [
        {
            "video_id": "cached_video_1",
            "channel_id": CHANNEL_ID,
            "channel_name": "Cached",
            "title": "Cached Video 1",
            "link": "https://www.youtube.com/watch?v=cached_video_1",
            "published": "2024-01-15T10:30:00+00:00",
            "thumbnail_url": "https://i.ytimg.com/vi/cached_video_1/hqdefault.jpg",
        },
    ]
    mock_redis.get.return_value = json.dumps(cached_items)

    with patch("httpx.AsyncClient") as mock_client:
        result = await fetch_and_cache_feed(mock_redis, CHANNEL_ID)

        mock_client.assert_not_called()
        mock_redis.get.assert_called_once_with(f"zt:feed:{CHANNEL_ID}")

        assert len(result) == 1
        assert result[0].video_id == "cached_video_1"
        assert result[0].channel_name == "Cached"


@pytest.mark.asyncio
async def test_cache_miss_fetches_from_http_and_caches(mock_redis, mock_settings):
    """Test that cache miss fetches from HTTP and caches the result."""
    client = mock_http_client(SAMPLE_RSS_XML)

    with patch("httpx.AsyncClient", return_value=client):
        result = await fetch_and_cache_feed(mock_redis, CHANNEL_ID)

    client.get.assert_called_once_with(
        f"https://www.youtube.com/feeds/videos.xml?channel_id={CHANNEL_ID}"
    )

    cache_key, cache_ttl, cache_data = mock_redis.setex.call_args[0]
    assert cache_key == f"zt:feed:{CHANNEL_ID}"
    # TTL should be base_ttl + random splay
    assert 1800 <= cache_ttl <= 2100
    assert len(json.loads(cache_data)) == 2

    assert [e.video_id for e in result] == ["dQw4w9WgXcQ", "jNQXAC9IVRw"]
    first = result[0]
    assert first.channel_name == "Channel Title"
    assert first.view_count == 12345
    assert first.thumbnail_width == 480
    assert first.description == "First description"
    assert str(first.link) == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.mark.asyncio
async def test_ttl_randomization_in_expected_range(mock_redis, mock_settings):
    """Test that TTL is randomized within the expected range."""
    client = mock_http_client(SAMPLE_RSS_XML)

    with patch("httpx.AsyncClient", return_value=client):
        ttls = []
        for _ in range(10):
            mock_redis.setex.reset_mock()
            await fetch_and_cache_feed(mock_redis, CHANNEL_ID)
            ttls.append(mock_redis.setex.call_args[0][1])

    for ttl in ttls:
        assert 1800 <= ttl <= 1800 + 300

    # Could theoretically fail due to random chance, but very unlikely
    assert len(set(ttls)) > 1


@pytest.mark.asyncio
async def test_invalid_xml_raises_source_fetch_error(mock_redis, mock_settings):
    """Invalid XML is a failure of this source and is never cached."""
    client = mock_http_client(INVALID_XML)

    with patch("httpx.AsyncClient", return_value=client):
        with pytest.raises(SourceFetchError) as exc_info:
            await fetch_and_cache_feed(mock_redis, CHANNEL_ID)

    assert exc_info.value.source_id == CHANNEL_ID
    mock_redis.setex.assert_not_called()


@pytest.mark.asyncio
async def test_http_error_raises_source_fetch_error(mock_redis, mock_settings):
    """Test that HTTP errors surface as SourceFetchError."""
    mock_error_response = MagicMock()
    mock_error_response.status_code = 404
    http_error = httpx.HTTPStatusError(
        "404 Not Found", request=MagicMock(), response=mock_error_response
    )
    client = mock_http_client(side_effect=http_error)

    with patch("httpx.AsyncClient", return_value=client):
        with pytest.raises(SourceFetchError) as exc_info:
            await fetch_and_cache_feed(mock_redis, CHANNEL_ID)

    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)


def test_incomplete_entries_are_skipped():
    """Entries missing a link are skipped; a missing thumbnail falls back to hqdefault."""
    xml = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015" xmlns:media="http://search.yahoo.com/mrss/" xmlns="http://www.w3.org/2005/Atom">
  <entry>
    <yt:videoId>valid_video</yt:videoId>
    <title>Valid Video</title>
    <link rel="alternate" href="https://www.youtube.com/watch?v=valid_video"/>
    <published>2024-01-15T10:30:00+00:00</published>
    <media:group><media:thumbnail url="https://i.ytimg.com/v.jpg"/></media:group>
  </entry>
  <entry>
    <yt:videoId>missing_link</yt:videoId>
    <title>Missing Link</title>
    <published>2024-01-14T15:45:00+00:00</published>
    <media:group><media:thumbnail url="https://i.ytimg.com/m.jpg"/></media:group>
  </entry>
  <entry>
    <yt:videoId>missing_thumb</yt:videoId>
    <title>Missing Thumbnail</title>
    <link rel="alternate" href="https://www.youtube.com/watch?v=missing_thumb"/>
    <published>2024-01-13T12:00:00+00:00</published>
  </entry>
</feed>
"""

    result = parse_feed(xml, CHANNEL_ID, fallback_name="Stored Name")

    assert [e.video_id for e in result] == ["valid_video", "missing_thumb"]
    assert result[0].channel_id == CHANNEL_ID
    assert result[0].channel_name == "Stored Name"
    assert result[1].thumbnail_url == "https://i.ytimg.com/vi/missing_thumb/hqdefault.jpg"
    assert result[1].thumbnail_width is None


def test_z_suffix_and_content_item_conversion():
    result = parse_feed(SAMPLE_RSS_XML, CHANNEL_ID)
    second = result[1]

    assert isinstance(second.published, datetime)
    assert second.published.tzinfo is not None

    item = second.to_content_item(avatar_url="https://yt3.ggpht.com/a.jpg")
    assert item.id == "jNQXAC9IVRw"
    assert item.duration_seconds is None
    assert item.channel.id == CHANNEL_ID
    assert item.channel.avatar_url == "https://yt3.ggpht.com/a.jpg"
    assert item.thumbnails[0].height == 360
