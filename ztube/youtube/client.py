"""YouTube retrieval client built on yt-dlp.

yt-dlp is synchronous, so every extraction runs in a worker thread. Results
are returned as the raw info dicts yt-dlp produces; callers normalize them
with :func:`ztube.content.extract.to_content_item`.
"""

import asyncio
import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import yt_dlp
from yt_dlp.utils import DownloadError, ExtractorError

from ztube.config import Settings, get_settings
from ztube.errors import SourceFetchError

logger = logging.getLogger(__name__)

YDL_BASE_OPTIONS: dict[str, Any] = {
    "quiet": True,
    "no_warnings": True,
    "noprogress": True,
    "skip_download": True,
}


@dataclass
class ChannelPage:
    """One page of a channel's uploads plus the token for the next page."""

    items: list[dict[str, Any]] = field(default_factory=list)
    continuation: str | None = None


@dataclass
class CommentPage:
    """One page of a video's top-level comments plus the token for the next page."""

    items: list[dict[str, Any]] = field(default_factory=list)
    continuation: str | None = None


def make_continuation(owner_id: str, start: int) -> str:
    """Encode an opaque continuation token for a channel or comment listing."""
    blob = json.dumps({"c": owner_id, "s": start})
    return base64.urlsafe_b64encode(blob.encode()).decode()


def decode_continuation(token: str, owner_id: str) -> int:
    """Decode a continuation token back to the next 1-based start index.

    Raises:
        ValueError: If the token is malformed or was issued for another listing
    """
    try:
        data = json.loads(base64.urlsafe_b64decode(token.encode()))
        start = int(data["s"])
        owner = data["c"]
    except (binascii.Error, ValueError, KeyError, TypeError) as exc:
        raise ValueError("Invalid continuation token") from exc

    if owner != owner_id or start < 1:
        raise ValueError("Continuation token does not belong to this listing")
    return start


class YouTubeClient:
    """Client for searching YouTube and listing channel and video metadata.

    Construct one per process (the application lifespan does this) and pass
    it to whatever needs it.
    """

    WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
    CHANNEL_VIDEOS_URL = "https://www.youtube.com/channel/{channel_id}/videos"

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()

    def _extract(self, url: str, **options: Any) -> dict[str, Any]:
        with yt_dlp.YoutubeDL({**YDL_BASE_OPTIONS, **options}) as ydl:
            info = ydl.extract_info(url, download=False)
            if not isinstance(info, dict):
                raise SourceFetchError(url, "no information returned")
            return ydl.sanitize_info(info)

    async def _run(self, source_id: str, url: str, **options: Any) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(self._extract, url, **options)
        except (DownloadError, ExtractorError) as exc:
            raise SourceFetchError(source_id, str(exc)) from exc

    @staticmethod
    def _entries(info: dict[str, Any]) -> list[dict[str, Any]]:
        entries = info.get("entries") or []
        return [e for e in entries if isinstance(e, dict)]

    async def search(self, query: str, limit: int | None = None) -> list[dict[str, Any]]:
        """Search for videos matching ``query``.

        Returns:
            Raw flat entries in relevance order
        """
        limit = limit or self._settings.search_limit
        info = await self._run(
            f"search:{query}", f"ytsearch{limit}:{query}", extract_flat="in_playlist"
        )
        return self._entries(info)

    async def channel_videos(
        self, channel_id: str, continuation: str | None = None
    ) -> ChannelPage:
        """List one page of a channel's uploads.

        Args:
            channel_id: YouTube channel ID
            continuation: Token from a previous page of the same channel

        Raises:
            ValueError: If the continuation token is invalid for this channel
            SourceFetchError: If the listing cannot be retrieved
        """
        start = decode_continuation(continuation, channel_id) if continuation else 1
        page_size = self._settings.channel_page_size
        # Fetch one extra entry to learn whether another page exists
        end = start + page_size

        info = await self._run(
            f"channel:{channel_id}",
            self.CHANNEL_VIDEOS_URL.format(channel_id=channel_id),
            extract_flat="in_playlist",
            playlist_items=f"{start}-{end}",
        )
        entries = self._entries(info)

        channel_name = info.get("channel") or info.get("uploader") or info.get("title")
        for entry in entries:
            if not entry.get("channel_id"):
                entry["channel_id"] = info.get("channel_id") or channel_id
            if channel_name and not entry.get("channel"):
                entry["channel"] = channel_name

        next_token = None
        if len(entries) > page_size:
            entries = entries[:page_size]
            next_token = make_continuation(channel_id, end)
        return ChannelPage(items=entries, continuation=next_token)

    async def video_info(self, video_id: str) -> dict[str, Any]:
        """Fetch full metadata for a single video."""
        return await self._run(f"video:{video_id}", self.WATCH_URL.format(video_id=video_id))

    async def comments(
        self, video_id: str, continuation: str | None = None
    ) -> CommentPage:
        """List one page of a video's top-level comments, top-ranked first.

        yt-dlp has no comment cursor of its own, so a page is cut from the
        first ``start + page_size`` comments; replies are not fetched.

        Raises:
            ValueError: If the continuation token is invalid for this video
            SourceFetchError: If the comments cannot be retrieved
        """
        start = decode_continuation(continuation, video_id) if continuation else 1
        page_size = self._settings.comments_page_size
        end = start + page_size

        info = await self._run(
            f"comments:{video_id}",
            self.WATCH_URL.format(video_id=video_id),
            getcomments=True,
            extractor_args={
                "youtube": {
                    "max_comments": [str(end), "all", "0", "0"],
                    "comment_sort": ["top"],
                }
            },
        )
        raw = info.get("comments") or []
        threads = [
            c for c in raw if isinstance(c, dict) and c.get("parent", "root") == "root"
        ]

        items = threads[start - 1 : end]
        next_token = None
        if len(items) > page_size:
            items = items[:page_size]
            next_token = make_continuation(video_id, end)
        return CommentPage(items=items, continuation=next_token)

    async def channel_info(self, channel_id: str) -> dict[str, Any]:
        """Fetch a channel's header metadata (name, avatar, banner, counts).

        Only the first upload is listed; the entries are dropped.
        """
        info = await self._run(
            f"channel:{channel_id}",
            self.CHANNEL_VIDEOS_URL.format(channel_id=channel_id),
            extract_flat="in_playlist",
            playlist_items="1",
        )
        return {key: value for key, value in info.items() if key != "entries"}

    async def trending(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Popular videos, approximated by a search for the trending query."""
        return await self.search(self._settings.trending_query, limit)

    async def related(self, video_id: str, limit: int | None = None) -> list[dict[str, Any]]:
        """Videos related to ``video_id``: a search seeded by its title."""
        info = await self.video_info(video_id)
        seed = info.get("title") or ""
        if not seed:
            return []
        limit = limit or self._settings.search_limit
        results = await self.search(seed, limit + 1)
        return [r for r in results if r.get("id") != video_id][:limit]
