"""Content pipeline: retrieval, classification and block-list filtering.

Every operation that returns a result list runs the block-list filter exactly
once, as its last step. Single-source operations (search, channel listing,
recommendations) let :class:`~ztube.errors.SourceFetchError` propagate since
a failure there leaves nothing to show; the subscription paths fan out over
many sources and tolerate individual failures.
"""

import logging
from functools import partial
from typing import Any

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from ztube.config import Settings, get_settings
from ztube.content.blocklist import BlockList
from ztube.content.extract import (
    extract_duration,
    to_channel_details,
    to_comment,
    to_video_details,
)
from ztube.content.filter import ContentFilter
from ztube.content.formatters import format_duration
from ztube.content.models import ChannelDetails, Comment, ContentItem, VideoDetails
from ztube.content.shorts import is_short, mark_shorts, separate_videos_and_shorts
from ztube.db import crud
from ztube.errors import MalformedItemError
from ztube.rss.cache import fetch_and_cache_feed
from ztube.youtube.client import YouTubeClient

from .aggregator import aggregate, fetch_sources, normalize_items, sort_by_published

logger = logging.getLogger(__name__)


class ContentPipeline:
    """Builds the content lists served by the API for one request."""

    def __init__(
        self,
        youtube: YouTubeClient,
        redis: Redis,
        db: AsyncSession,
        settings: Settings | None = None,
    ):
        self._youtube = youtube
        self._redis = redis
        self._db = db
        self._settings = settings or get_settings()
        self._filter = ContentFilter(BlockList(db))

    def _classify(self, source_id: str, records: list[Any]) -> dict[str, list[ContentItem]]:
        # Keeps the source's own order (relevance for search, upload order for channels)
        items = normalize_items([(source_id, records)])
        return separate_videos_and_shorts(items, self._settings.short_max_seconds)

    async def search(self, query: str) -> dict[str, list[ContentItem]]:
        records = await self._youtube.search(query)
        return await self._filter.filter_groups(self._classify(f"search:{query}", records))

    async def trending(self) -> dict[str, list[ContentItem]]:
        records = await self._youtube.trending()
        return await self._filter.filter_groups(self._classify("trending", records))

    async def channel_videos(
        self, channel_id: str, continuation: str | None = None
    ) -> dict[str, Any]:
        """One page of a channel's uploads split into videos and shorts.

        Returns:
            ``{"videos": [...], "shorts": [...], "continuation": str | None}``

        Raises:
            ValueError: If ``continuation`` was not issued for this channel
        """
        page = await self._youtube.channel_videos(channel_id, continuation)
        groups = await self._filter.filter_groups(
            self._classify(f"channel:{channel_id}", page.items)
        )
        return {**groups, "continuation": page.continuation}

    async def recommendations(self, video_id: str) -> list[ContentItem]:
        records = await self._youtube.related(video_id)
        items = mark_shorts(
            normalize_items([(f"related:{video_id}", records)]),
            self._settings.short_max_seconds,
        )
        return await self._filter.filter(items)

    async def video_details(self, video_id: str) -> VideoDetails:
        """Metadata for a directly opened video.

        Not block-list filtered: opening a video by id is an explicit request.

        Raises:
            SourceFetchError: If the video cannot be retrieved
            MalformedItemError: If the retrieved record has no id
        """
        details = to_video_details(await self._youtube.video_info(video_id))
        details.is_short = is_short(details, self._settings.short_max_seconds)
        return details

    async def comments(
        self, video_id: str, continuation: str | None = None
    ) -> dict[str, Any]:
        """One page of a video's comments.

        Comments hang off a directly opened video and are not block-list
        filtered. Records without an id are dropped.

        Returns:
            ``{"comments": [...], "continuation": str | None}``
        """
        page = await self._youtube.comments(video_id, continuation)
        comments: list[Comment] = []
        for record in page.items:
            try:
                comments.append(to_comment(record))
            except MalformedItemError as exc:
                logger.warning(
                    "Dropping malformed comment on %s: %s",
                    video_id,
                    exc,
                    extra={"video_id": video_id},
                )
        return {"comments": comments, "continuation": page.continuation}

    async def channel_details(self, channel_id: str) -> ChannelDetails:
        """Header metadata for a channel page. Not block-list filtered."""
        return to_channel_details(await self._youtube.channel_info(channel_id), channel_id)

    async def shorts_search(self, query: str) -> list[ContentItem]:
        records = await self._youtube.search(query)
        return await self._filter.filter(self._classify(f"search:{query}", records)["shorts"])

    async def shorts_trending(self) -> list[ContentItem]:
        records = await self._youtube.trending()
        return await self._filter.filter(self._classify("trending", records)["shorts"])

    async def _channel_feed(
        self, channel_id: str, name: str, avatar_url: str | None
    ) -> list[ContentItem]:
        entries = await fetch_and_cache_feed(self._redis, channel_id, name)
        return [entry.to_content_item(avatar_url) for entry in entries]

    async def _aggregate_subscriptions(self) -> dict[str, list[ContentItem]] | None:
        subscriptions = await crud.list_subscriptions(self._db)
        if not subscriptions:
            return None

        fetchers = [
            (
                sub.channel_id,
                partial(self._channel_feed, sub.channel_id, sub.name, sub.avatar_url),
            )
            for sub in subscriptions
        ]
        sources = await fetch_sources(fetchers, timeout=self._settings.source_timeout_seconds)
        return aggregate(sources, self._settings.short_max_seconds)

    async def subscription_feed(self) -> dict[str, list[ContentItem]]:
        """Newest uploads across all subscribed channels.

        With no subscriptions the result is two empty lists.
        """
        groups = await self._aggregate_subscriptions()
        if groups is None:
            return {"videos": [], "shorts": []}
        return await self._filter.filter_groups(groups)

    async def _lookup_duration(self, video_id: str) -> list[int]:
        duration = extract_duration(await self._youtube.video_info(video_id))
        return [] if duration is None else [duration]

    async def subscription_shorts(self) -> list[ContentItem]:
        """Shorts among recent subscription uploads.

        Syndication feeds carry no duration, so the newest items with an
        unknown duration get a metadata lookup (up to ``shorts_lookup_limit``)
        and are classified again with the duration filled in.
        """
        groups = await self._aggregate_subscriptions()
        if groups is None:
            return []

        candidates = [i for i in groups["videos"] if i.duration_seconds is None]
        candidates = candidates[: self._settings.shorts_lookup_limit]
        lookups = await fetch_sources(
            [(item.id, partial(self._lookup_duration, item.id)) for item in candidates],
            timeout=self._settings.source_timeout_seconds,
        )
        durations = {video_id: found[0] for video_id, found in lookups if found}

        checked = [
            item.model_copy(
                update={
                    "duration_seconds": durations[item.id],
                    "duration_text": format_duration(durations[item.id]),
                }
            )
            for item in candidates
            if item.id in durations
        ]
        newly_short = [
            item
            for item in mark_shorts(checked, self._settings.short_max_seconds)
            if item.is_short
        ]
        logger.info(
            "Looked up %d subscription videos, %d turned out to be shorts",
            len(candidates),
            len(newly_short),
        )
        return await self._filter.filter(sort_by_published(groups["shorts"] + newly_short))
