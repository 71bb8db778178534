"""Block-list filtering for content result lists."""

import logging
from collections.abc import Sequence

from ztube.content.blocklist import BlockList, BlockSnapshot
from ztube.content.models import ContentItem

logger = logging.getLogger(__name__)


def filter_items(
    items: Sequence[ContentItem], snapshot: BlockSnapshot
) -> list[ContentItem]:
    """Drop blocked items, preserving order.

    Items with no channel id are always kept: missing channel identity must
    never suppress content.
    """
    if snapshot.empty:
        return list(items)

    kept: list[ContentItem] = []
    for item in items:
        channel_id = item.channel.id
        if not channel_id:
            kept.append(item)
            continue

        if snapshot.is_channel_blocked(channel_id):
            logger.debug(
                "Filtered %r from blocked channel %s", item.title, item.channel.name
            )
            continue

        if snapshot.is_keyword_blocked(item.title, item.description):
            logger.debug("Filtered %r by blocked keyword", item.title)
            continue

        kept.append(item)

    removed = len(items) - len(kept)
    if removed:
        logger.info("Filtered out %d blocked items", removed)
    return kept


class ContentFilter:
    """Applies the block list to result lists."""

    def __init__(self, blocklist: BlockList):
        self._blocklist = blocklist

    async def filter(self, items: Sequence[ContentItem]) -> list[ContentItem]:
        """Filter ``items`` against a single block-list snapshot."""
        if not items:
            return []
        snapshot = await self._blocklist.snapshot()
        return filter_items(items, snapshot)

    async def filter_groups(
        self, groups: dict[str, list[ContentItem]]
    ) -> dict[str, list[ContentItem]]:
        """Filter several lists of one response with the same snapshot."""
        if not any(groups.values()):
            return {name: [] for name in groups}
        snapshot = await self._blocklist.snapshot()
        return {name: filter_items(items, snapshot) for name, items in groups.items()}
