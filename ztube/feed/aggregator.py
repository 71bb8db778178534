"""Feed aggregation: merge per-source item lists into one ordered result.

``fetch_sources`` runs the per-source fetches concurrently and turns any
single failure into an empty contribution. ``aggregate`` flattens the results
in source order, drops malformed records, de-duplicates by id (the first
occurrence wins), classifies shorts and sorts newest first.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from ztube.content.extract import to_content_item
from ztube.content.models import ContentItem
from ztube.content.shorts import SHORT_MAX_SECONDS, mark_shorts
from ztube.errors import MalformedItemError, NoSourcesError

logger = logging.getLogger(__name__)

Source = tuple[str, Sequence[Any]]
SourceFetcher = Callable[[], Awaitable[Sequence[Any]]]


async def _fetch_one(source_id: str, fetch: SourceFetcher, timeout: float | None) -> list[Any]:
    try:
        items = await asyncio.wait_for(fetch(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(
            "Source %s timed out after %ss", source_id, timeout, extra={"source_id": source_id}
        )
        return []
    except Exception:
        logger.warning(
            "Source %s failed; treating it as empty",
            source_id,
            exc_info=True,
            extra={"source_id": source_id},
        )
        return []
    return list(items or [])


async def fetch_sources(
    fetchers: Sequence[tuple[str, SourceFetcher]],
    timeout: float | None = None,
) -> list[Source]:
    """Fetch every source concurrently.

    Results keep the order of ``fetchers`` regardless of completion order. A
    source that raises or exceeds ``timeout`` contributes an empty list and
    never aborts its siblings.
    """
    results = await asyncio.gather(
        *(_fetch_one(source_id, fetch, timeout) for source_id, fetch in fetchers)
    )
    return [(source_id, items) for (source_id, _), items in zip(fetchers, results)]


def normalize_items(sources: Sequence[Source]) -> list[ContentItem]:
    """Flatten sources in order, dropping malformed records and repeated ids."""
    seen: set[str] = set()
    items: list[ContentItem] = []
    for source_id, records in sources:
        for record in records:
            try:
                item = to_content_item(record)
            except MalformedItemError as exc:
                logger.warning(
                    "Dropping malformed item from %s: %s",
                    source_id,
                    exc,
                    extra={"source_id": source_id},
                )
                continue
            if item.id in seen:
                continue
            seen.add(item.id)
            items.append(item)
    return items


def _published_key(item: ContentItem) -> datetime:
    published = item.published
    return published if published.tzinfo else published.replace(tzinfo=timezone.utc)


def sort_by_published(items: Sequence[ContentItem]) -> list[ContentItem]:
    """Newest first; undated items go last in their original relative order."""
    dated = [i for i in items if i.published is not None]
    undated = [i for i in items if i.published is None]
    dated.sort(key=_published_key, reverse=True)
    return dated + undated


def aggregate(
    sources: Sequence[Source], max_short_seconds: int = SHORT_MAX_SECONDS
) -> dict[str, list[ContentItem]]:
    """Aggregate per-source lists into ``{"videos": [...], "shorts": [...]}``.

    Args:
        sources: ``(source_id, records)`` pairs; their order is the dedupe tie-break
        max_short_seconds: Duration threshold passed to the short classifier

    Raises:
        NoSourcesError: If no sources were supplied at all
    """
    if not sources:
        raise NoSourcesError("No content sources to aggregate")

    videos: list[ContentItem] = []
    shorts: list[ContentItem] = []
    for item in mark_shorts(normalize_items(sources), max_short_seconds):
        (shorts if item.is_short else videos).append(item)

    return {"videos": sort_by_published(videos), "shorts": sort_by_published(shorts)}
