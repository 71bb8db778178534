"""Short-form video classification.

Signals are checked strongest first and the first one that fires decides:

1. an explicit flag or node type from the source
2. a ``/shorts/`` path in the item's url or endpoint
3. a known duration at or under the threshold
4. a portrait primary thumbnail, unless a known duration exceeds the threshold
5. a short-indicating keyword anywhere in the title (case-insensitive substring)

With none of these, the item is a regular video. Rule 5 is the weakest and
produces false positives on titles like "Shortstop highlights" or "viral";
it must stay last.
"""

import re
from collections.abc import Iterable, Sequence

from ztube.content.models import ContentItem

SHORT_MAX_SECONDS = 60

SHORT_NODE_TYPES = frozenset(
    {
        "shortslockupview",
        "shortslockupviewmodel",
        "reelitem",
        "reelitemrenderer",
        "reelshelfrenderer",
        "short",
        "shorts",
        "reel",
    }
)

SHORT_PATH_MARKER = "/shorts/"

SHORT_KEYWORDS = ("#shorts", "#short", "shorts", "tiktok", "viral", "meme")

_KEYWORD_PATTERN = re.compile(
    "|".join(re.escape(k) for k in SHORT_KEYWORDS), re.IGNORECASE
)


def has_explicit_short_signal(item: ContentItem) -> bool:
    if item.short_hint is True:
        return True
    return bool(item.source_type) and item.source_type.lower() in SHORT_NODE_TYPES


def has_short_path(item: ContentItem) -> bool:
    for url in (item.source_url, item.endpoint_hint):
        if url and SHORT_PATH_MARKER in url.lower():
            return True
    return False


def has_short_keyword(title: str | None) -> bool:
    return bool(title) and _KEYWORD_PATTERN.search(title) is not None


def is_short(item: ContentItem, max_seconds: int = SHORT_MAX_SECONDS) -> bool:
    """Decide whether ``item`` is a short.

    Pure and deterministic; an explicit duration of 0 counts as a known
    duration and classifies as short.
    """
    if has_explicit_short_signal(item):
        return True

    if has_short_path(item):
        return True

    duration = item.duration_seconds
    if duration is not None and duration <= max_seconds:
        return True

    thumbnail = item.primary_thumbnail
    if thumbnail is not None and thumbnail.is_portrait and duration is None:
        return True

    if has_short_keyword(item.title):
        return True

    return False


def mark_shorts(
    items: Iterable[ContentItem], max_seconds: int = SHORT_MAX_SECONDS
) -> list[ContentItem]:
    """Return copies of ``items`` with ``is_short`` set."""
    return [
        item.model_copy(update={"is_short": is_short(item, max_seconds)})
        for item in items
    ]


def separate_videos_and_shorts(
    items: Sequence[ContentItem], max_seconds: int = SHORT_MAX_SECONDS
) -> dict[str, list[ContentItem]]:
    """Split items into ``{"videos": [...], "shorts": [...]}``, preserving order."""
    videos: list[ContentItem] = []
    shorts: list[ContentItem] = []
    for item in mark_shorts(items, max_seconds):
        (shorts if item.is_short else videos).append(item)
    return {"videos": videos, "shorts": shorts}
