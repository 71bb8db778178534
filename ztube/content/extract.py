"""Defensive field extraction from untrusted content records.

Sources hand us records of several shapes: flat yt-dlp entries, full yt-dlp
info dicts, InnerTube-style nodes (``{"title": {"text": ...}}``) and already
normalized :class:`ContentItem` instances. Each field has one extractor that
tries the known paths in priority order and returns ``None`` for "unknown";
nothing here trusts a field's type without checking it.
"""

import math
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from ztube.content.formatters import (
    format_count,
    format_duration,
    format_relative_date,
    format_view_count,
)
from ztube.content.models import (
    UNKNOWN_CHANNEL,
    UNTITLED,
    ChannelDetails,
    ChannelRef,
    Chapter,
    Comment,
    CommentAuthor,
    ContentItem,
    Thumbnail,
    VideoDetails,
)
from ztube.errors import MalformedItemError

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)
_UPLOAD_DATE = re.compile(r"^\d{8}$")


def dig(record: Any, *path: str | int) -> Any:
    """Follow ``path`` through nested mappings and sequences, or return None."""
    current = record
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, (list, tuple)) or not -len(current) <= key < len(current):
                return None
            current = current[key]
        else:
            if not isinstance(current, Mapping):
                return None
            current = current.get(key)
        if current is None:
            return None
    return current


def text_of(value: Any) -> str | None:
    """Return display text from a plain string or a ``{"text": ...}`` node."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if isinstance(value, Mapping):
        for key in ("text", "simpleText", "content"):
            text = text_of(value.get(key))
            if text:
                return text
        runs = value.get("runs")
        if isinstance(runs, list):
            joined = "".join(r.get("text", "") for r in runs if isinstance(r, Mapping))
            return joined.strip() or None
    return None


def _first(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        digits = value.replace(",", "").strip()
        if digits.isdigit():
            return int(digits)
    return None


def parse_duration(value: Any) -> int | None:
    """Parse a duration in any supported shape into whole seconds.

    Accepts integers and floats (seconds), colon strings (``SS``, ``M:SS``,
    ``H:MM:SS``), ISO-8601 durations (``PT1M5S``) and mappings that expose a
    total-seconds field or a text field. Anything unparseable, negative or
    non-finite is unknown (``None``), never zero.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value if value >= 0 else None

    if isinstance(value, float):
        if not math.isfinite(value) or value < 0:
            return None
        return int(round(value))

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None

        iso = _ISO_DURATION.match(text.upper())
        if iso and any(iso.groupdict().values()):
            parts = {k: int(v) for k, v in iso.groupdict().items() if v}
            return (
                parts.get("days", 0) * 86400
                + parts.get("hours", 0) * 3600
                + parts.get("minutes", 0) * 60
                + parts.get("seconds", 0)
            )

        pieces = text.split(":")
        if len(pieces) > 3 or not all(p.strip().isdigit() for p in pieces):
            return None
        total = 0
        for piece in pieces:
            total = total * 60 + int(piece)
        return total

    if isinstance(value, Mapping):
        for key in ("seconds", "total_seconds", "totalSeconds", "lengthSeconds"):
            seconds = parse_duration(value.get(key))
            if seconds is not None:
                return seconds
        return parse_duration(text_of(value))

    return None


def extract_id(record: Mapping) -> str | None:
    video_id = _first(
        text_of(record.get("id")),
        text_of(record.get("video_id")),
        text_of(record.get("videoId")),
    )
    return video_id


def extract_title(record: Mapping) -> str:
    return _first(
        text_of(record.get("title")),
        text_of(record.get("headline")),
        UNTITLED,
    )


def extract_description(record: Mapping) -> str | None:
    return _first(
        text_of(record.get("description")),
        text_of(record.get("description_snippet")),
        text_of(record.get("snippet")),
    )


def extract_duration(record: Mapping) -> int | None:
    """Duration in seconds, or None when no source field is parseable."""
    for key in ("duration_seconds", "durationSeconds", "lengthSeconds", "duration", "length_text"):
        seconds = parse_duration(record.get(key))
        if seconds is not None:
            return seconds
    return None


def _channel_id_candidates(record: Mapping) -> list[Any]:
    channel = record.get("channel")
    return [
        dig(channel, "id") if isinstance(channel, Mapping) else None,
        record.get("channel_id"),
        record.get("channelId"),
        dig(record, "author", "id"),
    ]


def extract_channel(record: Mapping) -> ChannelRef:
    """Channel identity and display data; the id stays None if undiscoverable."""
    channel = record.get("channel")
    author = record.get("author")

    channel_id = None
    for candidate in _channel_id_candidates(record):
        channel_id = text_of(candidate)
        if channel_id:
            break

    name = _first(
        text_of(dig(channel, "name")) if isinstance(channel, Mapping) else text_of(channel),
        text_of(record.get("channelName")),
        text_of(dig(author, "name")) if isinstance(author, Mapping) else text_of(author),
        text_of(record.get("uploader")),
        UNKNOWN_CHANNEL,
    )

    verified = _first(
        dig(channel, "verified") if isinstance(channel, Mapping) else None,
        dig(author, "is_verified"),
        record.get("channel_is_verified"),
    )

    avatar = None
    for candidate in (
        dig(author, "thumbnails", 0, "url"),
        dig(channel, "avatar", 0, "url") if isinstance(channel, Mapping) else None,
        dig(channel, "avatar") if isinstance(channel, Mapping) else None,
        dig(channel, "avatar_url") if isinstance(channel, Mapping) else None,
        record.get("channelAvatar"),
    ):
        if isinstance(candidate, str) and candidate.startswith(("http://", "https://")):
            avatar = candidate
            break

    return ChannelRef(
        id=channel_id,
        name=name,
        verified=verified is True,
        avatar_url=avatar,
    )


def extract_thumbnails(record: Mapping) -> list[Thumbnail]:
    """Thumbnails in source order; entries without a url are skipped."""
    thumbnails: list[Thumbnail] = []
    raw = record.get("thumbnails")
    if isinstance(raw, list):
        for entry in raw:
            if isinstance(entry, Thumbnail):
                thumbnails.append(entry)
                continue
            url = text_of(dig(entry, "url"))
            if not url:
                continue
            thumbnails.append(
                Thumbnail(
                    url=url,
                    width=_to_int(dig(entry, "width")),
                    height=_to_int(dig(entry, "height")),
                )
            )

    if not thumbnails:
        url = _first(text_of(record.get("thumbnail")), text_of(record.get("thumbnailUrl")))
        if url:
            thumbnails.append(Thumbnail(url=url))
    return thumbnails


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value) and value > 0:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if _UPLOAD_DATE.match(text):
            try:
                return datetime.strptime(text, "%Y%m%d").replace(tzinfo=timezone.utc)
            except ValueError:
                return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def extract_published(record: Mapping) -> tuple[datetime | None, str | None]:
    """Publish time (for ordering) and the source's own relative text, if any."""
    published = None
    for key in ("published", "timestamp", "release_timestamp", "upload_date", "publishedAt"):
        published = _parse_datetime(record.get(key))
        if published is not None:
            break

    text = _first(
        text_of(record.get("published_text")),
        text_of(record.get("publishedText")),
        text_of(record.get("published_time_text")),
        text_of(record.get("uploadedAt")),
        text_of(record.get("published")) if published is None else None,
    )
    return published, text


def extract_view_count(record: Mapping) -> tuple[int | None, str | None]:
    count = _first(_to_int(record.get("view_count")), _to_int(record.get("viewCount")))
    text = _first(
        text_of(record.get("short_view_count")),
        text_of(record.get("view_count")) if count is None else None,
        text_of(record.get("viewCount")) if count is None else None,
    )
    return count, text


def extract_source_url(record: Mapping) -> str | None:
    for key in ("url", "webpage_url", "link", "original_url"):
        url = text_of(record.get(key))
        if url and url.startswith(("http://", "https://", "/")):
            return url
    return None


def extract_endpoint_hint(record: Mapping) -> str | None:
    endpoint = record.get("endpoint") or record.get("navigation_endpoint")
    return _first(
        text_of(dig(endpoint, "browseEndpoint", "canonicalBaseUrl")),
        text_of(dig(endpoint, "payload", "canonicalBaseUrl")),
        text_of(dig(endpoint, "commandMetadata", "webCommandMetadata", "url")),
        text_of(dig(endpoint, "metadata", "url")),
        text_of(record.get("canonicalBaseUrl")),
    )


def extract_source_type(record: Mapping) -> str | None:
    for key in ("type", "node_type", "_node_type"):
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def extract_short_hint(record: Mapping) -> bool | None:
    for key in ("is_short", "isShort", "is_shorts", "isShorts"):
        value = record.get(key)
        if isinstance(value, bool):
            return value
    return None


def extract_is_live(record: Mapping) -> bool:
    if record.get("is_live") is True or record.get("isLive") is True:
        return True
    return record.get("live_status") == "is_live"


def to_content_item(record: Any) -> ContentItem:
    """Normalize a raw record into a :class:`ContentItem`.

    Raises:
        MalformedItemError: If the record is not a mapping or has no id
    """
    if isinstance(record, ContentItem):
        return record
    if not isinstance(record, Mapping):
        raise MalformedItemError(f"Unsupported record type {type(record).__name__}")

    video_id = extract_id(record)
    if not video_id:
        raise MalformedItemError("Record has no id")

    duration = extract_duration(record)
    is_live = extract_is_live(record)
    published, published_text = extract_published(record)
    view_count, view_count_text = extract_view_count(record)

    if duration is not None:
        duration_text = format_duration(duration)
    elif is_live:
        duration_text = "LIVE"
    else:
        duration_text = None

    if published_text is None and published is not None:
        published_text = format_relative_date(published)
    if view_count_text is None and view_count is not None:
        view_count_text = format_view_count(view_count)

    return ContentItem(
        id=video_id,
        title=extract_title(record),
        description=extract_description(record),
        duration_seconds=duration,
        duration_text=duration_text,
        is_live=is_live,
        channel=extract_channel(record),
        published=published,
        published_text=published_text,
        view_count=view_count,
        view_count_text=view_count_text,
        thumbnails=extract_thumbnails(record),
        source_url=extract_source_url(record),
        endpoint_hint=extract_endpoint_hint(record),
        source_type=extract_source_type(record),
        short_hint=extract_short_hint(record),
    )


def extract_chapters(record: Mapping) -> list[Chapter]:
    """Chapters sorted by start time; entries without a title or start are skipped."""
    raw = record.get("chapters")
    if not isinstance(raw, list):
        return []

    chapters = []
    for chapter in raw:
        if not isinstance(chapter, Mapping):
            continue
        title = text_of(chapter.get("title"))
        start = chapter.get("start_time")
        if not title or isinstance(start, bool) or not isinstance(start, (int, float)):
            continue
        if math.isnan(start) or start < 0:
            continue
        chapters.append(Chapter(title=title, start_seconds=start))
    return sorted(chapters, key=lambda c: c.start_seconds)


def to_video_details(record: Any) -> VideoDetails:
    """Normalize a full single-video record.

    Raises:
        MalformedItemError: If the record is not a mapping or has no id
    """
    if not isinstance(record, Mapping):
        raise MalformedItemError(f"Unsupported record type {type(record).__name__}")
    item = to_content_item(record)
    return VideoDetails(
        **item.model_dump(),
        like_count=_to_int(record.get("like_count")),
        chapters=extract_chapters(record),
    )


def to_comment(record: Any) -> Comment:
    """Normalize a raw comment record.

    Raises:
        MalformedItemError: If the record is not a mapping or has no id
    """
    if not isinstance(record, Mapping):
        raise MalformedItemError(f"Unsupported comment type {type(record).__name__}")

    comment_id = _first(text_of(record.get("id")), text_of(record.get("comment_id")))
    if not comment_id:
        raise MalformedItemError("Comment has no id")

    author = record.get("author")
    published, published_text = extract_published(record)
    if published_text is None:
        published_text = text_of(record.get("_time_text"))
    if published_text is None and published is not None:
        published_text = format_relative_date(published)

    return Comment(
        id=comment_id,
        text=_first(text_of(record.get("text")), text_of(record.get("content"))) or "",
        author=CommentAuthor(
            id=_first(text_of(record.get("author_id")), text_of(dig(author, "id"))),
            name=_first(
                text_of(dig(author, "name")) if isinstance(author, Mapping) else text_of(author),
                UNKNOWN_CHANNEL,
            ),
            avatar_url=_first(
                text_of(record.get("author_thumbnail")),
                text_of(dig(author, "thumbnails", 0, "url")),
            ),
            is_uploader=record.get("author_is_uploader") is True,
        ),
        like_count=_to_int(record.get("like_count")),
        reply_count=_to_int(record.get("reply_count")),
        published=published,
        published_text=published_text,
        is_pinned=record.get("is_pinned") is True,
    )


def _thumbnail_with_id(record: Mapping, thumbnail_id: str) -> str | None:
    raw = record.get("thumbnails")
    if not isinstance(raw, list):
        return None
    for entry in raw:
        if isinstance(entry, Mapping) and entry.get("id") == thumbnail_id:
            return text_of(entry.get("url"))
    return None


def to_channel_details(record: Any, channel_id: str) -> ChannelDetails:
    """Normalize a channel page record.

    Accepts yt-dlp channel info (``channel``, ``channel_follower_count``,
    ``avatar_uncropped`` and ``banner_uncropped`` thumbnails) as well as
    InnerTube-style ``header`` nodes.

    Raises:
        MalformedItemError: If the record is not a mapping
    """
    if not isinstance(record, Mapping):
        raise MalformedItemError(f"Unsupported channel type {type(record).__name__}")

    header = record.get("header")
    subscriber_count = _first(
        _to_int(record.get("channel_follower_count")),
        _to_int(record.get("subscriber_count")),
    )
    video_count = _first(_to_int(record.get("playlist_count")), _to_int(record.get("video_count")))

    return ChannelDetails(
        id=_first(text_of(record.get("channel_id")), channel_id),
        name=_first(
            text_of(record.get("channel")),
            text_of(record.get("uploader")),
            text_of(dig(header, "channel_header", "author", "name")),
            text_of(dig(header, "title")),
            UNKNOWN_CHANNEL,
        ),
        description=text_of(record.get("description")),
        verified=record.get("channel_is_verified") is True,
        avatar_url=_first(
            _thumbnail_with_id(record, "avatar_uncropped"),
            text_of(dig(header, "channel_header", "author", "thumbnails", 0, "url")),
            text_of(dig(header, "author", "thumbnails", 0, "url")),
        ),
        banner_url=_first(
            _thumbnail_with_id(record, "banner_uncropped"),
            text_of(dig(header, "banner", "thumbnails", 0, "url")),
        ),
        subscriber_count=subscriber_count,
        subscriber_count_text=_first(
            text_of(dig(header, "subscriber_count")),
            text_of(dig(header, "subscribers")),
            format_count(subscriber_count, "subscribers") if subscriber_count is not None else None,
        ),
        video_count=video_count,
        video_count_text=_first(
            text_of(dig(header, "video_count")),
            format_count(video_count, "videos") if video_count is not None else None,
        ),
    )
