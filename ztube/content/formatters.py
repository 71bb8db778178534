"""Display text helpers for counts, durations and dates."""

from datetime import datetime, timezone


def format_count(count: int | str | None, noun: str) -> str:
    """Format a raw count compactly: ``format_count(1234, "views")`` is "1.2K views"."""
    if count is None:
        return f"0 {noun}"
    if isinstance(count, str):
        try:
            count = int(count.replace(",", "").strip())
        except ValueError:
            return f"0 {noun}"

    if count >= 1_000_000_000:
        return f"{count / 1_000_000_000:.1f}B {noun}"
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M {noun}"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K {noun}"
    return f"{count} {noun}"


def format_view_count(count: int | str | None) -> str:
    """Format a raw view count as "1.2K views" style text."""
    return format_count(count, "views")


def format_duration(seconds: int | float | None) -> str:
    """Format seconds as M:SS or H:MM:SS."""
    if seconds is None or seconds != seconds or seconds < 0:
        return "0:00"

    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


_INTERVALS = (
    (31536000, "years"),
    (2592000, "months"),
    (86400, "days"),
    (3600, "hours"),
    (60, "minutes"),
)


def format_relative_date(value: datetime | None, now: datetime | None = None) -> str:
    """Format a timestamp relative to ``now`` ("3 days ago")."""
    if value is None:
        return "Unknown date"
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)

    seconds = (now - value).total_seconds()
    for size, unit in _INTERVALS:
        interval = seconds / size
        if interval > 1:
            return f"{int(interval)} {unit} ago"
    return f"{max(int(seconds), 0)} seconds ago"
