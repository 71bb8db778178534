"""Tests for display formatting helpers."""

from datetime import datetime, timedelta, timezone

from ztube.content.formatters import (
    format_count,
    format_duration,
    format_relative_date,
    format_view_count,
)


def test_format_view_count_scales():
    assert format_view_count(999) == "999 views"
    assert format_view_count(1_234) == "1.2K views"
    assert format_view_count(3_400_000) == "3.4M views"
    assert format_view_count(1_000_000_000) == "1.0B views"


def test_format_view_count_missing_or_garbage():
    assert format_view_count(None) == "0 views"
    assert format_view_count("lots") == "0 views"
    assert format_view_count("12,345") == "12.3K views"


def test_format_count_uses_noun():
    assert format_count(1_500_000, "subscribers") == "1.5M subscribers"
    assert format_count(7, "videos") == "7 videos"
    assert format_count(None, "subscribers") == "0 subscribers"


def test_format_duration():
    assert format_duration(0) == "0:00"
    assert format_duration(59) == "0:59"
    assert format_duration(61) == "1:01"
    assert format_duration(3725) == "1:02:05"
    assert format_duration(None) == "0:00"
    assert format_duration(-5) == "0:00"


def test_format_relative_date():
    now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    assert format_relative_date(now - timedelta(days=3), now) == "3 days ago"
    assert format_relative_date(now - timedelta(hours=5), now) == "5 hours ago"
    assert format_relative_date(now - timedelta(days=800), now) == "2 years ago"
    assert format_relative_date(now - timedelta(seconds=30), now) == "30 seconds ago"
    assert format_relative_date(None, now) == "Unknown date"


def test_format_relative_date_naive_is_utc():
    now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    naive = datetime(2024, 6, 1, 10, 0)

    assert format_relative_date(naive, now) == "2 hours ago"
