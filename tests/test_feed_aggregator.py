"""Tests for feed aggregation."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from ztube.content.models import ChannelRef, ContentItem
from ztube.errors import NoSourcesError, SourceFetchError
from ztube.feed.aggregator import (
    aggregate,
    fetch_sources,
    normalize_items,
    sort_by_published,
)

BASE = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def record(video_id, hours_ago=None, duration=600, title=None, channel="UCchan"):
    data = {
        "id": video_id,
        "title": title or f"Video {video_id}",
        "duration": duration,
        "channel_id": channel,
    }
    if hours_ago is not None:
        data["published"] = (BASE - timedelta(hours=hours_ago)).isoformat()
    return data


def test_duplicate_ids_keep_earlier_source():
    sources = [
        ("A", [record("v1", 1, title="from A")]),
        ("B", [record("v1", 1, title="from B"), record("v2", 2)]),
    ]

    result = aggregate(sources)

    assert [i.id for i in result["videos"]] == ["v1", "v2"]
    assert result["videos"][0].title == "from A"


def test_duplicate_within_one_source_keeps_first():
    items = normalize_items([("A", [record("v1", title="first"), record("v1", title="second")])])

    assert len(items) == 1
    assert items[0].title == "first"


def test_malformed_items_are_dropped():
    sources = [("A", [{"title": "no id"}, "garbage", None, record("v1", 1)])]

    result = aggregate(sources)

    assert [i.id for i in result["videos"]] == ["v1"]


def test_newest_first_with_undated_last():
    sources = [
        (
            "A",
            [
                record("undated-1"),
                record("old", 10),
                record("new", 1),
                record("undated-2"),
                record("mid", 5),
            ],
        )
    ]

    result = aggregate(sources)

    assert [i.id for i in result["videos"]] == ["new", "mid", "old", "undated-1", "undated-2"]


def test_equal_timestamps_keep_source_order():
    sources = [("A", [record("x", 3), record("y", 3)]), ("B", [record("z", 3)])]

    result = aggregate(sources)

    assert [i.id for i in result["videos"]] == ["x", "y", "z"]


def test_naive_timestamps_are_treated_as_utc():
    aware = ContentItem(id="aware", published=BASE)
    naive = ContentItem(id="naive", published=(BASE + timedelta(hours=1)).replace(tzinfo=None))

    assert [i.id for i in sort_by_published([aware, naive])] == ["naive", "aware"]


def test_shorts_are_separated():
    sources = [("A", [record("long", 1, duration=900), record("short", 2, duration=30)])]

    result = aggregate(sources)

    assert [i.id for i in result["videos"]] == ["long"]
    assert [i.id for i in result["shorts"]] == ["short"]
    assert result["shorts"][0].is_short is True


def test_empty_source_list_raises():
    with pytest.raises(NoSourcesError):
        aggregate([])


def test_sources_with_no_items_give_empty_result():
    assert aggregate([("A", []), ("B", [])]) == {"videos": [], "shorts": []}


@pytest.mark.asyncio
async def test_partial_source_failure_keeps_other_sources():
    async def good():
        return [record("v1", 1), record("v2", 2)]

    async def bad():
        raise SourceFetchError("B", "boom")

    sources = await fetch_sources([("A", good), ("B", bad)])
    result = aggregate(sources)

    assert sources[1] == ("B", [])
    assert [i.id for i in result["videos"]] == ["v1", "v2"]


@pytest.mark.asyncio
async def test_timeout_counts_as_empty_source():
    async def slow():
        await asyncio.sleep(5)
        return [record("late", 0)]

    async def fast():
        return [record("v1", 1)]

    sources = await fetch_sources([("slow", slow), ("fast", fast)], timeout=0.05)

    assert sources == [("slow", []), ("fast", [record("v1", 1)])]


@pytest.mark.asyncio
async def test_fetch_order_follows_input_not_completion():
    async def later():
        await asyncio.sleep(0.02)
        return [record("first-listed", 1)]

    async def sooner():
        return [record("first-listed", 1, title="duplicate")]

    sources = await fetch_sources([("A", later), ("B", sooner)])
    result = aggregate(sources)

    assert [s for s, _ in sources] == ["A", "B"]
    assert result["videos"][0].title == "Video first-listed"


def test_content_items_are_accepted_directly():
    item = ContentItem(id="v9", channel=ChannelRef(id="UC9"), published=BASE, duration_seconds=300)

    result = aggregate([("rss", [item])])

    assert result["videos"][0].id == "v9"
