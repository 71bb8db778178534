"""Tests for the default playlist membership cache."""

import asyncio
import json

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from main import create_app
from ztube.client import DefaultPlaylistMembership, MembershipState
from ztube.content.models import ContentItem
from ztube.db.session import get_session, init_db
from ztube.errors import MembershipToggleError


def make_item(video_id="abc123def45", title="A video"):
    return ContentItem(id=video_id, title=title)


class FakePlaylistServer:
    """Minimal playlists API backed by a dict, counting requests."""

    def __init__(self, members=(), default_id=7, fail=None):
        self.default_id = default_id
        self.members = list(members)
        self.fail = fail or set()
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        key = (request.method, request.url.path)
        if key in self.fail:
            return httpx.Response(500, json={"detail": "boom"})

        if key == ("GET", "/api/playlists"):
            playlists = [{"id": 1, "name": "Music", "is_default": False}]
            if self.default_id is not None:
                playlists.append(
                    {"id": self.default_id, "name": "Watch Later", "is_default": True}
                )
            return httpx.Response(200, json={"playlists": playlists})

        if key == ("GET", f"/api/playlists/{self.default_id}"):
            return httpx.Response(
                200, json={"videos": [{"video_id": v} for v in self.members]}
            )

        videos_path = f"/api/playlists/{self.default_id}/videos"
        if key == ("POST", videos_path):
            body = json.loads(request.content)
            self.members.append(body["video_id"])
            return httpx.Response(201, json=body)

        if request.method == "DELETE" and request.url.path.startswith(videos_path + "/"):
            self.members.remove(request.url.path.rsplit("/", 1)[-1])
            return httpx.Response(204)

        return httpx.Response(404, json={"detail": "Not found"})


def make_http(server):
    return httpx.AsyncClient(transport=httpx.MockTransport(server), base_url="http://test")


@pytest.mark.asyncio
async def test_is_member_false_before_load():
    server = FakePlaylistServer(members=["abc123def45"])
    async with make_http(server) as http:
        membership = DefaultPlaylistMembership(http)

        assert membership.state is MembershipState.UNLOADED
        assert membership.is_member("abc123def45") is False
        assert server.requests == []


@pytest.mark.asyncio
async def test_ensure_loaded_fetches_members_once():
    server = FakePlaylistServer(members=["abc123def45"])
    async with make_http(server) as http:
        membership = DefaultPlaylistMembership(http)

        await asyncio.gather(*(membership.ensure_loaded() for _ in range(5)))
        await membership.ensure_loaded()

        assert membership.state is MembershipState.LOADED
        assert membership.playlist_id == 7
        assert membership.is_member("abc123def45") is True
        assert server.requests == [("GET", "/api/playlists"), ("GET", "/api/playlists/7")]


@pytest.mark.asyncio
async def test_failed_load_is_not_retried(caplog):
    server = FakePlaylistServer(fail={("GET", "/api/playlists")})
    async with make_http(server) as http:
        membership = DefaultPlaylistMembership(http)

        await membership.ensure_loaded()
        await membership.ensure_loaded()

        assert membership.state is MembershipState.LOADED_EMPTY_ON_ERROR
        assert membership.is_member("abc123def45") is False
        assert len(server.requests) == 1
        assert "Could not load the default playlist" in caplog.text

        with pytest.raises(MembershipToggleError):
            await membership.toggle(make_item())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{"playlists": ["oops"]}, {"playlists": None}, ["not", "an", "object"]],
)
async def test_unexpected_payload_ends_load_empty(payload):
    requests = []

    def handler(request):
        requests.append(request.url.path)
        return httpx.Response(200, json=payload)

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://test"
    ) as http:
        membership = DefaultPlaylistMembership(http)

        await membership.ensure_loaded()
        await membership.ensure_loaded()

        assert membership.state is MembershipState.LOADED_EMPTY_ON_ERROR
        assert membership.is_member("abc123def45") is False
        assert requests == ["/api/playlists"]


@pytest.mark.asyncio
async def test_concurrent_callers_share_failed_load():
    server = FakePlaylistServer(fail={("GET", "/api/playlists")})
    async with make_http(server) as http:
        membership = DefaultPlaylistMembership(http)

        results = await asyncio.gather(
            *(membership.ensure_loaded() for _ in range(5)), return_exceptions=True
        )

        assert results == [None] * 5
        assert membership.state is MembershipState.LOADED_EMPTY_ON_ERROR
        assert server.requests == [("GET", "/api/playlists")]


@pytest.mark.asyncio
async def test_toggle_adds_then_removes():
    server = FakePlaylistServer()
    async with make_http(server) as http:
        membership = DefaultPlaylistMembership(http)
        item = make_item()

        assert await membership.toggle(item) is True
        assert membership.is_member(item.id) is True
        assert server.members == [item.id]

        assert await membership.toggle(item) is False
        assert membership.is_member(item.id) is False
        assert server.members == []


@pytest.mark.asyncio
async def test_failed_toggle_leaves_cache_unchanged():
    server = FakePlaylistServer(fail={("POST", "/api/playlists/7/videos")})
    async with make_http(server) as http:
        membership = DefaultPlaylistMembership(http)
        item = make_item()

        with pytest.raises(MembershipToggleError):
            await membership.toggle(item)

        assert membership.state is MembershipState.LOADED
        assert membership.is_member(item.id) is False


@pytest.mark.asyncio
async def test_toggle_without_default_playlist_raises():
    server = FakePlaylistServer(default_id=None)
    async with make_http(server) as http:
        membership = DefaultPlaylistMembership(http)

        with pytest.raises(MembershipToggleError):
            await membership.toggle(make_item())

        assert membership.state is MembershipState.LOADED
        assert not any(method == "POST" for method, _ in server.requests)


@pytest_asyncio.fixture
async def app_http():
    """HTTP client talking to a real app over an in-memory database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    await init_db(engine)
    sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    async def _override():
        async with sessionmaker() as session:
            yield session

    app = create_app()
    app.dependency_overrides[get_session] = _override

    async with httpx.AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as http:
        yield http

    await engine.dispose()


@pytest.mark.asyncio
async def test_toggle_against_playlists_api(app_http):
    membership = DefaultPlaylistMembership(app_http)
    item = make_item(title="Bookmarked")

    assert await membership.toggle(item) is True

    playlist = (await app_http.get(f"/api/playlists/{membership.playlist_id}")).json()
    assert playlist["name"] == "Watch Later"
    assert [(v["video_id"], v["title"]) for v in playlist["videos"]] == [
        (item.id, "Bookmarked")
    ]

    fresh = DefaultPlaylistMembership(app_http)
    await fresh.ensure_loaded()
    assert fresh.is_member(item.id) is True

    assert await fresh.toggle(item) is False
    playlist = (await app_http.get(f"/api/playlists/{membership.playlist_id}")).json()
    assert playlist["videos"] == []
