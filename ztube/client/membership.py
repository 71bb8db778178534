"""Client-side cache of which videos are in the default playlist.

Used by front-ends to render bookmark state for many result cards without
one request per card. The cache loads at most once per instance; a failed
load leaves it empty for the rest of the session instead of retrying.
"""

import asyncio
import enum
import logging

import httpx

from ztube.content.models import ContentItem
from ztube.errors import MembershipToggleError

logger = logging.getLogger(__name__)


class MembershipState(enum.Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    LOADED_EMPTY_ON_ERROR = "loaded_empty_on_error"


class DefaultPlaylistMembership:
    """Membership cache for the default playlist, backed by the playlists API.

    Args:
        http: Client whose ``base_url`` points at a ztube server
    """

    def __init__(self, http: httpx.AsyncClient):
        self._http = http
        self._state = MembershipState.UNLOADED
        self._load_task: asyncio.Task | None = None
        self._playlist_id: int | None = None
        self._members: set[str] = set()

    @property
    def state(self) -> MembershipState:
        return self._state

    @property
    def playlist_id(self) -> int | None:
        return self._playlist_id

    async def _fetch(self) -> tuple[int | None, set[str]]:
        response = await self._http.get("/api/playlists")
        response.raise_for_status()
        default = next(
            (p for p in response.json()["playlists"] if p.get("is_default")), None
        )
        if default is None:
            return None, set()

        response = await self._http.get(f"/api/playlists/{default['id']}")
        response.raise_for_status()
        return default["id"], {v["video_id"] for v in response.json()["videos"]}

    async def _load(self) -> None:
        try:
            playlist_id, members = await self._fetch()
        except Exception:
            # Any failure, including an unexpected payload shape, ends the load
            logger.warning(
                "Could not load the default playlist; bookmarks will show as empty",
                exc_info=True,
            )
            self._state = MembershipState.LOADED_EMPTY_ON_ERROR
            return

        self._playlist_id = playlist_id
        self._members = members
        self._state = MembershipState.LOADED
        logger.debug("Loaded %d default playlist members", len(members))

    async def ensure_loaded(self) -> None:
        """Load membership once. Concurrent callers share the same request.

        Never raises for load failures; see :attr:`state`.
        """
        if self._state in (MembershipState.LOADED, MembershipState.LOADED_EMPTY_ON_ERROR):
            return
        if self._load_task is None:
            self._state = MembershipState.LOADING
            self._load_task = asyncio.ensure_future(self._load())
        await asyncio.shield(self._load_task)

    def is_member(self, video_id: str) -> bool:
        """Cached membership; False until loaded."""
        return video_id in self._members

    async def toggle(self, item: ContentItem) -> bool:
        """Add ``item`` to the default playlist, or remove it if already there.

        The cache changes only after the server confirms.

        Returns:
            The new membership state

        Raises:
            MembershipToggleError: If there is no known default playlist or the
                server call fails
        """
        await self.ensure_loaded()
        if self._playlist_id is None:
            raise MembershipToggleError("No default playlist is available")

        base = f"/api/playlists/{self._playlist_id}/videos"
        try:
            if item.id in self._members:
                response = await self._http.delete(f"{base}/{item.id}")
                response.raise_for_status()
                self._members.discard(item.id)
                return False

            thumbnail = item.primary_thumbnail
            response = await self._http.post(
                base,
                json={
                    "video_id": item.id,
                    "title": item.title,
                    "channel_name": item.channel.name,
                    "thumbnail_url": thumbnail.url if thumbnail else None,
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise MembershipToggleError(f"Could not update playlist for {item.id}") from exc

        self._members.add(item.id)
        return True
