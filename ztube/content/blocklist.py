"""Blocked channels and keywords."""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ztube.db import crud
from ztube.errors import BlockListUnavailable

logger = logging.getLogger(__name__)


def normalize_keyword(keyword: str) -> str:
    return keyword.strip().casefold()


@dataclass(frozen=True)
class BlockSnapshot:
    """A point-in-time view of the block list.

    One snapshot is used for a whole filtering pass so every item in a
    response is judged against the same block list.
    """

    channel_ids: frozenset[str] = field(default_factory=frozenset)
    keywords: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def build(cls, channel_ids, keywords) -> "BlockSnapshot":
        return cls(
            channel_ids=frozenset(c for c in channel_ids if c),
            keywords=frozenset(
                normalize_keyword(k) for k in keywords if k and k.strip()
            ),
        )

    @property
    def empty(self) -> bool:
        return not self.channel_ids and not self.keywords

    def is_channel_blocked(self, channel_id: str | None) -> bool:
        return bool(channel_id) and channel_id in self.channel_ids

    def is_keyword_blocked(self, *texts: str | None) -> bool:
        """True if any blocked keyword is a case-insensitive substring of a text."""
        if not self.keywords:
            return False
        for text in texts:
            if not text:
                continue
            folded = text.casefold()
            if any(keyword in folded for keyword in self.keywords):
                return True
        return False


class BlockList:
    """Request-scoped access to the persisted block list.

    Holds no state between calls: every read goes to the database, so a block
    added by one request is visible to the next.
    """

    def __init__(self, db: AsyncSession):
        self._db = db

    async def _read(self) -> BlockSnapshot:
        try:
            channels = await crud.list_blocked_channels(self._db)
            keywords = await crud.list_blocked_keywords(self._db)
        except SQLAlchemyError as exc:
            raise BlockListUnavailable("Could not read the block list") from exc
        return BlockSnapshot.build((c.channel_id for c in channels), keywords)

    async def snapshot(self) -> BlockSnapshot:
        """Read the block list once.

        A failed read yields an empty snapshot (fail-open) so the content
        request still succeeds; the failure is logged at ERROR because blocked
        content will be shown.
        """
        try:
            return await self._read()
        except BlockListUnavailable:
            logger.error(
                "Block list unavailable; failing open and showing unfiltered content",
                exc_info=True,
            )
            await self._db.rollback()
            return BlockSnapshot()

    async def is_channel_blocked(self, channel_id: str | None) -> bool:
        if not channel_id:
            return False
        return await crud.is_channel_blocked(self._db, channel_id)

    async def is_keyword_blocked(self, title: str | None) -> bool:
        if not title:
            return False
        keywords = await crud.list_blocked_keywords(self._db)
        return BlockSnapshot.build((), keywords).is_keyword_blocked(title)

    async def block_channel(self, channel_id: str, name: str) -> None:
        await crud.add_blocked_channel(self._db, channel_id, name)

    async def unblock_channel(self, channel_id: str) -> None:
        await crud.remove_blocked_channel(self._db, channel_id)

    async def block_keyword(self, keyword: str) -> None:
        await crud.add_blocked_keyword(self._db, keyword)

    async def unblock_keyword(self, keyword: str) -> None:
        await crud.remove_blocked_keyword(self._db, keyword)
