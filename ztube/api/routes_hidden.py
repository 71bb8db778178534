"""Blocked channel and keyword endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from ztube.content.blocklist import BlockList
from ztube.db import crud
from ztube.db.session import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/hidden", tags=["hidden"])
limiter = Limiter(key_func=get_remote_address)


class HiddenChannelRequest(BaseModel):
    """Request model for blocking a channel."""

    channel_id: str = Field(min_length=1)
    name: str = Field(min_length=1)


class HiddenChannelResponse(BaseModel):
    channel_id: str
    name: str


class HiddenChannelsResponse(BaseModel):
    channels: list[HiddenChannelResponse]


class HiddenKeywordRequest(BaseModel):
    """Request model for blocking or unblocking a keyword."""

    keyword: str = Field(min_length=1, max_length=200)


class HiddenKeywordsResponse(BaseModel):
    keywords: list[str]


@router.get("/channels", response_model=HiddenChannelsResponse)
@limiter.limit("120/minute")
async def list_hidden_channels(
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    """List blocked channels ordered by name."""
    channels = await crud.list_blocked_channels(db)
    return HiddenChannelsResponse(
        channels=[
            HiddenChannelResponse(channel_id=c.channel_id, name=c.name) for c in channels
        ]
    )


@router.post("/channels", status_code=201, response_model=HiddenChannelResponse)
@limiter.limit("60/minute")
async def hide_channel(
    request: Request,
    body: HiddenChannelRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Block a channel. Blocking an already blocked channel is a no-op.

    The block applies from the next content request on.
    """
    channel_id = body.channel_id.strip()
    if not channel_id:
        raise HTTPException(status_code=400, detail="channel_id cannot be empty")

    await BlockList(db).block_channel(channel_id, body.name.strip())
    return HiddenChannelResponse(channel_id=channel_id, name=body.name.strip())


@router.delete("/channels/{channel_id}", status_code=204)
@limiter.limit("60/minute")
async def unhide_channel(
    request: Request,
    channel_id: str,
    db: AsyncSession = Depends(get_session),
):
    """Unblock a channel. Unblocking a channel that is not blocked is a no-op."""
    await BlockList(db).unblock_channel(channel_id)


@router.get("/keywords", response_model=HiddenKeywordsResponse)
@limiter.limit("120/minute")
async def list_hidden_keywords(
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    """List blocked keywords in alphabetical order."""
    return HiddenKeywordsResponse(keywords=await crud.list_blocked_keywords(db))


@router.post("/keywords", status_code=201, response_model=HiddenKeywordsResponse)
@limiter.limit("60/minute")
async def hide_keyword(
    request: Request,
    body: HiddenKeywordRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Block a keyword. Keywords are matched case-insensitively against titles
    and descriptions; adding one that differs only in case is a no-op.

    Returns:
        The full keyword list after the change
    """
    keyword = body.keyword.strip()
    if not keyword:
        raise HTTPException(status_code=400, detail="keyword cannot be empty")

    await BlockList(db).block_keyword(keyword)
    return HiddenKeywordsResponse(keywords=await crud.list_blocked_keywords(db))


@router.delete("/keywords", response_model=HiddenKeywordsResponse)
@limiter.limit("60/minute")
async def unhide_keyword(
    request: Request,
    body: HiddenKeywordRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Unblock a keyword (case-insensitive). Removing an unknown keyword is a no-op.

    Returns:
        The full keyword list after the change
    """
    await BlockList(db).unblock_keyword(body.keyword)
    return HiddenKeywordsResponse(keywords=await crud.list_blocked_keywords(db))
