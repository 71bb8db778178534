"""Subscription management endpoints."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from ztube.api.dependencies import CHANNEL_ID_PATTERN
from ztube.db import crud
from ztube.db.models import Subscription
from ztube.db.session import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])
limiter = Limiter(key_func=get_remote_address)


class SubscribeRequest(BaseModel):
    """Request model for subscribing to a channel."""

    channel_id: str
    name: str = Field(min_length=1)
    avatar_url: str | None = None


class SubscriptionResponse(BaseModel):
    """Response model for a subscribed channel."""

    channel_id: str
    name: str
    avatar_url: str | None
    subscribed_at: datetime


class SubscriptionsListResponse(BaseModel):
    channels: list[SubscriptionResponse]


class SubscriptionStatusResponse(BaseModel):
    channel_id: str
    subscribed: bool


def _subscription(sub: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        channel_id=sub.channel_id,
        name=sub.name,
        avatar_url=sub.avatar_url,
        subscribed_at=sub.subscribed_at,
    )


@router.get("", response_model=SubscriptionsListResponse)
@limiter.limit("60/minute")
async def list_subscriptions(
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    """
    List subscribed channels ordered by name.

    Returns:
        A list of channels the user is subscribed to
    """
    subscriptions = await crud.list_subscriptions(db)
    return SubscriptionsListResponse(channels=[_subscription(s) for s in subscriptions])


@router.post("", status_code=201, response_model=SubscriptionResponse)
@limiter.limit("60/minute")
async def subscribe(
    request: Request,
    body: SubscribeRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Subscribe to a channel. Subscribing twice keeps the original subscription.

    Raises:
        HTTPException: 400 if channel_id is not a YouTube channel ID
    """
    if not CHANNEL_ID_PATTERN.match(body.channel_id):
        raise HTTPException(
            status_code=400,
            detail="Invalid channel_id format. Must be a valid YouTube channel ID (UC...)",
        )

    subscription = await crud.add_subscription(
        db, body.channel_id, body.name.strip(), body.avatar_url
    )
    logger.info("Subscribed to %s", body.channel_id)
    return _subscription(subscription)


@router.delete("/{channel_id}", status_code=204)
@limiter.limit("60/minute")
async def unsubscribe(
    request: Request,
    channel_id: str,
    db: AsyncSession = Depends(get_session),
):
    """
    Unsubscribe from a channel.

    Raises:
        HTTPException: 404 if the channel was not subscribed
    """
    if not await crud.remove_subscription(db, channel_id):
        raise HTTPException(status_code=404, detail="Subscription not found")


@router.get("/{channel_id}/status", response_model=SubscriptionStatusResponse)
@limiter.limit("240/minute")
async def subscription_status(
    request: Request,
    channel_id: str,
    db: AsyncSession = Depends(get_session),
):
    """Whether the channel is subscribed."""
    return SubscriptionStatusResponse(
        channel_id=channel_id, subscribed=await crud.is_subscribed(db, channel_id)
    )
