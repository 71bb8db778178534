"""User settings endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from ztube.db import crud
from ztube.db.session import get_session

router = APIRouter(prefix="/api/settings", tags=["settings"])
limiter = Limiter(key_func=get_remote_address)

MAX_SETTING_LENGTH = 1000


@router.get("")
@limiter.limit("120/minute")
async def read_settings(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """All settings as a flat key/value object."""
    return await crud.get_all_settings(db)


@router.put("")
@limiter.limit("60/minute")
async def update_settings(
    request: Request,
    body: dict[str, str | int | float | bool],
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """
    Update settings. Keys not in the body are left unchanged.

    Values are stored as strings; booleans are stored as ``"true"``/``"false"``.

    Returns:
        All settings after the update

    Raises:
        HTTPException: 400 for an empty key or an oversized value
    """
    updates: dict[str, str] = {}
    for key, value in body.items():
        if not key.strip():
            raise HTTPException(status_code=400, detail="Setting keys cannot be empty")
        text = str(value).lower() if isinstance(value, bool) else str(value)
        if len(text) > MAX_SETTING_LENGTH:
            raise HTTPException(status_code=400, detail=f"Value for {key!r} is too long")
        updates[key.strip()] = text

    for key, text in updates.items():
        await crud.set_setting(db, key, text)

    return await crud.get_all_settings(db)
