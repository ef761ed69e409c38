"""
Activities Router — promotional campaigns offered by an OTA platform.

An activity belongs to the user who created it. Seeded activities carry no
user and are visible to whoever owns their platform.
"""

import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from revenue_desk.auth import ensure_owner, get_current_user, get_storage
from revenue_desk.errors import NotFound
from revenue_desk.schemas import ActivityCreate, ActivityRead, ActivityUpdate, UserPublic
from revenue_desk.storage.base import Storage

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Schemas ────────────────────────────────────────────────────────────

class ActivityIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    platform_id: int
    name: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    discount: Optional[str] = None
    commission_rate: Optional[str] = None
    room_types: Optional[list[str]] = None
    minimum_stay: Optional[int] = None
    max_booking_window: Optional[int] = None
    status: Optional[str] = "active"
    tag: Optional[str] = None
    participation_status: Optional[str] = "pending"


class ActivityPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    platform_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    discount: Optional[str] = None
    commission_rate: Optional[str] = None
    room_types: Optional[list[str]] = None
    minimum_stay: Optional[int] = None
    max_booking_window: Optional[int] = None
    status: Optional[str] = None
    tag: Optional[str] = None
    participation_status: Optional[str] = None


# ── Helpers ────────────────────────────────────────────────────────────

async def _own_platform(storage: Storage, platform_id: int, user: UserPublic) -> None:
    ensure_owner(await storage.get_ota_account(platform_id), user, "OTA account")


async def own_activity(storage: Storage, activity_id: int, user: UserPublic) -> ActivityRead:
    activity = await storage.get_activity(activity_id)
    if activity is None:
        raise NotFound("Activity not found")
    if activity.user_id == user.id:
        return activity
    if activity.user_id is None:
        platform = await storage.get_ota_account(activity.platform_id)
        if platform is not None and platform.user_id == user.id:
            return activity
    raise NotFound("Activity not found")


# ── Endpoints ─────────────────────────────────────────────────────────

@router.get("", response_model=list[ActivityRead])
async def list_activities(
    platform_id: Optional[int] = Query(None),
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """The user's activities, or every activity of one of the user's platforms."""
    if platform_id is not None:
        await _own_platform(storage, platform_id, user)
        return await storage.get_activities_by_platform(platform_id)
    return await storage.get_activities_by_user_id(user.id)


@router.post("", response_model=ActivityRead, status_code=201)
async def create_activity(
    payload: ActivityIn,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    await _own_platform(storage, payload.platform_id, user)
    activity = await storage.create_activity(ActivityCreate(user_id=user.id, **payload.model_dump()))
    logger.info(f"User {user.id} created activity {activity.id} on platform {activity.platform_id}")
    return activity


@router.get("/{activity_id}", response_model=ActivityRead)
async def get_activity(
    activity_id: int,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await own_activity(storage, activity_id, user)


@router.patch("/{activity_id}", response_model=ActivityRead)
async def update_activity(
    activity_id: int,
    payload: ActivityPatch,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    await own_activity(storage, activity_id, user)
    changes = ActivityUpdate(**payload.model_dump(exclude_unset=True))
    if changes.platform_id is not None:
        await _own_platform(storage, changes.platform_id, user)
    return await storage.update_activity(activity_id, changes)


@router.delete("/{activity_id}")
async def delete_activity(
    activity_id: int,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if await storage.get_activity(activity_id) is not None:
        await own_activity(storage, activity_id, user)
        await storage.delete_activity(activity_id)
    return {"deleted": True}
