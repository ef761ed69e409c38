"""
Strategies Router — revenue strategies of the current user, and their application.

A strategy counts as applied once ``applied_at`` is set. Applying again keeps the
original timestamp.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from revenue_desk.auth import ensure_owner, get_current_user, get_storage, require_admin
from revenue_desk.routers.activities import own_activity
from revenue_desk.schemas import StrategyCreate, StrategyRead, StrategyUpdate, UserPublic
from revenue_desk.storage.base import Storage
from revenue_desk.utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

APPLIED_STATUS = "applied"


# ── Schemas ────────────────────────────────────────────────────────────

class StrategyIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    description: Optional[str] = None
    platform_id: Optional[int] = None
    activity_id: Optional[int] = None
    recommendation: Optional[str] = None
    reasoning: Optional[str] = None
    expected_outcome: Optional[str] = None
    parameters_used: Optional[dict[str, float]] = None
    status: Optional[str] = "draft"


class StrategyPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    description: Optional[str] = None
    platform_id: Optional[int] = None
    activity_id: Optional[int] = None
    recommendation: Optional[str] = None
    reasoning: Optional[str] = None
    expected_outcome: Optional[str] = None
    parameters_used: Optional[dict[str, float]] = None
    status: Optional[str] = None


# ── Helpers ────────────────────────────────────────────────────────────

async def _check_links(storage: Storage, user: UserPublic, platform_id: int | None, activity_id: int | None) -> None:
    """Linked platform and activity must both be visible to the user."""
    if platform_id is not None:
        ensure_owner(await storage.get_ota_account(platform_id), user, "OTA account")
    if activity_id is not None:
        await own_activity(storage, activity_id, user)


# ── Endpoints ─────────────────────────────────────────────────────────

@router.get("", response_model=list[StrategyRead])
async def list_strategies(
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_strategies_by_user_id(user.id)


@router.get("/applied", response_model=list[StrategyRead])
async def list_applied_strategies(
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """The user's applied strategies, most recently applied first."""
    return await storage.get_applied_strategies_by_user_id(user.id)


@router.get("/recent", response_model=list[StrategyRead])
async def list_recent_strategies(
    limit: int = Query(10, le=100),
    _: UserPublic = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    """Recently applied strategies across all users (admin dashboard)."""
    return await storage.get_recent_applied_strategies(limit)


@router.post("", response_model=StrategyRead, status_code=201)
async def create_strategy(
    payload: StrategyIn,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    await _check_links(storage, user, payload.platform_id, payload.activity_id)
    strategy = await storage.create_strategy(StrategyCreate(user_id=user.id, **payload.model_dump()))
    logger.info(f"User {user.id} created strategy {strategy.id}")
    return strategy


@router.get("/{strategy_id}", response_model=StrategyRead)
async def get_strategy(
    strategy_id: int,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return ensure_owner(await storage.get_strategy(strategy_id), user, "Strategy")


@router.patch("/{strategy_id}", response_model=StrategyRead)
async def update_strategy(
    strategy_id: int,
    payload: StrategyPatch,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    ensure_owner(await storage.get_strategy(strategy_id), user, "Strategy")
    changes = StrategyUpdate(**payload.model_dump(exclude_unset=True))
    await _check_links(storage, user, changes.platform_id, changes.activity_id)
    return await storage.update_strategy(strategy_id, changes)


@router.post("/{strategy_id}/apply", response_model=StrategyRead)
async def apply_strategy(
    strategy_id: int,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Mark a strategy as applied. Already-applied strategies are returned unchanged."""
    strategy = ensure_owner(await storage.get_strategy(strategy_id), user, "Strategy")
    if strategy.is_applied:
        return strategy
    strategy = await storage.update_strategy(
        strategy_id, StrategyUpdate(applied_at=utcnow(), status=APPLIED_STATUS),
    )
    logger.info(f"User {user.id} applied strategy {strategy_id}")
    return strategy


@router.delete("/{strategy_id}")
async def delete_strategy(
    strategy_id: int,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    strategy = await storage.get_strategy(strategy_id)
    if strategy is not None:
        ensure_owner(strategy, user, "Strategy")
        await storage.delete_strategy(strategy_id)
    return {"deleted": True}
