"""
Settings Router — per-user preferences and AI service API keys.
"""

import logging
from datetime import datetime
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from revenue_desk.auth import get_current_user, get_storage
from revenue_desk.crypto import decrypt_value, encrypt_value
from revenue_desk.errors import NotFound, UniqueConstraintViolation
from revenue_desk.schemas import (
    ApiKeyCreate, ApiKeyRead, ApiKeyUpdate, SettingCreate, SettingRead, SettingUpdate, UserPublic,
)
from revenue_desk.storage.base import Storage
from revenue_desk.utils import mask_secret

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Request/Response Models ───────────────────────────────────────────

class SettingsPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    notifications_enabled: Optional[bool] = None
    auto_refresh_interval: Optional[int] = Field(None, ge=1)
    default_strategy_preference: Optional[str] = None


class ApiKeyIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    api_key: str = Field(min_length=1)
    model: Optional[str] = None


class ApiKeyResponse(BaseModel):
    id: int
    service: str
    model: Optional[str]
    key_masked: str
    updated_at: datetime


def _to_response(row: ApiKeyRead) -> ApiKeyResponse:
    return ApiKeyResponse(
        id=row.id,
        service=row.service,
        model=row.model,
        key_masked=mask_secret(decrypt_value(row.encrypted_key)),
        updated_at=row.updated_at,
    )


async def get_or_create_settings(storage: Storage, user_id: int) -> SettingRead:
    """Settings row of the user, created with column defaults on first access."""
    row = await storage.get_setting_by_user_id(user_id)
    if row is not None:
        return row
    try:
        return await storage.create_setting(SettingCreate(user_id=user_id))
    except UniqueConstraintViolation:
        # A concurrent request created it first
        return await storage.get_setting_by_user_id(user_id)


# ── Endpoints ─────────────────────────────────────────────────────────

@router.get("", response_model=SettingRead)
async def get_user_settings(
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await get_or_create_settings(storage, user.id)


@router.patch("", response_model=SettingRead)
async def update_user_settings(
    payload: SettingsPatch,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    row = await get_or_create_settings(storage, user.id)
    return await storage.update_setting(row.id, SettingUpdate(**payload.model_dump(exclude_unset=True)))


@router.get("/api-keys", response_model=list[ApiKeyResponse])
async def list_api_keys(
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Configured API keys (masked)."""
    return [_to_response(row) for row in await storage.get_api_keys_by_user_id(user.id)]


@router.put("/api-keys/{service}", response_model=ApiKeyResponse)
async def save_api_key(
    service: str,
    payload: ApiKeyIn,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Store the key for a service (encrypted), replacing any previous one."""
    encrypted = encrypt_value(payload.api_key.strip())
    existing = await storage.get_api_key_by_user_id_and_service(user.id, service)
    if existing is None:
        row = await storage.create_api_key(ApiKeyCreate(
            user_id=user.id, service=service, encrypted_key=encrypted, model=payload.model,
        ))
    else:
        row = await storage.update_api_key(existing.id, ApiKeyUpdate(encrypted_key=encrypted, model=payload.model))
    logger.info(f"User {user.id} saved API key for {service}")
    return _to_response(row)


@router.delete("/api-keys/{service}")
async def delete_api_key(
    service: str,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    existing = await storage.get_api_key_by_user_id_and_service(user.id, service)
    if existing is None:
        raise NotFound("API key not found")
    await storage.delete_api_key(existing.id)
    return {"deleted": True}
