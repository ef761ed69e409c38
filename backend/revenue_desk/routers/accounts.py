"""
Accounts Router — OTA platform accounts (Ctrip, Meituan, Fliggy, ...) of the current user.
The stored OTA password is never returned; responses carry a masked form.
"""

import logging
from datetime import datetime
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from revenue_desk.auth import ensure_owner, get_current_user, get_storage
from revenue_desk.schemas import OtaAccountCreate, OtaAccountRead, OtaAccountUpdate, UserPublic
from revenue_desk.storage.base import Storage
from revenue_desk.utils import mask_secret

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Schemas ────────────────────────────────────────────────────────────

class OtaAccountIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    short_name: str | None = None
    url: str
    username: str
    password: str
    account_type: str | None = None
    status: str | None = "active"


class OtaAccountPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    short_name: str | None = None
    url: str | None = None
    username: str | None = None
    password: str | None = None
    account_type: str | None = None
    status: str | None = None


class OtaAccountResponse(BaseModel):
    id: int
    user_id: int
    name: str
    short_name: str | None
    url: str
    username: str
    password_masked: str
    account_type: str | None
    status: str | None
    created_at: datetime
    updated_at: datetime


def _to_response(account: OtaAccountRead) -> OtaAccountResponse:
    return OtaAccountResponse(
        **account.model_dump(exclude={"password"}),
        password_masked=mask_secret(account.password),
    )


# ── Endpoints ─────────────────────────────────────────────────────────

@router.get("", response_model=list[OtaAccountResponse])
async def list_accounts(
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    accounts = await storage.get_ota_accounts_by_user_id(user.id)
    return [_to_response(a) for a in accounts]


@router.post("", response_model=OtaAccountResponse, status_code=201)
async def create_account(
    payload: OtaAccountIn,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    account = await storage.create_ota_account(OtaAccountCreate(user_id=user.id, **payload.model_dump()))
    logger.info(f"User {user.id} added OTA account {account.id} ({account.name})")
    return _to_response(account)


@router.get("/{account_id}", response_model=OtaAccountResponse)
async def get_account(
    account_id: int,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    account = ensure_owner(await storage.get_ota_account(account_id), user, "OTA account")
    return _to_response(account)


@router.patch("/{account_id}", response_model=OtaAccountResponse)
async def update_account(
    account_id: int,
    payload: OtaAccountPatch,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    ensure_owner(await storage.get_ota_account(account_id), user, "OTA account")
    changes = OtaAccountUpdate(**payload.model_dump(exclude_unset=True))
    account = await storage.update_ota_account(account_id, changes)
    return _to_response(account)


@router.delete("/{account_id}")
async def delete_account(
    account_id: int,
    user: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    account = await storage.get_ota_account(account_id)
    if account is not None:
        ensure_owner(account, user, "OTA account")
        await storage.delete_ota_account(account_id)
    return {"deleted": True}
