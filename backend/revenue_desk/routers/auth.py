"""
Auth Router — Register, login, logout, current user.

Paths are the ones the web frontend calls: /api/register, /api/login,
/api/logout, /api/user. Responses never include the password.
"""

import logging
from typing import Literal
from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, Field

from revenue_desk.auth import (
    clear_session_cookie, get_app_settings, get_current_user, get_gateway, get_session_id, set_session_cookie,
)
from revenue_desk.config import Settings
from revenue_desk.schemas import UserPublic
from revenue_desk.services.auth_service import AuthGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


# ── Schemas ────────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    # Admin accounts are provisioned by the seed, never self-registered
    role: Literal["user", "manager"] | None = None
    hotel: str | None = None


class LoginRequest(BaseModel):
    username: str
    password: str


# ── Endpoints ───────────────────────────────────────────────────────────

@router.post("/register", response_model=UserPublic, status_code=201)
async def register(
    payload: RegisterRequest,
    response: Response,
    session_id: str | None = Depends(get_session_id),
    gateway: AuthGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
):
    """Create an account and log it in."""
    result = await gateway.register(
        payload.username,
        payload.password,
        role=payload.role,
        hotel=payload.hotel,
        session_id=session_id,
    )
    set_session_cookie(response, result.session_id, settings)
    return result.user


@router.post("/login", response_model=UserPublic)
async def login(
    payload: LoginRequest,
    response: Response,
    session_id: str | None = Depends(get_session_id),
    gateway: AuthGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
):
    result = await gateway.login(payload.username, payload.password, session_id=session_id)
    set_session_cookie(response, result.session_id, settings)
    return result.user


@router.post("/logout")
async def logout(
    response: Response,
    session_id: str | None = Depends(get_session_id),
    gateway: AuthGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
):
    await gateway.logout(session_id)
    clear_session_cookie(response, settings)
    return {"message": "Logged out successfully"}


@router.get("/user", response_model=UserPublic)
async def current_user(user: UserPublic = Depends(get_current_user)):
    """Return the logged-in user."""
    return user
