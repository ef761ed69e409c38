"""
Authentication & Authorization — server-side sessions keyed by a cookie.

The session id travels in the cookie named by SESSION_COOKIE_NAME (default
"sid"). The storage backend and auth gateway are built once in the app
lifespan and read from ``app.state``.
"""

import logging
from fastapi import Depends, Request, Response

from revenue_desk.config import Settings
from revenue_desk.errors import Forbidden, NotFound
from revenue_desk.schemas import UserPublic
from revenue_desk.services.auth_service import AuthGateway
from revenue_desk.storage.base import Storage

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_gateway(request: Request) -> AuthGateway:
    return request.app.state.gateway


def get_session_id(request: Request, settings: Settings = Depends(get_app_settings)) -> str | None:
    return request.cookies.get(settings.session_cookie_name)


def set_session_cookie(response: Response, session_id: str, settings: Settings) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.session_cookie_name)


async def get_current_user(
    session_id: str | None = Depends(get_session_id),
    gateway: AuthGateway = Depends(get_gateway),
) -> UserPublic:
    """Require a bound session and return its user (re-read from storage)."""
    return await gateway.current_identity(session_id)


def require_admin(user: UserPublic = Depends(get_current_user)) -> UserPublic:
    """Require current user to be admin."""
    if user.role != "admin":
        raise Forbidden()
    return user


def ensure_owner(row, user: UserPublic, label: str):
    """Return the row if the user owns it. Other users' rows answer 404, same as missing ones."""
    if row is None or row.user_id != user.id:
        raise NotFound(f"{label} not found")
    return row
