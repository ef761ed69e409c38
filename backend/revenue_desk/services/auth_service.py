"""
Auth Service — Password hashing and the session-based authentication gateway.

A session is an opaque random id bound to a user id in the storage backend's
session store. The identity behind a session is re-read from storage on every
lookup, so role changes and deleted users take effect immediately.
"""

import logging
import secrets
from dataclasses import dataclass

from passlib.context import CryptContext

from revenue_desk.errors import InvalidCredentials, Unauthenticated, UniqueConstraintViolation, UsernameTaken
from revenue_desk.schemas import UserCreate, UserPublic, UserRead, UserUpdate
from revenue_desk.storage.base import Storage

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

DEFAULT_ROLE = "user"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def is_password_hash(value: str) -> bool:
    return pwd_context.identify(value) is not None


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


@dataclass(frozen=True)
class AuthResult:
    session_id: str
    user: UserPublic


class AuthGateway:
    """
    Register / login / logout / current identity over a Storage backend.

    ``verify_passwords=False`` reproduces the legacy login that accepted any
    password for an existing username. It exists for compatibility with old
    deployments only and is refused in production by the settings validator.
    """

    def __init__(self, storage: Storage, verify_passwords: bool = True):
        self.storage = storage
        self.sessions = storage.session_store
        self.verify_passwords = verify_passwords

    async def _bind(self, user: UserRead, previous_session_id: str | None) -> AuthResult:
        if previous_session_id:
            await self.sessions.destroy(previous_session_id)
        session_id = new_session_id()
        await self.sessions.set(session_id, user.id)
        return AuthResult(session_id=session_id, user=user.to_public())

    async def register(
        self,
        username: str,
        password: str,
        role: str | None = None,
        hotel: str | None = None,
        session_id: str | None = None,
    ) -> AuthResult:
        if await self.storage.get_user_by_username(username) is not None:
            raise UsernameTaken()

        try:
            user = await self.storage.create_user(UserCreate(
                username=username,
                password=hash_password(password),
                role=role or DEFAULT_ROLE,
                hotel=hotel,
            ))
        except UniqueConstraintViolation as exc:
            # Lost a race with a concurrent registration; the unique index decided
            raise UsernameTaken() from exc

        logger.info(f"Registered user {user.username} (id={user.id}, role={user.role})")
        return await self._bind(user, session_id)

    async def _check_password(self, user: UserRead, password: str) -> bool:
        if not self.verify_passwords:
            return True
        if is_password_hash(user.password):
            return verify_password(password, user.password)
        # Rows created before hashing was introduced hold the plaintext
        if not secrets.compare_digest(user.password.encode(), password.encode()):
            return False
        await self.storage.update_user(user.id, UserUpdate(password=hash_password(password)))
        logger.info(f"Upgraded legacy plaintext credential for user id={user.id}")
        return True

    async def login(self, username: str, password: str, session_id: str | None = None) -> AuthResult:
        user = await self.storage.get_user_by_username(username)
        if user is None or not await self._check_password(user, password):
            logger.warning(f"Failed login attempt for user: {username}")
            raise InvalidCredentials()

        logger.info(f"Login success for user id={user.id}")
        return await self._bind(user, session_id)

    async def logout(self, session_id: str | None) -> None:
        if session_id:
            await self.sessions.destroy(session_id)

    async def current_identity(self, session_id: str | None) -> UserPublic:
        if not session_id:
            raise Unauthenticated()
        user_id = await self.sessions.get(session_id)
        if user_id is None:
            raise Unauthenticated()
        user = await self.storage.get_user(user_id)
        if user is None:
            await self.sessions.destroy(session_id)
            raise Unauthenticated()
        return user.to_public()
