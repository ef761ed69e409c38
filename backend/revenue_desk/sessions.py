"""
Server-side session store: session id → user id, with expiry.

The auth gateway is the only writer. Two variants mirror the storage
backends: an in-process dict and the ``sessions`` table.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revenue_desk.database import session_scope
from revenue_desk.models import SessionRecord
from revenue_desk.utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 86400


class SessionStore(ABC):
    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.ttl = timedelta(seconds=ttl_seconds)

    @abstractmethod
    async def get(self, sid: str) -> int | None:
        """Bound user id, or None if the session is unknown or expired."""

    @abstractmethod
    async def set(self, sid: str, user_id: int) -> None:
        ...

    @abstractmethod
    async def destroy(self, sid: str) -> None:
        """Remove the binding. Unknown ids are ignored."""

    @abstractmethod
    async def prune_expired(self) -> int:
        """Drop expired sessions; returns how many were removed."""


class MemorySessionStore(SessionStore):
    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        super().__init__(ttl_seconds)
        self._sessions: dict[str, tuple[int, datetime]] = {}

    async def get(self, sid: str) -> int | None:
        entry = self._sessions.get(sid)
        if entry is None:
            return None
        user_id, expires_at = entry
        if expires_at <= utcnow():
            self._sessions.pop(sid, None)
            return None
        return user_id

    async def set(self, sid: str, user_id: int) -> None:
        self._sessions[sid] = (user_id, utcnow() + self.ttl)

    async def destroy(self, sid: str) -> None:
        self._sessions.pop(sid, None)

    async def prune_expired(self) -> int:
        now = utcnow()
        expired = [sid for sid, (_, expires_at) in self._sessions.items() if expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)


class DatabaseSessionStore(SessionStore):
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], ttl_seconds: int = DEFAULT_TTL_SECONDS):
        super().__init__(ttl_seconds)
        self._sessionmaker = sessionmaker

    async def get(self, sid: str) -> int | None:
        async with session_scope(self._sessionmaker) as db:
            result = await db.execute(select(SessionRecord).where(SessionRecord.sid == sid))
            record = result.scalar_one_or_none()
            if record is None:
                return None
            if record.expires_at <= utcnow():
                await db.delete(record)
                return None
            return record.user_id

    async def set(self, sid: str, user_id: int) -> None:
        async with session_scope(self._sessionmaker) as db:
            await db.merge(SessionRecord(sid=sid, user_id=user_id, expires_at=utcnow() + self.ttl))

    async def destroy(self, sid: str) -> None:
        async with session_scope(self._sessionmaker) as db:
            await db.execute(delete(SessionRecord).where(SessionRecord.sid == sid))

    async def prune_expired(self) -> int:
        async with session_scope(self._sessionmaker) as db:
            result = await db.execute(delete(SessionRecord).where(SessionRecord.expires_at <= utcnow()))
            removed = result.rowcount or 0
        if removed:
            logger.info(f"Pruned {removed} expired sessions")
        return removed
