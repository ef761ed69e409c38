"""
Durable storage over SQLAlchemy (SQLite, PostgreSQL or MySQL).

Every operation runs in its own session and commits on exit. Unique and
foreign-key enforcement is left to the database; the resulting integrity
errors are translated by ``session_scope``.
"""

import logging
from typing import Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from revenue_desk import models
from revenue_desk.database import build_engine, build_sessionmaker, check_db_connection, init_db, session_scope
from revenue_desk.schemas import StrategyRead
from revenue_desk.sessions import DEFAULT_TTL_SECONDS, DatabaseSessionStore
from revenue_desk.storage.base import ROW_SHAPES, Entity, Storage
from revenue_desk.utils import next_timestamp, utcnow

logger = logging.getLogger(__name__)

MODELS: dict[Entity, type[models.Base]] = {
    Entity.USERS: models.User,
    Entity.OTA_ACCOUNTS: models.OtaAccount,
    Entity.ACTIVITIES: models.Activity,
    Entity.STRATEGIES: models.Strategy,
    Entity.API_KEYS: models.ApiKey,
    Entity.SETTINGS: models.Setting,
    Entity.STRATEGY_PARAMETERS: models.StrategyParameter,
    Entity.STRATEGY_TEMPLATES: models.StrategyTemplate,
}


def _to_shape(entity: Entity, row: Any) -> Any:
    return ROW_SHAPES[entity].model_validate(row)


class DatabaseStorage(Storage):
    def __init__(self, engine: AsyncEngine, session_ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.engine = engine
        self._sessionmaker = build_sessionmaker(engine)
        self.session_store = DatabaseSessionStore(self._sessionmaker, session_ttl_seconds)

    @classmethod
    def from_url(cls, url: str, session_ttl_seconds: int = DEFAULT_TTL_SECONDS) -> "DatabaseStorage":
        return cls(build_engine(url), session_ttl_seconds=session_ttl_seconds)

    async def init_schema(self) -> None:
        await init_db(self.engine)

    async def ping(self) -> bool:
        return await check_db_connection(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")

    async def _get(self, entity: Entity, row_id: int) -> Any:
        async with session_scope(self._sessionmaker) as db:
            row = await db.get(MODELS[entity], row_id)
            return _to_shape(entity, row) if row is not None else None

    async def _find(self, entity: Entity, **equals: Any) -> list[Any]:
        model = MODELS[entity]
        async with session_scope(self._sessionmaker) as db:
            result = await db.execute(select(model).filter_by(**equals).order_by(model.id))
            return [_to_shape(entity, row) for row in result.scalars().all()]

    async def _insert(self, entity: Entity, values: dict) -> Any:
        now = utcnow()
        async with session_scope(self._sessionmaker) as db:
            row = MODELS[entity](**values, created_at=now, updated_at=now)
            db.add(row)
            await db.flush()
            return _to_shape(entity, row)

    async def _update(self, entity: Entity, row_id: int, values: dict) -> Any | None:
        async with session_scope(self._sessionmaker) as db:
            row = await db.get(MODELS[entity], row_id)
            if row is None:
                return None
            for column, value in values.items():
                setattr(row, column, value)
            row.updated_at = next_timestamp(row.updated_at)
            await db.flush()
            return _to_shape(entity, row)

    async def _delete(self, entity: Entity, row_id: int) -> None:
        async with session_scope(self._sessionmaker) as db:
            row = await db.get(MODELS[entity], row_id)
            if row is not None:
                await db.delete(row)

    async def _applied_strategies(self, user_id: int | None, limit: int | None) -> list[StrategyRead]:
        stmt = select(models.Strategy).where(models.Strategy.applied_at.is_not(None))
        if user_id is not None:
            stmt = stmt.where(models.Strategy.user_id == user_id)
        stmt = stmt.order_by(models.Strategy.applied_at.desc(), models.Strategy.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        async with session_scope(self._sessionmaker) as db:
            result = await db.execute(stmt)
            return [StrategyRead.model_validate(row) for row in result.scalars().all()]
