"""
In-process storage for development, bootstrapping and tests.

Enforces the same unique columns and foreign keys as the database schema so
that code exercised against it behaves the same against ``DatabaseStorage``.
Ids come from per-table counters and are never reused after a delete.
"""

import itertools
from typing import Any

from revenue_desk.errors import ReferenceViolation, UniqueConstraintViolation
from revenue_desk.schemas import RowShape, StrategyRead
from revenue_desk.sessions import DEFAULT_TTL_SECONDS, MemorySessionStore
from revenue_desk.storage.base import ROW_SHAPES, Entity, Storage
from revenue_desk.utils import next_timestamp, utcnow


UNIQUE_COLUMNS: dict[Entity, tuple[str, ...]] = {
    Entity.USERS: ("username",),
    Entity.SETTINGS: ("user_id",),
    Entity.STRATEGY_PARAMETERS: ("param_key",),
}

FOREIGN_KEYS: dict[Entity, dict[str, Entity]] = {
    Entity.OTA_ACCOUNTS: {"user_id": Entity.USERS},
    Entity.ACTIVITIES: {"platform_id": Entity.OTA_ACCOUNTS, "user_id": Entity.USERS},
    Entity.STRATEGIES: {
        "user_id": Entity.USERS,
        "platform_id": Entity.OTA_ACCOUNTS,
        "activity_id": Entity.ACTIVITIES,
    },
    Entity.API_KEYS: {"user_id": Entity.USERS},
    Entity.SETTINGS: {"user_id": Entity.USERS},
}


class MemoryStorage(Storage):
    def __init__(self, session_ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.session_store = MemorySessionStore(session_ttl_seconds)
        self._rows: dict[Entity, dict[int, RowShape]] = {entity: {} for entity in Entity}
        self._ids = {entity: itertools.count(1) for entity in Entity}

    def _check_unique(self, entity: Entity, candidate: RowShape) -> None:
        for column in UNIQUE_COLUMNS.get(entity, ()):
            value = getattr(candidate, column)
            for row in self._rows[entity].values():
                if row.id != candidate.id and getattr(row, column) == value:
                    raise UniqueConstraintViolation(f"{entity.value}.{column} must be unique")

    def _check_references(self, entity: Entity, candidate: RowShape) -> None:
        for column, target in FOREIGN_KEYS.get(entity, {}).items():
            value = getattr(candidate, column)
            if value is not None and value not in self._rows[target]:
                raise ReferenceViolation(f"{entity.value}.{column} references missing {target.value} row {value}")

    def _check_not_referenced(self, entity: Entity, row_id: int) -> None:
        for source, columns in FOREIGN_KEYS.items():
            for column, target in columns.items():
                if target != entity:
                    continue
                if any(getattr(row, column) == row_id for row in self._rows[source].values()):
                    raise ReferenceViolation(f"{entity.value} row {row_id} is still referenced by {source.value}")

    async def _get(self, entity: Entity, row_id: int) -> Any:
        row = self._rows[entity].get(row_id)
        return row.model_copy(deep=True) if row is not None else None

    async def _find(self, entity: Entity, **equals: Any) -> list[Any]:
        rows = [
            row for row in self._rows[entity].values()
            if all(getattr(row, column) == value for column, value in equals.items())
        ]
        return [row.model_copy(deep=True) for row in sorted(rows, key=lambda r: r.id)]

    async def _insert(self, entity: Entity, values: dict) -> Any:
        now = utcnow()
        # id 0 is a placeholder until the row passes its constraint checks
        row = ROW_SHAPES[entity].model_validate({**values, "id": 0, "created_at": now, "updated_at": now})
        self._check_unique(entity, row)
        self._check_references(entity, row)
        row.id = next(self._ids[entity])
        self._rows[entity][row.id] = row
        return row.model_copy(deep=True)

    async def _update(self, entity: Entity, row_id: int, values: dict) -> Any | None:
        current = self._rows[entity].get(row_id)
        if current is None:
            return None
        merged = ROW_SHAPES[entity].model_validate({
            **current.model_dump(),
            **values,
            "updated_at": next_timestamp(current.updated_at),
        })
        self._check_unique(entity, merged)
        self._check_references(entity, merged)
        self._rows[entity][row_id] = merged
        return merged.model_copy(deep=True)

    async def _delete(self, entity: Entity, row_id: int) -> None:
        if row_id not in self._rows[entity]:
            return
        self._check_not_referenced(entity, row_id)
        del self._rows[entity][row_id]

    async def _applied_strategies(self, user_id: int | None, limit: int | None) -> list[StrategyRead]:
        rows = [
            row for row in self._rows[Entity.STRATEGIES].values()
            if row.applied_at is not None and (user_id is None or row.user_id == user_id)
        ]
        rows.sort(key=lambda r: (r.applied_at, r.id), reverse=True)
        if limit is not None:
            rows = rows[:limit]
        return [row.model_copy(deep=True) for row in rows]
