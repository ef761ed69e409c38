"""
Storage contract.

``Storage`` is the only path to persisted state. Every public operation is
written once here on top of six backend primitives, so the durable
(``DatabaseStorage``) and volatile (``MemoryStorage``) variants cannot drift
apart: a variant only decides how rows are fetched, inserted, updated and
deleted.

Reads of a missing row return ``None``; list reads return ``[]`` ordered by
id. ``update`` raises ``NotFound`` for a missing id; ``delete`` is a no-op.
"""

import enum
from abc import ABC, abstractmethod
from typing import Any

from revenue_desk.errors import NotFound
from revenue_desk.schemas import (
    ActivityCreate, ActivityRead, ActivityUpdate,
    ApiKeyCreate, ApiKeyRead, ApiKeyUpdate,
    OtaAccountCreate, OtaAccountRead, OtaAccountUpdate,
    RowShape,
    SettingCreate, SettingRead, SettingUpdate,
    StrategyCreate, StrategyRead, StrategyUpdate,
    StrategyParameterCreate, StrategyParameterRead, StrategyParameterUpdate,
    StrategyTemplateCreate, StrategyTemplateRead, StrategyTemplateUpdate,
    UserCreate, UserRead, UserUpdate,
)
from revenue_desk.sessions import SessionStore


class Entity(str, enum.Enum):
    USERS = "users"
    OTA_ACCOUNTS = "ota_accounts"
    ACTIVITIES = "activities"
    STRATEGIES = "strategies"
    API_KEYS = "api_keys"
    SETTINGS = "settings"
    STRATEGY_PARAMETERS = "strategy_parameters"
    STRATEGY_TEMPLATES = "strategy_templates"


ROW_SHAPES: dict[Entity, type[RowShape]] = {
    Entity.USERS: UserRead,
    Entity.OTA_ACCOUNTS: OtaAccountRead,
    Entity.ACTIVITIES: ActivityRead,
    Entity.STRATEGIES: StrategyRead,
    Entity.API_KEYS: ApiKeyRead,
    Entity.SETTINGS: SettingRead,
    Entity.STRATEGY_PARAMETERS: StrategyParameterRead,
    Entity.STRATEGY_TEMPLATES: StrategyTemplateRead,
}


class Storage(ABC):
    session_store: SessionStore

    # ── Backend primitives ─────────────────────────────────────────────

    @abstractmethod
    async def _get(self, entity: Entity, row_id: int) -> Any:
        ...

    @abstractmethod
    async def _find(self, entity: Entity, **equals: Any) -> list[Any]:
        """Rows whose columns equal the given values, ordered by id."""

    @abstractmethod
    async def _insert(self, entity: Entity, values: dict) -> Any:
        """Insert, assigning id, created_at and updated_at."""

    @abstractmethod
    async def _update(self, entity: Entity, row_id: int, values: dict) -> Any | None:
        """Merge values and bump updated_at. None if the row does not exist."""

    @abstractmethod
    async def _delete(self, entity: Entity, row_id: int) -> None:
        ...

    @abstractmethod
    async def _applied_strategies(self, user_id: int | None, limit: int | None) -> list[StrategyRead]:
        """Strategies with applied_at set, newest first (ties: higher id first)."""

    async def ping(self) -> bool:
        """Whether the backend is reachable."""
        return True

    async def close(self) -> None:
        """Release backend resources. Safe to call more than once."""

    async def is_empty(self, entity: Entity) -> bool:
        return not await self._find(entity)

    async def _update_or_raise(self, entity: Entity, row_id: int, values: dict, label: str) -> Any:
        row = await self._update(entity, row_id, values)
        if row is None:
            raise NotFound(f"{label} not found")
        return row

    # ── Users ──────────────────────────────────────────────────────────

    async def get_user(self, user_id: int) -> UserRead | None:
        return await self._get(Entity.USERS, user_id)

    async def get_user_by_username(self, username: str) -> UserRead | None:
        rows = await self._find(Entity.USERS, username=username)
        return rows[0] if rows else None

    async def create_user(self, user: UserCreate) -> UserRead:
        return await self._insert(Entity.USERS, user.model_dump())

    async def update_user(self, user_id: int, user: UserUpdate) -> UserRead:
        return await self._update_or_raise(Entity.USERS, user_id, user.changes(), "User")

    async def delete_user(self, user_id: int) -> None:
        await self._delete(Entity.USERS, user_id)

    # ── OTA accounts ───────────────────────────────────────────────────

    async def get_ota_account(self, account_id: int) -> OtaAccountRead | None:
        return await self._get(Entity.OTA_ACCOUNTS, account_id)

    async def get_ota_accounts_by_user_id(self, user_id: int) -> list[OtaAccountRead]:
        return await self._find(Entity.OTA_ACCOUNTS, user_id=user_id)

    async def create_ota_account(self, account: OtaAccountCreate) -> OtaAccountRead:
        return await self._insert(Entity.OTA_ACCOUNTS, account.model_dump())

    async def update_ota_account(self, account_id: int, account: OtaAccountUpdate) -> OtaAccountRead:
        return await self._update_or_raise(Entity.OTA_ACCOUNTS, account_id, account.changes(), "OTA account")

    async def delete_ota_account(self, account_id: int) -> None:
        await self._delete(Entity.OTA_ACCOUNTS, account_id)

    # ── Activities ─────────────────────────────────────────────────────

    async def get_activity(self, activity_id: int) -> ActivityRead | None:
        return await self._get(Entity.ACTIVITIES, activity_id)

    async def get_activities_by_user_id(self, user_id: int) -> list[ActivityRead]:
        return await self._find(Entity.ACTIVITIES, user_id=user_id)

    async def get_activities_by_platform(self, platform_id: int) -> list[ActivityRead]:
        return await self._find(Entity.ACTIVITIES, platform_id=platform_id)

    async def create_activity(self, activity: ActivityCreate) -> ActivityRead:
        return await self._insert(Entity.ACTIVITIES, activity.model_dump())

    async def update_activity(self, activity_id: int, activity: ActivityUpdate) -> ActivityRead:
        return await self._update_or_raise(Entity.ACTIVITIES, activity_id, activity.changes(), "Activity")

    async def delete_activity(self, activity_id: int) -> None:
        await self._delete(Entity.ACTIVITIES, activity_id)

    # ── Strategies ─────────────────────────────────────────────────────

    async def get_strategy(self, strategy_id: int) -> StrategyRead | None:
        return await self._get(Entity.STRATEGIES, strategy_id)

    async def get_strategies_by_user_id(self, user_id: int) -> list[StrategyRead]:
        return await self._find(Entity.STRATEGIES, user_id=user_id)

    async def get_applied_strategies_by_user_id(self, user_id: int) -> list[StrategyRead]:
        return await self._applied_strategies(user_id, None)

    async def get_recent_applied_strategies(self, limit: int) -> list[StrategyRead]:
        """Applied strategies across all users, most recently applied first."""
        if limit <= 0:
            return []
        return await self._applied_strategies(None, limit)

    async def create_strategy(self, strategy: StrategyCreate) -> StrategyRead:
        return await self._insert(Entity.STRATEGIES, strategy.model_dump())

    async def update_strategy(self, strategy_id: int, strategy: StrategyUpdate) -> StrategyRead:
        return await self._update_or_raise(Entity.STRATEGIES, strategy_id, strategy.changes(), "Strategy")

    async def delete_strategy(self, strategy_id: int) -> None:
        await self._delete(Entity.STRATEGIES, strategy_id)

    # ── API keys ───────────────────────────────────────────────────────

    async def get_api_key(self, key_id: int) -> ApiKeyRead | None:
        return await self._get(Entity.API_KEYS, key_id)

    async def get_api_key_by_user_id_and_service(self, user_id: int, service: str) -> ApiKeyRead | None:
        """First key for (user, service). Nothing stops duplicates; the lowest id wins."""
        rows = await self._find(Entity.API_KEYS, user_id=user_id, service=service)
        return rows[0] if rows else None

    async def get_api_keys_by_user_id(self, user_id: int) -> list[ApiKeyRead]:
        return await self._find(Entity.API_KEYS, user_id=user_id)

    async def create_api_key(self, api_key: ApiKeyCreate) -> ApiKeyRead:
        return await self._insert(Entity.API_KEYS, api_key.model_dump())

    async def update_api_key(self, key_id: int, api_key: ApiKeyUpdate) -> ApiKeyRead:
        return await self._update_or_raise(Entity.API_KEYS, key_id, api_key.changes(), "API key")

    async def delete_api_key(self, key_id: int) -> None:
        await self._delete(Entity.API_KEYS, key_id)

    # ── Settings ───────────────────────────────────────────────────────

    async def get_setting(self, setting_id: int) -> SettingRead | None:
        return await self._get(Entity.SETTINGS, setting_id)

    async def get_setting_by_user_id(self, user_id: int) -> SettingRead | None:
        rows = await self._find(Entity.SETTINGS, user_id=user_id)
        return rows[0] if rows else None

    async def create_setting(self, setting: SettingCreate) -> SettingRead:
        return await self._insert(Entity.SETTINGS, setting.model_dump())

    async def update_setting(self, setting_id: int, setting: SettingUpdate) -> SettingRead:
        return await self._update_or_raise(Entity.SETTINGS, setting_id, setting.changes(), "Settings")

    async def delete_setting(self, setting_id: int) -> None:
        await self._delete(Entity.SETTINGS, setting_id)

    # ── Strategy parameters ────────────────────────────────────────────

    async def get_strategy_parameter(self, param_id: int) -> StrategyParameterRead | None:
        return await self._get(Entity.STRATEGY_PARAMETERS, param_id)

    async def get_strategy_parameter_by_key(self, param_key: str) -> StrategyParameterRead | None:
        rows = await self._find(Entity.STRATEGY_PARAMETERS, param_key=param_key)
        return rows[0] if rows else None

    async def get_all_strategy_parameters(self) -> list[StrategyParameterRead]:
        return await self._find(Entity.STRATEGY_PARAMETERS)

    async def create_strategy_parameter(self, param: StrategyParameterCreate) -> StrategyParameterRead:
        return await self._insert(Entity.STRATEGY_PARAMETERS, param.model_dump())

    async def update_strategy_parameter(self, param_id: int, param: StrategyParameterUpdate) -> StrategyParameterRead:
        return await self._update_or_raise(Entity.STRATEGY_PARAMETERS, param_id, param.changes(), "Strategy parameter")

    async def delete_strategy_parameter(self, param_id: int) -> None:
        await self._delete(Entity.STRATEGY_PARAMETERS, param_id)

    # ── Strategy templates ─────────────────────────────────────────────

    async def get_strategy_template(self, template_id: int) -> StrategyTemplateRead | None:
        return await self._get(Entity.STRATEGY_TEMPLATES, template_id)

    async def get_all_strategy_templates(self) -> list[StrategyTemplateRead]:
        return await self._find(Entity.STRATEGY_TEMPLATES)

    async def create_strategy_template(self, template: StrategyTemplateCreate) -> StrategyTemplateRead:
        return await self._insert(Entity.STRATEGY_TEMPLATES, template.model_dump())

    async def update_strategy_template(self, template_id: int, template: StrategyTemplateUpdate) -> StrategyTemplateRead:
        return await self._update_or_raise(Entity.STRATEGY_TEMPLATES, template_id, template.changes(), "Strategy template")

    async def delete_strategy_template(self, template_id: int) -> None:
        await self._delete(Entity.STRATEGY_TEMPLATES, template_id)
