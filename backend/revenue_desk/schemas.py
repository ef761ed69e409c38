"""
Entity shapes.

For each table there are three shapes:
- ``<Entity>Create``: what a caller may supply on insert. Unknown fields are
  rejected, required columns must be present, column defaults are filled in.
- ``<Entity>Update``: a partial of the insertable fields. Unknown fields are
  rejected and non-nullable columns cannot be set to null.
- ``<Entity>Read``: the stored row, including id and timestamps.

Both storage backends accept and return these shapes, never ORM objects.
"""

from datetime import datetime, timezone
from typing import Annotated, ClassVar
from pydantic import AfterValidator, BaseModel, ConfigDict, model_validator


def _as_naive_utc(value: datetime) -> datetime:
    """Columns hold naive UTC; offsets are converted, not dropped."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_as_naive_utc)]


class CreateShape(BaseModel):
    model_config = ConfigDict(extra="forbid")


class UpdateShape(BaseModel):
    model_config = ConfigDict(extra="forbid")

    non_nullable: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _reject_null_for_required_columns(self) -> "UpdateShape":
        for name in self.non_nullable:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"'{name}' cannot be null")
        return self

    def changes(self) -> dict:
        """Only the fields the caller actually supplied."""
        return self.model_dump(exclude_unset=True)


class RowShape(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime


# ── Users ──────────────────────────────────────────────────────────────

class UserCreate(CreateShape):
    username: str
    password: str
    role: str = "manager"
    hotel: str | None = None


class UserUpdate(UpdateShape):
    non_nullable = ("username", "password", "role")

    username: str | None = None
    password: str | None = None
    role: str | None = None
    hotel: str | None = None


class UserPublic(BaseModel):
    """A user as shown to clients: never carries the password."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: str
    hotel: str | None
    created_at: datetime
    updated_at: datetime


class UserRead(RowShape):
    username: str
    password: str
    role: str
    hotel: str | None

    def to_public(self) -> UserPublic:
        return UserPublic.model_validate(self.model_dump(exclude={"password"}))


# ── OTA accounts ───────────────────────────────────────────────────────

class OtaAccountCreate(CreateShape):
    user_id: int
    name: str
    short_name: str | None = None
    url: str
    username: str
    password: str
    account_type: str | None = None
    status: str | None = "active"


class OtaAccountUpdate(UpdateShape):
    non_nullable = ("user_id", "name", "url", "username", "password")

    user_id: int | None = None
    name: str | None = None
    short_name: str | None = None
    url: str | None = None
    username: str | None = None
    password: str | None = None
    account_type: str | None = None
    status: str | None = None


class OtaAccountRead(RowShape):
    user_id: int
    name: str
    short_name: str | None
    url: str
    username: str
    password: str
    account_type: str | None
    status: str | None


# ── Activities ─────────────────────────────────────────────────────────

class ActivityCreate(CreateShape):
    platform_id: int
    user_id: int | None = None
    name: str
    description: str | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    discount: str | None = None
    commission_rate: str | None = None
    room_types: list[str] | None = None
    minimum_stay: int | None = None
    max_booking_window: int | None = None
    status: str | None = "active"
    tag: str | None = None
    participation_status: str | None = "pending"


class ActivityUpdate(UpdateShape):
    non_nullable = ("platform_id", "name")

    platform_id: int | None = None
    user_id: int | None = None
    name: str | None = None
    description: str | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    discount: str | None = None
    commission_rate: str | None = None
    room_types: list[str] | None = None
    minimum_stay: int | None = None
    max_booking_window: int | None = None
    status: str | None = None
    tag: str | None = None
    participation_status: str | None = None


class ActivityRead(RowShape):
    platform_id: int
    user_id: int | None
    name: str
    description: str | None
    start_date: UtcDatetime | None
    end_date: UtcDatetime | None
    discount: str | None
    commission_rate: str | None
    room_types: list[str] | None
    minimum_stay: int | None
    max_booking_window: int | None
    status: str | None
    tag: str | None
    participation_status: str | None


# ── Strategies ─────────────────────────────────────────────────────────

class StrategyCreate(CreateShape):
    user_id: int
    name: str
    description: str | None = None
    platform_id: int | None = None
    activity_id: int | None = None
    recommendation: str | None = None
    reasoning: str | None = None
    expected_outcome: str | None = None
    parameters_used: dict[str, float] | None = None
    status: str | None = "draft"
    applied_at: UtcDatetime | None = None


class StrategyUpdate(UpdateShape):
    non_nullable = ("user_id", "name")

    user_id: int | None = None
    name: str | None = None
    description: str | None = None
    platform_id: int | None = None
    activity_id: int | None = None
    recommendation: str | None = None
    reasoning: str | None = None
    expected_outcome: str | None = None
    parameters_used: dict[str, float] | None = None
    status: str | None = None
    applied_at: UtcDatetime | None = None


class StrategyRead(RowShape):
    user_id: int
    name: str
    description: str | None
    platform_id: int | None
    activity_id: int | None
    recommendation: str | None
    reasoning: str | None
    expected_outcome: str | None
    parameters_used: dict[str, float] | None
    status: str | None
    applied_at: UtcDatetime | None

    @property
    def is_applied(self) -> bool:
        return self.applied_at is not None


# ── API keys ───────────────────────────────────────────────────────────

class ApiKeyCreate(CreateShape):
    user_id: int
    service: str
    encrypted_key: str
    model: str | None = None


class ApiKeyUpdate(UpdateShape):
    non_nullable = ("user_id", "service", "encrypted_key")

    user_id: int | None = None
    service: str | None = None
    encrypted_key: str | None = None
    model: str | None = None


class ApiKeyRead(RowShape):
    user_id: int
    service: str
    encrypted_key: str
    model: str | None


# ── Settings ───────────────────────────────────────────────────────────

class SettingCreate(CreateShape):
    user_id: int
    notifications_enabled: bool | None = True
    auto_refresh_interval: int | None = 30
    default_strategy_preference: str | None = "balanced"


class SettingUpdate(UpdateShape):
    non_nullable = ("user_id",)

    user_id: int | None = None
    notifications_enabled: bool | None = None
    auto_refresh_interval: int | None = None
    default_strategy_preference: str | None = None


class SettingRead(RowShape):
    user_id: int
    notifications_enabled: bool | None
    auto_refresh_interval: int | None
    default_strategy_preference: str | None


# ── Strategy parameters ────────────────────────────────────────────────

class StrategyParameterCreate(CreateShape):
    name: str
    description: str | None = None
    param_key: str
    value: float


class StrategyParameterUpdate(UpdateShape):
    non_nullable = ("name", "param_key", "value")

    name: str | None = None
    description: str | None = None
    param_key: str | None = None
    value: float | None = None


class StrategyParameterRead(RowShape):
    name: str
    description: str | None
    param_key: str
    value: float


# ── Strategy templates ─────────────────────────────────────────────────

class StrategyTemplateCreate(CreateShape):
    name: str
    description: str | None = None
    template_text: str
    parameters: list[str] | None = None


class StrategyTemplateUpdate(UpdateShape):
    non_nullable = ("name", "template_text")

    name: str | None = None
    description: str | None = None
    template_text: str | None = None
    parameters: list[str] | None = None


class StrategyTemplateRead(RowShape):
    name: str
    description: str | None
    template_text: str
    parameters: list[str] | None
