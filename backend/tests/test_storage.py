"""
Storage contract tests. The ``storage`` fixture runs every test against both
MemoryStorage and DatabaseStorage (SQLite file in tmp_path).
"""

import pytest
from datetime import datetime, timedelta, timezone

from revenue_desk.errors import BackendUnavailable, NotFound, ReferenceViolation, UniqueConstraintViolation
from revenue_desk.schemas import (
    ActivityCreate, ActivityUpdate, ApiKeyCreate, ApiKeyUpdate, OtaAccountCreate, OtaAccountUpdate,
    SettingCreate, SettingUpdate, StrategyCreate, StrategyParameterCreate, StrategyParameterUpdate,
    StrategyTemplateCreate, StrategyTemplateUpdate, StrategyUpdate, UserCreate, UserUpdate,
)
from revenue_desk.storage.base import Entity
from revenue_desk.storage.database import DatabaseStorage

pytestmark = pytest.mark.anyio

ASSIGNED = {"id", "created_at", "updated_at"}


def _without_assigned(row) -> dict:
    return row.model_dump(exclude=ASSIGNED)


async def _strategy(storage, user_id: int, name: str, applied_at: datetime | None = None):
    return await storage.create_strategy(StrategyCreate(user_id=user_id, name=name, applied_at=applied_at))


# ── create / get ──────────────────────────────────────────────────────

async def test_create_then_get_returns_created_row(storage, user, account):
    activity = await storage.create_activity(ActivityCreate(
        platform_id=account.id,
        user_id=user.id,
        name="暑期特惠",
        start_date=datetime(2024, 7, 1),
        end_date=datetime(2024, 8, 31),
        discount="8.5折",
        room_types=["标准双人间", "豪华家庭房"],
        minimum_stay=2,
    ))
    assert activity.id > 0
    assert activity.created_at == activity.updated_at

    fetched = await storage.get_activity(activity.id)
    assert fetched == activity
    assert fetched.room_types == ["标准双人间", "豪华家庭房"]
    assert fetched.participation_status == "pending"


async def test_create_assigns_distinct_ids(storage):
    first = await storage.create_user(UserCreate(username="a", password="x"))
    second = await storage.create_user(UserCreate(username="b", password="x"))
    assert second.id > first.id
    assert first.role == "manager"


async def test_get_missing_returns_none(storage):
    assert await storage.get_user(404) is None
    assert await storage.get_user_by_username("nobody") is None
    assert await storage.get_setting_by_user_id(404) is None
    assert await storage.get_api_key_by_user_id_and_service(404, "deepseek") is None


async def test_list_reads_empty_and_ordered(storage, user, account):
    assert await storage.get_strategies_by_user_id(user.id) == []
    second = await storage.create_ota_account(OtaAccountCreate(
        user_id=user.id, name="美团", url="https://hotel.meituan.com", username="h", password="p",
    ))
    accounts = await storage.get_ota_accounts_by_user_id(user.id)
    assert [a.id for a in accounts] == [account.id, second.id]


async def test_setting_defaults(storage, user):
    setting = await storage.create_setting(SettingCreate(user_id=user.id))
    stored = await storage.get_setting_by_user_id(user.id)
    assert stored == setting
    assert stored.notifications_enabled is True
    assert stored.auto_refresh_interval == 30
    assert stored.default_strategy_preference == "balanced"


async def test_strategy_parameters_and_templates(storage):
    param = await storage.create_strategy_parameter(StrategyParameterCreate(
        name="关注远期预定", param_key="future_booking_weight", value=7,
    ))
    template = await storage.create_strategy_template(StrategyTemplateCreate(
        name="Default", template_text="Focus on {goal}", parameters=["goal"],
    ))
    assert await storage.get_strategy_parameter_by_key("future_booking_weight") == param
    assert await storage.get_all_strategy_parameters() == [param]
    assert await storage.get_strategy_template(template.id) == template
    assert await storage.get_all_strategy_templates() == [template]

    updated = await storage.update_strategy_parameter(param.id, StrategyParameterUpdate(value=9.5))
    assert updated.value == 9.5
    renamed = await storage.update_strategy_template(template.id, StrategyTemplateUpdate(name="Aggressive"))
    assert renamed.template_text == "Focus on {goal}"


# ── update ────────────────────────────────────────────────────────────

async def test_update_merges_and_bumps_updated_at(storage, user, account):
    updated = await storage.update_ota_account(account.id, OtaAccountUpdate(status="inactive"))
    assert updated.status == "inactive"
    assert updated.updated_at > account.updated_at
    assert updated.created_at == account.created_at
    assert _without_assigned(updated) == {**_without_assigned(account), "status": "inactive"}
    assert await storage.get_ota_account(account.id) == updated


async def test_repeated_updates_strictly_increase_updated_at(storage, user):
    previous = user.updated_at
    for hotel in ("A", "B", "C"):
        row = await storage.update_user(user.id, UserUpdate(hotel=hotel))
        assert row.updated_at > previous
        previous = row.updated_at


async def test_update_can_clear_nullable_column(storage, user, account):
    activity = await storage.create_activity(ActivityCreate(platform_id=account.id, name="周末闪购", tag="限时"))
    cleared = await storage.update_activity(activity.id, ActivityUpdate(tag=None))
    assert cleared.tag is None
    assert cleared.name == "周末闪购"


async def test_update_missing_raises_not_found(storage):
    with pytest.raises(NotFound):
        await storage.update_user(404, UserUpdate(hotel="x"))
    with pytest.raises(NotFound):
        await storage.update_strategy(404, StrategyUpdate(status="applied"))


# ── delete ────────────────────────────────────────────────────────────

async def test_delete_is_idempotent(storage, user):
    key = await storage.create_api_key(ApiKeyCreate(user_id=user.id, service="deepseek", encrypted_key="k"))
    await storage.delete_api_key(key.id)
    assert await storage.get_api_key(key.id) is None
    await storage.delete_api_key(key.id)
    assert await storage.get_api_key(key.id) is None


async def test_ids_not_reused_after_delete(storage):
    first = await storage.create_user(UserCreate(username="a", password="x"))
    await storage.delete_user(first.id)
    second = await storage.create_user(UserCreate(username="b", password="x"))
    assert second.id > first.id


# ── uniqueness ────────────────────────────────────────────────────────

async def test_duplicate_username_rejected(storage, user):
    with pytest.raises(UniqueConstraintViolation):
        await storage.create_user(UserCreate(username=user.username, password="y"))


async def test_duplicate_param_key_rejected(storage):
    await storage.create_strategy_parameter(StrategyParameterCreate(name="a", param_key="k", value=1))
    with pytest.raises(UniqueConstraintViolation):
        await storage.create_strategy_parameter(StrategyParameterCreate(name="b", param_key="k", value=2))


async def test_second_settings_row_for_user_rejected(storage, user):
    await storage.create_setting(SettingCreate(user_id=user.id))
    with pytest.raises(UniqueConstraintViolation):
        await storage.create_setting(SettingCreate(user_id=user.id))


async def test_unique_enforced_on_update(storage, user):
    other = await storage.create_user(UserCreate(username="other", password="x"))
    with pytest.raises(UniqueConstraintViolation):
        await storage.update_user(other.id, UserUpdate(username=user.username))
    assert (await storage.get_user(other.id)).username == "other"


async def test_failed_create_does_not_consume_row(storage, user):
    with pytest.raises(UniqueConstraintViolation):
        await storage.create_user(UserCreate(username=user.username, password="y"))
    assert await storage.get_user_by_username(user.username) == user


async def test_duplicate_api_keys_return_lowest_id(storage, user):
    first = await storage.create_api_key(ApiKeyCreate(user_id=user.id, service="deepseek", encrypted_key="one"))
    await storage.create_api_key(ApiKeyCreate(user_id=user.id, service="deepseek", encrypted_key="two"))
    assert await storage.get_api_key_by_user_id_and_service(user.id, "deepseek") == first
    assert len(await storage.get_api_keys_by_user_id(user.id)) == 2


# ── references ────────────────────────────────────────────────────────

async def test_reference_to_missing_row_rejected(storage, user):
    with pytest.raises(ReferenceViolation):
        await storage.create_api_key(ApiKeyCreate(user_id=404, service="deepseek", encrypted_key="k"))
    with pytest.raises(ReferenceViolation):
        await storage.create_activity(ActivityCreate(platform_id=404, name="x"))


async def test_update_to_missing_reference_rejected(storage, user):
    key = await storage.create_api_key(ApiKeyCreate(user_id=user.id, service="deepseek", encrypted_key="k"))
    with pytest.raises(ReferenceViolation):
        await storage.update_api_key(key.id, ApiKeyUpdate(user_id=404))


async def test_delete_referenced_row_rejected(storage, user, account):
    with pytest.raises(ReferenceViolation):
        await storage.delete_user(user.id)
    assert await storage.get_user(user.id) == user

    await storage.delete_ota_account(account.id)
    await storage.delete_user(user.id)
    assert await storage.get_user(user.id) is None


# ── applied strategies ────────────────────────────────────────────────

async def test_recent_applied_strategies_newest_first(storage, user):
    t1 = datetime(2024, 7, 1, 9, 0)
    s1 = await _strategy(storage, user.id, "s1", t1)
    s3 = await _strategy(storage, user.id, "s3", t1 + timedelta(hours=2))
    s2 = await _strategy(storage, user.id, "s2", t1 + timedelta(hours=1))
    await _strategy(storage, user.id, "draft")

    recent = await storage.get_recent_applied_strategies(2)
    assert [s.id for s in recent] == [s3.id, s2.id]

    everything = await storage.get_recent_applied_strategies(100)
    assert [s.id for s in everything] == [s3.id, s2.id, s1.id]


async def test_recent_applied_non_positive_limit(storage, user):
    await _strategy(storage, user.id, "s1", datetime(2024, 7, 1))
    assert await storage.get_recent_applied_strategies(0) == []
    assert await storage.get_recent_applied_strategies(-1) == []


async def test_recent_applied_ties_broken_by_id(storage, user):
    at = datetime(2024, 7, 1, 9, 0)
    first = await _strategy(storage, user.id, "a", at)
    second = await _strategy(storage, user.id, "b", at)
    assert [s.id for s in await storage.get_recent_applied_strategies(2)] == [second.id, first.id]


async def test_applied_strategies_by_user_excludes_others(storage, user):
    other = await storage.create_user(UserCreate(username="other", password="x"))
    mine = await _strategy(storage, user.id, "mine", datetime(2024, 7, 1))
    await _strategy(storage, user.id, "draft")
    await _strategy(storage, other.id, "theirs", datetime(2024, 7, 2))

    applied = await storage.get_applied_strategies_by_user_id(user.id)
    assert [s.id for s in applied] == [mine.id]
    assert applied[0].is_applied


async def test_parameters_used_round_trip(storage, user):
    strategy = await storage.create_strategy(StrategyCreate(
        user_id=user.id, name="balanced", parameters_used={"future_booking_weight": 7, "cost_optimization_weight": 6.5},
    ))
    fetched = await storage.get_strategy(strategy.id)
    assert fetched.parameters_used == {"future_booking_weight": 7.0, "cost_optimization_weight": 6.5}


# ── misc ──────────────────────────────────────────────────────────────

async def test_is_empty(storage, user):
    assert not await storage.is_empty(Entity.USERS)
    assert await storage.is_empty(Entity.STRATEGY_TEMPLATES)


async def test_returned_rows_are_copies(storage, user):
    fetched = await storage.get_user(user.id)
    fetched.hotel = "mutated"
    assert (await storage.get_user(user.id)).hotel is None


async def test_update_setting(storage, user):
    setting = await storage.create_setting(SettingCreate(user_id=user.id))
    updated = await storage.update_setting(setting.id, SettingUpdate(auto_refresh_interval=15))
    assert updated.auto_refresh_interval == 15
    assert updated.notifications_enabled is True
    await storage.delete_setting(setting.id)
    assert await storage.get_setting_by_user_id(user.id) is None


async def test_unreachable_database_raises_backend_unavailable(tmp_path, anyio_backend):
    storage = DatabaseStorage.from_url(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'db.sqlite'}")
    try:
        with pytest.raises(BackendUnavailable):
            await storage.get_user(1)
        assert await storage.ping() is False
    finally:
        await storage.close()


# ── timestamps with an offset ─────────────────────────────────────────

async def test_offset_datetimes_stored_as_utc(storage, user, account):
    beijing = timezone(timedelta(hours=8))
    activity = await storage.create_activity(ActivityCreate(
        platform_id=account.id, name="暑期特惠", start_date=datetime(2024, 7, 1, 9, 0, tzinfo=beijing),
    ))
    assert activity.start_date == datetime(2024, 7, 1, 1, 0)
    assert await storage.get_activity(activity.id) == activity

    updated = await storage.update_activity(activity.id, ActivityUpdate(
        end_date=datetime(2024, 8, 31, 23, 0, tzinfo=beijing),
    ))
    assert updated.end_date == datetime(2024, 8, 31, 15, 0)
    assert await storage.get_activity(activity.id) == updated


async def test_recent_applied_mixes_offset_and_naive_times(storage, user):
    earlier = await _strategy(storage, user.id, "a", datetime(2024, 7, 1, tzinfo=timezone.utc))
    later = await _strategy(storage, user.id, "b")
    await storage.update_strategy(later.id, StrategyUpdate(applied_at=datetime(2024, 7, 2, 0, 0)))

    recent = await storage.get_recent_applied_strategies(5)
    assert [s.id for s in recent] == [later.id, earlier.id]
    assert recent[1].applied_at == datetime(2024, 7, 1)


def test_memory_storage_module_has_no_logger():
    from revenue_desk.storage import memory
    assert not hasattr(memory, "logger")
