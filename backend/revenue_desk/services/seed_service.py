"""
Seed Service — sample hotel group data for a fresh installation.

Each table is filled only while it is still empty, so running the seed again
(or on every startup) never duplicates rows.
"""

import logging
from datetime import timedelta

from revenue_desk.schemas import (
    ActivityCreate, ApiKeyCreate, OtaAccountCreate, SettingCreate, StrategyParameterCreate, UserCreate,
)
from revenue_desk.services.auth_service import hash_password
from revenue_desk.storage.base import Entity, Storage
from revenue_desk.utils import utcnow

logger = logging.getLogger(__name__)

ADMIN_USERNAME = "admin"

SEED_USERS = [
    {"username": ADMIN_USERNAME, "role": "admin", "hotel": "星星酒店集团"},
    {"username": "总经理", "role": "manager", "hotel": "星星酒店北京分店"},
    {"username": "snorkeler", "role": "user", "hotel": "星星酒店上海分店"},
]

SEED_OTA_ACCOUNTS = [
    {"name": "携程", "short_name": "Ctrip", "url": "https://hotels.ctrip.com",
     "username": "starhotel_admin", "password": "ctripP@ssw0rd", "account_type": "business"},
    {"name": "美团", "short_name": "Meituan", "url": "https://hotel.meituan.com",
     "username": "starhotel_meituan", "password": "meituanP@ss123", "account_type": "standard"},
    {"name": "飞猪", "short_name": "Fliggy", "url": "https://hotel.fliggy.com",
     "username": "starhotel_fliggy", "password": "fliggyP@ss456", "account_type": "premium"},
]

SEED_PARAMETERS = [
    ("关注远期预定", "重视提前预订和长期收益", "future_booking_weight", 7),
    ("关注成本最小", "优化佣金成本和运营支出", "cost_optimization_weight", 6),
    ("关注展示最优", "最大化在平台上的展示和排名", "visibility_optimization_weight", 8),
    ("关注当日OCC", "优先考虑提高当前入住率", "daily_occupancy_weight", 5),
    ("平衡长短期收益", "在长期战略和短期收益之间取得平衡", "long_short_balance_weight", 6),
]

SAMPLE_API_KEY = {"service": "deepseek", "encrypted_key": "7f4e8d2a1b5c6f3e9d7a8b4c2e1d5f6a", "model": "deepseek-chat-v1"}


def _seed_activities(platform_ids: list[int], user_id: int) -> list[ActivityCreate]:
    now = utcnow()
    tomorrow = now + timedelta(days=1)
    next_week = now + timedelta(days=7)
    next_month = now + timedelta(days=30)
    rows = [
        dict(name="暑期特惠", description="暑期家庭出游特别折扣", start_date=now, end_date=next_month,
             discount="8.5折", commission_rate="8%", room_types=["标准双人间", "豪华家庭房"],
             minimum_stay=2, max_booking_window=90, status="active", tag="热门"),
        dict(name="周末闪购", description="限时48小时特惠房价", start_date=tomorrow, end_date=next_week,
             discount="75折", commission_rate="10%", room_types=["商务单人间", "豪华双人间"],
             minimum_stay=1, max_booking_window=30, status="upcoming", tag="限时"),
        dict(name="预付立减", description="提前预付享受额外折扣", start_date=now, end_date=next_month,
             discount="8.8折", commission_rate="7.5%", room_types=["所有房型"],
             minimum_stay=1, max_booking_window=180, status="active", tag="推荐"),
    ]
    return [
        ActivityCreate(platform_id=platform_id, user_id=user_id, **row)
        for platform_id, row in zip(platform_ids, rows)
    ]


async def seed_defaults(storage: Storage, password: str) -> dict[str, int]:
    """
    Populate empty tables with the sample data set.
    All seeded users share ``password`` (stored hashed).
    Returns the number of rows created per table.
    """
    created = {entity.value: 0 for entity in Entity}

    if await storage.is_empty(Entity.USERS):
        password_hash = hash_password(password)
        for user in SEED_USERS:
            await storage.create_user(UserCreate(password=password_hash, **user))
            created[Entity.USERS.value] += 1
    else:
        logger.info("Users already exist, skipping user seed")

    if await storage.is_empty(Entity.STRATEGY_PARAMETERS):
        for name, description, key, value in SEED_PARAMETERS:
            await storage.create_strategy_parameter(StrategyParameterCreate(
                name=name, description=description, param_key=key, value=value,
            ))
            created[Entity.STRATEGY_PARAMETERS.value] += 1

    admin = await storage.get_user_by_username(ADMIN_USERNAME)
    if admin is None:
        logger.warning("No admin user; skipping seed data owned by the admin")
        return created

    if await storage.is_empty(Entity.OTA_ACCOUNTS):
        for account in SEED_OTA_ACCOUNTS:
            await storage.create_ota_account(OtaAccountCreate(user_id=admin.id, status="active", **account))
            created[Entity.OTA_ACCOUNTS.value] += 1

    if await storage.is_empty(Entity.ACTIVITIES):
        platform_ids = [a.id for a in await storage.get_ota_accounts_by_user_id(admin.id)]
        for activity in _seed_activities(platform_ids, admin.id):
            await storage.create_activity(activity)
            created[Entity.ACTIVITIES.value] += 1

    if await storage.is_empty(Entity.SETTINGS):
        await storage.create_setting(SettingCreate(
            user_id=admin.id, notifications_enabled=True, auto_refresh_interval=15,
            default_strategy_preference="balanced",
        ))
        created[Entity.SETTINGS.value] += 1

    if await storage.is_empty(Entity.API_KEYS):
        await storage.create_api_key(ApiKeyCreate(user_id=admin.id, **SAMPLE_API_KEY))
        created[Entity.API_KEYS.value] += 1

    logger.info(f"Seed complete: {created}")
    return created
