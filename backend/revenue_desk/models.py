"""
OTA Revenue Desk — Database Models
Table and column names match the existing production schema; do not rename.
"""

from datetime import datetime
from sqlalchemy import (
    String, Text, Float, Integer, Boolean, DateTime, JSON, ForeignKey, Index,
)
from sqlalchemy.dialects.mysql import DATETIME as MYSQL_DATETIME
from sqlalchemy.orm import Mapped, mapped_column
from revenue_desk.database import Base
from revenue_desk.utils import utcnow

# Microsecond precision on MySQL so successive updates keep ordered timestamps
Timestamp = DateTime().with_variant(MYSQL_DATETIME(fsp=6), "mysql")


# ══════════════════════════════════════════════════════════════════════
#  USERS
# ══════════════════════════════════════════════════════════════════════

class User(Base):
    """Revenue-management staff account."""
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)  # bcrypt hash
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="manager")  # admin, manager, user
    hotel: Mapped[str] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, onupdate=utcnow)


# ══════════════════════════════════════════════════════════════════════
#  OTA ACCOUNTS — Logins for Ctrip, Meituan, Fliggy, ...
# ══════════════════════════════════════════════════════════════════════

class OtaAccount(Base):
    __tablename__ = "ota_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    short_name: Mapped[str] = mapped_column(Text, nullable=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)
    account_type: Mapped[str] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=True, default="active")
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_ota_accounts_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )


# ══════════════════════════════════════════════════════════════════════
#  ACTIVITIES — Promotions offered by an OTA platform
# ══════════════════════════════════════════════════════════════════════

class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    platform_id: Mapped[int] = mapped_column(Integer, ForeignKey("ota_accounts.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=True)
    start_date: Mapped[datetime] = mapped_column(Timestamp, nullable=True)
    end_date: Mapped[datetime] = mapped_column(Timestamp, nullable=True)
    discount: Mapped[str] = mapped_column(Text, nullable=True)  # e.g. "8.5折"
    commission_rate: Mapped[str] = mapped_column(Text, nullable=True)  # e.g. "8%"
    room_types: Mapped[list] = mapped_column(JSON, nullable=True)
    minimum_stay: Mapped[int] = mapped_column(Integer, nullable=True)
    max_booking_window: Mapped[int] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=True, default="active")
    tag: Mapped[str] = mapped_column(Text, nullable=True)
    participation_status: Mapped[str] = mapped_column(String(50), nullable=True, default="pending")
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_activities_platform_id", "platform_id"),
        Index("ix_activities_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )


# ══════════════════════════════════════════════════════════════════════
#  STRATEGIES — Generated recommendations; applied when applied_at is set
# ══════════════════════════════════════════════════════════════════════

class Strategy(Base):
    __tablename__ = "strategies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=True)
    platform_id: Mapped[int] = mapped_column(Integer, ForeignKey("ota_accounts.id"), nullable=True)
    activity_id: Mapped[int] = mapped_column(Integer, ForeignKey("activities.id"), nullable=True)
    recommendation: Mapped[str] = mapped_column(Text, nullable=True)
    reasoning: Mapped[str] = mapped_column(Text, nullable=True)
    expected_outcome: Mapped[str] = mapped_column(Text, nullable=True)
    # {"future_booking_weight": 7.0, ...}
    parameters_used: Mapped[dict] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=True, default="draft")
    applied_at: Mapped[datetime] = mapped_column(Timestamp, nullable=True)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_strategies_user_id", "user_id"),
        Index("ix_strategies_applied_at", "applied_at"),
        {"sqlite_autoincrement": True},
    )


# ══════════════════════════════════════════════════════════════════════
#  API KEYS — Per-user keys for external LLM services (encrypted at rest)
# ══════════════════════════════════════════════════════════════════════

class ApiKey(Base):
    __tablename__ = "api_keys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    service: Mapped[str] = mapped_column(String(100), nullable=False)
    encrypted_key: Mapped[str] = mapped_column(Text, nullable=False)
    model: Mapped[str] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_api_keys_user_id_service", "user_id", "service"),
        {"sqlite_autoincrement": True},
    )


# ══════════════════════════════════════════════════════════════════════
#  SETTINGS — One row per user
# ══════════════════════════════════════════════════════════════════════

class Setting(Base):
    __tablename__ = "settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, nullable=True, default=True)
    auto_refresh_interval: Mapped[int] = mapped_column(Integer, nullable=True, default=30)  # seconds
    default_strategy_preference: Mapped[str] = mapped_column(String(50), nullable=True, default="balanced")
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, onupdate=utcnow)


# ══════════════════════════════════════════════════════════════════════
#  STRATEGY PARAMETERS / TEMPLATES — Global, not user-scoped
# ══════════════════════════════════════════════════════════════════════

class StrategyParameter(Base):
    __tablename__ = "strategy_parameters"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=True)
    param_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, onupdate=utcnow)


class StrategyTemplate(Base):
    __tablename__ = "strategy_templates"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=True)
    template_text: Mapped[str] = mapped_column(Text, nullable=False)
    # Placeholder names the template expects, e.g. ["future_booking_weight"]
    parameters: Mapped[list] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, onupdate=utcnow)


# ══════════════════════════════════════════════════════════════════════
#  SESSIONS — Server-side session binding (session id → user id)
# ══════════════════════════════════════════════════════════════════════

class SessionRecord(Base):
    __tablename__ = "sessions"

    sid: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(Timestamp, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow)

    __table_args__ = (
        Index("ix_sessions_expires_at", "expires_at"),
    )
