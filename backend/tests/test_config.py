"""
Tests for application configuration and settings validation.
"""

import os
import pytest
from unittest.mock import patch
from cryptography.fernet import Fernet


def test_settings_loads_defaults():
    """Settings should load with sensible defaults in development."""
    # Clear the lru_cache so we get a fresh Settings instance
    from revenue_desk.config import get_settings
    get_settings.cache_clear()

    with patch.dict(os.environ, {
        "ENVIRONMENT": "development",
        "DATABASE_URL": "sqlite+aiosqlite:///./test.db",
    }, clear=False):
        get_settings.cache_clear()
        settings = get_settings()
        assert settings.environment == "development"
        assert settings.is_production is False
        assert settings.session_cookie_name == "sid"
        assert settings.session_ttl_seconds == 86400
        assert settings.verify_passwords is True
        assert settings.session_cookie_secure is False
        get_settings.cache_clear()


def test_settings_cors_origin_list():
    """CORS origins string should be split into a list."""
    from revenue_desk.config import get_settings
    get_settings.cache_clear()

    with patch.dict(os.environ, {
        "ENVIRONMENT": "development",
        "CORS_ORIGINS": "http://localhost:3000, http://example.com",
    }, clear=False):
        get_settings.cache_clear()
        settings = get_settings()
        origins = settings.cors_origin_list
        assert len(origins) == 2
        assert "http://localhost:3000" in origins
        assert "http://example.com" in origins
        get_settings.cache_clear()


@pytest.mark.parametrize("url, expected", [
    ("mysql://root:pw@db:3306/hotel", "mysql+aiomysql://root:pw@db:3306/hotel"),
    ("postgresql://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
    ("postgres://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
    ("sqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
    ("sqlite+aiosqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
])
def test_database_url_uses_async_driver(url, expected):
    from revenue_desk.config import Settings
    assert Settings(database_url=url).database_url == expected


@pytest.mark.parametrize("url, expected", [
    ("postgresql+asyncpg://u:p@db.rlwy.net:5432/railway", {"timeout": 30}),
    ("postgresql+asyncpg://u:p@host/db", {"timeout": 30}),
    ("mysql+aiomysql://root:pw@db:3306/hotel", {"connect_timeout": 30}),
    ("sqlite+aiosqlite:///./local.db", {"timeout": 30}),
])
def test_connect_args_never_disable_certificate_checks(url, expected):
    from revenue_desk.database import _get_connect_args
    assert _get_connect_args(url) == expected


def test_unknown_storage_backend_rejected():
    from revenue_desk.config import Settings
    with pytest.raises(ValueError, match="STORAGE_BACKEND"):
        Settings(storage_backend="redis")


def test_production_requires_encryption_key():
    """Production mode should refuse to start without an encryption key."""
    from revenue_desk.config import Settings
    with pytest.raises(ValueError, match="ENCRYPTION_KEY must be set"):
        Settings(
            environment="production",
            encryption_key="",
            database_url="postgresql+asyncpg://prod-host/db",
        )


def test_production_refuses_password_bypass():
    from revenue_desk.config import Settings
    with pytest.raises(ValueError, match="VERIFY_PASSWORDS"):
        Settings(
            environment="production",
            encryption_key=Fernet.generate_key().decode(),
            verify_passwords=False,
            database_url="postgresql+asyncpg://prod-host/db",
        )


def test_production_refuses_default_seed_password():
    from revenue_desk.config import Settings
    with pytest.raises(ValueError, match="SEED_PASSWORD"):
        Settings(
            environment="production",
            encryption_key=Fernet.generate_key().decode(),
            seed_on_startup=True,
            database_url="postgresql+asyncpg://prod-host/db",
        )


def test_production_accepts_complete_config():
    """Production mode should accept a real key with password checks on."""
    from revenue_desk.config import Settings
    key = Fernet.generate_key().decode()
    settings = Settings(
        environment="production",
        encryption_key=key,
        database_url="postgresql+asyncpg://prod-host/db",
    )
    assert settings.is_production is True
    assert settings.session_cookie_secure is True
    assert settings.encryption_key == key
