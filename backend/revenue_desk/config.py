import logging
from pydantic_settings import BaseSettings
from pydantic import model_validator, ConfigDict
from functools import lru_cache

logger = logging.getLogger(__name__)

_ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "mysql://": "mysql+aiomysql://",
    "sqlite://": "sqlite+aiosqlite://",
}

DEFAULT_SEED_PASSWORD = "admin"


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment: "development" or "production"
    environment: str = "development"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./revenue_desk.db"

    @model_validator(mode="before")
    @classmethod
    def _fix_database_url_for_async_driver(cls, values: dict) -> dict:
        """Hosted databases hand out sync URLs (mysql://, postgresql://); the engine needs the async driver."""
        if not isinstance(values, dict):
            return values
        url = values.get("database_url") or ""
        for prefix, async_prefix in _ASYNC_DRIVERS.items():
            if url.startswith(prefix):
                values["database_url"] = url.replace(prefix, async_prefix, 1)
                break
        return values

    # "database" (durable, SQLAlchemy) or "memory" (volatile, dev/tests)
    storage_backend: str = "database"

    session_cookie_name: str = "sid"
    session_ttl_seconds: int = 86400
    session_prune_interval_seconds: int = 86400

    # Off reproduces the legacy login that accepted any password for a known username
    verify_passwords: bool = True

    encryption_key: str = ""

    seed_on_startup: bool = False
    seed_password: str = DEFAULT_SEED_PASSWORD

    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":
        """Enforce that critical secrets are set when running in production."""
        if self.storage_backend not in ("database", "memory"):
            raise ValueError(
                f"STORAGE_BACKEND must be 'database' or 'memory', got {self.storage_backend!r}"
            )
        if self.is_production:
            if not self.encryption_key:
                raise ValueError(
                    "ENCRYPTION_KEY must be set in production. "
                    "Generate one with: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
                )
            if not self.verify_passwords:
                raise ValueError("VERIFY_PASSWORDS cannot be disabled in production.")
            if self.seed_on_startup and self.seed_password == DEFAULT_SEED_PASSWORD:
                raise ValueError("SEED_PASSWORD must be changed before seeding a production database.")
            if self.storage_backend == "memory":
                logger.warning("STORAGE_BACKEND=memory in production: all data is lost on restart.")
            if "localhost" in self.database_url:
                logger.warning("DATABASE_URL appears to point at localhost in production.")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def session_cookie_secure(self) -> bool:
        return self.is_production

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
