import logging

from revenue_desk.config import Settings
from revenue_desk.storage.base import Storage
from revenue_desk.storage.database import DatabaseStorage
from revenue_desk.storage.memory import MemoryStorage

logger = logging.getLogger(__name__)


async def create_storage(settings: Settings) -> Storage:
    """Build the configured backend and make sure its schema exists."""
    if settings.storage_backend == "memory":
        logger.info("Using in-memory storage (data is not persisted)")
        return MemoryStorage(session_ttl_seconds=settings.session_ttl_seconds)

    storage = DatabaseStorage.from_url(settings.database_url, session_ttl_seconds=settings.session_ttl_seconds)
    await storage.init_schema()
    return storage
