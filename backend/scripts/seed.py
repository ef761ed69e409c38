#!/usr/bin/env python3
"""
Create the schema and load the sample hotel group data (users, OTA accounts,
activities, strategy weights, settings). Tables that already hold rows are left alone.
Seeded users share SEED_PASSWORD from .env (default "admin").
Run from backend/: python -m scripts.seed
"""
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


async def main():
    from revenue_desk.config import get_settings
    from revenue_desk.services.seed_service import seed_defaults
    from revenue_desk.storage.factory import create_storage

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    if settings.storage_backend != "database":
        print("Error: seeding only makes sense with STORAGE_BACKEND=database")
        sys.exit(1)

    storage = await create_storage(settings)
    try:
        created = await seed_defaults(storage, settings.seed_password)
    finally:
        await storage.close()

    if not any(created.values()):
        print("All tables already hold data; nothing seeded.")
        return
    for table, count in created.items():
        if count:
            print(f"Seeded {count} row(s) into {table}")


if __name__ == "__main__":
    asyncio.run(main())
