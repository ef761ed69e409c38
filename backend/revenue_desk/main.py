"""
OTA Revenue Desk — FastAPI Backend
Data access for hotel revenue management across OTA platforms (Ctrip, Meituan, Fliggy).
Storage is SQL (SQLite / PostgreSQL / MySQL) or in-memory, chosen by STORAGE_BACKEND.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from revenue_desk.config import Settings, get_settings
from revenue_desk.errors import register_exception_handlers
from revenue_desk.routers import accounts, activities, auth, catalog, strategies, settings as settings_router
from revenue_desk.services.auth_service import AuthGateway
from revenue_desk.services.seed_service import seed_defaults
from revenue_desk.sessions import SessionStore
from revenue_desk.storage.factory import create_storage

logger = logging.getLogger(__name__)

SERVICE_NAME = "OTA Revenue Desk"


async def _prune_sessions_periodically(store: SessionStore, interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await store.prune_expired()
            if removed:
                logger.info(f"Pruned {removed} expired sessions")
        except Exception as e:
            # Keep the sweeper alive; the next pass retries
            logger.error(f"Session prune failed: {e}", exc_info=True)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(level=settings.log_level.upper())
        logger.info(f"Starting {SERVICE_NAME} ({settings.storage_backend} storage)...")
        storage = await create_storage(settings)
        app.state.settings = settings
        app.state.storage = storage
        app.state.gateway = AuthGateway(storage, verify_passwords=settings.verify_passwords)
        if not settings.verify_passwords:
            logger.warning("VERIFY_PASSWORDS is off: any password is accepted for an existing username.")

        if settings.seed_on_startup:
            await seed_defaults(storage, settings.seed_password)

        pruner = asyncio.create_task(
            _prune_sessions_periodically(storage.session_store, settings.session_prune_interval_seconds)
        )
        try:
            yield
        finally:
            logger.info("Shutting down...")
            pruner.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pruner
            await storage.close()

    app = FastAPI(
        title=SERVICE_NAME,
        description="Users, OTA accounts, promotions and pricing strategies for hotel revenue management",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # ── Auth (register/login public) ──────────────────────────────────
    app.include_router(auth.router, prefix="/api")

    # ── Resources (each endpoint requires a session) ──────────────────
    app.include_router(accounts.router, prefix="/api/ota-accounts", tags=["OTA Accounts"])
    app.include_router(activities.router, prefix="/api/activities", tags=["Activities"])
    app.include_router(strategies.router, prefix="/api/strategies", tags=["Strategies"])
    app.include_router(settings_router.router, prefix="/api/settings", tags=["Settings"])
    app.include_router(catalog.parameters_router, prefix="/api/strategy-parameters", tags=["Strategy Catalog"])
    app.include_router(catalog.templates_router, prefix="/api/strategy-templates", tags=["Strategy Catalog"])

    @app.get("/api/health")
    async def health_check(request: Request):
        ok = await request.app.state.storage.ping()
        return {
            "status": "healthy" if ok else "degraded",
            "service": SERVICE_NAME,
            "storage": settings.storage_backend,
            "database": "connected" if ok else "disconnected",
        }

    return app


app = create_app()
