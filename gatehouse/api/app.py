from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from sqlalchemy import inspect

from gatehouse.api.errors import register_error_handlers
from gatehouse.api.flash import FlashMessages
from gatehouse.api.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from gatehouse.api.routers import auth, health, pages
from gatehouse.core.settings import Settings
from gatehouse.db.session import DBRuntime, create_engine_and_sessionmaker
from gatehouse.services.audit_service import AuditService
from gatehouse.services.auth_service import AuthService
from gatehouse.services.credential_store import CredentialStore
from gatehouse.services.password_hasher import PasswordHasher
from gatehouse.services.session_manager import SessionManager

logger = logging.getLogger(__name__)


def _ensure_schema(db_rt: DBRuntime, *, auto_create: bool) -> None:
    if auto_create:
        db_rt.create_schema()
        return
    if not inspect(db_rt.engine).has_table("users"):
        raise RuntimeError(
            "Database schema not initialized. Run `alembic upgrade head` (or set AUTO_CREATE_DB=1 for dev)."
        )


def _start_scheduler(app: FastAPI, settings: Settings) -> BackgroundScheduler:
    sched = BackgroundScheduler(timezone="UTC")

    def _purge_sessions():
        with app.state.db_sessionmaker() as db:
            app.state.session_manager.purge(db)

    sched.add_job(
        _purge_sessions,
        "interval",
        seconds=max(60, int(settings.session_purge_interval_s)),
        id="session_purge",
    )
    sched.start()
    return sched


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting gatehouse app...")

        if not settings.secret_key:
            raise RuntimeError("SECRET_KEY is required")

        app.state.settings = settings

        # --- DB ---
        db_rt = create_engine_and_sessionmaker(settings.database_url, echo=settings.db_echo)
        app.state.db_engine = db_rt.engine
        app.state.db_sessionmaker = db_rt.SessionLocal
        try:
            _ensure_schema(db_rt, auto_create=settings.auto_create_db)
        except Exception:
            db_rt.dispose()
            raise

        # --- Auth core ---
        hasher = PasswordHasher(
            time_cost=settings.password_time_cost,
            memory_cost=settings.password_memory_cost,
            parallelism=settings.password_parallelism,
        )
        store = CredentialStore()
        app.state.password_hasher = hasher
        app.state.credential_store = store
        app.state.auth_service = AuthService(store=store, hasher=hasher)
        app.state.session_manager = SessionManager(store=store, ttl_s=settings.session_ttl_s)
        app.state.audit_service = AuditService()
        app.state.flash = FlashMessages(settings.secret_key, secure=settings.cookie_secure)

        # --- Scheduler ---
        app.state.scheduler = _start_scheduler(app, settings) if settings.enable_scheduler else None

        try:
            yield
        finally:
            logger.info("Shutting down gatehouse app...")
            if app.state.scheduler:
                app.state.scheduler.shutdown(wait=False)
            db_rt.dispose()
            logger.info("Gatehouse app shutdown complete.")

    is_dev = settings.env.lower() in ("dev", "development", "local")
    app = FastAPI(
        title="gatehouse",
        lifespan=lifespan,
        docs_url="/docs" if is_dev else None,
        redoc_url="/redoc" if is_dev else None,
        openapi_url="/openapi.json" if is_dev else None,
    )

    # Middleware
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
    app.add_middleware(SecurityHeadersMiddleware)

    register_error_handlers(app)

    # Routers
    app.include_router(health.router)
    app.include_router(pages.router)
    app.include_router(auth.router)

    return app
