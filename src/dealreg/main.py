"""FastAPI application factory.

Creates the app with logging middleware, CORS, the standard error envelope,
lifespan wiring of the backing store and core services, and the v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.dealreg.api.errors import register_exception_handlers
from src.dealreg.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.dealreg.api.v1 import health
from src.dealreg.api.v1.router import router as v1_router
from src.dealreg.auth.admin_registry import AdminRegistry
from src.dealreg.auth.gateway import AuthGateway
from src.dealreg.auth.roles import build_role_resolver
from src.dealreg.auth.service import AuthService
from src.dealreg.config import Settings, StoreBackend, get_settings
from src.dealreg.core.errors import StoreUnavailable
from src.dealreg.deals.duplicates import DuplicateDetector
from src.dealreg.deals.lifecycle import DealLifecycle
from src.dealreg.records.repository import Repositories, ensure_schema
from src.dealreg.store.base import TabularStore
from src.dealreg.store.memory import InMemoryTabularStore

logger = structlog.get_logger(__name__)


def build_store(settings: Settings) -> TabularStore:
    """Instantiate the backing store selected by STORE_BACKEND."""
    if settings.STORE_BACKEND == StoreBackend.memory:
        return InMemoryTabularStore()

    from src.dealreg.store.sheets import GoogleSheetsStore

    return GoogleSheetsStore(
        spreadsheet_id=settings.SPREADSHEET_ID,
        service_account_file=settings.get_service_account_path(),
    )


def init_services(app: FastAPI, store: TabularStore, settings: Settings) -> None:
    """Build the core services over `store` and attach them to app.state."""
    repositories = Repositories.for_store(store)
    registry = AdminRegistry(repositories.admins)
    role_resolver = build_role_resolver(settings.admin_allowlist(), registry)
    detector = DuplicateDetector(
        repositories.deals, fail_open=settings.DUPLICATE_CHECK_FAIL_OPEN
    )

    app.state.store = store
    app.state.repositories = repositories
    app.state.admin_registry = registry
    app.state.deal_lifecycle = DealLifecycle(repositories, duplicate_detector=detector)
    app.state.auth_gateway = AuthGateway(repositories.users, role_resolver)
    app.state.auth_service = AuthService(repositories, role_resolver)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build the store, bootstrap headers, wire services."""
    settings = get_settings()
    configure_structlog()

    store = build_store(settings)
    try:
        await ensure_schema(store)
    except StoreUnavailable:
        # Readiness reports the store as degraded until it answers
        logger.warning("store.bootstrap_failed", backend=settings.STORE_BACKEND.value, exc_info=True)

    init_services(app, store, settings)
    logger.info(
        "app.started",
        environment=settings.ENVIRONMENT.value,
        store_backend=settings.STORE_BACKEND.value,
    )

    yield

    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Deal Registration API",
        version="0.1.0",
        description="Partner deal registration with duplicate detection and admin review",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)

    # Liveness/readiness stay outside the versioned prefix for the platform probes
    app.include_router(health.router)
    app.include_router(v1_router)

    return app


# Module-level app for uvicorn
app = create_app()
