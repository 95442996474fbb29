"""
Bookmarket — Application entry point.

This is the **only** file that assembles the app. All business logic
lives in the `api/`, `services/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from bookmarket.api.v1.api import api_router
from bookmarket.api.v1.endpoints.auth import limiter
from bookmarket.core.config import settings
from bookmarket.core.exceptions import register_exception_handlers
from bookmarket.db.base import Base
from bookmarket.db.repository import BookRepository, UserRepository
from bookmarket.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from bookmarket.models.book import Book  # noqa: F401
from bookmarket.models.user import Role
from bookmarket.services.book_content import BookContentStore
from bookmarket.services.book_inventory import BookInventory
from bookmarket.services.user_directory import UserDirectory

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Seed the owner account on first run
    async with async_session_factory() as session:
        users = UserRepository(session)
        if await users.find_by_email(settings.FIRST_OWNER_EMAIL) is None:
            directory = UserDirectory(
                users,
                BookInventory(BookRepository(session), BookContentStore(settings.STORAGE_ROOT)),
            )
            await directory.create_user(
                "Owner",
                settings.FIRST_OWNER_EMAIL,
                settings.FIRST_OWNER_PASSWORD,
                role=Role.OWNER,
            )
            logger.info(
                "Default owner created: %s (password: <redacted>)",
                settings.FIRST_OWNER_EMAIL,
            )

    logger.info("📚 Bookmarket v%s started (PDF storage at %s)", settings.VERSION, settings.STORAGE_ROOT)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Book marketplace with PDF uploads and simulated purchases",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    @application.get("/health", tags=["system"])
    async def health_check() -> dict:
        return {"status": "healthy", "service": "bookmarket", "version": settings.VERSION}

    # Mount API
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
