"""
Shared test fixtures for the Bookmarket test suite.

Async support via aiosqlite + AsyncSession; every test gets a fresh
in-memory database and its own PDF storage directory.
"""

import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, datetime
from io import BytesIO

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-the-bookmarket-suite"

from httpx import ASGITransport, AsyncClient
from pypdf import PdfWriter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bookmarket.api.v1.deps import get_content_store, get_db, get_payment_gateway
from bookmarket.core.security import create_access_token
from bookmarket.db.base import Base
from bookmarket.db.repository import BookRepository, UserRepository
from bookmarket.main import app
from bookmarket.models.book import Book
from bookmarket.models.user import Role, User
from bookmarket.services.book_content import BookContentStore
from bookmarket.services.book_inventory import BookInventory
from bookmarket.services.purchase import SimulatedPaymentGateway
from bookmarket.services.user_directory import UserDirectory


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database with all tables created."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    await test_engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def content_store(tmp_path) -> BookContentStore:
    return BookContentStore(tmp_path / "storage")


@pytest.fixture
def gateway() -> SimulatedPaymentGateway:
    """Payment gateway that never declines; tests may raise ``failure_rate``."""
    return SimulatedPaymentGateway(failure_rate=0.0)


@pytest.fixture
def users(db_session) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def inventory(db_session, content_store) -> BookInventory:
    return BookInventory(BookRepository(db_session), content_store)


@pytest.fixture
def directory(users, inventory) -> UserDirectory:
    return UserDirectory(users, inventory)


@pytest.fixture
async def async_client(
    session_factory, content_store, gateway
) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_content_store] = lambda: content_store
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Factories ───────────────────────────────────────────────────────
@pytest.fixture
def make_user(directory) -> Callable[..., Awaitable[User]]:
    counter = {"n": 0}

    async def _make(role: Role = Role.USER, name: str | None = None) -> User:
        counter["n"] += 1
        n = counter["n"]
        return await directory.create_user(
            name or f"User {n}", f"user{n}@example.com", "password123", role=role
        )

    return _make


@pytest.fixture
def make_book(inventory) -> Callable[..., Awaitable[Book]]:
    async def _make(seller: User, **overrides) -> Book:
        data = {
            "title": "T",
            "authors": "A",
            "pages": 10,
            "publication_date": date(2020, 1, 1),
            "publisher": "P",
            "price": 25.5,
            "seller_id": seller.id,
        }
        data.update(overrides)
        return await inventory.create_book(data)

    return _make


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.name, user.email)
    return {"Authorization": f"Bearer {token}"}


def make_pdf(
    author: str = "A",
    title: str = "T",
    pages: int = 10,
    producer: str = "P",
    created: datetime | str = datetime(2020, 1, 1, 12, 0, 0),
) -> bytes:
    """Build a blank PDF carrying the given document metadata."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    if isinstance(created, datetime):
        created = created.strftime("D:%Y%m%d%H%M%S")
    writer.add_metadata(
        {
            "/Author": author,
            "/Title": title,
            "/Producer": producer,
            "/CreationDate": created,
        }
    )
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()
