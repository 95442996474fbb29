"""
FastAPI dependencies — database session, services and auth guards.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Coroutine
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bookmarket.core.config import settings
from bookmarket.core.security import decode_access_token
from bookmarket.db.repository import BookRepository, UserRepository
from bookmarket.db.session import async_session_factory
from bookmarket.models.user import Role, User
from bookmarket.services.book_content import BookContentStore
from bookmarket.services.book_inventory import BookInventory
from bookmarket.services.purchase import PaymentGateway, SimulatedPaymentGateway
from bookmarket.services.user_directory import UserDirectory

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/login", auto_error=False
)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Services ────────────────────────────────────────────────────────
def get_content_store() -> BookContentStore:
    return BookContentStore(settings.STORAGE_ROOT)


def get_payment_gateway() -> PaymentGateway:
    return SimulatedPaymentGateway(settings.PURCHASE_FAILURE_RATE)


def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_book_inventory(
    db: AsyncSession = Depends(get_db),
    content: BookContentStore = Depends(get_content_store),
) -> BookInventory:
    return BookInventory(BookRepository(db), content)


def get_user_directory(
    users: UserRepository = Depends(get_user_repository),
    inventory: BookInventory = Depends(get_book_inventory),
) -> UserDirectory:
    return UserDirectory(users, inventory)


# ── Auth dependencies ───────────────────────────────────────────────
def _credentials_exc(detail: str = "Invalid Token.") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_user(token: str, directory: UserDirectory) -> User:
    payload = decode_access_token(token)
    if payload is None or payload.get("sub") is None:
        raise _credentials_exc()

    user = await directory.get_user_by_id(payload["sub"])
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User Not Found")

    await directory.touch_last_seen(user)
    return user


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    directory: UserDirectory = Depends(get_user_directory),
) -> User:
    """Decode the bearer JWT, look up the user and refresh their last-seen date."""
    if not token:
        raise _credentials_exc("No token provided.")
    return await _resolve_user(token, directory)


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    directory: UserDirectory = Depends(get_user_directory),
) -> User | None:
    """Like ``get_current_user`` but anonymous requests are allowed."""
    if not token:
        return None
    return await _resolve_user(token, directory)


def require_role(role: Role) -> Callable[..., Coroutine[Any, Any, User]]:
    """Only allow users whose role is at least ``role``."""

    async def _guard(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role.name.capitalize()} privileges required",
            )
        return current_user

    return _guard


require_seller = require_role(Role.SELLER)
require_admin = require_role(Role.ADM)
