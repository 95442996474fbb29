"""
Document-store style repositories over async SQLAlchemy.

Each write is its own commit; no multi-row transactions are used. Store
constraint violations surface as ``ValidationError`` (missing/invalid
fields) or ``ConflictError`` (duplicate unique key).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from bookmarket.core.exceptions import ConflictError, ValidationError
from bookmarket.db.base import Base
from bookmarket.models.book import Book
from bookmarket.models.user import User

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

_UNIQUE_MARKERS = ("unique", "duplicate")


def like_pattern(search: str) -> str:
    """Substring pattern for ``ilike(..., escape="\\\\")``."""
    # Escape SQL LIKE metacharacters to prevent wildcard injection
    safe = search.replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")
    return f"%{safe}%"


def _translate_integrity_error(exc: IntegrityError) -> Exception:
    reason = str(exc.orig).lower()
    if any(marker in reason for marker in _UNIQUE_MARKERS):
        return ConflictError()
    return ValidationError(str(exc.orig))


class Repository(Generic[ModelT]):
    """CRUD + filtered/sorted/paginated queries for one collection."""

    model: type[ModelT]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, obj: ModelT) -> ModelT:
        self.session.add(obj)
        await self._commit()
        await self.session.refresh(obj)
        return obj

    async def find_by_id(self, obj_id: str, *options: Any) -> ModelT | None:
        query = select(self.model).where(self.model.id == obj_id)  # type: ignore[attr-defined]
        if options:
            query = query.options(*options)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_one(self, *where: ColumnElement[bool]) -> ModelT | None:
        result = await self.session.execute(select(self.model).where(*where).limit(1))
        return result.scalar_one_or_none()

    async def find_many(
        self,
        *where: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        skip: int | None = None,
        limit: int | None = None,
    ) -> list[ModelT]:
        query = select(self.model).where(*where).order_by(*order_by)
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def save(self, obj: ModelT) -> ModelT:
        """Persist in-place changes of an already loaded object."""
        self.session.add(obj)
        await self._commit()
        return obj

    async def delete_by_id(self, obj_id: str) -> bool:
        result = await self.session.execute(
            delete(self.model).where(self.model.id == obj_id)  # type: ignore[attr-defined]
        )
        await self.session.commit()
        return result.rowcount > 0

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.info("Rejected %s write: %s", self.model.__name__, exc.orig)
            raise _translate_integrity_error(exc) from exc


class UserRepository(Repository[User]):
    model = User

    async def find_by_email(self, email: str) -> User | None:
        return await self.find_one(User.email == email)


class BookRepository(Repository[Book]):
    model = Book
