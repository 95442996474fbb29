"""
User model — accounts, role hierarchy and marketplace details.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import IntEnum

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String

from bookmarket.db.base import Base


class Role(IntEnum):
    """Ordered role scale; authorization checks compare with ``>=``."""

    USER = 0
    SELLER = 1
    ADM = 2
    OWNER = 3

    @classmethod
    def parse(cls, value: object) -> Role:
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and not value.isdigit():
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown role '{value}'") from None
        return cls(int(value))  # type: ignore[arg-type]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: str = Column(String(32), primary_key=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    phone: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]

    # details
    role: int = Column(Integer, nullable=False, default=int(Role.USER))  # type: ignore[assignment]
    balance: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    books_sold: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    purchased_books: list[str] = Column(JSON, nullable=False, default=list)  # type: ignore[assignment]
    last_seen: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]
    joined: datetime = Column(DateTime(timezone=True), default=_utcnow, index=True)  # type: ignore[assignment]

    def has_role(self, role: Role) -> bool:
        return Role(self.role) >= role

    def owns_book(self, book_id: str) -> bool:
        return book_id in (self.purchased_books or [])
