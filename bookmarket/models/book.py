"""
Book model — marketplace listings owned by a seller.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import Column, Date, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from bookmarket.db.base import Base


class Book(Base):
    __tablename__ = "books"

    id: str = Column(String(32), primary_key=True)  # type: ignore[assignment]
    title: str = Column(String(500), nullable=False, index=True)  # type: ignore[assignment]
    authors: str = Column(String(500), nullable=False)  # type: ignore[assignment]
    pages: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    publication_date: date = Column(Date, nullable=False, index=True)  # type: ignore[assignment]
    publisher: str = Column(String(300), nullable=False)  # type: ignore[assignment]
    price: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    seller_id: str = Column(  # type: ignore[assignment]
        String(32), ForeignKey("users.id"), nullable=False, index=True
    )

    # Only loaded on request (``get_book_by_id(..., populate_seller=True)``).
    seller = relationship("User", lazy="raise")
