"""Pydantic schemas for books and their seller reference."""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator

from bookmarket.models.book import Book

_DATE_FORMATS = ("%m/%d/%Y", "%d-%m-%Y", "%Y/%m/%d")


def parse_publication_date(v: object) -> object:
    """Accept ISO dates/timestamps and the ``M/D/YYYY`` form used in catalogue exports."""
    if not isinstance(v, str):
        return v
    v = v.strip()
    try:
        return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(v, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"'{v}' is not a valid date")


class BookBase(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    authors: str = Field(min_length=1, max_length=500)
    pages: int = Field(gt=0)
    publication_date: date
    publisher: str = Field(min_length=1, max_length=300)
    price: float = Field(ge=0)

    @field_validator("publication_date", mode="before")
    @classmethod
    def _publication_date(cls, v: object) -> object:
        return parse_publication_date(v)


class BookCreate(BookBase):
    pass


class BookCSVRow(BookBase):
    """One row of a bulk-import CSV (``numPages``/``publicationDate`` headers)."""

    pages: int = Field(gt=0, alias="numPages")
    publication_date: date = Field(alias="publicationDate")

    model_config = {"populate_by_name": True}


class BookUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    authors: str | None = Field(default=None, min_length=1, max_length=500)
    pages: int | None = Field(default=None, gt=0)
    publication_date: date | None = None
    publisher: str | None = Field(default=None, min_length=1, max_length=300)
    price: float | None = Field(default=None, ge=0)

    @field_validator("publication_date", mode="before")
    @classmethod
    def _publication_date(cls, v: object) -> object:
        return parse_publication_date(v)


# ── Seller reference ────────────────────────────────────────────────
class UnresolvedSeller(BaseModel):
    kind: Literal["unresolved"] = "unresolved"
    id: str


class ResolvedSeller(BaseModel):
    kind: Literal["resolved"] = "resolved"
    id: str
    name: str


SellerRef = Annotated[Union[UnresolvedSeller, ResolvedSeller], Field(discriminator="kind")]


class BookRead(BaseModel):
    id: str
    title: str
    authors: str
    pages: int
    publication_date: date
    publisher: str
    price: float
    seller: SellerRef

    @classmethod
    def from_book(cls, book: Book, seller_name: str | None = None) -> BookRead:
        if seller_name is None:
            seller: UnresolvedSeller | ResolvedSeller = UnresolvedSeller(id=book.seller_id)
        else:
            seller = ResolvedSeller(id=book.seller_id, name=seller_name)
        return cls(
            id=book.id,
            title=book.title,
            authors=book.authors,
            pages=book.pages,
            publication_date=book.publication_date,
            publisher=book.publisher,
            price=book.price,
            seller=seller,
        )
