"""
Book inventory — CRUD, search, sorting and pagination of listings.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import joinedload

from bookmarket.db.repository import BookRepository, like_pattern
from bookmarket.models.book import Book
from bookmarket.models.user import User
from bookmarket.services.book_content import BookContentStore
from bookmarket.utils.ids import generate_id
from bookmarket.utils.pagination import clamp_page

logger = logging.getLogger(__name__)

BOOK_SORTS = {
    "recent": (Book.publication_date.desc(),),
    "smallest": (Book.pages.asc(),),
    "biggest": (Book.pages.desc(),),
    "cheapest": (Book.price.asc(),),
    "mostExpensive": (Book.price.desc(),),
}
DEFAULT_BOOK_SORT = "recent"

UPDATABLE_FIELDS = ("title", "authors", "pages", "publication_date", "publisher", "price")


class BookInventory:
    def __init__(self, books: BookRepository, content: BookContentStore) -> None:
        self.books = books
        self.content = content

    async def create_book(self, data: dict[str, Any]) -> Book:
        book = Book(id=data.get("id") or generate_id(), **{k: v for k, v in data.items() if k != "id"})
        book = await self.books.insert(book)
        logger.info("Created book %s (%s) for seller %s", book.id, book.title, book.seller_id)
        return book

    async def list_books(
        self,
        search: str | None = None,
        sort: str | None = DEFAULT_BOOK_SORT,
        page: int | None = 1,
        limit: int | None = 10,
    ) -> list[Book]:
        where = []
        if search:
            pattern = like_pattern(search)
            where.append(
                or_(
                    Book.title.ilike(pattern, escape="\\"),
                    Book.authors.ilike(pattern, escape="\\"),
                    Book.publisher.ilike(pattern, escape="\\"),
                    cast(Book.price, String).ilike(pattern, escape="\\"),
                    Book.seller_id.ilike(pattern, escape="\\"),
                )
            )
        order_by = BOOK_SORTS.get(sort or DEFAULT_BOOK_SORT, BOOK_SORTS[DEFAULT_BOOK_SORT])
        page_num, limit_num = clamp_page(page, limit)
        return await self.books.find_many(
            *where,
            order_by=(*order_by, Book.id.desc()),
            skip=(page_num - 1) * limit_num,
            limit=limit_num,
        )

    async def get_books_by_seller(
        self, seller_id: str, page: int | None = None, limit: int | None = None
    ) -> list[Book]:
        if page is None and limit is None:
            return await self.books.find_many(Book.seller_id == seller_id, order_by=(Book.id,))
        page_num, limit_num = clamp_page(page, limit)
        return await self.books.find_many(
            Book.seller_id == seller_id,
            order_by=(Book.id,),
            skip=(page_num - 1) * limit_num,
            limit=limit_num,
        )

    async def get_book_by_id(self, book_id: str, populate_seller: bool = False) -> Book | None:
        if populate_seller:
            return await self.books.find_by_id(
                book_id, joinedload(Book.seller).load_only(User.id, User.name)
            )
        return await self.books.find_by_id(book_id)

    async def update_book(self, existing: Book, patch: dict[str, Any]) -> Book | None:
        book = await self.books.find_by_id(existing.id)
        if book is None:
            return None
        for field in UPDATABLE_FIELDS:
            if field in patch:
                setattr(book, field, patch[field])
        # seller is immutable once the listing exists
        book.seller_id = existing.seller_id
        book = await self.books.save(book)
        logger.info("Updated book %s", book.id)
        return book

    async def delete_book(self, book_id: str) -> bool:
        book = await self.books.find_by_id(book_id)
        if book is not None:
            await self.content.delete_book_pdf(book.seller_id, book.id)
        deleted = await self.books.delete_by_id(book_id)
        if deleted:
            logger.info("Deleted book %s", book_id)
        return deleted
