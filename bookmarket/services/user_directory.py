"""
User directory — account CRUD, listing and cascade deletion.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from bookmarket.core.security import get_password_hash
from bookmarket.db.repository import UserRepository, like_pattern
from bookmarket.models.user import Role, User
from bookmarket.services.book_inventory import BookInventory
from bookmarket.utils.ids import generate_id
from bookmarket.utils.pagination import clamp_page

logger = logging.getLogger(__name__)

USER_SORTS = {
    "recent": (User.joined.desc(),),
    "lastSeen": (User.last_seen.desc(),),
    "famous": (User.books_sold.desc(),),
}
DEFAULT_USER_SORT = "recent"


class UserDirectory:
    def __init__(self, users: UserRepository, inventory: BookInventory) -> None:
        self.users = users
        self.inventory = inventory

    async def create_user(
        self, name: str, email: str, password: str, role: Role = Role.USER
    ) -> User:
        now = datetime.now(timezone.utc)
        user = User(
            id=generate_id(),
            name=name,
            email=email,
            password=get_password_hash(password),
            phone=None,
            role=int(role),
            balance=0.0,
            books_sold=0,
            purchased_books=[],
            last_seen=now,
            joined=now,
        )
        user = await self.users.insert(user)
        logger.info("Registered user %s (%s)", user.id, user.email)
        return user

    async def list_users(
        self,
        search: str | None = None,
        sort: str | None = DEFAULT_USER_SORT,
        page: int | None = 1,
        limit: int | None = 10,
    ) -> list[User]:
        where = []
        if search:
            where.append(User.name.ilike(like_pattern(search), escape="\\"))
        order_by = USER_SORTS.get(sort or DEFAULT_USER_SORT, USER_SORTS[DEFAULT_USER_SORT])
        page_num, limit_num = clamp_page(page, limit)
        return await self.users.find_many(
            *where,
            order_by=(*order_by, User.id.desc()),
            skip=(page_num - 1) * limit_num,
            limit=limit_num,
        )

    async def get_user_by_id(self, user_id: str) -> User | None:
        return await self.users.find_by_id(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        return await self.users.find_by_email(email)

    async def update_user(self, user: User, changes: dict[str, Any]) -> User:
        if changes.get("password") is not None:
            changes = {**changes, "password": get_password_hash(changes["password"])}
        for field, value in changes.items():
            setattr(user, field, value)
        return await self.users.save(user)

    async def touch_last_seen(self, user: User) -> None:
        user.last_seen = datetime.now(timezone.utc)
        await self.users.save(user)

    async def delete_user(self, user_id: str) -> bool:
        """Delete a user together with every book they sell and its PDF."""
        books = await self.inventory.get_books_by_seller(user_id)
        for book in books:
            await self.inventory.delete_book(book.id)
        await self.inventory.content.delete_seller_pdfs(user_id)
        deleted = await self.users.delete_by_id(user_id)
        if deleted:
            logger.info("Deleted user %s and %d book(s)", user_id, len(books))
        return deleted
