"""
User endpoints.

- GET operations accept an optional token; adm+ callers (or the user
  themself) see private fields.
- PATCH /users/@me updates the caller's own profile.
- PATCH /users/{id} changes a role and requires adm+; neither the granted
  role nor the target's current role may be above the caller's.
- DELETE /users/{id} is allowed to the user themself or an adm+ whose role
  is not below the target's, and cascades to every book they sell.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from bookmarket.api.v1.deps import (
    get_book_inventory,
    get_current_user,
    get_optional_user,
    get_user_directory,
    require_admin,
)
from bookmarket.core.security import create_access_token
from bookmarket.models.user import Role, User
from bookmarket.schemas.book import BookRead
from bookmarket.schemas.common import MessageResponse
from bookmarket.schemas.token import Token
from bookmarket.schemas.user import RoleUpdate, UserRead, UserSelfUpdate
from bookmarket.services.book_inventory import BookInventory
from bookmarket.services.user_directory import UserDirectory

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[UserRead])
async def list_users(
    search: str | None = None,
    sort: str | None = None,
    page: int | None = None,
    limit: int | None = None,
    directory: UserDirectory = Depends(get_user_directory),
    current_user: User | None = Depends(get_optional_user),
) -> list[UserRead]:
    show_private = current_user is not None and current_user.has_role(Role.ADM)
    users = await directory.list_users(search, sort, page, limit)
    return [UserRead.from_user(u, show_private) for u in users]


@router.patch("/@me", response_model=Token)
async def update_me(
    body: UserSelfUpdate,
    directory: UserDirectory = Depends(get_user_directory),
    current_user: User = Depends(get_current_user),
) -> Token:
    """Update name, email, password or phone; returns a fresh token."""
    user = await directory.update_user(current_user, body.model_dump(exclude_none=True))
    return Token(access_token=create_access_token(user.id, user.name, user.email))


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: str,
    directory: UserDirectory = Depends(get_user_directory),
    current_user: User | None = Depends(get_optional_user),
) -> UserRead:
    user = await directory.get_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User Not Found")
    show_private = current_user is not None and (
        current_user.id == user_id or current_user.has_role(Role.ADM)
    )
    return UserRead.from_user(user, show_private)


@router.get("/{user_id}/books", response_model=list[BookRead])
async def get_user_books(
    user_id: str,
    page: int | None = Query(default=None),
    limit: int | None = Query(default=None),
    inventory: BookInventory = Depends(get_book_inventory),
) -> list[BookRead]:
    books = await inventory.get_books_by_seller(user_id, page, limit)
    return [BookRead.from_book(b) for b in books]


@router.patch("/{user_id}", response_model=MessageResponse)
async def update_user_role(
    user_id: str,
    body: RoleUpdate,
    directory: UserDirectory = Depends(get_user_directory),
    admin: User = Depends(require_admin),
) -> MessageResponse:
    if body.role > Role(admin.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot grant a role above your own",
        )
    user = await directory.get_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User Not Found")
    if Role(user.role) > Role(admin.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot change a user above your own role",
        )

    await directory.update_user(user, {"role": int(body.role)})
    logger.info("User %s set role of %s to %s", admin.id, user_id, body.role.name)
    return MessageResponse(message="User Successfully Updated")


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    directory: UserDirectory = Depends(get_user_directory),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    if current_user.id != user_id and not current_user.has_role(Role.ADM):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access Denied")
    if current_user.id != user_id:
        target = await directory.get_user_by_id(user_id)
        if target is not None and Role(target.role) > Role(current_user.role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Cannot delete a user above your own role",
            )

    if not await directory.delete_user(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User Not Found")
    return MessageResponse(message="User Successfully Deleted")
