"""Pydantic schemas for User CRUD."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_serializer, field_validator

from bookmarket.models.user import Role, User

_EMAIL_RE = re.compile(r"^[\w\-.+]+@([\w-]+\.)+[\w-]{2,}$")


def _normalise_email(v: str) -> str:
    v = v.strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError(f"'{v}' is not a valid email!")
    return v


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str
    password: str = Field(min_length=8, max_length=40)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalise_email(v)


class UserSelfUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: str | None = None
    password: str | None = Field(default=None, min_length=8, max_length=40)
    phone: str | None = Field(default=None, max_length=30)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return None if v is None else _normalise_email(v)


class RoleUpdate(BaseModel):
    role: Role

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v: object) -> Role:
        return Role.parse(v)


class UserDates(BaseModel):
    last_seen: datetime | None
    joined: datetime | None


class UserDetails(BaseModel):
    role: Role
    balance: float | None = None
    books_sold: int
    purchased_books: list[str] | None = None
    dates: UserDates

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v: object) -> Role:
        return Role.parse(v)

    @field_serializer("role")
    def _role_name(self, role: Role) -> str:
        return role.name.lower()


class UserRead(BaseModel):
    """User as returned by the API; private fields are ``None`` unless shown."""

    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    details: UserDetails

    @classmethod
    def from_user(cls, user: User, show_private: bool = False) -> UserRead:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email if show_private else None,
            phone=user.phone if show_private else None,
            details=UserDetails(
                role=Role(user.role),
                balance=user.balance if show_private else None,
                books_sold=user.books_sold,
                purchased_books=list(user.purchased_books or []) if show_private else None,
                dates=UserDates(last_seen=user.last_seen, joined=user.joined),
            ),
        )
