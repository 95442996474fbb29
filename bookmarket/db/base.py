"""Declarative base shared by all ORM models."""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    # Models keep plain ``Column`` attributes with ordinary annotations.
    __allow_unmapped__ = True
