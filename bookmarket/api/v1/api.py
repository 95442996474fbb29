"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from bookmarket.api.v1.endpoints import auth, books, users

api_router = APIRouter()

# Registration, login, profile
api_router.include_router(auth.router)

# Accounts, roles, seller catalogues
api_router.include_router(users.router)

# Catalogue, PDFs, purchases
api_router.include_router(books.router)
