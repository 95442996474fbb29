"""
Auth endpoints — registration, login (OAuth2 password flow) & profile.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from slowapi import Limiter
from slowapi.util import get_remote_address

from bookmarket.api.v1.deps import get_current_user, get_user_directory
from bookmarket.core.config import settings
from bookmarket.core.security import create_access_token, verify_password
from bookmarket.models.user import User
from bookmarket.schemas.token import Token
from bookmarket.schemas.user import UserCreate, UserRead
from bookmarket.services.user_directory import UserDirectory

# Rate limiter — keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/register", response_model=Token, status_code=201)
async def register(
    body: UserCreate,
    directory: UserDirectory = Depends(get_user_directory),
) -> Token:
    """Create an account and return an access token. Duplicate emails give 409."""
    user = await directory.create_user(body.name, body.email, body.password)
    return Token(access_token=create_access_token(user.id, user.name, user.email))


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    directory: UserDirectory = Depends(get_user_directory),
) -> Token:
    """Authenticate with email (``username`` field) and password."""
    user = await directory.get_user_by_email(form_data.username.lower().strip())
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User Not Found")

    if not verify_password(form_data.password, user.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    await directory.touch_last_seen(user)
    return Token(access_token=create_access_token(user.id, user.name, user.email))


@router.get("/@me", response_model=UserRead)
async def read_current_user(
    current_user: User = Depends(get_current_user),
) -> UserRead:
    """Return the full profile of the authenticated user."""
    return UserRead.from_user(current_user, show_private=True)
