"""
Domain errors and global exception handlers.

Every failure leaves the API as ``{"success": false, "message": ...}``;
unexpected errors are logged in full and reported as an opaque 500.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class BookmarketError(Exception):
    """Base class for errors that map to a fixed status and message."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(BookmarketError):
    status_code = 400
    message = "Invalid data"


class ConflictError(BookmarketError):
    status_code = 409
    message = "Resource already exists"


class InvalidFileError(BookmarketError):
    status_code = 415
    message = "Invalid file"


class ContentMismatchError(BookmarketError):
    status_code = 400
    message = "Informations don't match"


class PaymentDeclinedError(BookmarketError):
    status_code = 402
    message = "3032 | Sorry, the payment cannot be completed now."


class AlreadyPurchasedError(BookmarketError):
    status_code = 409
    message = "Book already purchased"


class SellerNotFoundError(BookmarketError):
    status_code = 404
    message = "Seller not found"


# ── Handlers ────────────────────────────────────────────────────────
def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


async def _domain_error_handler(_request: Request, exc: BookmarketError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Domain error: %s", exc, exc_info=True)
    return _failure(exc.status_code, exc.message)


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return _failure(400, ValidationError.message)
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return _failure(400, f"{field or 'body'} - {first.get('msg', 'invalid value')}")


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return _failure(409, "Database constraint violation")


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return _failure(500, "Internal database error")


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return _failure(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(BookmarketError, _domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
