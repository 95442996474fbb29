"""
Book endpoints — catalogue, CSV bulk import, PDF upload/download and purchase.

- GET /books and GET /books/{id} are public.
- POST /books (CSV import) requires seller role or above.
- PATCH, POST (PDF upload) and DELETE on /books/{id} require being the
  book's seller or adm+.
- POST /books/{id}/buy and GET /books/{id}/download require a login.
"""

from __future__ import annotations

import csv
import io
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from pydantic import ValidationError as PydanticValidationError

from bookmarket.api.v1.deps import (
    get_book_inventory,
    get_current_user,
    get_payment_gateway,
    get_user_repository,
    require_seller,
)
from bookmarket.core.config import settings
from bookmarket.core.exceptions import ValidationError
from bookmarket.db.repository import UserRepository
from bookmarket.models.book import Book
from bookmarket.models.user import Role, User
from bookmarket.schemas.book import BookCSVRow, BookRead, BookUpdate
from bookmarket.schemas.common import MessageResponse
from bookmarket.services.book_inventory import BookInventory
from bookmarket.services.pdf_validator import validate_book_pdf
from bookmarket.services.purchase import PaymentGateway, process_purchase

router = APIRouter(prefix="/books", tags=["books"])
logger = logging.getLogger(__name__)

_PDF_CONTENT_TYPES = {"application/pdf", "application/x-pdf"}


def _ensure_can_manage(book: Book, user: User) -> None:
    """Only the book's seller or an adm+ may change it."""
    if book.seller_id != user.id and not user.has_role(Role.ADM):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access Denied")


async def _get_book_or_404(inventory: BookInventory, book_id: str) -> Book:
    book = await inventory.get_book_by_id(book_id)
    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book Not Found")
    return book


def _parse_csv(raw: bytes, seller_id: str) -> list[dict]:
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationError("CSV file must be UTF-8 encoded") from exc

    rows = []
    for line_no, record in enumerate(csv.DictReader(io.StringIO(text)), start=2):
        if not any((value or "").strip() for value in record.values()):
            continue
        try:
            row = BookCSVRow.model_validate(record)
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(p) for p in first["loc"])
            raise ValidationError(f"Line {line_no}: {field} - {first['msg']}") from exc
        rows.append({**row.model_dump(), "seller_id": seller_id})
    return rows


# ── Catalogue ───────────────────────────────────────────────────────
@router.get("", response_model=list[BookRead])
async def list_books(
    search: str | None = None,
    sort: str | None = None,
    page: int | None = None,
    limit: int | None = None,
    inventory: BookInventory = Depends(get_book_inventory),
) -> list[BookRead]:
    books = await inventory.list_books(search, sort, page, limit)
    return [BookRead.from_book(b) for b in books]


@router.post("", response_model=list[BookRead], status_code=201)
async def import_books(
    attachment: UploadFile = File(...),
    inventory: BookInventory = Depends(get_book_inventory),
    seller: User = Depends(require_seller),
) -> list[BookRead]:
    """Bulk-create books from a CSV file; the caller becomes their seller."""
    rows = _parse_csv(await attachment.read(), seller.id)
    created = [await inventory.create_book(row) for row in rows]
    logger.info("Seller %s imported %d book(s)", seller.id, len(created))
    return [BookRead.from_book(b) for b in created]


@router.get("/{book_id}", response_model=BookRead)
async def get_book(
    book_id: str,
    inventory: BookInventory = Depends(get_book_inventory),
) -> BookRead:
    book = await inventory.get_book_by_id(book_id, populate_seller=True)
    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book Not Found")
    if book.seller is None:
        return BookRead.from_book(book)
    return BookRead.from_book(book, seller_name=book.seller.name)


@router.patch("/{book_id}", response_model=BookRead)
async def update_book(
    book_id: str,
    body: BookUpdate,
    inventory: BookInventory = Depends(get_book_inventory),
    current_user: User = Depends(get_current_user),
) -> BookRead:
    book = await _get_book_or_404(inventory, book_id)
    _ensure_can_manage(book, current_user)

    updated = await inventory.update_book(book, body.model_dump(exclude_none=True))
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book Not Found")
    return BookRead.from_book(updated)


@router.delete("/{book_id}", response_model=MessageResponse)
async def delete_book(
    book_id: str,
    inventory: BookInventory = Depends(get_book_inventory),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    book = await _get_book_or_404(inventory, book_id)
    _ensure_can_manage(book, current_user)

    if not await inventory.delete_book(book_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book Not Found")
    return MessageResponse(message="Book Successfully Deleted")


# ── PDF content ─────────────────────────────────────────────────────
@router.post("/{book_id}", response_model=MessageResponse)
async def upload_book_pdf(
    book_id: str,
    attachment: UploadFile = File(...),
    inventory: BookInventory = Depends(get_book_inventory),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    """Store the book's PDF after checking its metadata against the record."""
    book = await _get_book_or_404(inventory, book_id)
    _ensure_can_manage(book, current_user)

    if attachment.content_type not in _PDF_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Only PDF files are accepted",
        )

    max_bytes = settings.MAX_PDF_SIZE_MB * 1024 * 1024
    data = await attachment.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"PDF larger than {settings.MAX_PDF_SIZE_MB} MB",
        )

    validate_book_pdf(book, data)
    await inventory.content.write_book_pdf(book.seller_id, book.id, book.title, data)
    return MessageResponse(message="PDF Successfully Uploaded")


@router.get("/{book_id}/download")
async def download_book_pdf(
    book_id: str,
    inventory: BookInventory = Depends(get_book_inventory),
    current_user: User = Depends(get_current_user),
) -> Response:
    book = await _get_book_or_404(inventory, book_id)
    allowed = (
        current_user.owns_book(book.id)
        or current_user.id == book.seller_id
        or current_user.has_role(Role.ADM)
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Purchase the book before downloading it",
        )

    stored = await inventory.content.get_book_pdf(book.seller_id, book.id)
    if stored is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="PDF Not Found")
    return Response(
        content=stored.data,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename*=utf-8''{quote(stored.path.name)}"},
    )


# ── Purchase ────────────────────────────────────────────────────────
@router.post("/{book_id}/buy", response_model=MessageResponse)
async def buy_book(
    book_id: str,
    inventory: BookInventory = Depends(get_book_inventory),
    users: UserRepository = Depends(get_user_repository),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    book = await inventory.get_book_by_id(book_id)
    if book is None or not book.seller_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found, purchase cancelled",
        )
    if await inventory.content.get_book_pdf_path(book.seller_id, book.id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found, purchase cancelled",
        )

    await process_purchase(current_user, book, users, gateway)
    return MessageResponse(message="Book Successfully Purchased")
