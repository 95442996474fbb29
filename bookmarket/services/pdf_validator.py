"""
PDF metadata validation.

An uploaded PDF is accepted for a book only when its embedded metadata
matches the book record: author, title, page count, producer (publisher)
and creation date, the latter compared by calendar day only.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from io import BytesIO

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from bookmarket.core.exceptions import ContentMismatchError, InvalidFileError
from bookmarket.models.book import Book

logger = logging.getLogger(__name__)

_PDF_DATE_RE = re.compile(
    r"^(?:D:)?(?P<year>\d{4})(?P<month>\d{2})?(?P<day>\d{2})?"
    r"(?P<hour>\d{2})?(?P<minute>\d{2})?(?P<second>\d{2})?"
)


@dataclass(frozen=True)
class PDFMetadata:
    author: str | None
    title: str | None
    num_pages: int
    producer: str | None
    creation_date: datetime | None


def parse_pdf_date(raw: str | None) -> datetime | None:
    """Parse a PDF date string (``D:YYYYMMDDHHmmSS...``); the offset is ignored."""
    if not raw:
        return None
    match = _PDF_DATE_RE.match(str(raw).strip())
    if match is None:
        return None
    parts = match.groupdict()
    try:
        return datetime(
            int(parts["year"]),
            int(parts["month"] or 1),
            int(parts["day"] or 1),
            int(parts["hour"] or 0),
            int(parts["minute"] or 0),
            int(parts["second"] or 0),
        )
    except ValueError:
        return None


def read_pdf_metadata(data: bytes) -> PDFMetadata:
    # pypdf resolves indirect objects lazily, so every read stays guarded
    try:
        reader = PdfReader(BytesIO(data))
        info = reader.metadata
        num_pages = len(reader.pages)
        if info is None:
            return PDFMetadata(None, None, num_pages, None, None)
        return PDFMetadata(
            author=info.author,
            title=info.title,
            num_pages=num_pages,
            producer=info.producer,
            creation_date=parse_pdf_date(info.get("/CreationDate")),
        )
    except (PyPdfError, ValueError, KeyError, TypeError, AttributeError) as exc:
        logger.info("Rejected unreadable PDF: %s", exc)
        raise InvalidFileError() from exc


def _same_day(created: datetime | None, published: date) -> bool:
    return created is not None and created.date() == published


def validate_book_pdf(book: Book, data: bytes) -> PDFMetadata:
    """Raise ``ContentMismatchError`` unless the PDF describes ``book``."""
    meta = read_pdf_metadata(data)
    matches = (
        meta.author == book.authors
        and meta.title == book.title
        and meta.num_pages == book.pages
        and meta.producer == book.publisher
        and _same_day(meta.creation_date, book.publication_date)
    )
    if not matches:
        raise ContentMismatchError()
    return meta
