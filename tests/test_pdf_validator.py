"""Tests for PDF metadata parsing and validation."""

from datetime import date, datetime

import pytest
from conftest import make_pdf
from pypdf import DocumentInformation
from pypdf.errors import PdfReadError

from bookmarket.core.exceptions import ContentMismatchError, InvalidFileError
from bookmarket.models.book import Book
from bookmarket.services.pdf_validator import parse_pdf_date, read_pdf_metadata, validate_book_pdf


def _book(**overrides) -> Book:
    data = {
        "id": "b1",
        "title": "T",
        "authors": "A",
        "pages": 10,
        "publication_date": date(2020, 1, 1),
        "publisher": "P",
        "price": 10.0,
        "seller_id": "s1",
    }
    data.update(overrides)
    return Book(**data)


def test_parse_pdf_date_full():
    assert parse_pdf_date("D:20200101153045+03'00'") == datetime(2020, 1, 1, 15, 30, 45)


def test_parse_pdf_date_partial_and_invalid():
    assert parse_pdf_date("D:2021") == datetime(2021, 1, 1)
    assert parse_pdf_date("yesterday") is None
    assert parse_pdf_date(None) is None


def test_read_metadata():
    meta = read_pdf_metadata(make_pdf(author="Ann", title="Book", pages=3, producer="Pub"))
    assert meta.author == "Ann"
    assert meta.title == "Book"
    assert meta.num_pages == 3
    assert meta.producer == "Pub"
    assert meta.creation_date == datetime(2020, 1, 1, 12, 0, 0)


def test_matching_pdf_passes():
    validate_book_pdf(_book(), make_pdf())


def test_same_day_different_time_passes():
    """Only the calendar day of the creation date is compared."""
    validate_book_pdf(_book(), make_pdf(created="D:20200101235959-05'00'"))
    validate_book_pdf(_book(), make_pdf(created=datetime(2020, 1, 1, 0, 0, 1)))


@pytest.mark.parametrize(
    "overrides",
    [
        {"author": "B"},
        {"title": "Other"},
        {"pages": 11},
        {"producer": "Q"},
        {"created": datetime(2020, 1, 2, 0, 0, 0)},
    ],
)
def test_any_field_mismatch_fails(overrides):
    with pytest.raises(ContentMismatchError) as info:
        validate_book_pdf(_book(), make_pdf(**overrides))
    assert info.value.message == "Informations don't match"


def test_missing_creation_date_fails():
    with pytest.raises(ContentMismatchError):
        validate_book_pdf(_book(), make_pdf(created=""))


def test_garbage_is_invalid_file():
    with pytest.raises(InvalidFileError):
        validate_book_pdf(_book(), b"this is not a pdf at all")


def test_empty_file_is_invalid():
    with pytest.raises(InvalidFileError):
        read_pdf_metadata(b"")


def test_broken_metadata_object_is_invalid_file(monkeypatch):
    """Info entries are resolved on access; a broken one still maps to InvalidFileError."""

    def _broken(_self):
        raise PdfReadError("Could not resolve indirect object")

    monkeypatch.setattr(DocumentInformation, "author", property(_broken))
    with pytest.raises(InvalidFileError):
        read_pdf_metadata(make_pdf())
