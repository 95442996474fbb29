"""
Filesystem storage for book PDFs.

Layout: ``{root}/books/{seller_id}/{book_id}/{title}.pdf`` with at most one
file per ``(seller_id, book_id)`` directory. Missing paths are never an
error: deleting or looking up an absent PDF is already satisfied.
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[\\/\x00]")
# Filesystems cap a name at 255 bytes; leave room for the extension.
_MAX_NAME_BYTES = 200


@dataclass(frozen=True)
class StoredPDF:
    path: Path
    data: bytes


def _safe_filename(title: str) -> str:
    name = _UNSAFE_NAME_CHARS.sub("_", title)
    name = name.encode("utf-8")[:_MAX_NAME_BYTES].decode("utf-8", errors="ignore")
    name = name.strip().strip(".")
    return f"{name or 'book'}.pdf"


class BookContentStore:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def book_dir(self, seller_id: str, book_id: str) -> Path:
        return self.root / "books" / str(seller_id) / str(book_id)

    def seller_dir(self, seller_id: str) -> Path:
        return self.root / "books" / str(seller_id)

    # ── write ────────────────────────────────────────────────────────
    async def write_book_pdf(self, seller_id: str, book_id: str, title: str, data: bytes) -> Path:
        await self.delete_book_pdf(seller_id, book_id)
        path = await asyncio.to_thread(self._write, self.book_dir(seller_id, book_id), title, data)
        logger.info("Stored PDF for book %s (seller %s) at %s", book_id, seller_id, path)
        return path

    @staticmethod
    def _write(directory: Path, title: str, data: bytes) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / _safe_filename(title)
        path.write_bytes(data)
        return path

    # ── delete ───────────────────────────────────────────────────────
    async def delete_book_pdf(self, seller_id: str, book_id: str) -> None:
        await self._remove_tree(self.book_dir(seller_id, book_id))

    async def delete_seller_pdfs(self, seller_id: str) -> None:
        await self._remove_tree(self.seller_dir(seller_id))

    async def _remove_tree(self, directory: Path) -> None:
        try:
            await asyncio.to_thread(shutil.rmtree, directory)
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.error("Could not delete %s: %s", directory, exc)

    # ── lookup ───────────────────────────────────────────────────────
    async def get_book_pdf_path(self, seller_id: str, book_id: str) -> Path | None:
        directory = self.book_dir(seller_id, book_id)
        try:
            entries = await asyncio.to_thread(lambda: sorted(p for p in directory.iterdir() if p.is_file()))
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Could not list %s: %s", directory, exc)
            return None
        return entries[0] if entries else None

    async def get_book_pdf(self, seller_id: str, book_id: str) -> StoredPDF | None:
        path = await self.get_book_pdf_path(seller_id, book_id)
        if path is None:
            return None
        data = await asyncio.to_thread(path.read_bytes)
        return StoredPDF(path=path, data=data)
