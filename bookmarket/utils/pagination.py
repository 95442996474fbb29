"""Page/limit normalisation shared by the listing endpoints."""

from __future__ import annotations

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 10


def clamp_page(page: int | None, limit: int | None) -> tuple[int, int]:
    """Return ``(page, limit)`` with page >= 1 and limit in [1, MAX_LIMIT]."""
    page_num = DEFAULT_PAGE if page is None else max(1, page)
    limit_num = DEFAULT_LIMIT if limit is None else min(max(1, limit), MAX_LIMIT)
    return page_num, limit_num
