from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Page:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _positive_int(value, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def get_pagination(page=None, limit=None, *, default_limit: int = 10, max_limit: int | None = None) -> Page:
    clean_page = _positive_int(page, 1)
    clean_limit = _positive_int(limit, default_limit)
    if max_limit is not None:
        clean_limit = min(clean_limit, max_limit)
    return Page(page=clean_page, limit=clean_limit)


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


def paginated_response(data: list, total: int, page: Page) -> dict:
    return {
        'success': True,
        'data': data,
        'meta': {
            'total': total,
            'page': page.page,
            'limit': page.limit,
            'totalPages': total_pages(total, page.limit),
        },
    }
