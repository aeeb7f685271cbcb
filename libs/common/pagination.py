"""Page/limit helpers for list endpoints."""

import math

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def page_offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def page_payload(total: int, page: int, limit: int) -> dict:
    """The ``total/page/limit/total_pages`` block every list response carries."""
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages(total, limit),
    }
