"""Page/limit normalization shared by every list operation.

``page`` is 1-based. Absent or non-finite inputs fall back to the
defaults; fractional inputs are truncated toward zero.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from silsilah.domain.rejections import Rejection
from silsilah.domain.types import RejectKind

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 50
MAX_LIMIT = 1000


@dataclass(frozen=True)
class PageRequest:
    """A normalized page window."""

    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _safe_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return math.trunc(number)


def resolve_pagination(
    page: Any = None, limit: Any = None, *, default_limit: int = DEFAULT_LIMIT
) -> PageRequest:
    """Normalize raw *page*/*limit* without range-checking them."""
    return PageRequest(
        page=_safe_int(page, DEFAULT_PAGE),
        limit=_safe_int(limit, default_limit),
    )


def validate_pagination(
    page: Any = None,
    limit: Any = None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> PageRequest | Rejection:
    """Normalize and range-check a page window.

    Returns an ``InvalidPagination`` rejection when the normalized page is
    below 1 or the limit falls outside ``1..max_limit``.
    """
    request = resolve_pagination(page, limit, default_limit=default_limit)
    if request.page < 1:
        return Rejection.of(
            RejectKind.INVALID_PAGINATION, f"page must be >= 1 (got {request.page})"
        )
    if request.limit < 1 or request.limit > max_limit:
        return Rejection.of(
            RejectKind.INVALID_PAGINATION,
            f"limit must be between 1 and {max_limit} (got {request.limit})",
        )
    return request


def build_pagination_meta(total: int, page: Any, limit: Any, returned_count: int) -> dict[str, Any]:
    """Pagination metadata for a page of *returned_count* rows out of *total*.

    Examples:
        >>> build_pagination_meta(120, 2, 50, 50)
        {'limit': 50, 'offset': 50, 'has_more': True}
        >>> build_pagination_meta(120, 3, 50, 20)
        {'limit': 50, 'offset': 100, 'has_more': False}
    """
    request = resolve_pagination(page, limit)
    return {
        "limit": request.limit,
        "offset": request.offset,
        "has_more": request.offset + returned_count < total,
    }
