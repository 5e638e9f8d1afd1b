"""
MemeStudio Backend - Pagination Helpers
========================================

What:  Pure functions for page parameter clamping, page metadata and
       in-memory slicing.
How:   The store-bound listing path pushes offset/limit into SQL and calls
       `page_metadata()` with the COUNT result; the cached path slices a
       snapshot with `paginate()`, which calls the same `page_metadata()`.
       Both paths therefore report identical metadata for the same data.

Clamping rules (never rejected):
    page:  missing/non-numeric/0 → 1, negative → 1, capped so the row
           offset fits a signed 64-bit SQL integer
    limit: missing/non-numeric/0 → default, otherwise clamped to [1, max]
    Numeric strings are read like `parseInt`: leading digits count ("12abc" → 12).
"""

import math
import re
from typing import Any, List, Optional, Sequence, Tuple, TypeVar

from memestudio.schemas.template import PageRef, PaginationMeta

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100

# Largest OFFSET + LIMIT the store accepts (BIGINT)
MAX_OFFSET = 2 ** 63 - 1

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_int(value: Any) -> Optional[int]:
    """Leading-integer parse; None for anything without one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def clamp_page_params(
    page: Any,
    limit: Any,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> Tuple[int, int]:
    """Normalize raw page/limit input into `page >= 1`, `1 <= limit <= max_limit`."""
    page_num = parse_int(page) or DEFAULT_PAGE
    limit_num = min(max(parse_int(limit) or default_limit, 1), max_limit)
    return min(max(page_num, 1), MAX_OFFSET // limit_num), limit_num


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0


def page_metadata(total: int, page: int, limit: int) -> PaginationMeta:
    """Metadata for `page` of a `total`-item result split into `limit`-sized pages."""
    has_next = page * limit < total
    has_previous = page > 1
    return PaginationMeta(
        current_page=page,
        total_pages=total_pages(total, limit),
        total_templates=total,
        limit=limit,
        has_next=has_next,
        has_previous=has_previous,
        next=PageRef(page=page + 1, limit=limit) if has_next else None,
        previous=PageRef(page=page - 1, limit=limit) if has_previous else None,
    )


def paginate(items: Sequence[T], page: int, limit: int) -> Tuple[List[T], PaginationMeta]:
    """Slice `[(page-1)*limit, page*limit)` out of an already ordered sequence."""
    start = (page - 1) * limit
    return list(items[start:start + limit]), page_metadata(len(items), page, limit)
