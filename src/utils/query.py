# src/utils/query.py
import math
from typing import Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.sql.elements import ColumnElement

MAX_PAGE_SIZE = 100
SEARCH_RESULT_CAP = 50


def substring_match(
    column, query: str, dialect_name: str, case_sensitive: bool
) -> ColumnElement:
    """Build a substring predicate with explicit case handling.

    SQLite's LIKE ignores ASCII case, so case-sensitive matching there goes
    through instr() instead.
    """
    if not case_sensitive:
        return column.icontains(query, autoescape=True)
    if dialect_name == "sqlite":
        return func.instr(column, query) > 0
    return column.contains(query, autoescape=True)


def any_field_matches(
    columns: Sequence, query: str, dialect_name: str, case_sensitive: bool
) -> ColumnElement:
    return or_(
        *[substring_match(c, query, dialect_name, case_sensitive) for c in columns]
    )


def page_window(page: int, limit: int) -> Tuple[int, int]:
    """Return (offset, limit) for a 1-indexed page."""
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    return (page - 1) * limit, limit


def pagination_meta(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "has_more": page * limit < total,
    }
