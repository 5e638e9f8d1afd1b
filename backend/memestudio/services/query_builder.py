"""
MemeStudio Backend - Template Query Builder
============================================

What:  Translates listing filters and sort options into SQLAlchemy clauses.

Filters:
    search   → name ILIKE %term% OR category ILIKE %term%
               LIKE wildcards in the term are escaped, so input is always a
               literal substring and never a pattern or operator.
    category → lower-cased exact match
    neither  → [] (match all)

Sort options:
    popular → popularity DESC, created_at DESC
    newest  → created_at DESC
    oldest  → created_at ASC
    Every ordering ends with id so offset paging is deterministic.
"""

from typing import List, Optional, Tuple

from sqlalchemy import ColumnElement, or_
from sqlalchemy.sql.elements import UnaryExpression

from memestudio.models.template import Template

LIKE_ESCAPE = "\\"

SORT_POPULAR = "popular"
SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
DEFAULT_SORT = SORT_NEWEST

_ORDERINGS = {
    SORT_POPULAR: (Template.popularity.desc(), Template.created_at.desc(), Template.id.asc()),
    SORT_NEWEST: (Template.created_at.desc(), Template.id.asc()),
    SORT_OLDEST: (Template.created_at.asc(), Template.id.asc()),
}


def escape_like(term: str, escape: str = LIKE_ESCAPE) -> str:
    return (
        term.replace(escape, escape * 2)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


def build_template_filters(
    search: Optional[str] = None,
    category: Optional[str] = None,
) -> List[ColumnElement[bool]]:
    clauses: List[ColumnElement[bool]] = []

    term = (search or "").strip()
    if term:
        pattern = f"%{escape_like(term)}%"
        clauses.append(
            or_(
                Template.name.ilike(pattern, escape=LIKE_ESCAPE),
                Template.category.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    wanted = (category or "").strip().lower()
    if wanted:
        clauses.append(Template.category == wanted)

    return clauses


def resolve_sort(sort: Optional[str]) -> str:
    """Unknown or missing sort options fall back to newest."""
    key = (sort or "").strip().lower()
    return key if key in _ORDERINGS else DEFAULT_SORT


def template_ordering(sort: Optional[str]) -> Tuple[UnaryExpression, ...]:
    return _ORDERINGS[resolve_sort(sort)]
