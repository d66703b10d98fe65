"""Cursor pagination for every edge listing.

Contract:
  - rows are ordered strictly by edge id, newest first
  - ``cursor`` is the id of the last item of the previous page; the next page
    holds rows with ``id < cursor``
  - ``limit`` is clamped to [1, MAX_PAGE_SIZE]; only a missing limit takes
    DEFAULT_PAGE_SIZE, so 0 and negatives clamp to 1
  - one extra row is fetched so ``has_more`` is exact even when the last page
    is exactly full; ``next_cursor`` is null whenever ``has_more`` is false

Ids only grow, so edges inserted during a traversal sort before the cursor and
never shift rows that were already returned.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import sqlalchemy as sa
from pydantic import BaseModel, Field
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from app.social_graph.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

T = TypeVar("T")


class CursorPage(BaseModel, Generic[T]):
    """Cursor-based paginated response.

    Pass ``next_cursor`` back as the ``cursor`` query parameter to fetch the
    next page.
    """

    items: list[T]
    next_cursor: int | None = Field(
        default=None,
        description="Id of the last item; null when no more pages.",
    )
    has_more: bool = Field(default=False, description="True when additional pages exist.")


@dataclass(frozen=True)
class Page:
    rows: list[Row[Any]]
    next_cursor: int | None
    has_more: bool


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_PAGE_SIZE
    return max(1, min(limit, MAX_PAGE_SIZE))


def _first_entity_id(row: Row[Any]) -> int:
    return row[0].id


async def fetch_page(
    session: AsyncSession,
    stmt: sa.Select,
    id_column: sa.ColumnElement[int],
    *,
    cursor: int | None,
    limit: int | None,
    cursor_of: Callable[[Row[Any]], int] = _first_entity_id,
) -> Page:
    """Run ``stmt`` as one keyset page ordered by ``id_column`` descending."""
    take = clamp_limit(limit)
    if cursor is not None:
        stmt = stmt.where(id_column < cursor)
    stmt = stmt.order_by(id_column.desc()).limit(take + 1)

    rows = list((await session.execute(stmt)).all())
    has_more = len(rows) > take
    rows = rows[:take]
    next_cursor = cursor_of(rows[-1]) if has_more else None
    return Page(rows=rows, next_cursor=next_cursor, has_more=has_more)
