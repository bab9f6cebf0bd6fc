"""
services/pagination.py — Page results for list/search operations.

Pages are 0-based: page=0 is the first page.
No Flask imports; works against any SQLAlchemy Session.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session


@dataclass
class Page:
    items: list[Any] = field(default_factory=list)
    page: int = 0
    size: int = 20
    total: int = 0

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return math.ceil(self.total / self.size)

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages


def paginate(stmt: Select, page: int, size: int, session: Session) -> Page:
    """
    Runs `stmt` for one page and counts the full result.

    `stmt` must already carry its ORDER BY so pages are stable.
    """
    total = session.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar_one()

    items = session.execute(
        stmt.limit(size).offset(page * size)
    ).scalars().all()

    return Page(items=list(items), page=page, size=size, total=total)
