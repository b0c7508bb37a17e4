"""Offset pagination for the admin listings (users, audit logs)."""
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

MAX_PAGE_SIZE = 100

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    page_size: int = 20,
    serializer: Optional[Callable[[Any], Any]] = None,
) -> Dict[str, Any]:
    """
    Run one page of an ordered select() plus a count of the whole result.

    page is 1-based; page_size is clamped to 1..MAX_PAGE_SIZE. An empty
    result still reports one (empty) page. serializer, when given, maps
    each ORM row to its response shape.
    """
    page = max(page, 1)
    page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

    total = (await db.execute(
        select(func.count()).select_from(query.order_by(None).subquery())
    )).scalar_one()
    total_pages = max(1, -(-total // page_size))

    rows = (await db.execute(query.limit(page_size).offset((page - 1) * page_size))).scalars().all()

    return {
        "items": [serializer(row) for row in rows] if serializer else list(rows),
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
    }
