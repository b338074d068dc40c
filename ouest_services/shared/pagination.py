"""Pagination helpers shared by list endpoints"""

import math

from fastapi import Query
from pydantic import BaseModel

MAX_PAGE_SIZE = 100


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasNext: bool
    hasPrev: bool


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        totalPages=total_pages,
        hasNext=page < total_pages,
        hasPrev=page > 1,
    )


class PageParams:
    """Query dependency: ?page=1&limit=10 (limit capped at 100)"""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    ):
        self.page = page
        self.limit = limit
