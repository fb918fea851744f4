"""Paging for list endpoints: query parsing and the page a listing returns."""

from __future__ import annotations

import math
from collections.abc import Callable, Collection
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from fastapi import Query
from pydantic import BaseModel
from pydantic.alias_generators import to_snake

T = TypeVar("T")
R = TypeVar("R")


class PaginationParams:
    """FastAPI dependency for ``?page=1&limit=20&sort=applicationDate&order=desc``.

    ``sort`` accepts either camelCase or snake_case column names. Listings only
    honour columns they whitelist; see :meth:`sort_column`.
    """

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number (1-based)"),
        limit: int = Query(default=20, ge=1, le=100, description="Items per page"),
        sort: Optional[str] = Query(default=None, description="Column to sort by"),
        order: str = Query(default="desc", pattern="^(asc|desc)$"),
    ):
        self.page = page
        self.limit = limit
        self.sort = sort
        self.order = order

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def sort_column(self, allowed: Collection[str], default: str) -> str:
        if not self.sort:
            return default
        column = to_snake(self.sort)
        return column if column in allowed else default


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


@dataclass
class Page(Generic[T]):
    """One page of a listing plus the unpaged total."""

    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.limit))

    @property
    def meta(self) -> PageMeta:
        return PageMeta(total=self.total, page=self.page, limit=self.limit, pages=self.pages)

    def map(self, fn: Callable[[T], R]) -> Page[R]:
        return Page([fn(item) for item in self.items], self.total, self.page, self.limit)
