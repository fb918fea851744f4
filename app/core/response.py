"""Response envelopes: ``{"data": ...}`` for one resource, ``{"data": [...], "meta": ...}`` for listings."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from app.core.pagination import Page, PageMeta
from app.schemas.common import CamelModel

T = TypeVar("T")


class DataResponse(CamelModel, Generic[T]):
    data: T


class ListResponse(CamelModel, Generic[T]):
    data: list[T]
    meta: PageMeta


def paginated(page: Page[Any], serialize: Callable[[Any], T]) -> dict[str, Any]:
    """Serialize every item of *page* and attach its paging metadata."""
    rendered = page.map(serialize)
    return {"data": rendered.items, "meta": rendered.meta}
