from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from ..core.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from ..core.exceptions import ValidationError

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def of(cls, page=None, limit=None, *, default_limit: int = DEFAULT_PAGE_LIMIT) -> "PageRequest":
        try:
            p = int(page) if page not in (None, "") else 1
            n = int(limit) if limit not in (None, "") else default_limit
        except (TypeError, ValueError):
            raise ValidationError("page/limit must be integers")
        if p < 1 or n < 1:
            raise ValidationError("page/limit must be positive")
        return cls(page=p, limit=min(n, MAX_PAGE_LIMIT))


@dataclass(frozen=True)
class Page(Generic[T]):
    items: Sequence[T]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> dict:
        return {"current": self.page, "pages": self.pages, "total": self.total}
