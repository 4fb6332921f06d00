import math
from dataclasses import dataclass
from typing import Generic, TypeVar

from core.errors import ValidationError

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def check_pagination(page: int, limit: int, max_limit: int | None = None) -> tuple[int, int]:
    """Reject non-positive page/limit values and cap the limit."""
    if page < 1 or limit < 1:
        raise ValidationError("Invalid pagination parameters")
    if max_limit is not None:
        limit = min(limit, max_limit)
    return page, limit
