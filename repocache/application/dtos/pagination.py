"""Pagination result DTO (no rendering; the caller decides presentation)."""

from __future__ import annotations

import math
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Page[T]:
    """One page of records plus the totals needed to navigate."""

    items: list[T] = field(default_factory=list)
    total: int = 0
    per_page: int = 10
    current_page: int = 1

    @property
    def last_page(self) -> int:
        """Number of the last page (1 when there are no records)."""
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_more_pages(self) -> bool:
        return self.current_page < self.last_page
