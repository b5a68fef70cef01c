"""
Page arithmetic for paginated listings.
"""

import math
from dataclasses import dataclass
from typing import Optional, Union

PAGE_SIZE = 20


def parse_page(raw: Optional[Union[str, int]]) -> int:
    """Parse a ``page`` query parameter; anything invalid means page 1."""
    if raw is None:
        return 1
    try:
        page = int(str(raw).strip())
    except ValueError:
        return 1
    return page if page >= 1 else 1


@dataclass(frozen=True)
class Pagination:
    """A 1-based page request translated to skip/take."""
    page: int = 1
    page_size: int = PAGE_SIZE

    def __post_init__(self):
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.page_size <= 0:
            raise ValueError("page_size must be > 0")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.page_size)
