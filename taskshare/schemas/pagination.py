"""
Pagination metadata schema.
Used by list endpoints to describe the page that was returned.
"""
from __future__ import annotations

import math

from pydantic import computed_field

from taskshare.schemas.common import CamelModel


class Pagination(CamelModel):
    """
    1-indexed page metadata.
    total counts every matching record, not just the ones on this page.
    """

    page: int
    limit: int
    total: int

    @computed_field  # type: ignore[misc]
    @property
    def total_pages(self) -> int:
        if self.limit == 0:
            return 0
        return math.ceil(self.total / self.limit)

    @computed_field  # type: ignore[misc]
    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @computed_field  # type: ignore[misc]
    @property
    def has_prev(self) -> bool:
        return self.page > 1
