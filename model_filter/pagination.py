"""
Pagination helpers that carry the filter input along with each page.

``paginate`` wraps Django's ``Paginator``; ``simple_paginate`` skips the
``COUNT(*)`` query and only knows whether a next page exists.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.core.paginator import Page, Paginator
from django.db import models
from django.utils.http import urlencode

from .settings import get_settings

PAGE_PARAM = "page"


def _query_string(filters: Dict[str, Any], number: int, page_param: str = PAGE_PARAM) -> str:
    params = dict(filters)
    params[page_param] = number
    return urlencode(params, doseq=True)


class FilteredPage(Page):
    """A ``Page`` that remembers the filter input it was built from."""

    def __init__(self, object_list, number, paginator, filters: Optional[Dict[str, Any]] = None):
        super().__init__(object_list, number, paginator)
        self.filters = dict(filters or {})

    def query_string(self, number: Optional[int] = None) -> str:
        """Query string reproducing the filters for page ``number``."""
        return _query_string(self.filters, self.number if number is None else number)

    def next_query_string(self) -> Optional[str]:
        return self.query_string(self.next_page_number()) if self.has_next() else None

    def previous_query_string(self) -> Optional[str]:
        return self.query_string(self.previous_page_number()) if self.has_previous() else None


class FilterPaginator(Paginator):
    def __init__(self, object_list, per_page, filters: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(object_list, per_page, **kwargs)
        self.filters = dict(filters or {})

    def _get_page(self, *args, **kwargs):
        return FilteredPage(*args, filters=self.filters, **kwargs)


@dataclass
class SimplePage:
    """Page without a total count."""

    object_list: List[Any]
    number: int
    per_page: int
    has_more: bool
    filters: Dict[str, Any] = field(default_factory=dict)

    def __iter__(self):
        return iter(self.object_list)

    def __len__(self) -> int:
        return len(self.object_list)

    def has_next(self) -> bool:
        return self.has_more

    def has_previous(self) -> bool:
        return self.number > 1

    def next_page_number(self) -> Optional[int]:
        return self.number + 1 if self.has_more else None

    def previous_page_number(self) -> Optional[int]:
        return self.number - 1 if self.number > 1 else None

    def query_string(self, number: Optional[int] = None) -> str:
        return _query_string(self.filters, self.number if number is None else number)


def _page_size(per_page: Optional[int]) -> int:
    return int(per_page) if per_page else get_settings().paginate_limit


def _page_number(page: Any) -> int:
    try:
        number = int(page)
    except (TypeError, ValueError):
        return 1
    return number if number > 0 else 1


def paginate(
    queryset: models.QuerySet,
    per_page: Optional[int] = None,
    page: Any = 1,
    filters: Optional[Dict[str, Any]] = None,
) -> FilteredPage:
    """Length-aware page; invalid or out-of-range numbers are clamped."""
    paginator = FilterPaginator(queryset, _page_size(per_page), filters=filters)
    return paginator.get_page(page)


def simple_paginate(
    queryset: models.QuerySet,
    per_page: Optional[int] = None,
    page: Any = 1,
    filters: Optional[Dict[str, Any]] = None,
) -> SimplePage:
    size = _page_size(per_page)
    number = _page_number(page)
    offset = (number - 1) * size
    rows = list(queryset[offset:offset + size + 1])
    return SimplePage(
        object_list=rows[:size],
        number=number,
        per_page=size,
        has_more=len(rows) > size,
        filters=dict(filters or {}),
    )
