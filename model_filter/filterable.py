"""
Model-side integration for model filters.

``Filterable`` lets a model name its filter class; ``FilterableQuerySet``
(and ``FilterableManager``) run that filter and paginate the result::

    class Post(Filterable, models.Model):
        model_filter = "blog.model_filters.PostFilter"  # optional

        objects = FilterableManager()

    page = Post.objects.filter_input(request.GET).paginate_filter(page=2)

Without ``model_filter`` the class is looked up as
``<MODEL_FILTER["NAMESPACE"]>.<ModelName>Filter``.
"""

from typing import Any, Dict, Mapping, Optional, Type, Union

from django.db import models
from django.utils.module_loading import import_string

from .exceptions import FilterClassNotFound
from .pagination import FilteredPage, SimplePage, paginate, simple_paginate
from .query import QueryBuilder
from .settings import get_settings


def provide_filter(model: Type[models.Model], filter_path: Optional[str] = None) -> str:
    """Dotted path of the conventional filter class for ``model``."""
    if filter_path is not None:
        return filter_path
    namespace = get_settings().namespace
    class_name = f"{model.__name__}Filter"
    return f"{namespace}.{class_name}" if namespace else class_name


def load_filter_class(target: Union[str, type], model: Optional[Type[models.Model]] = None) -> type:
    """Import ``target`` if it is a dotted path and check it is a filter class."""
    from .filters import ModelFilter

    model_name = model.__name__ if model is not None else None
    filter_class = target
    if isinstance(target, str):
        try:
            filter_class = import_string(target)
        except ImportError as exc:
            raise FilterClassNotFound(
                f"Filter class '{target}' could not be imported",
                model_name=model_name,
                filter_path=target,
            ) from exc

    if not (isinstance(filter_class, type) and issubclass(filter_class, ModelFilter)):
        raise FilterClassNotFound(
            f"{filter_class!r} is not a ModelFilter subclass",
            model_name=model_name,
            filter_path=target if isinstance(target, str) else None,
        )
    return filter_class


def get_model_filter_class(model: Type[models.Model]) -> type:
    """Filter class for ``model``, honoring ``Filterable`` overrides."""
    getter = getattr(model, "get_model_filter_class", None)
    if getter is not None:
        return getter()
    return load_filter_class(provide_filter(model), model)


class Filterable:
    """Model mixin naming the model's filter class."""

    # A ModelFilter subclass or its dotted path.
    model_filter: Optional[Union[str, type]] = None

    @classmethod
    def provide_filter(cls, filter_path: Optional[str] = None) -> str:
        return provide_filter(cls, filter_path)

    @classmethod
    def get_model_filter_class(cls) -> type:
        if cls.model_filter is not None:
            return load_filter_class(cls.model_filter, cls)
        return load_filter_class(cls.provide_filter(), cls)


class FilterableQuerySet(models.QuerySet):
    """QuerySet running model filters and keeping their input for pagination."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._filtered_input: Dict[str, Any] = {}

    def _clone(self):
        clone = super()._clone()
        clone._filtered_input = dict(self._filtered_input)
        return clone

    @property
    def filtered_input(self) -> Dict[str, Any]:
        """Sanitized input of the last ``filter_input`` call in this chain."""
        return dict(self._filtered_input)

    def filter_input(
        self,
        input: Optional[Mapping[str, Any]] = None,
        filter_class: Optional[Union[str, type]] = None,
    ) -> "FilterableQuerySet":
        if filter_class is None:
            filter_class = get_model_filter_class(self.model)
        else:
            filter_class = load_filter_class(filter_class, self.model)

        model_filter = filter_class(self, input)
        queryset = model_filter.handle().queryset.all()
        queryset._filtered_input = dict(model_filter.input())
        return queryset

    def paginate_filter(self, per_page: Optional[int] = None, page: Any = 1) -> FilteredPage:
        return paginate(self, per_page, page, self._filtered_input)

    def simple_paginate_filter(self, per_page: Optional[int] = None, page: Any = 1) -> SimplePage:
        return simple_paginate(self, per_page, page, self._filtered_input)

    def where_like(self, column: str, value: Any, boolean: str = "and") -> "FilterableQuerySet":
        """WHERE column LIKE %value%"""
        return self._where(column, f"%{value}%", boolean)

    def where_begins_with(self, column: str, value: Any, boolean: str = "and") -> "FilterableQuerySet":
        """WHERE column LIKE value%"""
        return self._where(column, f"{value}%", boolean)

    def where_ends_with(self, column: str, value: Any, boolean: str = "and") -> "FilterableQuerySet":
        """WHERE column LIKE %value"""
        return self._where(column, f"%{value}", boolean)

    def _where(self, column: str, pattern: str, boolean: str) -> "FilterableQuerySet":
        if str(boolean).lower() == "or" and self.query.has_filters():
            # OR against the conditions already on this queryset.
            matching = QueryBuilder(type(self)(self.model, using=self._db)).where(column, "like", pattern)
            return self | matching.queryset
        return QueryBuilder(self).where(column, "like", pattern, boolean).queryset


class FilterableManager(models.Manager):
    def get_queryset(self):
        return FilterableQuerySet(self.model, using=self._db)

    def filter_input(self, input=None, filter_class=None):
        return self.get_queryset().filter_input(input, filter_class)

    def paginate_filter(self, per_page=None, page=1):
        return self.get_queryset().paginate_filter(per_page, page)

    def simple_paginate_filter(self, per_page=None, page=1):
        return self.get_queryset().simple_paginate_filter(per_page, page)

    def where_like(self, column, value, boolean="and"):
        return self.get_queryset().where_like(column, value, boolean)

    def where_begins_with(self, column, value, boolean="and"):
        return self.get_queryset().where_begins_with(column, value, boolean)

    def where_ends_with(self, column, value, boolean="and"):
        return self.get_queryset().where_ends_with(column, value, boolean)
