"""
django-model-filter: declarative query filters for Django models.

Input keys are dispatched to methods of a ``ModelFilter`` subclass by
naming convention; related models are filtered through their own filter
classes, either on an existing join or through an ``EXISTS`` sub-query.
"""

from .exceptions import FilterClassNotFound, InvalidOperatorError, ModelFilterError
from .filterable import (
    Filterable,
    FilterableManager,
    FilterableQuerySet,
    get_model_filter_class,
    load_filter_class,
    provide_filter,
)
from .filters import ModelFilter
from .pagination import FilteredPage, FilterPaginator, SimplePage
from .query import QueryBuilder
from .settings import ModelFilterSettings, get_settings

__version__ = "0.1.0"

__all__ = [
    "Filterable",
    "FilterableManager",
    "FilterableQuerySet",
    "FilteredPage",
    "FilterPaginator",
    "FilterClassNotFound",
    "InvalidOperatorError",
    "ModelFilter",
    "ModelFilterError",
    "ModelFilterSettings",
    "QueryBuilder",
    "SimplePage",
    "get_model_filter_class",
    "get_settings",
    "load_filter_class",
    "provide_filter",
]
