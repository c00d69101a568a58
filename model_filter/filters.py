"""
Model filter base class.

A model filter maps request input onto query methods by naming
convention. Each input key becomes a method name (``user_id`` -> ``user``,
``created_at`` -> ``createdAt``) and, when the filter class defines that
method, it is called with the input value::

    class PostFilter(ModelFilter):
        relations = {"category": ["category_name"]}

        def setup(self):
            self.order_by("-id")

        def title(self, value):
            self.where_like("title", value)

        def publishedAt(self, value):
            self.where("published_at", ">=", value)

    PostFilter(Post.objects.all(), request.GET).handle().queryset

Keys without a matching method are ignored so extra request parameters
never break a query.
"""

import functools
import inspect
import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from django.db import models
from django.db.models import Q
from django.utils.datastructures import MultiValueDict

from .query import _MISSING, QueryBuilder
from .relations import RelationFilterMixin, relation_setup_method
from .utils.naming import filter_method_name, is_empty_value

logger = logging.getLogger(__name__)

SETUP_METHOD = "setup"


def _is_method(attr: Any) -> bool:
    return inspect.isfunction(attr) or isinstance(attr, (staticmethod, classmethod))


def _coerce_input(data: Any) -> Dict[str, Any]:
    """Plain dict from a mapping; multi-valued keys of a ``QueryDict`` stay lists."""
    if data is None:
        return {}
    if isinstance(data, MultiValueDict):
        return {
            key: values[0] if len(values) == 1 else list(values)
            for key, values in data.lists()
        }
    return dict(data)


class ModelFilter(RelationFilterMixin):
    """
    Base class for declarative query filters.

    Class options:
        relations: relation name -> input keys handed to the related filter.
        blacklist: method names never reachable from input.
        drop_id: strip a trailing ``_id`` from input keys.
        camel_cased_methods: camelCase input keys before lookup.
        allowed_empty_filters: keep ``""``, ``None`` and empty collections.
    """

    blacklist: Iterable[str] = ()
    drop_id: bool = True
    camel_cased_methods: bool = True
    allowed_empty_filters: bool = False

    # Built per subclass by __init_subclass__.
    _filter_methods: Dict[str, Any] = {}
    _setup_hook: Optional[Any] = None
    _relation_setup_hooks: Dict[str, Any] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        reserved = set(dir(ModelFilter))
        base_classes = set(ModelFilter.__mro__)

        methods: Dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            if klass in base_classes:
                continue
            for name, attr in vars(klass).items():
                if name.startswith("_") or name in reserved or not _is_method(attr):
                    continue
                methods[name] = attr

        cls._setup_hook = methods.pop(SETUP_METHOD, None)
        hook_names = {relation_setup_method(relation) for relation in cls.relations}
        cls._relation_setup_hooks = {
            name: methods.pop(name) for name in list(methods) if name in hook_names
        }
        cls._filter_methods = methods

    def __init__(
        self,
        query: Union[QueryBuilder, models.QuerySet],
        input: Optional[Mapping[str, Any]] = None,
        relations_enabled: bool = True,
    ):
        if isinstance(query, models.QuerySet):
            query = QueryBuilder(query)
        self.query = query
        self._drop_id = self.drop_id
        self._camel_cased_methods = self.camel_cased_methods
        self._relations_enabled = relations_enabled
        self._blacklist = set(self.blacklist)
        self._init_relation_state()

        data = _coerce_input(input)
        self._input = data if self.allowed_empty_filters else self.remove_empty_input(data)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} model={self.query.get_model().__name__}>"

    def __getattr__(self, name: str) -> Any:
        """Forward anything else to the query builder, keeping chains on the filter."""
        if name.startswith("_") or name == "query":
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")
        attr = getattr(self.query, name)
        if not callable(attr):
            return attr

        @functools.wraps(attr)
        def proxy(*args, **kwargs):
            result = attr(*args, **kwargs)
            return self if isinstance(result, QueryBuilder) else result

        return proxy

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #
    def handle(self) -> QueryBuilder:
        """
        Apply setup, input filters and relation filters to the query.

        Not idempotent: calling it twice applies every predicate twice.
        """
        if self._setup_hook is not None:
            self._setup_hook.__get__(self, type(self))()

        self.filter_input()
        self.filter_relations()

        return self.query

    def get_query(self) -> QueryBuilder:
        return self.query

    # ------------------------------------------------------------------ #
    # Input
    # ------------------------------------------------------------------ #
    def include_filter_input(self, key: str, value: Any) -> bool:
        return not is_empty_value(value)

    def remove_empty_input(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            key: value
            for key, value in data.items()
            if self.include_filter_input(key, value)
        }

    def input(self, key: Optional[str] = None, default: Any = None) -> Any:
        if key is None:
            return self._input
        value = self._input.get(key)
        return default if value is None else value

    def push(self, key: Union[str, Mapping[str, Any]], value: Any = None) -> None:
        """Add input after construction; values are not re-sanitized."""
        if isinstance(key, Mapping):
            self._input.update(key)
        else:
            self._input[key] = value

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #
    def get_filter_method(self, key: str) -> str:
        return filter_method_name(key, self._drop_id, self._camel_cased_methods)

    def method_is_blacklisted(self, method: str) -> bool:
        return method in self._blacklist

    def method_is_callable(self, method: str) -> bool:
        return not self.method_is_blacklisted(method) and method in self._filter_methods

    def filter_input(self) -> None:
        for key, value in list(self._input.items()):
            method = self.get_filter_method(key)
            if self.method_is_callable(method):
                self._filter_methods[method].__get__(self, type(self))(value)
            else:
                logger.debug("Skipping input %r: %s has no filter %r", key, type(self).__name__, method)

    def blacklist_method(self, method: str) -> "ModelFilter":
        self._blacklist.add(method)
        return self

    def whitelist_method(self, method: str) -> "ModelFilter":
        self._blacklist.discard(method)
        return self

    # ------------------------------------------------------------------ #
    # Options
    # ------------------------------------------------------------------ #
    def drop_id_suffix(self, flag: Optional[bool] = None) -> bool:
        if flag is not None:
            self._drop_id = bool(flag)
        return self._drop_id

    def convert_to_camel_cased_methods(self, flag: Optional[bool] = None) -> bool:
        if flag is not None:
            self._camel_cased_methods = bool(flag)
        return self._camel_cased_methods

    def relations_enabled(self, flag: Optional[bool] = None) -> bool:
        if flag is not None:
            self._relations_enabled = bool(flag)
        return self._relations_enabled

    def enable_relations(self) -> "ModelFilter":
        self._relations_enabled = True
        return self

    def disable_relations(self) -> "ModelFilter":
        self._relations_enabled = False
        return self

    # ------------------------------------------------------------------ #
    # Query builder shortcuts
    # ------------------------------------------------------------------ #
    def where(self, column: Any, operator: Any = _MISSING, value: Any = _MISSING, boolean: str = "and") -> "ModelFilter":
        self.query.where(column, operator, value, boolean)
        return self

    def or_where(self, column: Any, operator: Any = _MISSING, value: Any = _MISSING) -> "ModelFilter":
        self.query.or_where(column, operator, value)
        return self

    def where_in(self, column: str, values: Iterable[Any], boolean: str = "and") -> "ModelFilter":
        self.query.where_in(column, values, boolean)
        return self

    def where_not_in(self, column: str, values: Iterable[Any], boolean: str = "and") -> "ModelFilter":
        self.query.where_not_in(column, values, boolean)
        return self

    def where_like(self, column: str, value: Any, boolean: str = "and") -> "ModelFilter":
        self.query.where_like(column, value, boolean)
        return self

    def where_begins_with(self, column: str, value: Any, boolean: str = "and") -> "ModelFilter":
        self.query.where_begins_with(column, value, boolean)
        return self

    def where_ends_with(self, column: str, value: Any, boolean: str = "and") -> "ModelFilter":
        self.query.where_ends_with(column, value, boolean)
        return self

    def where_has(self, relation: str, callback: Optional[Callable] = None, boolean: str = "and") -> "ModelFilter":
        self.query.where_has(relation, callback, boolean)
        return self

    def or_where_has(self, relation: str, callback: Optional[Callable] = None) -> "ModelFilter":
        self.query.or_where_has(relation, callback)
        return self

    def where_doesnt_have(self, relation: str, callback: Optional[Callable] = None, boolean: str = "and") -> "ModelFilter":
        self.query.where_doesnt_have(relation, callback, boolean)
        return self

    def filter(self, *args: Q, **kwargs: Any) -> "ModelFilter":
        self.query.filter(*args, **kwargs)
        return self

    def exclude(self, *args: Q, **kwargs: Any) -> "ModelFilter":
        self.query.exclude(*args, **kwargs)
        return self

    def order_by(self, *fields: Any) -> "ModelFilter":
        self.query.order_by(*fields)
        return self

    def distinct(self, *fields: str) -> "ModelFilter":
        self.query.distinct(*fields)
        return self

    def select_related(self, *fields: str) -> "ModelFilter":
        self.query.select_related(*fields)
        return self

    def prefetch_related(self, *lookups: str) -> "ModelFilter":
        self.query.prefetch_related(*lookups)
        return self

    def annotate(self, *args: Any, **kwargs: Any) -> "ModelFilter":
        self.query.annotate(*args, **kwargs)
        return self
