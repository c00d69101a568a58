"""
Mutable, fluent query builder over a Django ``QuerySet``.

Django querysets are immutable: every ``filter()`` returns a new one. Filter
classes, relation callbacks and nested filters all need to write into one
shared query, so ``QueryBuilder`` keeps the queryset and the pending
predicates in a shared state object and hands out builders that mutate it.

Predicates are combined with SQL precedence: ``where`` ANDs onto the
current group, ``or_where`` opens a new group, and the groups are ORed
when the queryset is materialized.

A builder can be *scoped* to a relation path. A scoped builder writes into
the same state but prefixes every lookup with the relation path, so a
filter written for ``Category`` can run against a ``Post`` query as
``category__name``.
"""

import logging
import re
from functools import reduce
from operator import and_, or_
from typing import Any, Callable, Iterable, List, Optional, Type

from django.db import models
from django.db.models import Exists, OuterRef, Q
from django.db.models.sql.datastructures import Join

from .exceptions import InvalidOperatorError
from .pagination import FilteredPage, SimplePage, paginate, simple_paginate
from .utils.relations import (
    lookup_path,
    resolve_relation_chain,
    reverse_lookup_path,
    split_relation,
)

logger = logging.getLogger(__name__)

_MISSING = object()

# Operators mapped straight onto Django lookups.
OPERATOR_LOOKUPS = {
    "=": "exact",
    "==": "exact",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
    "in": "in",
}

# Operators expressed as a negated lookup.
NEGATED_OPERATORS = {
    "!=": "exact",
    "<>": "exact",
    "not in": "in",
}

# LIKE family: operator -> (case insensitive, negated)
LIKE_OPERATORS = {
    "like": (False, False),
    "ilike": (True, False),
    "not like": (False, True),
    "not ilike": (True, True),
}

_BOOLEANS = {"and", "or"}


def like_lookup(pattern: Any, case_insensitive: bool = False) -> tuple:
    """
    Translate a SQL LIKE pattern into a Django lookup and value.

    Examples:
        >>> like_lookup("%ann%")
        ("contains", "ann")
        >>> like_lookup("ann%", case_insensitive=True)
        ("istartswith", "ann")
    """
    prefix = "i" if case_insensitive else ""
    if not isinstance(pattern, str):
        return f"{prefix}exact", pattern

    leading = pattern.startswith("%")
    trailing = pattern.endswith("%") and len(pattern) > 1
    core = pattern[1 if leading else 0:len(pattern) - 1 if trailing else len(pattern)]

    if "%" in core or "_" in core:
        regex = "".join(
            ".*" if char == "%" else "." if char == "_" else re.escape(char)
            for char in pattern
        )
        return f"{prefix}regex", f"^{regex}$"
    if leading and trailing:
        return f"{prefix}contains", core
    if trailing:
        return f"{prefix}startswith", core
    if leading:
        return f"{prefix}endswith", core
    return f"{prefix}exact", core


class _BuilderState:
    """Queryset plus pending predicates shared by a builder and its scoped views."""

    def __init__(self, queryset: models.QuerySet):
        self.queryset = queryset
        self.groups: List[List[Q]] = [[]]

    def add(self, condition: Q, boolean: str = "and") -> None:
        if boolean == "or" and any(self.groups):
            self.groups.append([condition])
        else:
            self.groups[-1].append(condition)

    def as_q(self) -> Optional[Q]:
        conjunctions = [reduce(and_, group) for group in self.groups if group]
        if not conjunctions:
            return None
        return reduce(or_, conjunctions)

    def materialize(self) -> models.QuerySet:
        """
        Apply the pending predicates onto the joins already in the query.

        A plain ``filter()`` call opens a fresh join for every multi-valued
        relation (reverse foreign keys, many-to-many), so a predicate on
        ``posts__title`` would land on a second copy of ``posts``. Marking
        the existing aliases as reusable keeps it on the joined row.
        """
        condition = self.as_q()
        if condition is None:
            return self.queryset
        queryset = self.queryset.all()
        query = queryset.query
        if query.is_sliced:
            raise TypeError("Cannot filter a query once a slice has been taken.")
        query.used_aliases = set(query.alias_map)
        query.add_q(condition)
        return queryset


class QueryBuilder:
    """Fluent builder exposing the query primitives model filters rely on."""

    def __init__(
        self,
        queryset: models.QuerySet,
        prefix: str = "",
        model: Optional[Type[models.Model]] = None,
        _state: Optional[_BuilderState] = None,
    ):
        self._state = _state if _state is not None else _BuilderState(queryset)
        self.prefix = prefix
        self.model = model or queryset.model

    def __repr__(self) -> str:
        scope = f" prefix={self.prefix!r}" if self.prefix else ""
        return f"<QueryBuilder model={self.model.__name__}{scope}>"

    def __iter__(self):
        return iter(self.queryset)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #
    @property
    def queryset(self) -> models.QuerySet:
        """The queryset with every pending predicate applied."""
        return self._state.materialize()

    @property
    def root_model(self) -> Type[models.Model]:
        return self._state.queryset.model

    def get_model(self) -> Type[models.Model]:
        return self.model

    def get_queryset(self) -> models.QuerySet:
        return self.queryset

    def get_joined_tables(self) -> List[str]:
        """Table names currently joined into the query."""
        alias_map = self.queryset.query.alias_map
        return [
            join.table_name for join in alias_map.values() if isinstance(join, Join)
        ]

    def to_sql(self) -> str:
        return str(self.queryset.query)

    def scoped(self, relation: str) -> "QueryBuilder":
        """Builder view writing into this query through ``relation``."""
        chain = resolve_relation_chain(self.model, relation)
        return QueryBuilder(
            self._state.queryset,
            prefix=self._column(lookup_path(chain)),
            model=chain[-1].related_model,
            _state=self._state,
        )

    # ------------------------------------------------------------------ #
    # Lookup prefixing
    # ------------------------------------------------------------------ #
    def _column(self, column: str) -> str:
        column = column.replace(".", "__")
        if not self.prefix:
            return column
        return f"{self.prefix}__{column}"

    def _prefix_q(self, condition: Q) -> Q:
        if not self.prefix:
            return condition
        prefixed = Q()
        prefixed.connector = condition.connector
        prefixed.negated = condition.negated
        for child in condition.children:
            if isinstance(child, Q):
                prefixed.children.append(self._prefix_q(child))
            elif isinstance(child, tuple):
                lookup, value = child
                prefixed.children.append((self._column(lookup), value))
            else:
                prefixed.children.append(child)
        return prefixed

    def _order_field(self, field: Any) -> Any:
        if not isinstance(field, str) or field == "?":
            return field
        if field.startswith("-"):
            return "-" + self._column(field[1:])
        return self._column(field)

    # ------------------------------------------------------------------ #
    # Predicates
    # ------------------------------------------------------------------ #
    def _add(self, condition: Q, boolean: str) -> "QueryBuilder":
        boolean = (boolean or "and").lower()
        if boolean not in _BOOLEANS:
            raise ValueError(f"boolean must be 'and' or 'or', got {boolean!r}")
        self._state.add(condition, boolean)
        return self

    def _condition(self, column: str, operator: str, value: Any) -> Q:
        op = str(operator).strip().lower()
        if op in OPERATOR_LOOKUPS:
            lookup = OPERATOR_LOOKUPS[op]
            if value is None and lookup == "exact":
                return Q(**{f"{self._column(column)}__isnull": True})
            return Q(**{f"{self._column(column)}__{lookup}": value})
        if op in NEGATED_OPERATORS:
            lookup = NEGATED_OPERATORS[op]
            if value is None and lookup == "exact":
                return Q(**{f"{self._column(column)}__isnull": False})
            return ~Q(**{f"{self._column(column)}__{lookup}": value})
        if op in LIKE_OPERATORS:
            case_insensitive, negated = LIKE_OPERATORS[op]
            lookup, pattern = like_lookup(value, case_insensitive)
            condition = Q(**{f"{self._column(column)}__{lookup}": pattern})
            return ~condition if negated else condition
        raise InvalidOperatorError(operator, model_name=self.model.__name__)

    def _group(self, callback: Callable[["QueryBuilder"], Any]) -> Optional[Q]:
        group = QueryBuilder(
            self._state.queryset,
            prefix=self.prefix,
            model=self.model,
            _state=_BuilderState(self._state.queryset),
        )
        callback(group)
        return group._state.as_q()

    def where(
        self,
        column: Any,
        operator: Any = _MISSING,
        value: Any = _MISSING,
        boolean: str = "and",
    ) -> "QueryBuilder":
        """
        Add a predicate.

        ``where("status", "active")`` means equality; ``where("age", ">", 18)``
        uses an explicit operator. ``column`` may also be a ``Q`` object or a
        callable receiving a builder whose predicates are grouped in
        parentheses.
        """
        if isinstance(column, Q):
            return self._add(self._prefix_q(column), boolean)
        if callable(column):
            condition = self._group(column)
            if condition is None:
                return self
            return self._add(condition, boolean)
        if value is _MISSING:
            if operator is _MISSING:
                raise TypeError("where() requires a value")
            operator, value = "=", operator
        return self._add(self._condition(column, operator, value), boolean)

    def or_where(self, column: Any, operator: Any = _MISSING, value: Any = _MISSING) -> "QueryBuilder":
        return self.where(column, operator, value, boolean="or")

    def where_in(self, column: str, values: Iterable[Any], boolean: str = "and", negate: bool = False) -> "QueryBuilder":
        operator = "not in" if negate else "in"
        return self.where(column, operator, list(values), boolean)

    def where_not_in(self, column: str, values: Iterable[Any], boolean: str = "and") -> "QueryBuilder":
        return self.where_in(column, values, boolean, negate=True)

    def where_null(self, column: str, boolean: str = "and", negate: bool = False) -> "QueryBuilder":
        return self._add(Q(**{f"{self._column(column)}__isnull": not negate}), boolean)

    def where_not_null(self, column: str, boolean: str = "and") -> "QueryBuilder":
        return self.where_null(column, boolean, negate=True)

    def where_between(self, column: str, bounds: Iterable[Any], boolean: str = "and") -> "QueryBuilder":
        low, high = bounds
        return self._add(Q(**{f"{self._column(column)}__range": (low, high)}), boolean)

    def where_like(self, column: str, value: Any, boolean: str = "and") -> "QueryBuilder":
        """WHERE column LIKE %value%"""
        return self.where(column, "like", f"%{value}%", boolean)

    def where_begins_with(self, column: str, value: Any, boolean: str = "and") -> "QueryBuilder":
        """WHERE column LIKE value%"""
        return self.where(column, "like", f"{value}%", boolean)

    def where_ends_with(self, column: str, value: Any, boolean: str = "and") -> "QueryBuilder":
        """WHERE column LIKE %value"""
        return self.where(column, "like", f"%{value}", boolean)

    def where_has(
        self,
        relation: str,
        callback: Optional[Callable[["QueryBuilder"], Any]] = None,
        boolean: str = "and",
        negate: bool = False,
    ) -> "QueryBuilder":
        """
        Require at least one related row matching ``callback``.

        Emits ``EXISTS (SELECT ... FROM related WHERE ...)`` correlated to the
        root model's primary key; nothing is joined into the outer query.
        """
        path = split_relation(self.prefix.replace("__", ".")) + split_relation(relation)
        chain = resolve_relation_chain(self.root_model, ".".join(path))
        related_model = chain[-1].related_model

        sub = QueryBuilder(related_model._default_manager.all())
        if callback is not None:
            callback(sub)
        subquery = sub.queryset.filter(**{reverse_lookup_path(chain): OuterRef("pk")})
        logger.debug("EXISTS sub-query on %s for %s", related_model.__name__, relation)

        condition = Q(Exists(subquery))
        return self._add(~condition if negate else condition, boolean)

    def or_where_has(self, relation: str, callback: Optional[Callable[["QueryBuilder"], Any]] = None) -> "QueryBuilder":
        return self.where_has(relation, callback, boolean="or")

    def where_doesnt_have(
        self,
        relation: str,
        callback: Optional[Callable[["QueryBuilder"], Any]] = None,
        boolean: str = "and",
    ) -> "QueryBuilder":
        return self.where_has(relation, callback, boolean, negate=True)

    # ------------------------------------------------------------------ #
    # Django-native chaining
    # ------------------------------------------------------------------ #
    def filter(self, *args: Q, **kwargs: Any) -> "QueryBuilder":
        return self._add(self._prefix_q(Q(*args, **kwargs)), "and")

    def exclude(self, *args: Q, **kwargs: Any) -> "QueryBuilder":
        return self._add(~self._prefix_q(Q(*args, **kwargs)), "and")

    def order_by(self, *fields: Any) -> "QueryBuilder":
        state = self._state
        state.queryset = state.queryset.order_by(*[self._order_field(f) for f in fields])
        return self

    def distinct(self, *fields: str) -> "QueryBuilder":
        state = self._state
        state.queryset = state.queryset.distinct(*[self._column(f) for f in fields])
        return self

    def select_related(self, *fields: str) -> "QueryBuilder":
        state = self._state
        state.queryset = state.queryset.select_related(*[self._column(f) for f in fields])
        return self

    def prefetch_related(self, *lookups: str) -> "QueryBuilder":
        state = self._state
        state.queryset = state.queryset.prefetch_related(*[self._column(f) for f in lookups])
        return self

    def annotate(self, *args: Any, **kwargs: Any) -> "QueryBuilder":
        state = self._state
        state.queryset = state.queryset.annotate(*args, **kwargs)
        return self

    # ------------------------------------------------------------------ #
    # Execution helpers
    # ------------------------------------------------------------------ #
    def count(self) -> int:
        return self.queryset.count()

    def exists(self) -> bool:
        return self.queryset.exists()

    def first(self) -> Optional[models.Model]:
        return self.queryset.first()

    def paginate(self, per_page: Optional[int] = None, page: Any = 1, filters: Optional[dict] = None) -> FilteredPage:
        return paginate(self.queryset, per_page, page, filters)

    def simple_paginate(self, per_page: Optional[int] = None, page: Any = 1, filters: Optional[dict] = None) -> SimplePage:
        return simple_paginate(self.queryset, per_page, page, filters)
