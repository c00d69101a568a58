"""
Relation filtering for model filters.

A filter declares which of its input keys belong to related models::

    class PostFilter(ModelFilter):
        relations = {
            "category": ["category_name"],
            "comments": {"comment": "body"},
        }

Each relation collects its constraints from two places: callbacks
registered with ``add_related``/``related`` and the related slice of the
input. When the relation's table is already joined into the query, the
constraints are written straight onto that join through a scoped builder;
otherwise they run inside an ``EXISTS`` sub-query.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import humps
from django.db import models
from django.db.models import Q

from .filterable import get_model_filter_class
from .query import _MISSING, QueryBuilder
from .utils.relations import get_related_model

logger = logging.getLogger(__name__)


def relation_setup_method(relation: str) -> str:
    """
    Name of the per-relation setup hook.

    Examples:
        >>> relation_setup_method("posts")
        "postsSetup"
        >>> relation_setup_method("posts.comments")
        "postsCommentsSetup"
    """
    return humps.camelize(relation.replace(".", "_")) + "Setup"


def relation_input_keys(declared: Any) -> List[Tuple[str, str]]:
    """
    Normalize a relation declaration to ``(input key, nested key)`` pairs.

    A plain string keeps its name; a mapping renames ``input key`` to
    ``nested key`` on the way to the related filter.
    """
    if declared is None:
        return []
    if isinstance(declared, str):
        return [(declared, declared)]
    if isinstance(declared, dict):
        return [(str(key), str(name)) for key, name in declared.items()]
    pairs = []
    for item in declared:
        pairs.extend(relation_input_keys(item))
    return pairs


class RelationFilterMixin:
    """Mixin resolving ``relations`` and local relation callbacks."""

    relations: Dict[str, Any] = {}

    def _init_relation_state(self) -> None:
        self._local_related_filters: Dict[str, List[Callable]] = {}
        self._all_relations: Optional[Dict[str, list]] = None
        self._joined_tables: Optional[List[str]] = None

    # ------------------------------------------------------------------ #
    # Local relation callbacks
    # ------------------------------------------------------------------ #
    def add_related(self, relation: str, callback: Callable[[QueryBuilder], Any]):
        """Register a callback constraining ``relation``."""
        self._local_related_filters.setdefault(relation, []).append(callback)
        return self

    def related(
        self,
        relation: str,
        column: Any,
        operator: Any = _MISSING,
        value: Any = _MISSING,
        boolean: str = "and",
    ):
        """
        Add a ``where`` constraint on ``relation``.

        ``related("posts", "status", "published")`` compares with ``=``;
        ``column`` may also be a callback receiving the relation's builder.
        """
        if callable(column):
            return self.add_related(relation, column)
        if isinstance(column, Q):
            return self.add_related(relation, lambda query: query.where(column, boolean=boolean))
        if value is _MISSING:
            if operator is _MISSING:
                raise TypeError("related() requires a value")
            operator, value = "=", operator

        def constraint(query: QueryBuilder):
            return query.where(column, operator, value, boolean)

        return self.add_related(relation, constraint)

    def get_local_relation(self, related: str) -> List[Callable]:
        return list(self._local_related_filters.get(related, []))

    # ------------------------------------------------------------------ #
    # Relation input
    # ------------------------------------------------------------------ #
    def get_related_filter_input(self, related: str) -> Dict[str, Any]:
        """The part of the input declared for ``related``, keyed for its filter."""
        output = {}
        if related not in self.relations:
            return output
        for key_name, name in relation_input_keys(self.relations[related]):
            if key_name not in self._input:
                continue
            value = self._input[key_name]
            if self.include_filter_input(key_name, value):
                output[name] = value
        return output

    def get_all_relations(self) -> Dict[str, list]:
        """Constraints per relation: local callbacks, then related input items."""
        if self._all_relations is None:
            names = list(self.relations)
            names += [name for name in self._local_related_filters if name not in names]
            self._all_relations = {
                related: self.get_local_relation(related)
                + list(self.get_related_filter_input(related).items())
                for related in names
            }
        return self._all_relations

    def get_relation_constraints(self, relation: str) -> list:
        return self.get_all_relations().get(relation, [])

    def relation_is_filterable(self, relation: str) -> bool:
        return self.relation_uses_filter(relation) or self.relation_is_local(relation)

    def relation_uses_filter(self, related: str) -> bool:
        return len(self.get_related_filter_input(related)) > 0

    def relation_is_local(self, related: str) -> bool:
        return len(self.get_local_relation(related)) > 0

    # ------------------------------------------------------------------ #
    # Related model metadata
    # ------------------------------------------------------------------ #
    def get_related_model(self, relation: str) -> Type[models.Model]:
        return get_related_model(self.query.get_model(), relation)

    def get_related_table(self, relation: str) -> str:
        return self.get_related_model(relation)._meta.db_table

    def get_related_filter(self, relation: str) -> type:
        return get_model_filter_class(self.get_related_model(relation))

    def get_joined_tables(self) -> List[str]:
        return self.query.get_joined_tables()

    def relation_is_joined(self, relation: str) -> bool:
        if self._joined_tables is None:
            self._joined_tables = self.get_joined_tables()
        return self.get_related_table(relation) in self._joined_tables

    # ------------------------------------------------------------------ #
    # Application
    # ------------------------------------------------------------------ #
    def filter_relations(self):
        if not self.relations_enabled():
            return self
        for related, constraints in self.get_all_relations().items():
            if not constraints:
                continue
            if self.relation_is_joined(related):
                logger.debug("Filtering joined relation %s on %s", related, type(self).__name__)
                self.filter_joined_relation(related)
            else:
                logger.debug("Filtering relation %s through EXISTS on %s", related, type(self).__name__)
                self.filter_unjoined_relation(related)
        return self

    def call_related_local_setup(self, related: str, query: QueryBuilder) -> None:
        name = relation_setup_method(related)
        # Relations added only through add_related have no reserved hook.
        hook = type(self)._relation_setup_hooks.get(name) or type(self)._filter_methods.get(name)
        if hook is not None:
            hook.__get__(self, type(self))(query)

    def filter_joined_relation(self, related: str) -> None:
        scope = self.query.scoped(related)
        self.call_related_local_setup(related, scope)

        for callback in self.get_local_relation(related):
            callback(scope)

        related_input = self.get_related_filter_input(related)
        if related_input:
            filter_class = self.get_related_filter(related)
            filter_class(scope, related_input, bool(filter_class.relations)).handle()

    def filter_unjoined_relation(self, related: str) -> None:
        def constrain(sub: QueryBuilder) -> QueryBuilder:
            self.call_related_local_setup(related, sub)

            for callback in self.get_local_relation(related):
                callback(sub)

            related_input = self.get_related_filter_input(related)
            if related_input:
                filter_class = self.get_related_filter(related)
                filter_class(sub, related_input).handle()
            return sub

        self.query.where_has(related, constrain)
