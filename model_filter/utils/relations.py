"""
Relation metadata helpers.

Relation names may be forward fields (``category``), reverse accessors
(``posts`` or ``post_set``) or dotted chains of both (``posts.comments``).
"""

from typing import List, Type

from django.core.exceptions import FieldDoesNotExist
from django.db import models


def get_relation_field(model: Type[models.Model], name: str):
    """Get the relation field from model by name (forward or reverse)."""
    field = None
    try:
        field = model._meta.get_field(name)
    except FieldDoesNotExist:
        for rel in model._meta.related_objects:
            if rel.get_accessor_name() == name:
                field = rel
                break
    if field is None or not field.is_relation or field.related_model is None:
        raise FieldDoesNotExist(
            f"{model._meta.object_name} has no relation named '{name}'"
        )
    return field


def split_relation(relation: str) -> List[str]:
    return [segment for segment in relation.split(".") if segment]


def resolve_relation_chain(model: Type[models.Model], relation: str) -> list:
    """
    Walk a dotted relation segment by segment.

    Returns the relation fields in order; a broken chain raises
    ``FieldDoesNotExist``.
    """
    chain = []
    current = model
    for segment in split_relation(relation):
        field = get_relation_field(current, segment)
        chain.append(field)
        current = field.related_model
    if not chain:
        raise FieldDoesNotExist(f"Empty relation name for {model._meta.object_name}")
    return chain


def get_related_model(model: Type[models.Model], relation: str) -> Type[models.Model]:
    return resolve_relation_chain(model, relation)[-1].related_model


def lookup_path(chain: list) -> str:
    """ORM lookup path from the chain's origin, e.g. ``post__comments``."""
    return "__".join(field.name for field in chain)


def _reverse_query_name(field) -> str:
    if field.auto_created and not field.concrete:
        # Reverse relation object; walk back over the forward field.
        return field.field.name
    return field.related_query_name()


def reverse_lookup_path(chain: list) -> str:
    """ORM lookup path from the chain's target back to its origin."""
    return "__".join(_reverse_query_name(field) for field in reversed(chain))
