"""
Utility helpers for model filters.
"""

from .naming import filter_method_name, is_empty_value
from .relations import (
    get_related_model,
    get_relation_field,
    lookup_path,
    resolve_relation_chain,
    reverse_lookup_path,
    split_relation,
)

__all__ = [
    "filter_method_name",
    "is_empty_value",
    "get_related_model",
    "get_relation_field",
    "lookup_path",
    "resolve_relation_chain",
    "reverse_lookup_path",
    "split_relation",
]
