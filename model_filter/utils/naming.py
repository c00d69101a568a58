"""
Naming utilities used to map input keys to filter method names.
"""

import re
from typing import Any

import humps

_ID_SUFFIX = re.compile(r"^(.*)_id$")


def filter_method_name(key: str, drop_id: bool = True, camel_cased: bool = True) -> str:
    """
    Derive the filter method name for an input key.

    Examples:
        >>> filter_method_name("user_id")
        "user"
        >>> filter_method_name("user_id", drop_id=False)
        "userId"
        >>> filter_method_name("created_at", camel_cased=False)
        "created_at"
    """
    name = _ID_SUFFIX.sub(r"\1", key) if drop_id else key
    name = name.replace(".", "")
    return humps.camelize(name) if camel_cased else name


def is_empty_value(value: Any) -> bool:
    """Empty string, ``None`` and empty collections never reach a filter."""
    if value is None or value == "":
        return True
    if isinstance(value, (list, tuple, set, frozenset, dict)) and len(value) == 0:
        return True
    return False
