"""
ModelFilterSettings implementation.
"""

from dataclasses import dataclass
from typing import Any, Dict

from django.conf import settings as django_settings

from .defaults import LIBRARY_DEFAULTS, SETTINGS_NAME


def _merge_settings_dicts(*dicts: Dict[str, Any]) -> Dict[str, Any]:
    """Merge multiple settings dictionaries with later ones taking precedence."""
    result = {}
    for d in dicts:
        if d:
            result.update(d)
    return result


def _get_user_settings() -> Dict[str, Any]:
    """Read the ``MODEL_FILTER`` dict from Django settings, keys lowercased."""
    raw = getattr(django_settings, SETTINGS_NAME, None) or {}
    if not isinstance(raw, dict):
        return {}
    return {str(key).lower(): value for key, value in raw.items()}


@dataclass
class ModelFilterSettings:
    """Settings for filter class discovery and pagination."""

    namespace: str = "model_filters"
    paginate_limit: int = 15

    @classmethod
    def from_django(cls) -> "ModelFilterSettings":
        merged = _merge_settings_dicts(LIBRARY_DEFAULTS, _get_user_settings())
        valid_fields = set(cls.__dataclass_fields__.keys())
        instance = cls(**{k: v for k, v in merged.items() if k in valid_fields})
        instance.namespace = str(instance.namespace or "").strip().rstrip(".")
        instance.paginate_limit = int(instance.paginate_limit or LIBRARY_DEFAULTS["paginate_limit"])
        return instance


def get_settings() -> ModelFilterSettings:
    """Return the current settings; re-read on every call so overrides apply."""
    return ModelFilterSettings.from_django()
