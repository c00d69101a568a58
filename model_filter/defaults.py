"""
Default configuration for the model filter library.

Every key consumed from the ``MODEL_FILTER`` Django setting is listed
here with its default value.
"""

from __future__ import annotations

from typing import Any, Dict

SETTINGS_NAME = "MODEL_FILTER"

LIBRARY_DEFAULTS: Dict[str, Any] = {
    # Module holding ``<ModelName>Filter`` classes.
    "namespace": "model_filters",
    # Page size used by ``paginate_filter`` when none is given.
    "paginate_limit": 15,
}
