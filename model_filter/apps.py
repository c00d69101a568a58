"""
Django app configuration for the model filter library.

Installing the app is only needed for the ``make_model_filter``
management command; filters work without it.
"""

import logging

from django.apps import AppConfig as BaseAppConfig

from .settings import get_settings

logger = logging.getLogger(__name__)


class ModelFilterConfig(BaseAppConfig):
    """Django app configuration for django-model-filter."""

    name = "model_filter"
    label = "model_filter"
    verbose_name = "Model Filter"

    def ready(self):
        settings = get_settings()
        logger.debug(
            "Model filters resolved from namespace %r (paginate limit %s)",
            settings.namespace,
            settings.paginate_limit,
        )
