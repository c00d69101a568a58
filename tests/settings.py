"""
Django settings for the model filter test suite.
"""

SECRET_KEY = "django-insecure-model-filter-tests"
DEBUG = False
USE_TZ = True

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "model_filter",
    "tests",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

MIGRATION_MODULES = {"tests": None}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

MODEL_FILTER = {
    "NAMESPACE": "tests.model_filters",
    "PAGINATE_LIMIT": 2,
}
