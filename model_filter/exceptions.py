"""
Custom exceptions for model filters.

Only errors raised by the library itself live here. Errors coming from
filter methods, relation callbacks or the ORM (``FieldDoesNotExist``,
``FieldError``) propagate unchanged.
"""

from typing import Optional


class ModelFilterError(Exception):
    """Base exception for model filter errors."""

    def __init__(self, message: str, model_name: Optional[str] = None):
        self.model_name = model_name
        super().__init__(message)


class FilterClassNotFound(ModelFilterError):
    """Raised when no filter class can be resolved for a model."""

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        filter_path: Optional[str] = None,
    ):
        self.filter_path = filter_path
        super().__init__(message, model_name)


class InvalidOperatorError(ModelFilterError):
    """Raised when ``where`` receives an operator it cannot translate."""

    def __init__(self, operator: str, model_name: Optional[str] = None):
        self.operator = operator
        super().__init__(f"Unsupported where operator: {operator!r}", model_name)
