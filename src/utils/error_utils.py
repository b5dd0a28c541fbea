"""
Generic error utilities for creating and raising typed exceptions.

This module provides utilities to create exceptions with associated error types
in a clean, reusable way across the application.
"""

from enum import Enum
from typing import NoReturn, Type, Union


def raiseError(
    error_type: Union[Enum, str],
    message: str,
    exception_class: Type[Exception] = ValueError,
) -> NoReturn:
    """
    Create and raise an exception with an associated error type.

    Args:
        error_type: The error type enum or string to associate with the exception
        message: The error message to display
        exception_class: The exception class to instantiate (defaults to ValueError)

    Raises:
        The specified exception with error_type attribute set

    Examples:
        >>> from models.exceptions import StoreErrorType, ValidationError
        >>> raiseError(StoreErrorType.MISSING_FIELD, "title is required", ValidationError)

        >>> raiseError(StoreErrorType.RESOURCE_NOT_FOUND, "No task 'x'", NotFound)
    """
    error = exception_class(message)
    setattr(error, "error_type", error_type)
    raise error


def require_text(value, field_name: str, exception_class: Type[Exception]) -> str:
    """Return ``value`` unchanged, raising when it is missing or blank."""
    from models.exceptions import StoreErrorType

    if value is None or not isinstance(value, str) or not value.strip():
        raiseError(
            StoreErrorType.MISSING_FIELD,
            f"'{field_name}' is required and must be a non-empty string",
            exception_class,
        )
    return value
