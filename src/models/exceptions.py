"""
Store error types and exceptions.

Every exception raised by the store, the vector index or the embedding
provider derives from TaraiError and carries an ``error_type`` taken from
StoreErrorType so callers can branch on the category without string matching.
"""

from enum import Enum


class StoreErrorType(Enum):
    """Types of store errors for categorization."""

    MISSING_FIELD = "missing_field"
    INVALID_VALUE = "invalid_value"
    UNKNOWN_TAG = "unknown_tag"
    INVALID_TRANSITION = "invalid_transition"
    DIMENSION_MISMATCH = "dimension_mismatch"
    RESOURCE_NOT_FOUND = "resource_not_found"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    DATABASE_CONNECTION = "database_connection"
    STALE_REFERENCE = "stale_reference"
    SUPERSEDED = "superseded"


class TaraiError(Exception):
    """Base exception for all store errors."""

    error_type: StoreErrorType = StoreErrorType.INVALID_VALUE

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(TaraiError):
    """Malformed or missing required input. Never retried automatically."""

    error_type = StoreErrorType.INVALID_VALUE


class NotFound(TaraiError):
    """The operation targets an id that does not exist."""

    error_type = StoreErrorType.RESOURCE_NOT_FOUND


class ProviderUnavailable(TaraiError):
    """The embedding provider or the database is unreachable. Retryable."""

    error_type = StoreErrorType.PROVIDER_UNAVAILABLE

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message)


class StaleReference(TaraiError):
    """A vector record points at an entity that no longer exists.

    Search never raises it: stale hits are dropped and logged, and
    ``EntityService.prune_orphans`` removes them. It names the condition for
    callers that resolve vector records themselves.
    """

    error_type = StoreErrorType.STALE_REFERENCE


class Cancelled(TaraiError):
    """A search superseded by a newer query of the same session."""

    error_type = StoreErrorType.SUPERSEDED

    def __init__(self, message: str = "Search superseded by a newer query"):
        super().__init__(message)
