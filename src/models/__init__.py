"""
Models module initialization.
"""

from models.categories import (
    STRUCTURAL_TYPES,
    CategoryInfo,
    EntityStatus,
    EntityType,
    PersonRole,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from models.exceptions import (
    Cancelled,
    NotFound,
    ProviderUnavailable,
    StaleReference,
    StoreErrorType,
    TaraiError,
    ValidationError,
)
from models.schema import (
    BulkFailure,
    BulkResult,
    Entity,
    EntityData,
    EntityStats,
    PeopleStats,
    PersonLink,
    SearchHistoryEntry,
    Suggestion,
    Task,
    TaskStats,
    VectorRecord,
)

__all__ = [
    "CategoryInfo",
    "EntityType",
    "EntityStatus",
    "PersonRole",
    "TaskType",
    "TaskStatus",
    "TaskPriority",
    "STRUCTURAL_TYPES",
    "TaraiError",
    "ValidationError",
    "NotFound",
    "ProviderUnavailable",
    "StaleReference",
    "Cancelled",
    "StoreErrorType",
    "Entity",
    "EntityData",
    "PersonLink",
    "Task",
    "EntityStats",
    "PeopleStats",
    "TaskStats",
    "BulkFailure",
    "BulkResult",
    "VectorRecord",
    "Suggestion",
    "SearchHistoryEntry",
]
