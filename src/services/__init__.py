"""
Services module initialization.
Contains the entity service that keeps the store and the vector index in step.
"""

from services.entity_service import EntityService

__all__ = ["EntityService"]
