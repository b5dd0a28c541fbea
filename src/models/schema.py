"""
Pydantic models for database and application-level operations.
Contains all core data models for the entity store and the semantic index.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.categories import (
    EntityStatus,
    EntityType,
    PersonRole,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from utils.helpers import dump_json, parse_json_object


class EntityData(BaseModel):
    """Structured payload stored in the ``data`` column of an entity.

    ``description`` and ``tags`` are the known fields; anything else found
    in the stored blob is kept verbatim in ``extra``.
    """

    description: str = ""
    tags: List[str] = Field(default_factory=list)
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def parse(cls, blob: Any) -> "EntityData":
        """Parse a stored blob. Never raises: bad input yields an empty payload."""
        if isinstance(blob, EntityData):
            return blob
        raw = parse_json_object(blob)
        if raw is None:
            return cls()

        raw = dict(raw)
        description = raw.pop("description", None)
        legacy_description = raw.pop("desc", None)
        if description is None:
            description = legacy_description

        tags = raw.pop("tags", None)
        if isinstance(tags, str):
            tags = [tag.strip() for tag in tags.split(",") if tag.strip()]
        elif isinstance(tags, list):
            tags = [str(tag) for tag in tags]
        else:
            tags = []

        nested_extra = raw.pop("extra", None)
        if isinstance(nested_extra, dict):
            raw = {**nested_extra, **raw}

        return cls(
            description="" if description is None else str(description),
            tags=tags,
            extra=raw,
        )

    def to_blob(self) -> Optional[str]:
        payload: Dict[str, Any] = dict(self.extra)
        if self.description:
            payload["description"] = self.description
        if self.tags:
            payload["tags"] = list(self.tags)
        return dump_json(payload) if payload else None

    @property
    def is_empty(self) -> bool:
        return not (self.description or self.tags or self.extra)


class Entity(BaseModel):
    """A persisted commerce or memory record."""

    model_config = ConfigDict(validate_assignment=True)

    id: str
    type: EntityType
    title: str
    data: EntityData = Field(default_factory=EntityData)
    value: float = 0.0
    quantity: int = Field(default=1, ge=0)
    location: Optional[str] = None
    parent: Optional[str] = None
    status: EntityStatus = EntityStatus.ACTIVE
    created: int = 0
    updated: int = 0

    # Only populated on search results
    similarity: Optional[float] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Entity":
        return cls(
            id=row["id"],
            type=EntityType.parse(row["type"]),
            title=row["title"],
            data=EntityData.parse(row.get("data")),
            value=row.get("value") or 0.0,
            quantity=row["quantity"] if row.get("quantity") is not None else 1,
            location=row.get("location"),
            parent=row.get("parent"),
            status=EntityStatus.parse(row.get("status") or "active"),
            created=row["created"],
            updated=row["updated"],
        )

    def with_similarity(self, similarity: float) -> "Entity":
        return self.model_copy(update={"similarity": similarity})

    @property
    def is_free(self) -> bool:
        return self.value == 0

    def to_dict(self) -> Dict[str, Any]:
        payload = self.model_dump(mode="json")
        if self.similarity is None:
            payload.pop("similarity", None)
        return payload


class PersonLink(BaseModel):
    """Role-tagged edge between an opaque person id and an entity."""

    entity_id: str
    person_id: str
    role: PersonRole

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PersonLink":
        return cls(
            entity_id=row["entityid"],
            person_id=row["personid"],
            role=PersonRole.parse(row["role"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class Task(BaseModel):
    """A stateful work item owned by one entity and assigned to one person."""

    id: str
    entity_id: str
    person_id: str
    type: TaskType
    title: str
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.NORMAL
    due: Optional[int] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    created: int = 0
    updated: int = 0
    similarity: Optional[float] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Task":
        return cls(
            id=row["id"],
            entity_id=row["entityid"],
            person_id=row["personid"],
            type=TaskType.parse(row["type"]),
            title=row["title"],
            status=TaskStatus.parse(row.get("status") or "pending"),
            priority=TaskPriority.parse(row.get("priority") or 0),
            due=row.get("due"),
            data=parse_json_object(row.get("data")) or {},
            created=row["created"],
            updated=row["updated"],
        )

    def is_overdue(self, now: int) -> bool:
        return (
            self.status == TaskStatus.PENDING
            and self.due is not None
            and self.due < now
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = self.model_dump(mode="json")
        if self.similarity is None:
            payload.pop("similarity", None)
        return payload


class EntityStats(BaseModel):
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_status: Dict[str, int] = Field(default_factory=dict)


class PeopleStats(BaseModel):
    total: int = 0  # Distinct people
    total_links: int = 0
    by_role: Dict[str, int] = Field(default_factory=dict)


class TaskStats(BaseModel):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    overdue: int = 0


class BulkFailure(BaseModel):
    item: Any
    error: str


class BulkResult(BaseModel):
    """Outcome of a non-atomic bulk operation."""

    succeeded: List[Any] = Field(default_factory=list)
    failed: List[BulkFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)


class VectorRecord(BaseModel):
    """One chunk's embedding row as returned by a vector query."""

    id: int
    document: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    similarity: float = 0.0

    @property
    def entity_id(self) -> Optional[str]:
        value = self.metadata.get("entity_id")
        return str(value) if value is not None else None


class Suggestion(BaseModel):
    text: str
    type: EntityType
    icon: str


class SearchHistoryEntry(BaseModel):
    """One executed search query."""

    id: str
    query: str
    created: int
