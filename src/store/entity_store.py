"""
Entity persistence: CRUD, filtered listing and aggregate statistics.
"""

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from loguru import logger

from models import (
    Entity,
    EntityData,
    EntityStats,
    EntityStatus,
    EntityType,
    NotFound,
    StoreErrorType,
    TaraiError,
    ValidationError,
)
from queries.store_queries import (
    DELETE_ENTITY,
    GET_ENTITIES_BY_IDS,
    GET_ENTITY_BY_ID,
    GET_ENTITY_CHILDREN,
    GET_ENTITY_STATS,
    GET_ENTITY_UPDATED,
    INSERT_ENTITY,
    LIST_ENTITIES,
    UPDATE_ENTITY,
)
from store.sqlite_client import SQLiteConnection, sqlite3
from utils.error_utils import raiseError, require_text
from utils.helpers import chunk_list, generate_id, now_ms

ENTITY_FIELDS = (
    "type",
    "title",
    "data",
    "value",
    "quantity",
    "location",
    "parent",
    "status",
)

# Accepted on input but always assigned by the store
_IGNORED_FIELDS = ("created", "updated", "similarity")

# SQLite's default bound-parameter limit is 999
MAX_IN_PARAMETERS = 900

TypeFilter = Union[EntityType, str, Sequence[Union[EntityType, str]], None]


def normalize_entity_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate user-supplied entity fields and coerce them to column values."""
    normalized: Dict[str, Any] = {}
    for key, value in fields.items():
        if key in _IGNORED_FIELDS:
            continue
        if key not in ENTITY_FIELDS:
            raiseError(
                StoreErrorType.INVALID_VALUE,
                f"Unknown entity field '{key}'",
                ValidationError,
            )

        if key == "title":
            normalized["title"] = require_text(value, "title", ValidationError).strip()
        elif key == "type":
            normalized["type"] = EntityType.parse(value)
        elif key == "status":
            normalized["status"] = EntityStatus.parse(value)
        elif key == "data":
            normalized["data"] = EntityData.parse(value)
        elif key == "value":
            normalized["value"] = _coerce_value(value)
        elif key == "quantity":
            normalized["quantity"] = _coerce_quantity(value)
        else:
            # location, parent
            normalized[key] = None if value in (None, "") else str(value)
    return normalized


def _coerce_value(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raiseError(StoreErrorType.INVALID_VALUE, "value must be numeric", ValidationError)
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raiseError(
            StoreErrorType.INVALID_VALUE,
            f"value must be numeric, got {value!r}",
            ValidationError,
        )
    if not math.isfinite(amount):
        raiseError(StoreErrorType.INVALID_VALUE, "value must be finite", ValidationError)
    return amount


def _coerce_quantity(value: Any) -> int:
    if value is None:
        return 1
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raiseError(
            StoreErrorType.INVALID_VALUE,
            f"quantity must be a non-negative integer, got {value!r}",
            ValidationError,
        )
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raiseError(
            StoreErrorType.INVALID_VALUE,
            f"quantity must be a non-negative integer, got {value!r}",
            ValidationError,
        )
    if quantity < 0 or quantity != float(value):
        raiseError(
            StoreErrorType.INVALID_VALUE,
            f"quantity must be a non-negative integer, got {value!r}",
            ValidationError,
        )
    return quantity


def _entity_params(entity: Entity) -> tuple:
    return (
        entity.id,
        entity.type.value,
        entity.title,
        entity.data.to_blob(),
        entity.value,
        entity.quantity,
        entity.location,
        entity.parent,
        entity.status.value,
        entity.created,
        entity.updated,
    )


def _column_value(key: str, value: Any) -> Any:
    if key in ("type", "status"):
        return value.value
    if key == "data":
        return value.to_blob()
    return value


def _parse_types(types: TypeFilter) -> Optional[List[EntityType]]:
    if types is None:
        return None
    if isinstance(types, (str, EntityType)):
        return [EntityType.parse(types)]
    return [EntityType.parse(t) for t in types]


class EntityStore:
    """Relational persistence for commerce entities."""

    def __init__(self, connection: SQLiteConnection):
        self.db = connection

    # ------------------------------------------------------------------
    # Create / read
    # ------------------------------------------------------------------

    async def create(
        self, entity: Union[Entity, Mapping[str, Any], None] = None, **fields: Any
    ) -> str:
        """Persist a new entity and return its id.

        Accepts an Entity, a mapping of fields, keyword fields, or a mix
        (keywords win). ``created``/``updated`` are always set to now.
        """
        record = self.build(entity, **fields)
        await self.db.run(self._insert, record)
        logger.debug(f"Created entity {record.id} ({record.type.value}): {record.title}")
        return record.id

    def build(
        self, entity: Union[Entity, Mapping[str, Any], None] = None, **fields: Any
    ) -> Entity:
        """Validate input and return the Entity that ``create`` would insert."""
        if isinstance(entity, Entity):
            raw: Dict[str, Any] = {
                "id": entity.id,
                **{key: getattr(entity, key) for key in ENTITY_FIELDS},
            }
        else:
            raw = dict(entity or {})
        raw.update(fields)

        entity_id = raw.pop("id", None)
        if entity_id is not None and not isinstance(entity_id, str):
            raiseError(StoreErrorType.INVALID_VALUE, "id must be a string", ValidationError)
        if not entity_id or not entity_id.strip():
            entity_id = generate_id("entity")

        if "title" not in raw:
            raiseError(StoreErrorType.MISSING_FIELD, "'title' is required", ValidationError)
        if "type" not in raw:
            raiseError(StoreErrorType.MISSING_FIELD, "'type' is required", ValidationError)

        normalized = normalize_entity_fields(raw)
        now = now_ms()
        return Entity(id=entity_id, created=now, updated=now, **normalized)

    def _insert(self, entity: Entity) -> None:
        try:
            self.db.execute_write(INSERT_ENTITY, _entity_params(entity))
        except sqlite3.IntegrityError as e:
            logger.error(f"Failed to insert entity {entity.id}: {e}")
            raiseError(
                StoreErrorType.INVALID_VALUE,
                f"Entity '{entity.id}' already exists",
                ValidationError,
            )

    async def get(self, entity_id: str) -> Optional[Entity]:
        rows = await self.db.run(self.db.execute_query, GET_ENTITY_BY_ID, (entity_id,))
        entities = self._to_entities(rows)
        return entities[0] if entities else None

    async def get_many(self, entity_ids: Iterable[str]) -> Dict[str, Entity]:
        """Fetch many entities at once, keyed by id in the order requested.

        Ids that do not exist are simply absent from the result.
        """
        ids = list(dict.fromkeys(entity_ids))
        if not ids:
            return {}
        rows = await self.db.run(self._select_many, ids)
        found = {entity.id: entity for entity in self._to_entities(rows)}
        return {entity_id: found[entity_id] for entity_id in ids if entity_id in found}

    def _select_many(self, ids: List[str]) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        for batch in chunk_list(ids, MAX_IN_PARAMETERS):
            query = GET_ENTITIES_BY_IDS.format(placeholders=", ".join("?" * len(batch)))
            rows.extend(self.db.execute_query(query, batch))
        return rows

    async def exists(self, entity_id: str) -> bool:
        rows = await self.db.run(self.db.execute_query, GET_ENTITY_UPDATED, (entity_id,))
        return bool(rows)

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------

    async def update(self, entity_id: str, **fields: Any) -> Entity:
        """Apply only the supplied fields and bump ``updated``.

        Raises NotFound if the entity does not exist.
        """
        if "id" in fields:
            raiseError(StoreErrorType.INVALID_VALUE, "id is immutable", ValidationError)
        changes = normalize_entity_fields(fields)
        await self.db.run(self._apply_update, entity_id, changes)
        entity = await self.get(entity_id)
        if entity is None:
            # Deleted between the update and the read
            raiseError(
                StoreErrorType.RESOURCE_NOT_FOUND,
                f"Entity '{entity_id}' not found",
                NotFound,
            )
        logger.debug(f"Updated entity {entity_id}: {sorted(changes)}")
        return entity

    def _apply_update(self, entity_id: str, changes: Dict[str, Any]) -> None:
        with self.db.transaction() as cursor:
            cursor.execute(GET_ENTITY_UPDATED, (entity_id,))
            row = cursor.fetchone()
            if row is None:
                raiseError(
                    StoreErrorType.RESOURCE_NOT_FOUND,
                    f"Entity '{entity_id}' not found",
                    NotFound,
                )
            # Never move backwards, even if the wall clock does
            updated = max(now_ms(), row[0])

            assignments = [f"{key} = ?" for key in changes] + ["updated = ?"]
            params = [_column_value(key, value) for key, value in changes.items()]
            params += [updated, entity_id]
            cursor.execute(
                UPDATE_ENTITY.format(assignments=", ".join(assignments)), params
            )

    async def delete(self, entity_id: str) -> bool:
        """Delete an entity. Idempotent: returns False if it was already gone."""
        deleted = await self.db.run(self.db.execute_write, DELETE_ENTITY, (entity_id,))
        if deleted:
            logger.debug(f"Deleted entity {entity_id}")
        return deleted > 0

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list_all(
        self,
        type: TypeFilter = None,
        status: Union[EntityStatus, str, None] = None,
        limit: Optional[int] = None,
        include_structural: bool = False,
    ) -> List[Entity]:
        """List entities in insertion order.

        Structural types are hidden unless ``include_structural`` is set or
        they are requested explicitly through ``type``.
        """
        types = _parse_types(type)
        clauses: List[str] = []
        params: List[Any] = []

        if types is not None:
            clauses.append(f"type IN ({', '.join('?' * len(types))})")
            params.extend(t.value for t in types)
        elif not include_structural:
            structural = [t for t in EntityType if t.is_structural]
            clauses.append(f"type NOT IN ({', '.join('?' * len(structural))})")
            params.extend(t.value for t in structural)

        if status is not None:
            clauses.append("status = ?")
            params.append(EntityStatus.parse(status).value)

        return await self._list(clauses, params, limit)

    async def children(self, parent_id: str) -> List[Entity]:
        rows = await self.db.run(self.db.execute_query, GET_ENTITY_CHILDREN, (parent_id,))
        return self._to_entities(rows)

    async def roots(self, types: TypeFilter = None) -> List[Entity]:
        """Top-level entities (no parent), commerce types only unless ``types`` given."""
        parsed = _parse_types(types) or EntityType.commerce_types()
        clauses = [
            "parent IS NULL",
            f"type IN ({', '.join('?' * len(parsed))})",
        ]
        return await self._list(clauses, [t.value for t in parsed], None)

    async def _list(
        self, clauses: List[str], params: List[Any], limit: Optional[int]
    ) -> List[Entity]:
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        query = LIST_ENTITIES.format(where=where)
        if limit is not None:
            if limit < 0:
                raiseError(
                    StoreErrorType.INVALID_VALUE,
                    "limit must be non-negative",
                    ValidationError,
                )
            query += " LIMIT ?"
            params = params + [limit]
        rows = await self.db.run(self.db.execute_query, query, params)
        return self._to_entities(rows)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def stats(self) -> EntityStats:
        """Counts by type and status, computed fresh from one GROUP BY pass."""
        rows = await self.db.run(self.db.execute_query, GET_ENTITY_STATS)
        stats = EntityStats()
        for row in rows:
            count = row["count"]
            stats.total += count
            stats.by_type[row["type"]] = stats.by_type.get(row["type"], 0) + count
            stats.by_status[row["status"]] = stats.by_status.get(row["status"], 0) + count
        return stats

    @staticmethod
    def _to_entities(rows: List[Dict[str, Any]]) -> List[Entity]:
        entities = []
        for row in rows:
            try:
                entities.append(Entity.from_row(row))
            except TaraiError as e:
                logger.warning(f"Skipping unreadable entity row {row.get('id')}: {e}")
        return entities
