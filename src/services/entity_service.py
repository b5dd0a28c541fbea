"""Entity Service - keeps the entity store and the vector index in step."""

from typing import Any, Dict, List, Mapping, Optional, Union

from loguru import logger

from embeddings.text_splitter import TextChunker, entity_to_text
from embeddings.vector_store import VectorIndex, VectorRow
from models import (
    Entity,
    EntityStats,
    EntityStatus,
    NotFound,
    StoreErrorType,
)
from store.entity_store import EntityStore, TypeFilter, normalize_entity_fields
from store.people_store import PeopleStore
from store.task_store import TaskStore
from utils.error_utils import raiseError
from utils.locks import KeyedLock
from utils.retry import with_retries

# Fields that feed the indexed document
INDEXED_FIELDS = frozenset({"type", "title", "data"})

TEXT_KIND = "text"
IMAGE_KIND = "image"


class EntityService:
    """Produced interface for entities: every write keeps the index consistent.

    Writers of the same entity are serialized with a per-entity lock. A
    re-index embeds every new chunk before touching the index, then swaps
    old rows for new ones in one transaction, so an embedding failure leaves
    the previous index untouched and readers never see a half-indexed entity.
    """

    def __init__(
        self,
        entities: EntityStore,
        index: VectorIndex,
        chunker: Optional[TextChunker] = None,
        tasks: Optional[TaskStore] = None,
        people: Optional[PeopleStore] = None,
        retry_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        if chunker is None or retry_attempts is None or retry_delay is None:
            from config import config

            if chunker is None:
                chunker = TextChunker(
                    config.embedding.chunk_size, config.embedding.chunk_overlap
                )
            if retry_attempts is None:
                retry_attempts = config.embedding.retry_attempts
            if retry_delay is None:
                retry_delay = config.embedding.retry_delay

        self.entities = entities
        self.index = index
        self.chunker = chunker
        self.tasks = tasks
        self.people = people
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self._locks = KeyedLock()

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    async def _embed_entity(self, entity: Entity) -> List[VectorRow]:
        """Chunk and embed an entity. Nothing is written."""
        chunks = self.chunker.split(entity_to_text(entity))
        if not chunks:
            return []

        vectors = await with_retries(
            lambda: self.index.provider.embed_many(chunks),
            attempts=self.retry_attempts,
            delay=self.retry_delay,
            description=f"Embedding {entity.id}",
        )
        return [
            (
                vector,
                {
                    "entity_id": entity.id,
                    "type": entity.type.value,
                    "kind": TEXT_KIND,
                    "chunk": position,
                },
                chunk,
            )
            for position, (vector, chunk) in enumerate(zip(vectors, chunks))
        ]

    async def _reindex_locked(self, entity: Entity) -> int:
        rows = await self._embed_entity(entity)
        ids = await self.index.replace({"entity_id": entity.id, "kind": TEXT_KIND}, rows)
        return len(ids)

    # ------------------------------------------------------------------
    # Produced interface
    # ------------------------------------------------------------------

    async def create(
        self, entity: Union[Entity, Mapping[str, Any], None] = None, **fields: Any
    ) -> str:
        """Validate, embed, then persist and index a new entity.

        Raises ValidationError for bad input and ProviderUnavailable when
        embedding fails; in both cases nothing is written.
        """
        record = self.entities.build(entity, **fields)
        async with self._locks.hold(record.id):
            rows = await self._embed_entity(record)
            await self.entities.create(record)
            try:
                await self.index.add_many(rows)
            except Exception as e:
                logger.error(f"Indexing {record.id} failed, removing the row: {e}")
                await self.entities.delete(record.id)
                raise
        logger.debug(f"Created and indexed {record.id} with {len(rows)} chunks")
        return record.id

    async def update(self, entity_id: str, **fields: Any) -> Entity:
        """Apply a partial update and re-index when an indexed field is supplied."""
        async with self._locks.hold(entity_id):
            current = await self.entities.get(entity_id)
            if current is None:
                raiseError(
                    StoreErrorType.RESOURCE_NOT_FOUND,
                    f"Entity '{entity_id}' not found",
                    NotFound,
                )

            rows = None
            if INDEXED_FIELDS & fields.keys():
                # Embed the prospective version first; a failure leaves both
                # the row and the index as they were
                prospective = current.model_copy(update=normalize_entity_fields(fields))
                rows = await self._embed_entity(prospective)

            updated = await self.entities.update(entity_id, **fields)

            if rows is not None:
                await self.index.replace({"entity_id": entity_id, "kind": TEXT_KIND}, rows)
                logger.debug(f"Re-indexed {entity_id} with {len(rows)} chunks")
            return updated

    async def delete(self, entity_id: str, cascade: bool = False) -> bool:
        """Remove an entity and its vectors.

        Tasks and person links are only removed with ``cascade=True``.
        Idempotent: returns False if the entity did not exist.
        """
        async with self._locks.hold(entity_id):
            removed_vectors = await self.index.delete({"entity_id": entity_id})
            removed = await self.entities.delete(entity_id)
            if cascade:
                if self.tasks is not None:
                    await self.tasks.delete_for_entity(entity_id)
                if self.people is not None:
                    await self.people.clear_entity(entity_id)
        logger.debug(
            f"Deleted {entity_id} (row removed: {removed}, vectors: {removed_vectors}, "
            f"cascade: {cascade})"
        )
        return removed

    async def get(self, entity_id: str) -> Optional[Entity]:
        return await self.entities.get(entity_id)

    async def list_all(
        self,
        type: TypeFilter = None,
        status: Union[EntityStatus, str, None] = None,
        limit: Optional[int] = None,
        include_structural: bool = False,
    ) -> List[Entity]:
        return await self.entities.list_all(
            type=type, status=status, limit=limit, include_structural=include_structural
        )

    async def stats(self) -> EntityStats:
        return await self.entities.stats()

    async def index_stats(self) -> Dict[str, Any]:
        return await self.index.stats()

    async def index_image(
        self, entity_id: str, data: bytes, document: str = ""
    ) -> int:
        """Attach an image embedding to an existing entity."""
        async with self._locks.hold(entity_id):
            entity = await self.entities.get(entity_id)
            if entity is None:
                raiseError(
                    StoreErrorType.RESOURCE_NOT_FOUND,
                    f"Entity '{entity_id}' not found",
                    NotFound,
                )
            return await self.index.add_image(
                data,
                {"entity_id": entity_id, "type": entity.type.value, "kind": IMAGE_KIND},
                document or entity.title,
            )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def reindex(self, entity_id: str) -> int:
        """Rebuild the text vectors of one entity; returns the chunk count."""
        async with self._locks.hold(entity_id):
            entity = await self.entities.get(entity_id)
            if entity is None:
                raiseError(
                    StoreErrorType.RESOURCE_NOT_FOUND,
                    f"Entity '{entity_id}' not found",
                    NotFound,
                )
            return await self._reindex_locked(entity)

    async def prune_orphans(self) -> int:
        """Delete vectors whose entity no longer exists."""
        entities = await self.entities.list_all(include_structural=True)
        known = {entity.id for entity in entities}
        removed = await self.index.delete(lambda metadata: metadata.get("entity_id") not in known)
        if removed:
            logger.info(f"Pruned {removed} orphaned vectors")
        return removed

    async def reindex_all(self) -> Dict[str, int]:
        """Prune orphaned vectors and rebuild every entity's text vectors.

        ProviderUnavailable stops the run; entities already rebuilt keep
        their new vectors and the rest keep their old ones.
        """
        pruned = await self.prune_orphans()
        entities = await self.entities.list_all(include_structural=True)
        rebuilt = vectors = 0
        for listed in entities:
            async with self._locks.hold(listed.id):
                # Re-read under the lock; it may have changed or gone
                entity = await self.entities.get(listed.id)
                if entity is None:
                    continue
                vectors += await self._reindex_locked(entity)
                rebuilt += 1
        logger.info(f"Re-indexed {rebuilt} entities into {vectors} vectors")
        return {"entities": rebuilt, "vectors": vectors, "pruned": pruned}
