"""
Vector index backed by SQLite and sqlite-vec.

Each row holds one chunk embedding, the chunk text and a JSON metadata bag
that always names the owning ``entity_id``. The index holds no knowledge of
entities beyond that reference.
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from embeddings.embedding_model import EmbeddingProvider
from models import StoreErrorType, ValidationError, VectorRecord
from queries.vector_queries import (
    COUNT_VECTORS,
    COUNT_VECTORS_WHERE,
    DELETE_VECTORS_BY_IDS,
    DELETE_VECTORS_WHERE,
    GET_VECTOR_STATS,
    INSERT_VECTOR,
    QUERY_SIMILAR_VECTORS,
    SELECT_VECTOR_METADATA,
)
from store.entity_store import MAX_IN_PARAMETERS
from store.sqlite_client import SQLiteConnection, sqlite3
from utils.error_utils import raiseError
from utils.helpers import chunk_list, dump_json, parse_json_object

MetadataFilter = Union[Mapping[str, Any], Callable[[Dict[str, Any]], bool]]
VectorRow = Tuple[Any, Mapping[str, Any], str]

_METADATA_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class VectorIndex:
    """Append-only store of chunk embeddings with similarity search."""

    def __init__(self, connection: SQLiteConnection, provider: EmbeddingProvider):
        self.db = connection
        self.provider = provider
        self.dimension = provider.dimension

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _as_vector(self, vector: Any) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float32)
        if array.ndim != 1 or array.shape[0] != self.dimension:
            raiseError(
                StoreErrorType.DIMENSION_MISMATCH,
                f"Expected {self.dimension}-dimensional vector, got shape {array.shape}",
                ValidationError,
            )
        if not np.all(np.isfinite(array)) or not np.any(array):
            raiseError(
                StoreErrorType.INVALID_VALUE,
                "Vector must be finite and non-zero",
                ValidationError,
            )
        return array

    @staticmethod
    def _as_metadata(metadata: Optional[Mapping[str, Any]]) -> str:
        if not isinstance(metadata, Mapping):
            raiseError(
                StoreErrorType.MISSING_FIELD,
                "Vector metadata must be a mapping with an entity_id",
                ValidationError,
            )
        entity_id = metadata.get("entity_id")
        if entity_id is None or str(entity_id).strip() == "":
            raiseError(
                StoreErrorType.MISSING_FIELD,
                "Vector metadata must carry a non-empty entity_id",
                ValidationError,
            )
        payload = dict(metadata)
        payload["entity_id"] = str(entity_id)
        return dump_json(payload)

    def _prepare_rows(self, rows: Sequence[VectorRow]) -> List[Tuple[bytes, str, str]]:
        prepared = []
        for vector, metadata, document in rows:
            prepared.append(
                (
                    self._as_vector(vector).tobytes(),
                    document or "",
                    self._as_metadata(metadata),
                )
            )
        return prepared

    @staticmethod
    def _where_clause(where: Mapping[str, Any]) -> Tuple[str, List[Any]]:
        if not where:
            raiseError(
                StoreErrorType.INVALID_VALUE,
                "Metadata filter must not be empty",
                ValidationError,
            )
        clauses, params = [], []
        for key, value in where.items():
            if not _METADATA_KEY.match(key):
                raiseError(
                    StoreErrorType.INVALID_VALUE,
                    f"Invalid metadata key '{key}'",
                    ValidationError,
                )
            if isinstance(value, bool):
                value = int(value)
            clauses.append(f"json_extract(metadata, '$.{key}') = ?")
            params.append(value)
        return " AND ".join(clauses), params

    # ------------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------------

    async def add(
        self, vector: Any, metadata: Mapping[str, Any], document: str = ""
    ) -> int:
        """Append one record and return its row id. No deduplication."""
        ids = await self.add_many([(vector, metadata, document)])
        return ids[0]

    async def add_text(self, text: str, metadata: Mapping[str, Any]) -> int:
        """Embed ``text`` (one provider call) and append it."""
        vector = await self.provider.embed(text)
        return await self.add(vector, metadata, text)

    async def add_image(
        self, data: bytes, metadata: Mapping[str, Any], document: str = ""
    ) -> int:
        """Embed raw image bytes (one provider call) and append them."""
        vector = await self.provider.embed_image(data)
        return await self.add(vector, metadata, document)

    async def add_many(self, rows: Sequence[VectorRow]) -> List[int]:
        """Append several records in a single transaction."""
        prepared = self._prepare_rows(rows)
        if not prepared:
            return []
        return await self.db.run(self._insert_sync, prepared)

    async def replace(self, where: MetadataFilter, rows: Sequence[VectorRow]) -> List[int]:
        """Delete the records matching ``where`` and append ``rows`` atomically.

        Readers see either the old records or the new ones, never neither.
        """
        prepared = self._prepare_rows(rows)
        return await self.db.run(self._replace_sync, where, prepared)

    def _insert_sync(self, prepared: List[Tuple[bytes, str, str]]) -> List[int]:
        with self.db.transaction() as cursor:
            return self._insert_rows(cursor, prepared)

    def _replace_sync(
        self, where: MetadataFilter, prepared: List[Tuple[bytes, str, str]]
    ) -> List[int]:
        with self.db.transaction() as cursor:
            deleted = self._delete_rows(cursor, where)
            ids = self._insert_rows(cursor, prepared)
        logger.debug(f"Replaced {deleted} vectors with {len(ids)}")
        return ids

    @staticmethod
    def _insert_rows(
        cursor: sqlite3.Cursor, prepared: List[Tuple[bytes, str, str]]
    ) -> List[int]:
        ids: List[int] = []
        for embedding, document, metadata in prepared:
            cursor.execute(INSERT_VECTOR, (embedding, document, metadata))
            rowid = cursor.lastrowid
            if rowid is None:
                raise RuntimeError("Failed to retrieve lastrowid after insert")
            ids.append(int(rowid))
        return ids

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    async def query(self, query: Union[str, Any], top_k: int = 10) -> List[VectorRecord]:
        """Nearest records by cosine similarity, best first.

        Text queries are embedded with ``embed_query``. Ties are broken by
        insertion order.
        """
        if top_k <= 0:
            return []
        if isinstance(query, str):
            vector = await self.provider.embed_query(query)
        else:
            vector = query
        array = self._as_vector(vector)

        rows = await self.db.run(
            self.db.execute_query, QUERY_SIMILAR_VECTORS, (array.tobytes(), top_k)
        )
        return [
            VectorRecord(
                id=row["id"],
                document=row["document"],
                metadata=parse_json_object(row["metadata"]) or {},
                similarity=float(row["similarity"]),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete(self, where: MetadataFilter) -> int:
        """Delete records whose metadata matches ``where``.

        ``where`` is either a mapping of metadata equalities or a predicate
        over the metadata dict. Matching nothing is not an error.
        """
        return await self.db.run(self._delete_sync, where)

    def _delete_sync(self, where: MetadataFilter) -> int:
        with self.db.transaction() as cursor:
            deleted = self._delete_rows(cursor, where)
        if deleted:
            logger.debug(f"Deleted {deleted} vectors")
        return deleted

    def _delete_rows(self, cursor: sqlite3.Cursor, where: MetadataFilter) -> int:
        if callable(where):
            cursor.execute(SELECT_VECTOR_METADATA)
            matching = [
                row_id
                for row_id, metadata in cursor.fetchall()
                if where(parse_json_object(metadata) or {})
            ]
            deleted = 0
            for batch in chunk_list(matching, MAX_IN_PARAMETERS):
                cursor.execute(
                    DELETE_VECTORS_BY_IDS.format(placeholders=", ".join("?" * len(batch))),
                    batch,
                )
                deleted += cursor.rowcount
            return deleted

        clause, params = self._where_clause(where)
        cursor.execute(DELETE_VECTORS_WHERE.format(where=clause), params)
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def count(self, where: Optional[Mapping[str, Any]] = None) -> int:
        if where is None:
            rows = await self.db.run(self.db.execute_query, COUNT_VECTORS)
        else:
            clause, params = self._where_clause(where)
            rows = await self.db.run(
                self.db.execute_query, COUNT_VECTORS_WHERE.format(where=clause), params
            )
        return int(rows[0]["count"]) if rows else 0

    async def stats(self) -> Dict[str, Any]:
        """Vector store statistics."""
        rows = await self.db.run(self.db.execute_query, GET_VECTOR_STATS)
        row = rows[0] if rows else {"total_vectors": 0, "total_entities": 0}
        total_vectors = int(row["total_vectors"] or 0)
        total_entities = int(row["total_entities"] or 0)
        return {
            "total_vectors": total_vectors,
            "total_entities": total_entities,
            "avg_chunks_per_entity": (
                round(total_vectors / total_entities, 2) if total_entities else 0.0
            ),
            "dimension": self.dimension,
        }
