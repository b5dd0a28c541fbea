"""
Search history: the most recent executed queries, newest first.
"""

from typing import List

from loguru import logger

from models import SearchHistoryEntry, StoreErrorType, ValidationError
from queries.store_queries import (
    COUNT_SEARCHES,
    DELETE_ALL_SEARCHES,
    GET_RECENT_SEARCHES,
    INSERT_SEARCH,
    TRIM_SEARCHES,
)
from store.sqlite_client import SQLiteConnection
from utils.error_utils import raiseError, require_text
from utils.helpers import generate_id, now_ms

MAX_SEARCH_HISTORY = 100


class SearchHistoryStore:
    """Bounded log of search queries."""

    def __init__(self, connection: SQLiteConnection, max_entries: int = MAX_SEARCH_HISTORY):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.db = connection
        self.max_entries = max_entries

    async def record(self, query: str) -> SearchHistoryEntry:
        """Save a query and drop everything older than the newest ``max_entries``."""
        entry = SearchHistoryEntry(
            id=generate_id("search"),
            query=require_text(query, "query", ValidationError).strip(),
            created=now_ms(),
        )
        await self.db.run(self._insert, entry)
        return entry

    def _insert(self, entry: SearchHistoryEntry) -> None:
        with self.db.transaction() as cursor:
            cursor.execute(INSERT_SEARCH, (entry.id, entry.query, entry.created))
            cursor.execute(TRIM_SEARCHES, (self.max_entries,))
            if cursor.rowcount > 0:
                logger.debug(f"Trimmed {cursor.rowcount} old search history entries")

    async def recent(self, limit: int = 10) -> List[SearchHistoryEntry]:
        if limit < 0:
            raiseError(
                StoreErrorType.INVALID_VALUE, "limit must be non-negative", ValidationError
            )
        rows = await self.db.run(self.db.execute_query, GET_RECENT_SEARCHES, (limit,))
        return [SearchHistoryEntry(**row) for row in rows]

    async def count(self) -> int:
        rows = await self.db.run(self.db.execute_query, COUNT_SEARCHES)
        return int(rows[0]["count"]) if rows else 0

    async def clear(self) -> int:
        return await self.db.run(self.db.execute_write, DELETE_ALL_SEARCHES)
