"""
SQLite database connection shared by the entity store and the vector index.
The connection is explicitly constructed and has an open/close lifecycle;
all access is serialized by a lock so it can be used from worker threads.
"""

import asyncio
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Sequence,
    TypeVar,
)

import sqlite_vec
from loguru import logger

from models.exceptions import ProviderUnavailable, StoreErrorType
from queries.creation_queries import CREATE_INDEXES, CREATE_TABLES
from utils.error_utils import raiseError

# This block is only read by type checkers, not at runtime
if TYPE_CHECKING:
    import sqlite3
# This block is only executed at runtime, not by type checkers
else:
    import pysqlite3 as sqlite3

T = TypeVar("T")

MEMORY_DATABASE = ":memory:"


class SQLiteConnection:
    """Manages a SQLite database connection and its schema."""

    def __init__(
        self,
        database_path: str | Path = MEMORY_DATABASE,
        timeout: Optional[int] = None,
    ):
        self.database_path = str(database_path)
        if timeout is None:
            from config import config

            timeout = config.database.connection_timeout
        self.timeout = timeout
        self.connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    @property
    def is_memory(self) -> bool:
        return self.database_path == MEMORY_DATABASE

    @property
    def is_open(self) -> bool:
        return self.connection is not None

    def open(self) -> "SQLiteConnection":
        """Connect, load sqlite-vec and create tables. Safe to call twice."""
        with self._lock:
            if self.connection is None:
                self.connection = self._connect()
                self._create_tables()
        return self

    def _connect(self) -> sqlite3.Connection:
        """Establish connection to SQLite database."""
        try:
            if not self.is_memory:
                Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

            connection = sqlite3.connect(
                self.database_path,
                timeout=self.timeout,
                check_same_thread=False,
            )

            if not self.is_memory:
                # Enable WAL mode for better concurrency
                connection.execute("PRAGMA journal_mode=WAL")
                connection.execute(f"PRAGMA busy_timeout={self.timeout * 1000}")
                connection.execute("PRAGMA synchronous=NORMAL")

            connection.execute("PRAGMA foreign_keys=ON")
            connection.execute("PRAGMA temp_store=memory")

            connection.enable_load_extension(True)
            sqlite_vec.load(connection)
            connection.enable_load_extension(False)

            connection.execute("SELECT 1")

            logger.debug(f"Connected to SQLite database: {self.database_path}")
            return connection

        except (sqlite3.Error, OSError, AttributeError) as e:
            logger.error(f"Failed to connect to SQLite: {e}")
            raise ProviderUnavailable(
                f"Cannot open database '{self.database_path}': {e}", e
            ) from e

    def _create_tables(self) -> None:
        """Create the entity, link, task and vector tables."""
        connection = self._require()
        try:
            for query in CREATE_TABLES:
                connection.execute(query)

            for query in CREATE_INDEXES:
                connection.execute(query)

            connection.commit()
            logger.debug("Database tables and indexes created/verified")
        except Exception as e:
            connection.rollback()
            logger.error(f"Failed to create tables: {e}")
            raise

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self.connection is not None:
                self.connection.close()
                self.connection = None
                logger.debug("Database connection closed")

    def __enter__(self) -> "SQLiteConnection":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def __aenter__(self) -> "SQLiteConnection":
        return await asyncio.to_thread(self.open)

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await asyncio.to_thread(self.close)

    def _require(self) -> sqlite3.Connection:
        if self.connection is None:
            raiseError(
                StoreErrorType.DATABASE_CONNECTION,
                f"Database '{self.database_path}' is not open",
                ProviderUnavailable,
            )
        return self.connection

    def _unavailable(self, error: Exception) -> ProviderUnavailable:
        """Locked, busy or failing database, reported as a retryable error."""
        return ProviderUnavailable(
            f"Database '{self.database_path}' is unavailable: {error}", error
        )

    async def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking database function in a worker thread."""
        return await asyncio.to_thread(self._run_locked, fn, *args, **kwargs)

    def _run_locked(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with self._lock:
            return fn(*args, **kwargs)

    def execute_query(
        self, query: str, parameters: Optional[Sequence[Any]] = None
    ) -> List[Dict[str, Any]]:
        """Execute a query and return rows as dictionaries."""
        with self._lock:
            connection = self._require()
            try:
                cursor = connection.execute(query, tuple(parameters or ()))

                # Get column names
                columns = (
                    [description[0] for description in cursor.description]
                    if cursor.description
                    else []
                )

                rows = cursor.fetchall()
                return [dict(zip(columns, row)) for row in rows]

            except sqlite3.OperationalError as e:
                logger.error(f"Failed to execute query: {e}")
                raise self._unavailable(e) from e
            except Exception as e:
                logger.error(f"Failed to execute query: {e}")
                raise

    def execute_write(
        self, query: str, parameters: Optional[Sequence[Any]] = None
    ) -> int:
        """Execute a single statement in its own transaction, returning rowcount."""
        with self.transaction() as cursor:
            cursor.execute(query, tuple(parameters or ()))
            return cursor.rowcount

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor; commit on success, roll back and re-raise on error.

        Operational failures (locked or unreadable database) surface as
        ProviderUnavailable.
        """
        with self._lock:
            connection = self._require()
            cursor = connection.cursor()
            try:
                yield cursor
                connection.commit()
            except sqlite3.OperationalError as e:
                connection.rollback()
                logger.error(f"Transaction rolled back: {e}")
                raise self._unavailable(e) from e
            except Exception as e:
                connection.rollback()
                logger.error(f"Transaction rolled back: {e}")
                raise
            finally:
                cursor.close()
