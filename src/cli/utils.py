"""Utility functions for CLI operations."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

from loguru import logger

from demo import seed_safely
from embeddings import OnnxEmbeddingModel, TextChunker, VectorIndex
from search import SearchCoordinator
from services import EntityService
from store import (
    EntityStore,
    PeopleStore,
    SearchHistoryStore,
    SQLiteConnection,
    TaskStore,
)


@dataclass
class StoreContext:
    """Everything a command needs, wired to one database."""

    connection: SQLiteConnection
    entities: EntityStore
    people: PeopleStore
    tasks: TaskStore
    history: SearchHistoryStore
    index: VectorIndex
    service: EntityService
    coordinator: SearchCoordinator


def resolve_database_path(db: Optional[str]) -> str:
    """Use ``db`` if given, otherwise the configured database file."""
    from config import config

    if db:
        return db
    config.ensure_directories()
    return config.database.entities_db


def build_context(connection: SQLiteConnection) -> StoreContext:
    """Wire stores, the ONNX provider, the index and the services together."""
    from config import config

    entities = EntityStore(connection)
    people = PeopleStore(connection)
    tasks = TaskStore(connection)
    history = SearchHistoryStore(connection)
    index = VectorIndex(connection, OnnxEmbeddingModel())
    service = EntityService(
        entities,
        index,
        chunker=TextChunker(config.embedding.chunk_size, config.embedding.chunk_overlap),
        tasks=tasks,
        people=people,
    )
    coordinator = SearchCoordinator(
        entities, index, people=people, tasks=tasks, history=history
    )
    return StoreContext(
        connection=connection,
        entities=entities,
        people=people,
        tasks=tasks,
        history=history,
        index=index,
        service=service,
        coordinator=coordinator,
    )


@asynccontextmanager
async def open_context(
    db: Optional[str] = None, seed_demo: bool = True
) -> AsyncIterator[StoreContext]:
    """Open the database for the duration of one command.

    With ``demo.seed_on_start`` set the sample data is loaded first; a failed
    load is logged and the command runs anyway.
    """
    from config import config

    path = resolve_database_path(db)
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Opening database at {path}")

    async with SQLiteConnection(path) as connection:
        ctx = build_context(connection)
        if seed_demo and config.demo.seed_on_start:
            await seed_safely(ctx.service, ctx.people, ctx.tasks)
        yield ctx
