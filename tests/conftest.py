"""
Shared test fixtures and configuration for pytest.
"""

import asyncio
import os
import re
import sys
import zlib
from pathlib import Path
from typing import List

import numpy as np
import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Never pick up a developer's ~/.tarai configuration
os.environ["TARAI_CONFIG"] = str(Path(__file__).parent / "no-such-config.json")

from embeddings import EmbeddingProvider, TextChunker, VectorIndex  # noqa: E402
from models import ProviderUnavailable  # noqa: E402
from search import SearchCoordinator  # noqa: E402
from services import EntityService  # noqa: E402
from store import EntityStore, PeopleStore, SQLiteConnection, TaskStore  # noqa: E402

FAKE_DIMENSION = 128

_WORD = re.compile(r"[a-z0-9]+")


def run(coro):
    """Drive a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


def bag_of_words(text: str, dimension: int = FAKE_DIMENSION) -> np.ndarray:
    """Hashed word counts, L2-normalized. Slot 0 is a constant bias so the
    vector is never zero."""
    vector = np.zeros(dimension, dtype=np.float32)
    vector[0] = 0.1
    for word in _WORD.findall(text.lower()):
        slot = 1 + zlib.crc32(word.encode("utf-8")) % (dimension - 1)
        vector[slot] += 1.0
    return vector / np.linalg.norm(vector)


class FakeEmbeddingProvider(EmbeddingProvider):
    """Deterministic provider for tests.

    ``fail`` makes every call raise ProviderUnavailable; ``fail_times``
    makes only the next N calls fail.
    """

    def __init__(self, dimension: int = FAKE_DIMENSION, images: bool = False):
        self._dimension = dimension
        self._images = images
        self.calls = 0
        self.texts: List[str] = []
        self.fail = False
        self.fail_times = 0

    @property
    def dimension(self) -> int:
        return self._dimension

    def _check(self) -> None:
        self.calls += 1
        if self.fail:
            raise ProviderUnavailable("fake provider is down")
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ProviderUnavailable("fake provider is warming up")

    async def embed(self, text: str) -> np.ndarray:
        self._check()
        self.texts.append(text)
        return bag_of_words(text, self._dimension)

    @property
    def supports_images(self) -> bool:
        return self._images

    async def embed_image(self, data: bytes) -> np.ndarray:
        if not self._images:
            return await super().embed_image(data)
        self._check()
        return bag_of_words(data.decode("utf-8", errors="ignore"), self._dimension)


@pytest.fixture
def connection():
    """Open in-memory database with the full schema."""
    db = SQLiteConnection(":memory:", timeout=5).open()
    yield db
    db.close()


@pytest.fixture
def provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def chunker():
    return TextChunker(chunk_size=120, chunk_overlap=20)


@pytest.fixture
def entities(connection):
    return EntityStore(connection)


@pytest.fixture
def people(connection):
    return PeopleStore(connection)


@pytest.fixture
def tasks(connection):
    return TaskStore(connection)


@pytest.fixture
def index(connection, provider):
    return VectorIndex(connection, provider)


@pytest.fixture
def service(entities, index, chunker, tasks, people):
    return EntityService(
        entities,
        index,
        chunker=chunker,
        tasks=tasks,
        people=people,
        retry_attempts=2,
        retry_delay=0,
    )


@pytest.fixture
def coordinator(entities, index, people, tasks):
    return SearchCoordinator(
        entities, index, people=people, tasks=tasks, overfetch_factor=3, default_limit=20
    )
