"""
Debounced, cancel-on-supersede search session.

Every ``submit`` bumps the session's generation number, cancels whatever
is pending and schedules a new search after the debounce interval. A result
is only accepted if its generation is still the latest one issued, so an
older search finishing late can never overwrite a newer answer.
"""

import asyncio
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from loguru import logger

from models import Cancelled, Entity
from search.coordinator import SearchCoordinator


class SearchOutcome(NamedTuple):
    generation: int
    query: str
    results: List[Entity]


class SearchSession:
    """One logical search box: the latest query wins."""

    def __init__(
        self,
        coordinator: SearchCoordinator,
        debounce: Optional[float] = None,
        on_result: Optional[Callable[[SearchOutcome], Any]] = None,
    ):
        if debounce is None:
            from config import config

            debounce = config.search.debounce_ms / 1000
        if debounce < 0:
            raise ValueError("debounce must not be negative")

        self.coordinator = coordinator
        self.debounce = debounce
        self.on_result = on_result

        self._generation = 0
        self._executed = 0
        self._task: Optional[asyncio.Task] = None
        self._latest: Optional[SearchOutcome] = None
        self._closed = False

    @property
    def generation(self) -> int:
        """Generation number of the most recently submitted query."""
        return self._generation

    @property
    def executed(self) -> int:
        """How many searches actually reached the coordinator."""
        return self._executed

    @property
    def latest(self) -> Optional[SearchOutcome]:
        """The last accepted outcome, or None before the first one."""
        return self._latest

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, query: str, **filters: Any) -> int:
        """Schedule ``query``, superseding anything still pending.

        Must be called from a running event loop. Returns the generation
        number assigned to this query.
        """
        if self._closed:
            raise RuntimeError("SearchSession is closed")

        self._generation += 1
        generation = self._generation

        if self._task is not None and not self._task.done():
            self._task.cancel()

        task = asyncio.get_running_loop().create_task(
            self._run(generation, query, filters)
        )
        task.add_done_callback(self._consume_exception)
        self._task = task
        return generation

    async def _run(
        self, generation: int, query: str, filters: Dict[str, Any]
    ) -> List[Entity]:
        if self.debounce:
            await asyncio.sleep(self.debounce)
        self._check_current(generation)

        self._executed += 1
        logger.debug(f"Search generation {generation} executing: {query!r}")
        results = await self.coordinator.search(query, **filters)

        # A newer query may have been issued while this one was in flight
        self._check_current(generation)

        outcome = SearchOutcome(generation, query, results)
        self._latest = outcome
        if self.on_result is not None:
            self.on_result(outcome)
        return results

    def _check_current(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug(
                f"Discarding search generation {generation}, latest is {self._generation}"
            )
            raise Cancelled()

    @staticmethod
    def _consume_exception(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None and not isinstance(error, Cancelled):
            logger.error(f"Search failed: {error}")

    async def result(self) -> List[Entity]:
        """Wait for the answer to the latest submitted query.

        Superseded searches are skipped transparently. Errors of the latest
        search (e.g. ProviderUnavailable) are raised here.
        """
        while True:
            task = self._task
            if task is None:
                return self._latest.results if self._latest else []
            try:
                return await asyncio.shield(task)
            except (asyncio.CancelledError, Cancelled):
                if task is self._task and not self._closed:
                    # Not superseded: the caller itself was cancelled
                    raise
                if self._closed:
                    return self._latest.results if self._latest else []

    async def search(self, query: str, **filters: Any) -> List[Entity]:
        """Submit ``query`` and wait for the latest answer."""
        self.submit(query, **filters)
        return await self.result()

    def close(self) -> None:
        """Cancel pending work; later submits are rejected."""
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def __aenter__(self) -> "SearchSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
