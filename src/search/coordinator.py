"""
Search Coordinator - semantic search over entities, people and tasks.

A free-text query is embedded and matched against chunk vectors; chunk hits
are collapsed to one score per entity (the best chunk wins), entities are
fetched in one batch, filtered, sorted and truncated.
"""

from typing import Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger

from embeddings.vector_store import VectorIndex
from models import (
    Entity,
    EntityStatus,
    EntityType,
    PersonLink,
    PersonRole,
    SearchHistoryEntry,
    Suggestion,
    TaraiError,
    Task,
    TaskStatus,
    VectorRecord,
)
from store.entity_store import EntityStore, TypeFilter
from store.history_store import SearchHistoryStore
from store.people_store import PeopleStore
from store.task_store import TaskStore

MAX_SUGGESTIONS = 10


def _aggregate_by_entity(records: Sequence[VectorRecord]) -> List[Tuple[str, float]]:
    """
    Collapse chunk hits into one score per entity, keeping the highest
    similarity. Entities keep the order in which they were first seen.
    """
    best: Dict[str, float] = {}
    for record in records:
        entity_id = record.entity_id
        if entity_id is None:
            logger.warning(f"Vector record {record.id} has no entity_id, skipping")
            continue
        if entity_id not in best or record.similarity > best[entity_id]:
            best[entity_id] = record.similarity
    return list(best.items())


def _type_set(types: TypeFilter) -> Optional[frozenset]:
    if types is None:
        return None
    if isinstance(types, (str, EntityType)):
        return frozenset({EntityType.parse(types)})
    return frozenset(EntityType.parse(t) for t in types)


class SearchCoordinator:
    """Turns free-text queries into ranked entities, people and tasks."""

    def __init__(
        self,
        entities: EntityStore,
        index: VectorIndex,
        people: Optional[PeopleStore] = None,
        tasks: Optional[TaskStore] = None,
        overfetch_factor: Optional[int] = None,
        default_limit: Optional[int] = None,
        history: Optional[SearchHistoryStore] = None,
    ):
        if overfetch_factor is None or default_limit is None:
            from config import config

            overfetch_factor = overfetch_factor or config.search.overfetch_factor
            default_limit = default_limit or config.search.default_limit
        if overfetch_factor < 2:
            raise ValueError("overfetch_factor must be at least 2")

        self.entities = entities
        self.index = index
        self.people = people
        self.tasks = tasks
        self.history = history
        self.overfetch_factor = overfetch_factor
        self.default_limit = default_limit

    async def search(
        self,
        query: str,
        type: TypeFilter = None,
        status: Union[EntityStatus, str, None] = None,
        limit: Optional[int] = None,
        include_structural: bool = False,
    ) -> List[Entity]:
        """Rank entities by semantic similarity to ``query``.

        A blank query returns the plain listing (no similarity attached).
        A query with no vector hits returns an empty list. Filters are
        applied after ranking; entities deleted behind the index are dropped.
        Non-blank queries are saved to the search history, if one is set.
        """
        results = await self._rank(query, type, status, limit, include_structural)
        if self.history is not None and query and query.strip():
            await self._remember(query)
        return results

    async def _remember(self, query: str) -> None:
        try:
            await self.history.record(query)
        except TaraiError as e:
            logger.warning(f"Failed to save search query '{query}': {e}")

    async def search_history(self, limit: int = 10) -> List[SearchHistoryEntry]:
        """Most recent executed queries, newest first."""
        if self.history is None:
            return []
        return await self.history.recent(limit)

    async def _rank(
        self,
        query: str,
        type: TypeFilter,
        status: Union[EntityStatus, str, None],
        limit: Optional[int],
        include_structural: bool,
    ) -> List[Entity]:
        limit = self.default_limit if limit is None else limit
        if limit <= 0:
            return []

        if not query or not query.strip():
            return await self.entities.list_all(
                type=type,
                status=status,
                limit=limit,
                include_structural=include_structural,
            )

        types = _type_set(type)
        wanted_status = None if status is None else EntityStatus.parse(status)

        records = await self.index.query(query, top_k=limit * self.overfetch_factor)
        if not records:
            return []

        hits = _aggregate_by_entity(records)
        found = await self.entities.get_many(entity_id for entity_id, _ in hits)

        dangling = [entity_id for entity_id, _ in hits if entity_id not in found]
        if dangling:
            logger.debug(f"Dropping {len(dangling)} stale vector references: {dangling}")

        results: List[Entity] = []
        for entity_id, similarity in hits:
            entity = found.get(entity_id)
            if entity is None:
                continue
            if types is not None:
                if entity.type not in types:
                    continue
            elif entity.type.is_structural and not include_structural:
                continue
            if wanted_status is not None and entity.status != wanted_status:
                continue
            results.append(entity.with_similarity(similarity))

        # Stable: equal scores keep index order
        results.sort(key=lambda entity: entity.similarity, reverse=True)
        return results[:limit]

    async def search_people(
        self,
        query: str,
        role: Union[PersonRole, str, None] = None,
        limit: int = 50,
    ) -> List[PersonLink]:
        """People linked to the entities matching ``query``, best entity first.

        Each person appears once, with the link through which they were
        first reached. A blank query lists people without ranking.
        """
        if self.people is None:
            raise ValueError("search_people requires a PeopleStore")
        wanted_role = None if role is None else PersonRole.parse(role)

        if not query or not query.strip():
            links = (
                await self.people.by_role(wanted_role)
                if wanted_role is not None
                else await self.people.all_links()
            )
            return self._unique_people(links, limit)

        matched = await self._rank(query, None, None, limit, True)
        grouped = PeopleStore.group_by_entity(
            await self.people.links_for_entities(entity.id for entity in matched)
        )

        ordered: List[PersonLink] = []
        for entity in matched:
            for link in grouped.get(entity.id, []):
                if wanted_role is None or link.role == wanted_role:
                    ordered.append(link)
        return self._unique_people(ordered, limit)

    @staticmethod
    def _unique_people(links: Sequence[PersonLink], limit: int) -> List[PersonLink]:
        seen = set()
        unique: List[PersonLink] = []
        for link in links:
            if link.person_id in seen:
                continue
            seen.add(link.person_id)
            unique.append(link)
            if len(unique) >= limit:
                break
        return unique

    async def search_tasks(
        self,
        query: str,
        status: Union[TaskStatus, str, None] = None,
        limit: int = 50,
    ) -> List[Task]:
        """Tasks of the entities matching ``query``, scored by their entity."""
        if self.tasks is None:
            raise ValueError("search_tasks requires a TaskStore")

        if not query or not query.strip():
            return await self.tasks.list_all(status=status, limit=limit)

        wanted_status = None if status is None else TaskStatus.parse(status)
        matched = await self._rank(query, None, None, limit, True)
        scores = {entity.id: entity.similarity for entity in matched}

        tasks = await self.tasks.tasks_for_entities(scores)
        results = [
            task.model_copy(update={"similarity": scores[task.entity_id]})
            for task in tasks
            if wanted_status is None or task.status == wanted_status
        ]
        results.sort(key=lambda task: task.similarity, reverse=True)
        return results[:limit]

    def suggestions(self, partial: str) -> List[Suggestion]:
        """Category labels and examples matching a partially typed query.

        A blank query returns every commerce category.
        """
        categories = EntityType.commerce_types()
        if not partial or not partial.strip():
            return [
                Suggestion(text=t.info.label, type=t, icon=t.info.icon)
                for t in categories
            ]

        needle = partial.strip().lower()
        suggestions: List[Suggestion] = []
        for entity_type in categories:
            info = entity_type.info
            if needle in info.label.lower():
                suggestions.append(
                    Suggestion(text=info.label, type=entity_type, icon=info.icon)
                )
                continue
            suggestions.extend(
                Suggestion(text=example, type=entity_type, icon=info.icon)
                for example in info.examples
                if needle in example.lower()
            )
        return suggestions[:MAX_SUGGESTIONS]
