"""
Person links: role-tagged edges between opaque person ids and entities.
There is no person table; a person exists as long as one link names them.
"""

from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple, Union

from loguru import logger

from models import (
    BulkFailure,
    BulkResult,
    Entity,
    PeopleStats,
    PersonLink,
    PersonRole,
    TaraiError,
    ValidationError,
)
from queries.store_queries import (
    COUNT_LINKS_BY_ROLE_FOR_ENTITY,
    DELETE_PERSONLINK,
    DELETE_PERSONLINK_WITH_ROLE,
    DELETE_PERSONLINKS_FOR_ENTITY,
    GET_ALL_LINKS,
    GET_ALL_PEOPLE,
    GET_ENTITIES_OF_PERSON,
    GET_LINKS_BY_ROLE,
    GET_LINKS_FOR_ENTITIES,
    GET_PEOPLE_STATS,
    GET_PERSON_ROLES,
    GET_PERSONS_OF_ENTITY,
    INSERT_PERSONLINK,
)
from store.entity_store import MAX_IN_PARAMETERS
from store.sqlite_client import SQLiteConnection
from utils.error_utils import require_text
from utils.helpers import chunk_list

PersonInput = Union[PersonLink, Mapping[str, Any], Tuple[str, Union[PersonRole, str]]]


class PeopleStore:
    """CRUD and relational queries over person links."""

    def __init__(self, connection: SQLiteConnection):
        self.db = connection

    async def add(
        self, entity_id: str, person_id: str, role: Union[PersonRole, str]
    ) -> PersonLink:
        """Link a person to an entity. Re-adding the same triple is a no-op."""
        link = PersonLink(
            entity_id=require_text(entity_id, "entity_id", ValidationError),
            person_id=require_text(person_id, "person_id", ValidationError),
            role=PersonRole.parse(role),
        )
        await self.db.run(
            self.db.execute_write,
            INSERT_PERSONLINK,
            (link.entity_id, link.person_id, link.role.value),
        )
        logger.debug(f"Linked {link.person_id} to {link.entity_id} as {link.role.value}")
        return link

    async def remove(
        self,
        entity_id: str,
        person_id: str,
        role: Union[PersonRole, str, None] = None,
    ) -> int:
        """Remove one role (or every role when ``role`` is None). Idempotent."""
        if role is None:
            query, params = DELETE_PERSONLINK, (entity_id, person_id)
        else:
            query = DELETE_PERSONLINK_WITH_ROLE
            params = (entity_id, person_id, PersonRole.parse(role).value)
        return await self.db.run(self.db.execute_write, query, params)

    async def clear_entity(self, entity_id: str) -> int:
        """Remove every link of an entity."""
        removed = await self.db.run(
            self.db.execute_write, DELETE_PERSONLINKS_FOR_ENTITY, (entity_id,)
        )
        if removed:
            logger.debug(f"Removed {removed} person links of {entity_id}")
        return removed

    async def add_people_to_entity(
        self, entity_id: str, people: Sequence[PersonInput]
    ) -> BulkResult:
        """Link several people to one entity.

        Not atomic: each link is attempted independently and failures are
        reported next to the successes.
        """
        result = BulkResult()
        for person in people:
            try:
                person_id, role = self._unpack_person(person)
                result.succeeded.append(await self.add(entity_id, person_id, role))
            except TaraiError as e:
                logger.warning(f"Failed to link {person!r} to {entity_id}: {e}")
                result.failed.append(BulkFailure(item=person, error=str(e)))
        return result

    @staticmethod
    def _unpack_person(person: PersonInput) -> Tuple[Any, Any]:
        if isinstance(person, PersonLink):
            return person.person_id, person.role
        if isinstance(person, Mapping):
            return person.get("person_id", person.get("personId")), person.get("role")
        if isinstance(person, (tuple, list)) and len(person) == 2:
            return person[0], person[1]
        raise ValidationError(f"Cannot read a person link from {person!r}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def persons_of(self, entity_id: str) -> List[PersonLink]:
        rows = await self.db.run(self.db.execute_query, GET_PERSONS_OF_ENTITY, (entity_id,))
        return self._to_links(rows)

    async def entities_of(
        self, person_id: str, role: Union[PersonRole, str, None] = None
    ) -> List[Entity]:
        """Entities a person is linked to, optionally in one role only."""
        params: List[Any] = [person_id]
        role_clause = ""
        if role is not None:
            role_clause = "AND p.role = ?"
            params.append(PersonRole.parse(role).value)
        query = GET_ENTITIES_OF_PERSON.format(role_clause=role_clause)
        rows = await self.db.run(self.db.execute_query, query, params)
        return [Entity.from_row(row) for row in rows]

    async def by_role(self, role: Union[PersonRole, str]) -> List[PersonLink]:
        rows = await self.db.run(
            self.db.execute_query, GET_LINKS_BY_ROLE, (PersonRole.parse(role).value,)
        )
        return self._to_links(rows)

    async def all_links(self) -> List[PersonLink]:
        rows = await self.db.run(self.db.execute_query, GET_ALL_LINKS)
        return self._to_links(rows)

    async def all_people(self) -> List[str]:
        """Distinct person ids in order of first appearance."""
        rows = await self.db.run(self.db.execute_query, GET_ALL_PEOPLE)
        return [row["personid"] for row in rows]

    async def person_roles(self, person_id: str) -> List[PersonRole]:
        rows = await self.db.run(self.db.execute_query, GET_PERSON_ROLES, (person_id,))
        return [PersonRole.parse(row["role"]) for row in rows]

    async def count_by_role(self, entity_id: str) -> Dict[str, int]:
        rows = await self.db.run(
            self.db.execute_query, COUNT_LINKS_BY_ROLE_FOR_ENTITY, (entity_id,)
        )
        return {row["role"]: row["count"] for row in rows}

    async def links_for_entities(self, entity_ids: Iterable[str]) -> List[PersonLink]:
        """All links of the given entities in one round trip."""
        ids = list(dict.fromkeys(entity_ids))
        if not ids:
            return []
        rows = await self.db.run(self._select_for_entities, ids)
        return self._to_links(rows)

    def _select_for_entities(self, ids: List[str]) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        for batch in chunk_list(ids, MAX_IN_PARAMETERS):
            query = GET_LINKS_FOR_ENTITIES.format(placeholders=", ".join("?" * len(batch)))
            rows.extend(self.db.execute_query(query, batch))
        return rows

    async def stats(self) -> PeopleStats:
        rows = await self.db.run(self.db.execute_query, GET_PEOPLE_STATS)
        stats = PeopleStats()
        for row in rows:
            stats.total = row["people"]
            stats.total_links += row["count"]
            stats.by_role[row["role"]] = row["count"]
        return stats

    @staticmethod
    def _to_links(rows: List[Dict[str, Any]]) -> List[PersonLink]:
        links = []
        for row in rows:
            try:
                links.append(PersonLink.from_row(row))
            except TaraiError as e:
                logger.warning(f"Skipping unreadable person link {row}: {e}")
        return links

    @staticmethod
    def group_by_entity(links: Iterable[PersonLink]) -> Dict[str, List[PersonLink]]:
        grouped: Dict[str, List[PersonLink]] = {}
        for link in links:
            grouped.setdefault(link.entity_id, []).append(link)
        return grouped

