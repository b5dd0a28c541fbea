"""
Tests for SearchCoordinator ranking, filtering and suggestions.
"""

import pytest

from conftest import run
from models import EntityType, PersonRole, VectorRecord
from search import SearchCoordinator
from search.coordinator import MAX_SUGGESTIONS, _aggregate_by_entity
from store import SearchHistoryStore


@pytest.fixture
def catalog(service, people, tasks):
    ids = {
        "plumbing": run(
            service.create(
                type="service",
                title="Selvam Plumbing",
                data={"description": "Pipe repair and leak fixing", "tags": ["plumber", "pipe"]},
            )
        ),
        "taxi": run(
            service.create(
                type="transport",
                title="City Taxi",
                data={"description": "Airport drop", "tags": ["cab"]},
            )
        ),
        "idli": run(
            service.create(
                type="food",
                title="Homemade Idli Batter",
                data={"description": "Fresh batter"},
                status="pending",
            )
        ),
        "cart": run(service.create(type="cart", title="Pipe repair order")),
    }

    run(people.add(ids["plumbing"], "person_selvam", "seller"))
    run(people.add(ids["plumbing"], "person_kumar", "buyer"))
    run(people.add(ids["taxi"], "person_ravi", "driver"))
    run(people.add(ids["taxi"], "person_kumar", "buyer"))

    run(tasks.create(ids["plumbing"], "person_selvam", "serve", "Fix kitchen pipe"))
    run(tasks.create(ids["taxi"], "person_ravi", "pickup", "Airport pickup", status="completed"))
    return ids


class StubIndex:
    """Index double returning canned records."""

    def __init__(self, records):
        self.records = records
        self.top_k = None

    async def query(self, query, top_k=10):
        self.top_k = top_k
        return self.records


class TestAggregation:
    """Tests for collapsing chunk hits into entity scores."""

    def test_best_chunk_wins(self):
        records = [
            VectorRecord(id=1, document="", metadata={"entity_id": "e1"}, similarity=0.2),
            VectorRecord(id=2, document="", metadata={"entity_id": "e2"}, similarity=0.5),
            VectorRecord(id=3, document="", metadata={"entity_id": "e1"}, similarity=0.9),
            VectorRecord(id=4, document="", metadata={"entity_id": "e1"}, similarity=0.4),
        ]
        assert _aggregate_by_entity(records) == [("e1", 0.9), ("e2", 0.5)]

    def test_records_without_entity_are_skipped(self):
        records = [VectorRecord(id=1, document="", metadata={}, similarity=0.7)]
        assert _aggregate_by_entity(records) == []

    def test_search_reports_max_similarity(self, entities):
        run(entities.create(id="e1", type="food", title="Dosa"))
        run(entities.create(id="e2", type="food", title="Vada"))
        stub = StubIndex(
            [
                VectorRecord(id=1, document="", metadata={"entity_id": "e1"}, similarity=0.2),
                VectorRecord(id=2, document="", metadata={"entity_id": "e2"}, similarity=0.5),
                VectorRecord(id=3, document="", metadata={"entity_id": "e1"}, similarity=0.9),
                VectorRecord(id=4, document="", metadata={"entity_id": "e1"}, similarity=0.4),
            ]
        )
        coordinator = SearchCoordinator(entities, stub, overfetch_factor=4, default_limit=5)

        results = run(coordinator.search("dosa"))

        assert [(e.id, e.similarity) for e in results] == [("e1", 0.9), ("e2", 0.5)]
        assert stub.top_k == 20


class TestSearch:
    """Tests for entity search."""

    def test_round_trip(self, coordinator, catalog):
        results = run(coordinator.search("Selvam Plumbing"))
        assert results[0].id == catalog["plumbing"]

        results = run(coordinator.search("pipe repair"))
        assert results[0].id == catalog["plumbing"]
        assert 0 < results[0].similarity <= 1

    def test_sorted_by_similarity(self, coordinator, catalog):
        results = run(coordinator.search("airport taxi"))
        scores = [e.similarity for e in results]
        assert scores == sorted(scores, reverse=True)
        assert results[0].id == catalog["taxi"]

    def test_structural_types_hidden_by_default(self, coordinator, catalog):
        found = {e.id for e in run(coordinator.search("pipe repair"))}
        assert catalog["cart"] not in found

        found = {e.id for e in run(coordinator.search("pipe repair", include_structural=True))}
        assert catalog["cart"] in found

    def test_type_filter(self, coordinator, catalog):
        results = run(coordinator.search("pipe repair", type="transport"))
        assert [e.id for e in results] == [catalog["taxi"]]

        results = run(coordinator.search("pipe repair", type=["cart", "food"]))
        assert {e.id for e in results} == {catalog["cart"], catalog["idli"]}

    def test_status_filter(self, coordinator, catalog):
        results = run(coordinator.search("batter", status="pending"))
        assert [e.id for e in results] == [catalog["idli"]]

    def test_limit(self, coordinator, catalog):
        assert len(run(coordinator.search("pipe repair", limit=1))) == 1
        assert run(coordinator.search("pipe repair", limit=0)) == []

    def test_blank_query_lists_entities(self, coordinator, entities, catalog):
        results = run(coordinator.search("   "))

        assert [e.id for e in results] == [e.id for e in run(entities.list_all(limit=20))]
        assert all(e.similarity is None for e in results)

    def test_no_vectors_gives_no_results(self, coordinator, entities):
        run(entities.create(type="food", title="Unindexed dosa"))
        assert run(coordinator.search("dosa")) == []

    def test_stale_vectors_are_dropped(self, coordinator, entities, catalog):
        run(entities.delete(catalog["plumbing"]))

        results = run(coordinator.search("pipe repair"))

        assert catalog["plumbing"] not in {e.id for e in results}
        assert results

    def test_overfetch_factor_validated(self, entities, index):
        with pytest.raises(ValueError):
            SearchCoordinator(entities, index, overfetch_factor=1, default_limit=10)


class TestPeopleAndTasks:
    """Tests for people and task search."""

    def test_people_deduplicated_in_entity_order(self, coordinator, catalog):
        links = run(coordinator.search_people("pipe repair"))

        assert [link.person_id for link in links] == [
            "person_selvam",
            "person_kumar",
            "person_ravi",
        ]
        assert links[1].entity_id == catalog["plumbing"]

    def test_people_role_filter(self, coordinator, catalog):
        links = run(coordinator.search_people("airport taxi", role="driver"))
        assert [(link.person_id, link.role) for link in links] == [
            ("person_ravi", PersonRole.DRIVER)
        ]

    def test_people_blank_query(self, coordinator, catalog):
        links = run(coordinator.search_people(""))
        assert [link.person_id for link in links] == [
            "person_selvam",
            "person_kumar",
            "person_ravi",
        ]

    def test_tasks_scored_by_entity(self, coordinator, catalog):
        results = run(coordinator.search_tasks("pipe repair"))
        ranked = run(coordinator.search("pipe repair", include_structural=True))
        plumbing = next(e for e in ranked if e.id == catalog["plumbing"])

        assert results[0].title == "Fix kitchen pipe"
        assert results[0].similarity == pytest.approx(plumbing.similarity)

    def test_tasks_status_filter(self, coordinator, catalog):
        results = run(coordinator.search_tasks("airport taxi", status="completed"))
        assert [task.title for task in results] == ["Airport pickup"]

    def test_requires_stores(self, entities, index):
        coordinator = SearchCoordinator(entities, index, overfetch_factor=2, default_limit=5)
        with pytest.raises(ValueError):
            run(coordinator.search_people("taxi"))
        with pytest.raises(ValueError):
            run(coordinator.search_tasks("taxi"))


class TestSuggestions:
    """Tests for category suggestions."""

    def test_blank_returns_every_category(self, coordinator):
        suggestions = coordinator.suggestions("")
        assert [s.type for s in suggestions] == EntityType.commerce_types()
        assert len(suggestions) == 12

    def test_example_match(self, coordinator):
        suggestions = coordinator.suggestions("taxi")
        assert [(s.text, s.type) for s in suggestions] == [("Taxi", EntityType.TRANSPORT)]
        assert suggestions[0].icon == EntityType.TRANSPORT.info.icon

    def test_label_match_is_case_insensitive(self, coordinator):
        suggestions = coordinator.suggestions("REAL")
        assert [s.text for s in suggestions] == ["Real Estate"]

    def test_example_in_several_categories(self, coordinator):
        suggestions = coordinator.suggestions("restaurant")
        assert [s.type for s in suggestions] == [EntityType.BOOKING, EntityType.FOOD]

    def test_capped(self, coordinator):
        assert len(coordinator.suggestions("s")) == MAX_SUGGESTIONS

    def test_no_match(self, coordinator):
        assert coordinator.suggestions("zzz") == []


class TestSearchHistory:
    """Executed searches are remembered when a history store is set."""

    @pytest.fixture
    def recording(self, entities, index, people, tasks, connection):
        return SearchCoordinator(
            entities,
            index,
            people=people,
            tasks=tasks,
            overfetch_factor=3,
            default_limit=20,
            history=SearchHistoryStore(connection),
        )

    def test_searches_are_recorded_newest_first(self, recording, catalog):
        run(recording.search("pipe repair"))
        run(recording.search("airport taxi"))

        history = run(recording.search_history())
        assert [entry.query for entry in history] == ["airport taxi", "pipe repair"]

    def test_blank_queries_are_not_recorded(self, recording, catalog):
        run(recording.search("   "))
        assert run(recording.search_history()) == []

    def test_people_and_task_searches_are_not_recorded(self, recording, catalog):
        run(recording.search_people("plumber"))
        run(recording.search_tasks("taxi"))
        assert run(recording.search_history()) == []

    def test_without_history_store(self, coordinator, catalog):
        run(coordinator.search("taxi"))
        assert run(coordinator.search_history()) == []
