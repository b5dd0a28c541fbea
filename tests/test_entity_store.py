"""
Unit tests for EntityStore CRUD, listing and statistics.
"""

import pytest

from conftest import run
from models import (
    Entity,
    EntityStatus,
    EntityType,
    NotFound,
    StoreErrorType,
    ValidationError,
)


class TestCreate:
    """Tests for entity creation and validation."""

    def test_create_assigns_id_and_timestamps(self, entities):
        entity_id = run(entities.create(type="service", title="Selvam Plumbing", value=500))
        entity = run(entities.get(entity_id))

        assert entity_id.startswith("entity_")
        assert entity.title == "Selvam Plumbing"
        assert entity.type == EntityType.SERVICE
        assert entity.value == 500
        assert entity.quantity == 1
        assert entity.status == EntityStatus.ACTIVE
        assert entity.created == entity.updated > 0
        assert entity.similarity is None

    def test_create_keeps_given_id(self, entities):
        assert run(entities.create({"id": "memory_taxi_001", "type": "transport", "title": "Taxi"})) == "memory_taxi_001"

    def test_create_from_entity(self, entities):
        entity = Entity(id="e1", type=EntityType.FOOD, title="Biryani", quantity=3)
        run(entities.create(entity))
        assert run(entities.get("e1")).quantity == 3

    def test_data_blob_is_parsed(self, entities):
        entity_id = run(
            entities.create(
                type="food",
                title="Idli batter",
                data={"desc": "Fresh batter", "tags": "idli, homemade", "veg": True},
            )
        )
        data = run(entities.get(entity_id)).data

        assert data.description == "Fresh batter"
        assert data.tags == ["idli", "homemade"]
        assert data.extra == {"veg": True}

    def test_unparsable_data_becomes_empty(self, entities):
        entity_id = run(entities.create(type="food", title="Dosa", data="{not json"))
        assert run(entities.get(entity_id)).data.is_empty

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_blank_title_rejected(self, entities, title):
        with pytest.raises(ValidationError):
            run(entities.create(type="food", title=title))

    def test_missing_fields_rejected(self, entities):
        with pytest.raises(ValidationError) as excinfo:
            run(entities.create(type="food"))
        assert excinfo.value.error_type == StoreErrorType.MISSING_FIELD

        with pytest.raises(ValidationError):
            run(entities.create(title="No type"))

    def test_unknown_type_rejected(self, entities):
        with pytest.raises(ValidationError) as excinfo:
            run(entities.create(type="order", title="Order"))
        assert excinfo.value.error_type == StoreErrorType.UNKNOWN_TAG

    def test_negative_quantity_rejected(self, entities):
        with pytest.raises(ValidationError):
            run(entities.create(type="product", title="Fruit", quantity=-1))

    def test_non_numeric_value_rejected(self, entities):
        with pytest.raises(ValidationError):
            run(entities.create(type="product", title="Fruit", value="cheap"))

    def test_unknown_field_rejected(self, entities):
        with pytest.raises(ValidationError):
            run(entities.create(type="product", title="Fruit", colour="red"))

    def test_duplicate_id_rejected(self, entities):
        run(entities.create(id="e1", type="product", title="Fruit"))
        with pytest.raises(ValidationError):
            run(entities.create(id="e1", type="product", title="Other"))


class TestUpdateDelete:
    """Tests for partial updates and idempotent deletes."""

    def test_update_applies_only_supplied_fields(self, entities):
        entity_id = run(
            entities.create(type="service", title="AC Service", value=800, location="Chennai")
        )
        before = run(entities.get(entity_id))

        after = run(entities.update(entity_id, value=900))

        assert after.value == 900
        assert after.title == before.title
        assert after.location == "Chennai"
        assert after.created == before.created
        assert after.updated >= before.updated

    def test_update_missing_entity(self, entities):
        with pytest.raises(NotFound):
            run(entities.update("missing", title="x"))

    def test_update_rejects_id_change(self, entities):
        entity_id = run(entities.create(type="food", title="Meals"))
        with pytest.raises(ValidationError):
            run(entities.update(entity_id, id="other"))

    def test_update_validates_fields(self, entities):
        entity_id = run(entities.create(type="food", title="Meals"))
        with pytest.raises(ValidationError):
            run(entities.update(entity_id, status="archived"))
        assert run(entities.get(entity_id)).status == EntityStatus.ACTIVE

    def test_delete_is_idempotent(self, entities):
        entity_id = run(entities.create(type="food", title="Meals"))

        assert run(entities.delete(entity_id)) is True
        assert run(entities.delete(entity_id)) is False
        assert run(entities.get(entity_id)) is None
        assert run(entities.exists(entity_id)) is False


class TestListing:
    """Tests for listing, batch fetch and hierarchy helpers."""

    @pytest.fixture
    def catalog(self, entities):
        ids = [
            run(entities.create(id="taxi", type="transport", title="Taxi")),
            run(entities.create(id="cart", type="cart", title="Order", parent="taxi")),
            run(entities.create(id="meals", type="food", title="Meals", status="pending")),
            run(entities.create(id="course", type="digital", title="Course")),
        ]
        return ids

    def test_insertion_order_without_structural(self, entities, catalog):
        listed = run(entities.list_all())
        assert [e.id for e in listed] == ["taxi", "meals", "course"]

    def test_include_structural(self, entities, catalog):
        listed = run(entities.list_all(include_structural=True))
        assert [e.id for e in listed] == catalog

    def test_explicit_structural_type(self, entities, catalog):
        assert [e.id for e in run(entities.list_all(type="cart"))] == ["cart"]

    def test_type_and_status_filters(self, entities, catalog):
        assert [e.id for e in run(entities.list_all(type=["food", "digital"]))] == ["meals", "course"]
        assert [e.id for e in run(entities.list_all(status="pending"))] == ["meals"]

    def test_limit(self, entities, catalog):
        assert len(run(entities.list_all(limit=2))) == 2
        assert run(entities.list_all(limit=0)) == []

    def test_get_many_keeps_request_order(self, entities, catalog):
        found = run(entities.get_many(["course", "missing", "taxi"]))
        assert list(found) == ["course", "taxi"]
        assert run(entities.get_many([])) == {}

    def test_children_and_roots(self, entities, catalog):
        assert [e.id for e in run(entities.children("taxi"))] == ["cart"]
        assert [e.id for e in run(entities.roots())] == ["taxi", "meals", "course"]


class TestStats:
    """Tests for aggregate statistics."""

    def test_stats_reflect_latest_state(self, entities):
        run(entities.create(id="a", type="food", title="A"))
        run(entities.create(id="b", type="food", title="B", status="completed"))
        run(entities.create(id="c", type="event", title="C"))

        stats = run(entities.stats())
        assert stats.total == 3
        assert stats.by_type == {"food": 2, "event": 1}
        assert stats.by_status == {"active": 2, "completed": 1}

        run(entities.delete("a"))
        stats = run(entities.stats())
        assert stats.total == 2
        assert sum(stats.by_type.values()) == 2

    def test_empty_stats(self, entities):
        stats = run(entities.stats())
        assert stats.total == 0
        assert stats.by_type == {}
