"""
Unit tests for TaskStore lifecycle, ordering, deadlines and stats.
"""

import pytest

from conftest import run
from models import (
    NotFound,
    StoreErrorType,
    TaskPriority,
    TaskStatus,
    TaskType,
    ValidationError,
)
from store.task_store import HOUR_MS
from utils.helpers import now_ms


@pytest.fixture
def order(entities):
    return run(entities.create(id="e1", type="food", title="Biryani order"))


class TestCreate:
    """Tests for task creation."""

    def test_defaults(self, tasks, order):
        task_id = run(tasks.create(order, "p1", "deliver", "Deliver biryani"))
        task = run(tasks.get(task_id))

        assert task.entity_id == "e1"
        assert task.person_id == "p1"
        assert task.type == TaskType.DELIVER
        assert task.status == TaskStatus.PENDING
        assert task.priority == TaskPriority.NORMAL
        assert task.due is None
        assert task.data == {}
        assert task.created == task.updated

    def test_data_round_trips(self, tasks, order):
        task_id = run(
            tasks.create(order, "p1", "deliver", "Deliver", data={"address": "123 T Nagar"})
        )
        assert run(tasks.get(task_id)).data == {"address": "123 T Nagar"}

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"entity_id": "", "person_id": "p1", "type": "pay", "title": "Pay"},
            {"entity_id": "e1", "person_id": "", "type": "pay", "title": "Pay"},
            {"entity_id": "e1", "person_id": "p1", "type": "teleport", "title": "Go"},
            {"entity_id": "e1", "person_id": "p1", "type": "pay", "title": " "},
            {"entity_id": "e1", "person_id": "p1", "type": "pay", "title": "Pay", "priority": 7},
            {"entity_id": "e1", "person_id": "p1", "type": "pay", "title": "Pay", "due": "soon"},
        ],
    )
    def test_invalid_input(self, tasks, kwargs):
        with pytest.raises(ValidationError):
            run(tasks.create(**kwargs))

    def test_orphan_task_is_tolerated(self, tasks):
        task_id = run(tasks.create("no-such-entity", "p1", "pay", "Pay"))
        assert run(tasks.get(task_id)).entity_id == "no-such-entity"

    def test_create_order_tasks_reports_partial_success(self, tasks, order):
        result = run(
            tasks.create_order_tasks(
                order,
                [
                    {"person_id": "p1", "type": "pay", "title": "Pay", "priority": 2},
                    {"person_id": "p2", "type": "launch", "title": "Bad type"},
                    {"person_id": "p2", "type": "confirm", "title": "Confirm"},
                ],
            )
        )

        assert result.partial
        assert [task.title for task in result.succeeded] == ["Pay", "Confirm"]
        assert all(task.entity_id == "e1" for task in result.succeeded)
        assert result.failed[0].item["type"] == "launch"

    def test_create_order_tasks_skips_items_that_are_not_mappings(self, tasks, order):
        result = run(
            tasks.create_order_tasks(
                order,
                [
                    {"person_id": "p1", "type": "pay", "title": "Pay"},
                    "bogus",
                    None,
                    {"person_id": "p2", "type": "receive", "title": "Receive"},
                ],
            )
        )

        assert [task.title for task in result.succeeded] == ["Pay", "Receive"]
        assert [failure.item for failure in result.failed] == ["bogus", None]
        assert len(run(tasks.tasks_of_entity(order))) == 2


class TestTransitions:
    """Tests for status changes."""

    def test_forward_path(self, tasks, order):
        task_id = run(tasks.create(order, "p1", "prepare", "Cook"))

        assert run(tasks.start(task_id)).status == TaskStatus.PROGRESS
        assert run(tasks.complete(task_id)).status == TaskStatus.COMPLETED

    def test_pending_can_complete_directly(self, tasks, order):
        task_id = run(tasks.create(order, "p1", "deliver", "Deliver"))
        assert run(tasks.update_status(task_id, "completed")).status == TaskStatus.COMPLETED

    def test_cancel_from_progress(self, tasks, order):
        task_id = run(tasks.create(order, "p1", "prepare", "Cook"))
        run(tasks.start(task_id))
        assert run(tasks.cancel(task_id)).status == TaskStatus.CANCELLED

    @pytest.mark.parametrize(
        "start, target",
        [
            ("completed", "progress"),
            ("completed", "pending"),
            ("cancelled", "pending"),
            ("cancelled", "completed"),
            ("progress", "pending"),
            ("pending", "pending"),
        ],
    )
    def test_invalid_transitions(self, tasks, order, start, target):
        task_id = run(tasks.create(order, "p1", "pay", "Pay", status=start))

        with pytest.raises(ValidationError) as excinfo:
            run(tasks.update_status(task_id, target))

        assert excinfo.value.error_type == StoreErrorType.INVALID_TRANSITION
        assert run(tasks.get(task_id)).status == TaskStatus(start)

    def test_update_other_fields(self, tasks, order):
        task_id = run(tasks.create(order, "p1", "pay", "Pay"))
        before = run(tasks.get(task_id))

        task = run(tasks.update(task_id, title="Pay now", priority=2))

        assert task.title == "Pay now"
        assert task.priority == TaskPriority.URGENT
        assert task.status == TaskStatus.PENDING
        assert task.updated >= before.updated

    def test_owner_is_immutable(self, tasks, order):
        task_id = run(tasks.create(order, "p1", "pay", "Pay"))
        with pytest.raises(ValidationError):
            run(tasks.update(task_id, entity_id="e2"))

    def test_update_missing_task(self, tasks):
        with pytest.raises(NotFound):
            run(tasks.complete("missing"))

    def test_delete_is_idempotent(self, tasks, order):
        task_id = run(tasks.create(order, "p1", "pay", "Pay"))
        assert run(tasks.delete(task_id)) is True
        assert run(tasks.delete(task_id)) is False


class TestQueries:
    """Tests for ordering, relational queries and deadlines."""

    def test_cascading_task_query(self, tasks, order):
        past = now_ms() - HOUR_MS
        task_id = run(tasks.create(order, "p1", "deliver", "Deliver", due=past))

        assert [t.id for t in run(tasks.tasks_of_person("p1"))] == [task_id]
        assert [t.id for t in run(tasks.overdue())] == [task_id]

        run(tasks.update_status(task_id, "completed"))

        assert run(tasks.overdue()) == []
        assert [t.id for t in run(tasks.tasks_of_entity(order))] == [task_id]

    def test_listing_order(self, tasks, order):
        now = now_ms()
        low = run(tasks.create(order, "p1", "rate", "Rate", priority=0))
        undated = run(tasks.create(order, "p1", "pay", "Pay", priority=2))
        late = run(tasks.create(order, "p1", "confirm", "Confirm", priority=2, due=now + 2 * HOUR_MS))
        early = run(tasks.create(order, "p1", "prepare", "Cook", priority=2, due=now + HOUR_MS))
        high = run(tasks.create(order, "p1", "deliver", "Deliver", priority=1))

        listed = [t.id for t in run(tasks.list_all())]
        assert listed == [early, late, undated, high, low]

    def test_filters(self, tasks, order):
        a = run(tasks.create(order, "p1", "pay", "Pay"))
        b = run(tasks.create(order, "p2", "pay", "Pay too", status="completed"))
        run(tasks.create(order, "p2", "rate", "Rate"))

        assert [t.id for t in run(tasks.list_all(status="completed"))] == [b]
        assert [t.id for t in run(tasks.tasks_of_person("p2", status="completed"))] == [b]
        assert {t.id for t in run(tasks.by_type("pay"))} == {a, b}
        assert len(run(tasks.list_all(limit=1))) == 1

    def test_due_soon(self, tasks, order):
        now = now_ms()
        soon = run(tasks.create(order, "p1", "pickup", "Pickup", due=now + HOUR_MS))
        run(tasks.create(order, "p1", "checkin", "Check in", due=now + 48 * HOUR_MS))
        run(tasks.create(order, "p1", "pay", "Pay", due=now - HOUR_MS))
        run(tasks.create(order, "p1", "serve", "Serve", due=now + HOUR_MS, status="progress"))

        assert [t.id for t in run(tasks.due_soon(24, now=now))] == [soon]
        assert len(run(tasks.due_soon(72, now=now))) == 2

    def test_due_soon_rejects_negative_window(self, tasks):
        with pytest.raises(ValidationError):
            run(tasks.due_soon(-1))

    def test_delete_for_entity(self, tasks, order):
        run(tasks.create(order, "p1", "pay", "Pay"))
        run(tasks.create(order, "p1", "rate", "Rate"))
        run(tasks.create("other", "p1", "rate", "Rate"))

        assert run(tasks.delete_for_entity(order)) == 2
        assert len(run(tasks.list_all())) == 1


class TestStats:
    """Tests for task statistics."""

    @pytest.mark.parametrize("count", [0, 1, 7, 20])
    def test_stats_consistency(self, tasks, order, count):
        statuses = list(TaskStatus)
        for i in range(count):
            run(tasks.create(order, "p1", "pay", f"Task {i}", status=statuses[i % len(statuses)]))

        stats = run(tasks.stats())
        assert stats.total == count
        assert sum(stats.by_status.values()) == count

    def test_overdue_count(self, tasks, order):
        now = now_ms()
        run(tasks.create(order, "p1", "pay", "Late", due=now - HOUR_MS))
        run(tasks.create(order, "p1", "pay", "Done late", due=now - HOUR_MS, status="completed"))
        run(tasks.create(order, "p1", "pay", "Future", due=now + HOUR_MS))

        stats = run(tasks.stats(now=now))
        assert stats.overdue == 1
        assert stats.by_status == {"pending": 2, "completed": 1}
