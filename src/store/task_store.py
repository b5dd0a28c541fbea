"""
Tasks: stateful work items owned by an entity and assigned to a person.

Status changes follow TASK_TRANSITIONS (forward only, terminal states are
final). Deleting an entity never deletes its tasks implicitly; callers use
``delete_for_entity``.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from loguru import logger

from models import (
    BulkFailure,
    BulkResult,
    NotFound,
    StoreErrorType,
    TaraiError,
    Task,
    TaskPriority,
    TaskStats,
    TaskStatus,
    TaskType,
    ValidationError,
)
from queries.store_queries import (
    DELETE_TASK,
    DELETE_TASKS_FOR_ENTITY,
    GET_OVERDUE_TASKS,
    GET_TASK_BY_ID,
    GET_TASK_STATS,
    GET_TASKS_DUE_SOON,
    GET_TASKS_FOR_ENTITIES,
    INSERT_TASK,
    LIST_TASKS,
    UPDATE_TASK,
)
from store.entity_store import MAX_IN_PARAMETERS
from store.sqlite_client import SQLiteConnection, sqlite3
from utils.error_utils import raiseError, require_text
from utils.helpers import chunk_list, dump_json, generate_id, now_ms, parse_json_object

HOUR_MS = 60 * 60 * 1000

# Task field name -> column name
TASK_COLUMNS_BY_FIELD = {
    "person_id": "personid",
    "type": "type",
    "title": "title",
    "priority": "priority",
    "due": "due",
    "data": "data",
    "status": "status",
}


def _coerce_due(due: Any) -> Optional[int]:
    if due is None:
        return None
    if isinstance(due, bool) or not isinstance(due, (int, float)):
        raiseError(
            StoreErrorType.INVALID_VALUE,
            f"due must be epoch milliseconds, got {due!r}",
            ValidationError,
        )
    if due < 0:
        raiseError(StoreErrorType.INVALID_VALUE, "due must not be negative", ValidationError)
    return int(due)


def _coerce_data(data: Any) -> Dict[str, Any]:
    if data is None or data == "":
        return {}
    parsed = parse_json_object(data)
    if parsed is None:
        raiseError(
            StoreErrorType.INVALID_VALUE,
            "task data must be a JSON object",
            ValidationError,
        )
    return dict(parsed)


def normalize_task_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate task fields supplied to ``update``."""
    normalized: Dict[str, Any] = {}
    for key, value in fields.items():
        if key in ("id", "entity_id", "created", "updated"):
            raiseError(
                StoreErrorType.INVALID_VALUE,
                f"Task field '{key}' cannot be changed",
                ValidationError,
            )
        if key not in TASK_COLUMNS_BY_FIELD:
            raiseError(
                StoreErrorType.INVALID_VALUE,
                f"Unknown task field '{key}'",
                ValidationError,
            )

        if key == "person_id":
            normalized[key] = require_text(value, "person_id", ValidationError)
        elif key == "title":
            normalized[key] = require_text(value, "title", ValidationError).strip()
        elif key == "type":
            normalized[key] = TaskType.parse(value)
        elif key == "status":
            normalized[key] = TaskStatus.parse(value)
        elif key == "priority":
            normalized[key] = TaskPriority.parse(value)
        elif key == "due":
            normalized[key] = _coerce_due(value)
        elif key == "data":
            normalized[key] = _coerce_data(value)
    return normalized


def _column_value(key: str, value: Any) -> Any:
    if key in ("type", "status"):
        return value.value
    if key == "priority":
        return int(value)
    if key == "data":
        return dump_json(value) if value else None
    return value


class TaskStore:
    """Persistence and lifecycle of tasks."""

    def __init__(self, connection: SQLiteConnection):
        self.db = connection

    # ------------------------------------------------------------------
    # Create / read
    # ------------------------------------------------------------------

    async def create(
        self,
        entity_id: str,
        person_id: str,
        type: Union[TaskType, str],
        title: str,
        status: Union[TaskStatus, str] = TaskStatus.PENDING,
        priority: Union[TaskPriority, int] = TaskPriority.NORMAL,
        due: Optional[int] = None,
        data: Optional[Mapping[str, Any]] = None,
        id: Optional[str] = None,
    ) -> str:
        """Persist a new task and return its id."""
        task = await self._create(
            entity_id=entity_id,
            person_id=person_id,
            type=type,
            title=title,
            status=status,
            priority=priority,
            due=due,
            data=data,
            id=id,
        )
        return task.id

    async def _create(self, **fields: Any) -> Task:
        now = now_ms()
        task = Task(
            id=fields.get("id") or generate_id("task"),
            entity_id=require_text(fields.get("entity_id"), "entity_id", ValidationError),
            person_id=require_text(fields.get("person_id"), "person_id", ValidationError),
            type=TaskType.parse(fields.get("type")),
            title=require_text(fields.get("title"), "title", ValidationError).strip(),
            status=TaskStatus.parse(fields.get("status") or TaskStatus.PENDING),
            priority=TaskPriority.parse(fields.get("priority") or 0),
            due=_coerce_due(fields.get("due")),
            data=_coerce_data(fields.get("data")),
            created=now,
            updated=now,
        )
        await self.db.run(self._insert, task)
        logger.debug(f"Created task {task.id} ({task.type.value}) for {task.entity_id}")
        return task

    def _insert(self, task: Task) -> None:
        params = (
            task.id,
            task.entity_id,
            task.person_id,
            task.type.value,
            task.title,
            task.status.value,
            int(task.priority),
            task.due,
            dump_json(task.data) if task.data else None,
            task.created,
            task.updated,
        )
        try:
            self.db.execute_write(INSERT_TASK, params)
        except sqlite3.IntegrityError as e:
            logger.error(f"Failed to insert task {task.id}: {e}")
            raiseError(
                StoreErrorType.INVALID_VALUE,
                f"Task '{task.id}' already exists",
                ValidationError,
            )

    async def get(self, task_id: str) -> Optional[Task]:
        rows = await self.db.run(self.db.execute_query, GET_TASK_BY_ID, (task_id,))
        tasks = self._to_tasks(rows)
        return tasks[0] if tasks else None

    async def create_order_tasks(
        self, entity_id: str, tasks: Sequence[Mapping[str, Any]]
    ) -> BulkResult:
        """Create the follow-up tasks of an order.

        Each task is created independently; the result lists created Task
        records and the items that failed with their error.
        """
        result = BulkResult()
        for item in tasks:
            try:
                if not isinstance(item, Mapping):
                    raise ValidationError(f"Cannot read a task from {item!r}")
                fields = dict(item)
                fields["entity_id"] = entity_id
                result.succeeded.append(await self._create(**fields))
            except (TaraiError, ValueError) as e:
                logger.warning(f"Failed to create task for {entity_id}: {e}")
                result.failed.append(BulkFailure(item=item, error=str(e)))
        if result.partial:
            logger.warning(
                f"Order tasks for {entity_id} partially created: "
                f"{len(result.succeeded)} ok, {len(result.failed)} failed"
            )
        return result

    # ------------------------------------------------------------------
    # Update / status transitions / delete
    # ------------------------------------------------------------------

    async def update(self, task_id: str, **fields: Any) -> Task:
        """Apply only the supplied fields; a status change must be a valid transition."""
        changes = normalize_task_fields(fields)
        await self.db.run(self._apply_update, task_id, changes)
        task = await self.get(task_id)
        if task is None:
            raiseError(
                StoreErrorType.RESOURCE_NOT_FOUND, f"Task '{task_id}' not found", NotFound
            )
        return task

    def _apply_update(self, task_id: str, changes: Dict[str, Any]) -> None:
        with self.db.transaction() as cursor:
            cursor.execute("SELECT status, updated FROM tasks WHERE id = ?", (task_id,))
            row = cursor.fetchone()
            if row is None:
                raiseError(
                    StoreErrorType.RESOURCE_NOT_FOUND,
                    f"Task '{task_id}' not found",
                    NotFound,
                )
            current, previous_updated = TaskStatus.parse(row[0]), row[1]

            target = changes.get("status")
            if target is not None and not current.can_transition_to(target):
                raiseError(
                    StoreErrorType.INVALID_TRANSITION,
                    f"Task '{task_id}' cannot move from {current.value} to {target.value}",
                    ValidationError,
                )

            assignments = [f"{TASK_COLUMNS_BY_FIELD[key]} = ?" for key in changes]
            assignments.append("updated = ?")
            params = [_column_value(key, value) for key, value in changes.items()]
            params += [max(now_ms(), previous_updated), task_id]
            cursor.execute(UPDATE_TASK.format(assignments=", ".join(assignments)), params)

    async def update_status(self, task_id: str, status: Union[TaskStatus, str]) -> Task:
        task = await self.update(task_id, status=status)
        logger.debug(f"Task {task_id} is now {task.status.value}")
        return task

    async def start(self, task_id: str) -> Task:
        return await self.update_status(task_id, TaskStatus.PROGRESS)

    async def complete(self, task_id: str) -> Task:
        return await self.update_status(task_id, TaskStatus.COMPLETED)

    async def cancel(self, task_id: str) -> Task:
        return await self.update_status(task_id, TaskStatus.CANCELLED)

    async def delete(self, task_id: str) -> bool:
        """Delete a task. Idempotent."""
        deleted = await self.db.run(self.db.execute_write, DELETE_TASK, (task_id,))
        return deleted > 0

    async def delete_for_entity(self, entity_id: str) -> int:
        """Delete every task owned by an entity, returning how many were removed."""
        deleted = await self.db.run(
            self.db.execute_write, DELETE_TASKS_FOR_ENTITY, (entity_id,)
        )
        if deleted:
            logger.debug(f"Deleted {deleted} tasks of {entity_id}")
        return deleted

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_all(
        self,
        status: Union[TaskStatus, str, None] = None,
        limit: Optional[int] = None,
    ) -> List[Task]:
        """Tasks by priority desc, due asc (undated last), created desc."""
        clauses, params = [], []
        if status is not None:
            clauses.append("status = ?")
            params.append(TaskStatus.parse(status).value)
        return await self._list(clauses, params, limit)

    async def tasks_of_person(
        self, person_id: str, status: Union[TaskStatus, str, None] = None
    ) -> List[Task]:
        clauses, params = ["personid = ?"], [person_id]
        if status is not None:
            clauses.append("status = ?")
            params.append(TaskStatus.parse(status).value)
        return await self._list(clauses, params, None)

    async def tasks_of_entity(self, entity_id: str) -> List[Task]:
        return await self._list(["entityid = ?"], [entity_id], None)

    async def by_type(self, type: Union[TaskType, str]) -> List[Task]:
        return await self._list(["type = ?"], [TaskType.parse(type).value], None)

    async def tasks_for_entities(self, entity_ids: Iterable[str]) -> List[Task]:
        """Tasks of several entities in one round trip."""
        ids = list(dict.fromkeys(entity_ids))
        if not ids:
            return []
        rows = await self.db.run(self._select_for_entities, ids)
        return self._to_tasks(rows)

    def _select_for_entities(self, ids: List[str]) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        for batch in chunk_list(ids, MAX_IN_PARAMETERS):
            query = GET_TASKS_FOR_ENTITIES.format(placeholders=", ".join("?" * len(batch)))
            rows.extend(self.db.execute_query(query, batch))
        return rows

    async def overdue(self, now: Optional[int] = None) -> List[Task]:
        """Pending tasks whose due time has passed."""
        now = now_ms() if now is None else now
        rows = await self.db.run(self.db.execute_query, GET_OVERDUE_TASKS, (now,))
        return self._to_tasks(rows)

    async def due_soon(self, within_hours: float = 24, now: Optional[int] = None) -> List[Task]:
        """Pending tasks due in ``[now, now + within_hours]``."""
        if within_hours < 0:
            raiseError(
                StoreErrorType.INVALID_VALUE,
                "within_hours must not be negative",
                ValidationError,
            )
        now = now_ms() if now is None else now
        horizon = now + int(within_hours * HOUR_MS)
        rows = await self.db.run(
            self.db.execute_query, GET_TASKS_DUE_SOON, (now, horizon)
        )
        return self._to_tasks(rows)

    async def _list(
        self, clauses: List[str], params: List[Any], limit: Optional[int]
    ) -> List[Task]:
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        query = LIST_TASKS.format(where=where)
        if limit is not None:
            if limit < 0:
                raiseError(
                    StoreErrorType.INVALID_VALUE,
                    "limit must be non-negative",
                    ValidationError,
                )
            query += " LIMIT ?"
            params = params + [limit]
        rows = await self.db.run(self.db.execute_query, query, params)
        return self._to_tasks(rows)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def stats(self, now: Optional[int] = None) -> TaskStats:
        """Counts by status plus overdue, from a single aggregate statement."""
        now = now_ms() if now is None else now
        rows = await self.db.run(self.db.execute_query, GET_TASK_STATS, (now,))
        stats = TaskStats()
        for row in rows:
            stats.total += row["count"]
            stats.by_status[row["status"]] = row["count"]
            stats.overdue += row["overdue"] or 0
        return stats

    @staticmethod
    def _to_tasks(rows: List[Dict[str, Any]]) -> List[Task]:
        tasks = []
        for row in rows:
            try:
                tasks.append(Task.from_row(row))
            except TaraiError as e:
                logger.warning(f"Skipping unreadable task row {row.get('id')}: {e}")
        return tasks
