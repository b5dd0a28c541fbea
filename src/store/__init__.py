"""
Store module for relational persistence of entities, person links, tasks
and search history.
"""

from .entity_store import EntityStore
from .history_store import SearchHistoryStore
from .people_store import PeopleStore
from .sqlite_client import SQLiteConnection
from .task_store import TaskStore

__all__ = [
    "SQLiteConnection",
    "EntityStore",
    "PeopleStore",
    "TaskStore",
    "SearchHistoryStore",
]
