"""Shared rich console and table renderers for CLI output."""

from datetime import datetime
from typing import Iterable, Optional

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from models import Entity, PersonLink, SearchHistoryEntry, Task
from utils.helpers import now_ms

COLOR_SCHEME = {
    "success": "bold green",
    "error": "bold red",
    "warning": "bold yellow",
    "info": "bold blue",
    "dim": "dim white",
    "table_header": "bold cyan",
    "score": "bright_magenta",
    "id": "cyan",
}


class TaraiConsole:
    """Singleton wrapper around a themed rich Console."""

    _instance: Optional["TaraiConsole"] = None
    _console: Optional[Console] = None

    def __new__(cls) -> "TaraiConsole":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._console is None:
            self._console = Console(theme=Theme(COLOR_SCHEME))

    @property
    def console(self) -> Console:
        return self._console

    def print(self, *args, **kwargs):
        return self._console.print(*args, **kwargs)

    def success(self, message: str):
        self._console.print(f"✅ {message}", style="success")

    def error(self, message: str):
        self._console.print(f"❌ {message}", style="error")

    def warning(self, message: str):
        self._console.print(f"⚠️  {message}", style="warning")

    def info(self, message: str):
        self._console.print(f"ℹ️  {message}", style="info")

    def dim(self, message: str):
        self._console.print(message, style="dim")


def _score(similarity: Optional[float]) -> str:
    return "" if similarity is None else f"{similarity:.3f}"


def entity_table(entities: Iterable[Entity], title: str = "Entities") -> Table:
    table = Table(title=title, header_style="table_header")
    table.add_column("ID", style="id", no_wrap=True)
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Value", justify="right")
    table.add_column("Qty", justify="right")
    table.add_column("Location")
    table.add_column("Status")
    table.add_column("Score", style="score", justify="right")

    for entity in entities:
        info = entity.type.info
        table.add_row(
            entity.id,
            f"{info.icon} {entity.type.value}",
            entity.title,
            "free" if entity.is_free else f"{entity.value:g}",
            str(entity.quantity),
            entity.location or "",
            entity.status.value,
            _score(entity.similarity),
        )
    return table


def people_table(links: Iterable[PersonLink], title: str = "People") -> Table:
    table = Table(title=title, header_style="table_header")
    table.add_column("Person", style="id")
    table.add_column("Role")
    table.add_column("Entity")

    for link in links:
        table.add_row(
            link.person_id, f"{link.role.info.icon} {link.role.value}", link.entity_id
        )
    return table


def task_table(tasks: Iterable[Task], title: str = "Tasks") -> Table:
    now = now_ms()
    table = Table(title=title, header_style="table_header")
    table.add_column("ID", style="id", no_wrap=True)
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Person")
    table.add_column("Entity")
    table.add_column("Status")
    table.add_column("Priority", justify="right")
    table.add_column("Score", style="score", justify="right")

    for task in tasks:
        table.add_row(
            task.id,
            f"{task.type.info.icon} {task.type.value}",
            task.title,
            task.person_id,
            task.entity_id,
            f"{task.status.info.icon} {task.status.value}"
            + (" [warning](overdue)[/warning]" if task.is_overdue(now) else ""),
            task.priority.name.lower(),
            _score(task.similarity),
        )
    return table


def history_table(entries: Iterable[SearchHistoryEntry], title: str = "Recent searches") -> Table:
    table = Table(title=title, header_style="table_header")
    table.add_column("When", style="dim", no_wrap=True)
    table.add_column("Query")
    for entry in entries:
        when = datetime.fromtimestamp(entry.created / 1000).strftime("%Y-%m-%d %H:%M:%S")
        table.add_row(when, entry.query)
    return table


# Global singleton instance
console = TaraiConsole()
