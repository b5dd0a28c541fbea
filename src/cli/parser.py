"""Argument parser setup for the CLI application."""

import argparse

from config.settings import config
from models import EntityStatus, EntityType, PersonRole, TaskStatus

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db",
        default=None,
        help="Path to the SQLite database (default: from configuration)",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=config.logging.level,
        help="Set the logging level",
    )


def setup_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="TARAI entity store with semantic search"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Seed command
    seed_parser = subparsers.add_parser("seed", help="Load the demo marketplace data")
    seed_parser.add_argument(
        "--force",
        action="store_true",
        help="Delete existing entities before loading",
    )
    _add_common_arguments(seed_parser)

    # Add command
    add_parser = subparsers.add_parser("add", help="Create and index a new entity")
    add_parser.add_argument(
        "type", choices=[t.value for t in EntityType], help="Entity type"
    )
    add_parser.add_argument("title", help="Entity title")
    add_parser.add_argument("--description", default="", help="Free-text description")
    add_parser.add_argument(
        "--tags", default="", help="Comma-separated tags (e.g. 'taxi,airport')"
    )
    add_parser.add_argument("--value", type=float, default=0.0, help="Price")
    add_parser.add_argument("--quantity", type=int, default=1, help="Quantity")
    add_parser.add_argument("--location", help="Location")
    add_parser.add_argument("--parent", help="Parent entity id")
    _add_common_arguments(add_parser)

    # List command
    list_parser = subparsers.add_parser("list", help="List entities")
    list_parser.add_argument(
        "--type",
        action="append",
        choices=[t.value for t in EntityType],
        help="Filter by type (repeatable)",
    )
    list_parser.add_argument(
        "--status", choices=[s.value for s in EntityStatus], help="Filter by status"
    )
    list_parser.add_argument("--limit", type=int, help="Maximum number of entities")
    list_parser.add_argument(
        "--all",
        dest="include_structural",
        action="store_true",
        help="Include structural entities (carts, variants, ...)",
    )
    _add_common_arguments(list_parser)

    # Search command
    search_parser = subparsers.add_parser(
        "search", help="Search entities by semantic similarity"
    )
    search_parser.add_argument("query", help="Free-text search query")
    search_parser.add_argument(
        "--type",
        action="append",
        choices=[t.value for t in EntityType],
        help="Filter by type (repeatable)",
    )
    search_parser.add_argument(
        "--status", choices=[s.value for s in EntityStatus], help="Filter by status"
    )
    search_parser.add_argument(
        "--limit",
        type=int,
        default=config.search.default_limit,
        help=f"Maximum number of results (default: {config.search.default_limit})",
    )
    _add_common_arguments(search_parser)

    # People command
    people_parser = subparsers.add_parser(
        "people", help="Find people linked to entities matching a query"
    )
    people_parser.add_argument(
        "query", nargs="?", default="", help="Free-text query (default: everyone)"
    )
    people_parser.add_argument(
        "--role", choices=[r.value for r in PersonRole], help="Filter by role"
    )
    people_parser.add_argument("--limit", type=int, default=50)
    _add_common_arguments(people_parser)

    # Tasks command
    tasks_parser = subparsers.add_parser(
        "tasks", help="Find tasks of entities matching a query"
    )
    tasks_parser.add_argument(
        "query", nargs="?", default="", help="Free-text query (default: all tasks)"
    )
    tasks_parser.add_argument(
        "--status", choices=[s.value for s in TaskStatus], help="Filter by status"
    )
    tasks_parser.add_argument("--person", help="Only tasks assigned to this person")
    tasks_parser.add_argument(
        "--overdue", action="store_true", help="Only open tasks past their due time"
    )
    tasks_parser.add_argument("--limit", type=int, default=50)
    _add_common_arguments(tasks_parser)

    # Stats command
    stats_parser = subparsers.add_parser(
        "stats", help="Show entity, people, task and index statistics"
    )
    _add_common_arguments(stats_parser)

    # History command
    history_parser = subparsers.add_parser("history", help="Show recent search queries")
    history_parser.add_argument(
        "--limit", type=int, default=10, help="Number of queries to show (default: 10)"
    )
    _add_common_arguments(history_parser)

    return parser
