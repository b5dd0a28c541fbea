"""Command handlers for the CLI application."""

import asyncio

from loguru import logger
from rich.table import Table

from cli.utils import open_context
from demo import TEST_QUERIES, load_demo_data
from models import ProviderUnavailable, TaraiError
from utils.console import (
    console,
    entity_table,
    history_table,
    people_table,
    task_table,
)


def _run(coro) -> None:
    """Run a command coroutine, reporting store errors on the console."""
    try:
        asyncio.run(coro)
    except ProviderUnavailable as e:
        console.error(f"Embedding provider unavailable: {e}")
        console.dim("Check embedding.model_path in your configuration.")
        raise SystemExit(1)
    except TaraiError as e:
        console.error(str(e))
        raise SystemExit(1)


def handle_seed_command(args) -> None:
    """Load the demo marketplace."""
    _run(_seed(args))


async def _seed(args) -> None:
    async with open_context(args.db, seed_demo=False) as ctx:
        counts = await load_demo_data(
            ctx.service, ctx.people, ctx.tasks, force=args.force
        )
    if counts["skipped"]:
        console.warning(
            f"{counts['skipped']} entities already present, use --force to reload"
        )
        return
    console.success(
        f"Loaded {counts['entities']} entities, {counts['links']} person links "
        f"and {counts['tasks']} tasks"
    )
    console.dim("Try: " + ", ".join(f"'{q}'" for q in TEST_QUERIES[:3]))


def handle_add_command(args) -> None:
    """Create and index one entity."""
    _run(_add(args))


async def _add(args) -> None:
    data = {}
    if args.description:
        data["description"] = args.description
    if args.tags:
        data["tags"] = args.tags

    async with open_context(args.db) as ctx:
        entity_id = await ctx.service.create(
            type=args.type,
            title=args.title,
            data=data,
            value=args.value,
            quantity=args.quantity,
            location=args.location,
            parent=args.parent,
        )
        entity = await ctx.service.get(entity_id)
    console.success(f"Created {entity_id}")
    console.print(entity_table([entity], title="Created"))


def handle_list_command(args) -> None:
    """List entities without ranking."""
    _run(_list(args))


async def _list(args) -> None:
    async with open_context(args.db) as ctx:
        entities = await ctx.service.list_all(
            type=args.type,
            status=args.status,
            limit=args.limit,
            include_structural=args.include_structural,
        )
    if not entities:
        console.info("No entities found. Run 'seed' to load demo data.")
        return
    console.print(entity_table(entities, title=f"Entities ({len(entities)})"))


def handle_search_command(args) -> None:
    """Semantic search over entities."""
    _run(_search(args))


async def _search(args) -> None:
    async with open_context(args.db) as ctx:
        results = await ctx.coordinator.search(
            args.query, type=args.type, status=args.status, limit=args.limit
        )
        suggestions = ctx.coordinator.suggestions(args.query) if not results else []

    if not results:
        console.info(f"No matches for '{args.query}'")
        if suggestions:
            console.dim(
                "Related categories: "
                + ", ".join(f"{s.icon} {s.text}" for s in suggestions)
            )
        return
    console.print(entity_table(results, title=f"Results for '{args.query}'"))


def handle_people_command(args) -> None:
    """People linked to matching entities."""
    _run(_people(args))


async def _people(args) -> None:
    async with open_context(args.db) as ctx:
        links = await ctx.coordinator.search_people(
            args.query, role=args.role, limit=args.limit
        )
    if not links:
        console.info("No people found")
        return
    console.print(people_table(links))


def handle_tasks_command(args) -> None:
    """Tasks of matching entities, of a person, or overdue."""
    _run(_tasks(args))


async def _tasks(args) -> None:
    async with open_context(args.db) as ctx:
        if args.overdue:
            tasks = await ctx.tasks.overdue()
            title = "Overdue tasks"
        elif args.person:
            tasks = await ctx.tasks.tasks_of_person(args.person, status=args.status)
            title = f"Tasks of {args.person}"
        else:
            tasks = await ctx.coordinator.search_tasks(
                args.query, status=args.status, limit=args.limit
            )
            title = f"Tasks for '{args.query}'" if args.query else "Tasks"
    if not tasks:
        console.info("No tasks found")
        return
    console.print(task_table(tasks[: args.limit], title=title))


def handle_stats_command(args) -> None:
    """Entity, people, task and index statistics."""
    _run(_stats(args))


async def _stats(args) -> None:
    async with open_context(args.db) as ctx:
        entity_stats = await ctx.service.stats()
        people_stats = await ctx.people.stats()
        task_stats = await ctx.tasks.stats()
        index_stats = await ctx.service.index_stats()

    summary = Table(title="TARAI Store", show_header=False, box=None)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", justify="right")
    summary.add_row("Entities", f"{entity_stats.total:,}")
    summary.add_row("People", f"{people_stats.total:,}")
    summary.add_row("Person links", f"{people_stats.total_links:,}")
    summary.add_row("Tasks", f"{task_stats.total:,}")
    summary.add_row("Overdue tasks", f"{task_stats.overdue:,}")
    summary.add_row("Vectors", f"{index_stats['total_vectors']:,}")
    summary.add_row("Indexed entities", f"{index_stats['total_entities']:,}")
    summary.add_row("Avg chunks per entity", str(index_stats["avg_chunks_per_entity"]))
    summary.add_row("Vector dimension", str(index_stats["dimension"]))
    console.print(summary)

    for title, counts in (
        ("Entities by type", entity_stats.by_type),
        ("Entities by status", entity_stats.by_status),
        ("Links by role", people_stats.by_role),
        ("Tasks by status", task_stats.by_status),
    ):
        if not counts:
            continue
        table = Table(title=title, header_style="table_header")
        table.add_column("Name")
        table.add_column("Count", justify="right")
        for name, count in sorted(counts.items(), key=lambda item: -item[1]):
            table.add_row(name, f"{count:,}")
        console.print(table)

    logger.debug(f"Stats: {entity_stats}, {people_stats}, {task_stats}, {index_stats}")


def handle_history_command(args) -> None:
    """Most recent search queries."""
    _run(_history(args))


async def _history(args) -> None:
    async with open_context(args.db) as ctx:
        entries = await ctx.coordinator.search_history(limit=args.limit)
    if not entries:
        console.info("No searches yet")
        return
    console.print(history_table(entries))
