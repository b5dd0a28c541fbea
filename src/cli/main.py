"""CLI dispatcher for the TARAI Store application."""

import os
import sys

# Set tokenizers parallelism before any imports to avoid warnings
os.environ.setdefault("TOKENIZERS_PARALLELISM", "false")

from loguru import logger

from cli.commands import (
    handle_add_command,
    handle_history_command,
    handle_list_command,
    handle_people_command,
    handle_search_command,
    handle_seed_command,
    handle_stats_command,
    handle_tasks_command,
)
from cli.parser import setup_argument_parser
from utils.logging import setup_logging

COMMANDS = {
    "seed": handle_seed_command,
    "add": handle_add_command,
    "list": handle_list_command,
    "search": handle_search_command,
    "people": handle_people_command,
    "tasks": handle_tasks_command,
    "stats": handle_stats_command,
    "history": handle_history_command,
}


def main(argv=None):
    """Main entry point for the CLI application."""
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return

    if hasattr(args, "log_level"):
        setup_logging(args.log_level)

    handler = COMMANDS.get(args.command)
    if handler is None:
        logger.error(f"Unknown command: {args.command}")
        parser.print_help()
        sys.exit(1)

    try:
        handler(args)
    except KeyboardInterrupt:
        logger.info("Operation interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
