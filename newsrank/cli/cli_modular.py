"""``news-rank`` entry point.

Only the top-level parser is built eagerly. A command's module is imported
when that command is actually invoked, so ``news-rank sources`` never pays
for the crawler's HTTP or database imports.
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from collections.abc import Callable

logger = logging.getLogger(__name__)

CommandHandler = Callable[[argparse.Namespace], int]

# command name -> (module under newsrank.cli.commands, one-line summary)
COMMANDS: dict[str, tuple[str, str]] = {
    "crawl": ("crawl", "Crawl a source and rank its top articles"),
    "results": ("results", "Show the last stored ranking for a source"),
    "sources": ("sources", "List supported sources"),
}


def create_parser() -> argparse.ArgumentParser:
    """Parser for the global options and the bare command name."""
    parser = argparse.ArgumentParser(
        prog="news-rank",
        description="Rank recent news articles by reader engagement",
        add_help=False,
    )
    parser.add_argument("--log-level", default=None, help="e.g. INFO or DEBUG")
    parser.add_argument("command", nargs="?", help="One of: " + ", ".join(COMMANDS))
    return parser


def _load_command_parser(command: str) -> tuple[Callable, CommandHandler] | None:
    """Import ``command``'s module and return its (add_parser, handler) pair."""
    entry = COMMANDS.get(command)
    if entry is None:
        return None
    module_name = entry[0]

    try:
        module = importlib.import_module(f"newsrank.cli.commands.{module_name}")
    except ImportError as exc:
        logger.warning("Could not import command %r: %s", command, exc)
        return None

    add_parser = getattr(module, f"add_{module_name}_parser", None)
    handler = getattr(module, f"handle_{module_name}_command", None)
    if add_parser is None or handler is None:
        return None
    return add_parser, handler


def _print_usage() -> None:
    print("Available commands:", file=sys.stderr)
    for name, (_, summary) in COMMANDS.items():
        print(f"  {name:<8} - {summary}", file=sys.stderr)
    print("Use: news-rank COMMAND --help for more info", file=sys.stderr)


def main(
    argv: list[str] | None = None,
    *,
    setup_logging_func: Callable[[str], None] | None = None,
    handler_overrides: dict[str, CommandHandler] | None = None,
) -> int:
    args, remaining = create_parser().parse_known_args(argv)

    if setup_logging_func is None:
        from .context import setup_logging as setup_logging_func
    from newsrank import config

    setup_logging_func(args.log_level or config.LOG_LEVEL)

    if not args.command:
        _print_usage()
        return 1

    loaded = _load_command_parser(args.command)
    if loaded is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1
    add_parser, handler = loaded

    command_parser = argparse.ArgumentParser(prog=f"news-rank {args.command}")
    command_parser.add_argument("--log-level", default=None)
    add_parser(command_parser.add_subparsers(dest="command"))
    command_args = command_parser.parse_args([args.command, *remaining])

    if handler_overrides and args.command in handler_overrides:
        handler = handler_overrides[args.command]
    return handler(command_args)


if __name__ == "__main__":
    sys.exit(main())
