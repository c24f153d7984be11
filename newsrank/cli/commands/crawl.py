"""Run one crawl for a source and print the ranked articles."""

import argparse
import asyncio
import logging

from newsrank import config
from newsrank.crawler import UnknownSourceError, available_sources, run_crawl
from newsrank.models.database import DatabaseManager

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer")
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    if number > config.MAX_CRAWL_DAYS:
        raise argparse.ArgumentTypeError(f"must be at most {config.MAX_CRAWL_DAYS}")
    return number


def add_crawl_parser(subparsers):
    """Add crawl command parser."""
    parser = subparsers.add_parser(
        "crawl",
        help="Crawl recent sitemaps and rank articles by engagement",
    )
    parser.add_argument(
        "--source",
        required=True,
        help=f"Source to crawl ({', '.join(available_sources())})",
    )
    parser.add_argument(
        "--days",
        type=_positive_int,
        default=config.CRAWL_DAYS,
        help=f"Number of days before today to include (default: {config.CRAWL_DAYS})",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Override DATABASE_URL for this run",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print progress updates",
    )
    return parser


def print_results(results) -> None:
    if not results:
        print("No articles found.")
        return
    for rank, item in enumerate(results, 1):
        print(f"{rank:>2}. {item['title']}")
        print(f"    {item['url']}")
        print(f"    reactions={item['reactions']} comments={item['comments']}")


def handle_crawl_command(args) -> int:
    """Handle crawl command.

    Returns:
        Exit code (0 for success, 1 for error)
    """

    def on_progress(progress: int, message: str | None = None) -> None:
        if not args.quiet:
            print(f"[{progress:3d}%] {message or ''}", flush=True)

    try:
        with DatabaseManager(args.database_url) as db:
            results = asyncio.run(
                run_crawl(args.source, args.days, on_progress, db=db)
            )
    except UnknownSourceError as exc:
        print(str(exc))
        return 1
    except Exception as exc:
        logger.exception("Crawl failed for %s", args.source, exc_info=exc)
        return 1

    print()
    print(f"Top {len(results)} articles for {args.source} (last {args.days} days)")
    print("=" * 70)
    print_results(results)
    return 0
