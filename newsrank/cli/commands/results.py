"""Print the stored ranking for a source."""

import logging

from newsrank.crawler import UnknownSourceError, get_adapter, latest_snapshot
from newsrank.models.database import DatabaseManager

from .crawl import print_results

logger = logging.getLogger(__name__)


def add_results_parser(subparsers):
    parser = subparsers.add_parser(
        "results",
        help="Show the most recent ranking stored for a source",
    )
    parser.add_argument("--source", required=True)
    parser.add_argument("--database-url", default=None)
    return parser


def handle_results_command(args) -> int:
    try:
        adapter = get_adapter(args.source)
    except UnknownSourceError as exc:
        print(str(exc))
        return 1

    with DatabaseManager(args.database_url) as db:
        snapshot = latest_snapshot(db.crawl_results, adapter.name)

    if snapshot is None:
        print(f"No results found for {adapter.name}")
        return 1

    print(f"Results for {adapter.name} (updated {snapshot['updatedAt']})")
    print("=" * 70)
    print_results(snapshot["results"])
    return 0
