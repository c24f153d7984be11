"""List registered sources."""

from newsrank import config
from newsrank.crawler import available_sources, get_adapter


def add_sources_parser(subparsers):
    return subparsers.add_parser("sources", help="List supported sources")


def handle_sources_command(args) -> int:
    for source in available_sources():
        adapter = get_adapter(source)
        ranking = config.RANKING_OVERRIDES.get(source, adapter.ranking)
        print(f"{source:<12} ranking={ranking}")
    return 0
