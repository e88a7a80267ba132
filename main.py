# main.py

"""Entry point for the ark_research product-research CLI."""

import argparse
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from src.config.logging_config import setup_logging
from src.filters.product_filter import SORT_KEYS

logger = logging.getLogger("ark_research.main")


def _add_search_args(parser: argparse.ArgumentParser) -> None:
    """Arguments shared by commands that run a search."""
    parser.add_argument("category", help="Category label to research.")
    parser.add_argument(
        "-k", "--keyword", default=None,
        help="Search keyword (default: the category itself).",
    )
    parser.add_argument("--min-price", type=float, default=None)
    parser.add_argument("--max-price", type=float, default=None)
    parser.add_argument("--min-margin", type=float, default=None)
    parser.add_argument(
        "--max-bsr", type=int, default=None, help="Worst acceptable rank.",
    )
    parser.add_argument("--min-reviews", type=int, default=None)
    parser.add_argument("--min-rating", type=float, default=None)
    parser.add_argument(
        "--sort-by",
        choices=sorted(SORT_KEYS),
        default=None,
        help="Result ordering (default: profit).",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="ark_research",
        description="Product research assistant for e-commerce resellers.",
    )
    parser.add_argument(
        "--db", default=None, type=Path,
        help="SQLite database path (default: data/ark_research.db).",
    )
    parser.add_argument(
        "-u", "--user", default="default",
        help="User id for saved products and bundles.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Find candidate products.")
    _add_search_args(search)
    search.add_argument(
        "-f", "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    search.add_argument(
        "--save", action="store_true", default=False,
        help="Save every returned product.",
    )
    search.add_argument(
        "--export", choices=["json", "csv"], default=None,
        help="Also write results to results/.",
    )

    saved = sub.add_parser("saved", help="List saved products.")
    saved.add_argument("--remove", default=None, metavar="ASIN")

    watch = sub.add_parser("watch", help="Competitor watchlist.")
    watch.add_argument("operation", choices=["add", "remove", "list"])
    watch.add_argument("asin", nargs="?", default=None)
    watch.add_argument("--note", default=None)
    watch.add_argument(
        "--chart", action="store_true", default=False,
        help="Open a price chart of the watchlist.",
    )

    history = sub.add_parser("history", help="Price/rank history for an ASIN.")
    history.add_argument("asin")
    history.add_argument("--chart", action="store_true", default=False)

    alert = sub.add_parser("alert", help="Create a price alert.")
    alert.add_argument("asin")
    alert.add_argument("price", type=float)
    alert.add_argument(
        "--above", action="store_true", default=False,
        help="Fire when the price rises to the target instead.",
    )

    alerts = sub.add_parser("alerts", help="List price alerts.")
    alerts.add_argument("--pending", action="store_true", default=False)

    bundle = sub.add_parser("bundle", help="Bundle saved products.")
    bundle.add_argument("name")
    bundle.add_argument("asins", nargs="+", metavar="ASIN")

    sub.add_parser("bundles", help="List bundles.")

    ideas = sub.add_parser("bundle-ideas", help="Ask for bundle ideas.")
    _add_search_args(ideas)

    cache = sub.add_parser("cache", help="Cache statistics.")
    cache.add_argument("--purge", action="store_true", default=False)

    sub.add_parser("health", help="Check storage and search API.")
    return parser


def _commands() -> dict[str, Callable[[Any, argparse.Namespace], int]]:
    from src.cli import runner

    return {
        "search": runner.cli_search,
        "saved": runner.cli_saved,
        "watch": runner.cli_watch,
        "history": runner.cli_history,
        "alert": runner.cli_alert,
        "alerts": runner.cli_alerts,
        "bundle": runner.cli_bundle,
        "bundles": runner.cli_bundles,
        "bundle-ideas": runner.cli_bundle_ideas,
        "cache": runner.cli_cache,
        "health": runner.cli_health,
    }


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, wire services once, and run one command."""
    log_file = setup_logging()
    logger.info("ark_research starting, log file: %s", log_file)

    args = _build_parser().parse_args(argv)

    from src.cli.runner import build_services

    services = build_services(args.db)
    try:
        return _commands()[args.command](services, args)
    except Exception:
        logger.critical("Fatal error in '%s'", args.command, exc_info=True)
        raise
    finally:
        services.close()
        logger.info("ark_research shutting down")


if __name__ == "__main__":
    sys.exit(main())
