# src/cli/runner.py

"""Headless CLI commands built on the search pipeline and stores."""

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from rich.console import Console
from rich.table import Table

from src.clients.search_client import GenerativeSearchClient
from src.filters.product_normalizer import ASIN_RE
from src.models.product import ProductRecord
from src.services.search_pipeline import (
    InvalidRequest,
    SearchPipeline,
    SearchRequest,
)
from src.storage.database import Database
from src.storage.file_manager import FileManager
from src.storage.product_cache import ProductCacheStore
from src.storage.research_db import ResearchDB

logger = logging.getLogger("ark_research.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)

# argparse dest -> filter key understood by ProductFilter
FILTER_ARGS: dict[str, str] = {
    "min_price": "minPrice",
    "max_price": "maxPrice",
    "min_margin": "minMargin",
    "max_bsr": "maxBSR",
    "min_reviews": "minReviews",
    "min_rating": "minRating",
    "sort_by": "sortBy",
}


@dataclass
class Services:
    """Components wired once per process."""

    db: Database
    cache: ProductCacheStore
    research_db: ResearchDB
    client: GenerativeSearchClient
    pipeline: SearchPipeline

    def close(self) -> None:
        """Release the database connection."""
        self.db.close()


def build_services(db_path: Path | None = None) -> Services:
    """Construct the storage handle, stores, client and pipeline."""
    db = Database(db_path)
    cache = ProductCacheStore(db)
    research_db = ResearchDB(db)
    client = GenerativeSearchClient()
    pipeline = SearchPipeline(cache, research_db, client)
    return Services(db, cache, research_db, client, pipeline)


def request_payload(args: Any) -> dict[str, Any]:
    """Build a search request body from parsed CLI arguments."""
    filters = {
        key: getattr(args, dest)
        for dest, key in FILTER_ARGS.items()
        if getattr(args, dest, None) is not None
    }
    payload: dict[str, Any] = {"category": args.category}
    if args.keyword:
        payload["keyword"] = args.keyword
    if filters:
        payload["filters"] = filters
    return payload


def _print_products(products: list[ProductRecord], title: str) -> None:
    """Render a Rich table of products to stdout."""
    table = Table(title=title, show_lines=True, title_style="bold cyan")
    table.add_column("#", style="dim", width=3)
    table.add_column("Title", max_width=44)
    table.add_column("ASIN", style="magenta")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Cost", justify="right", style="blue")
    table.add_column("Profit", justify="right")
    table.add_column("Margin", justify="right")
    table.add_column("ROI", justify="right")
    table.add_column("BSR", justify="right")
    table.add_column("Rating", justify="center")

    for idx, p in enumerate(products, 1):
        profit_style = "green" if p.profit > 0 else "red"
        table.add_row(
            str(idx),
            p.title[:44],
            p.asin,
            f"${p.price:,.2f}",
            f"${p.supplier_price:,.2f}",
            f"[{profit_style}]${p.profit:,.2f}[/{profit_style}]",
            f"{p.margin}%",
            f"{p.roi}%",
            f"#{p.best_seller_rank:,}",
            f"{p.rating:.1f} ({p.review_count:,})",
        )

    Console().print(table)


def _dump_json(data: Any) -> None:
    json.dump(data, sys.stdout, ensure_ascii=False, indent=2, default=str)
    sys.stdout.write("\n")


def cli_search(services: Services, args: Any) -> int:
    """Run one search and print the result (0=ok, 1=empty, 2=invalid)."""
    try:
        request = SearchRequest.from_payload(request_payload(args))
    except InvalidRequest as exc:
        _err.print(f"[red]Invalid request: {exc}[/red]")
        return 2

    _err.print(
        f"[bold]Searching:[/bold] {request.term}  "
        f"[dim]category={request.category}[/dim]"
    )
    result = services.pipeline.search(request)

    if result.fallback:
        _err.print(
            "[yellow]Search API unavailable, showing sample data.[/yellow]"
        )
    for error_msg in result.errors:
        _err.print(f"[dim]{error_msg}[/dim]")
    for alert in result.triggered_alerts:
        _err.print(
            f"[bold magenta]Alert:[/bold magenta] {alert['asin']} at "
            f"${alert['trigger_price']} ({alert['direction']} "
            f"${alert['target_price']})"
        )

    if not result.products:
        _err.print("[yellow]No products match the filters.[/yellow]")
        return 1

    source = "cache" if result.cached else "search API"
    detail = (
        f", {result.excluded_count} filtered" if result.excluded_count else ""
    )
    _err.print(
        f"[green]✓ {len(result.products)} products from {source}"
        f"{detail} in {result.processing_time_ms:.0f}ms[/green]"
    )

    if args.save:
        saved = 0
        for product in result.products:
            if services.research_db.save_product(product, args.user):
                saved += 1
        _err.print(f"[dim]Saved {saved} products[/dim]")

    if args.export:
        file_manager = FileManager()
        try:
            if args.export == "csv":
                path = file_manager.export_csv(request.term, result.products)
            else:
                path = file_manager.save_results(request.term, result.products)
            _err.print(f"[dim]Exported → {path}[/dim]")
        except OSError as exc:
            logger.error("Export failed: %s", exc, exc_info=True)
            _err.print(f"[red]Export failed: {exc}[/red]")

    if args.output_format == "table":
        _print_products(result.products, f"Results: {request.term}")
    else:
        _dump_json(result.to_dict())
    return 0


def cli_saved(services: Services, args: Any) -> int:
    """List saved products, or remove one with ``--remove``."""
    if args.remove:
        removed = services.research_db.remove_saved(args.remove, args.user)
        _err.print(
            f"[green]Removed {args.remove}[/green]"
            if removed
            else f"[yellow]{args.remove} was not saved[/yellow]"
        )
        return 0 if removed else 1

    saved = services.research_db.get_saved(args.user)
    if not saved:
        _err.print("[yellow]No saved products.[/yellow]")
        return 0
    _print_products(saved, f"Saved products ({len(saved)})")
    return 0


def cli_watch(services: Services, args: Any) -> int:
    """Manage the competitor watchlist."""
    db = services.research_db
    if args.operation in ("add", "remove"):
        if not args.asin or not ASIN_RE.match(args.asin.strip().upper()):
            _err.print("[red]A valid ASIN (B0 + 8 characters) is required.[/red]")
            return 2
        if args.operation == "add":
            row = db.add_competitor(args.asin, args.note or "")
            if row is None:
                _err.print("[red]Storage unavailable.[/red]")
                return 1
            _err.print(f"[green]Watching {row['asin']}[/green]")
            return 0
        removed = db.remove_competitor(args.asin)
        _err.print(
            f"[green]Stopped watching {args.asin.upper()}[/green]"
            if removed
            else f"[yellow]{args.asin.upper()} was not watched[/yellow]"
        )
        return 0 if removed else 1

    competitors = db.get_competitors()
    if not competitors:
        _err.print("[yellow]No competitors tracked.[/yellow]")
        return 0

    table = Table(title="Competitor Watchlist", title_style="bold cyan")
    table.add_column("ASIN", style="magenta")
    table.add_column("Title", max_width=40)
    table.add_column("Price", justify="right", style="green")
    table.add_column("BSR", justify="right")
    table.add_column("Last seen", style="dim")
    table.add_column("Note", style="dim")
    for c in competitors:
        price = c["latest_price"]
        rank = c["latest_rank"]
        table.add_row(
            str(c["asin"]),
            str(c["title"])[:40] or "—",
            f"${price:,.2f}" if isinstance(price, float) else "—",
            f"#{rank:,}" if isinstance(rank, int) else "—",
            str(c["last_seen"])[:16] or "—",
            str(c["note"]),
        )
    Console().print(table)

    if args.chart:
        from src.storage.chart_exporter import export_watchlist_dashboard

        path = export_watchlist_dashboard(db)
        if path:
            _err.print(f"[dim]Chart → {path}[/dim]")
    return 0


def cli_history(services: Services, args: Any) -> int:
    """Show price/rank history and trend summary for one ASIN."""
    db = services.research_db
    samples = db.get_history(args.asin)
    if not samples:
        _err.print(f"[yellow]No history for {args.asin.upper()}.[/yellow]")
        return 1

    table = Table(
        title=f"History: {samples[-1].title[:50]} ({samples[-1].asin})",
        title_style="bold cyan",
    )
    table.add_column("When", style="dim")
    table.add_column("Price", justify="right", style="green")
    table.add_column("BSR", justify="right")
    table.add_column("Rating", justify="center")
    table.add_column("Reviews", justify="right")
    for s in samples:
        table.add_row(
            s.timestamp.strftime("%Y-%m-%d %H:%M"),
            f"${s.price:,.2f}",
            f"#{s.best_seller_rank:,}",
            f"{s.rating:.1f}",
            f"{s.review_count:,}",
        )
    Console().print(table)

    summary = db.get_trend_summary(args.asin)
    if summary:
        _err.print(
            f"[dim]min ${summary['min']}  max ${summary['max']}  "
            f"avg ${summary['avg']}  best rank #{summary['best_rank']}  "
            f"({summary['count']} samples)[/dim]"
        )

    if args.chart:
        from src.storage.chart_exporter import export_history_chart

        path = export_history_chart(args.asin, db)
        if path:
            _err.print(f"[dim]Chart → {path}[/dim]")
    return 0


def cli_alert(services: Services, args: Any) -> int:
    """Create a price alert."""
    direction = "above" if args.above else "below"
    try:
        row = services.research_db.add_alert(args.asin, args.price, direction)
    except ValueError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 2
    if row is None:
        _err.print("[red]Storage unavailable.[/red]")
        return 1
    _err.print(
        f"[green]Alert #{row['id']}: {row['asin']} {direction} "
        f"${args.price:,.2f}[/green]"
    )
    return 0


def cli_alerts(services: Services, args: Any) -> int:
    """List price alerts."""
    _dump_json(services.research_db.get_alerts(include_triggered=not args.pending))
    return 0


def cli_bundle(services: Services, args: Any) -> int:
    """Create a bundle from saved products."""
    wanted = [a.strip().upper() for a in args.asins]
    saved = {p.asin: p for p in services.research_db.get_saved(args.user)}
    missing = [a for a in wanted if a not in saved]
    if missing:
        _err.print(f"[red]Not saved: {', '.join(missing)}[/red]")
        return 2
    row = services.research_db.save_bundle(
        args.name, [saved[a] for a in wanted], args.user,
    )
    if row is None:
        _err.print("[red]Storage unavailable.[/red]")
        return 1
    _err.print(f"[green]Bundle '{args.name}' saved ({len(wanted)} products)[/green]")
    return 0


def cli_bundles(services: Services, args: Any) -> int:
    """List bundles."""
    bundles = services.research_db.get_bundles(args.user)
    if not bundles:
        _err.print("[yellow]No bundles yet.[/yellow]")
        return 0
    _dump_json([
        {
            "id": b["id"],
            "name": b["name"],
            "created_at": b["created_at"],
            "products": [
                p.asin for p in cast(list[ProductRecord], b["products"])
            ],
        }
        for b in bundles
    ])
    return 0


def cli_bundle_ideas(services: Services, args: Any) -> int:
    """Search, then ask the search API for bundle ideas."""
    try:
        request = SearchRequest.from_payload(request_payload(args))
        result = services.pipeline.search(request)
        suggestion = services.pipeline.suggest_bundles(
            result.products, request.category,
        )
    except InvalidRequest as exc:
        _err.print(f"[red]{exc}[/red]")
        return 2
    if suggestion is None:
        _err.print("[red]Could not generate bundle ideas.[/red]")
        return 1
    sys.stdout.write(suggestion + "\n")
    return 0


def cli_cache(services: Services, args: Any) -> int:
    """Show cache stats, optionally purging expired rows first."""
    if args.purge:
        removed = services.cache.purge_expired()
        _err.print(f"[dim]Purged {removed} expired entries[/dim]")
    _dump_json(services.cache.stats())
    return 0


def cli_health(services: Services, args: Any) -> int:
    """Run dependency health checks."""
    from src.services.health_checker import HealthChecker

    results = HealthChecker(services.db, services.client).check_all()

    table = Table(
        title="Health Check", show_lines=True, title_style="bold cyan",
    )
    table.add_column("Component", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True
        latency = f"{r.latency_ms:.0f}ms" if r.latency_ms > 0 else "—"
        table.add_row(r.component, status, latency, r.message)

    Console().print(table)
    return 1 if any_down else 0
