# src/storage/chart_exporter.py

"""Generate interactive Plotly HTML charts from product history."""

import importlib
import logging
import webbrowser
from datetime import datetime
from pathlib import Path
from types import ModuleType
from typing import Any

from src.config.settings import Settings
from src.models.history_sample import HistorySample
from src.storage.research_db import ResearchDB

logger = logging.getLogger("ark_research.chart")

_CHARTS_DIR: Path = Settings.DATA_DIR / "charts"


def _get_plotly_go() -> ModuleType:
    """Import plotly.graph_objects lazily."""
    return importlib.import_module("plotly.graph_objects")


def _ensure_charts_dir(charts_dir: Path | None = None) -> Path:
    target = charts_dir or _CHARTS_DIR
    target.mkdir(parents=True, exist_ok=True)
    return target


def _build_history_chart(
    samples: list[HistorySample],
    title: str,
) -> Any:
    """Price line plus best-seller rank on a reversed second axis."""
    go = _get_plotly_go()
    dates = [s.timestamp for s in samples]
    prices = [s.price for s in samples]
    ranks = [s.best_seller_rank for s in samples]

    fig: Any = go.Figure()
    fig.add_trace(go.Scatter(
        x=dates,
        y=prices,
        mode="lines+markers",
        name="Price",
        hovertemplate=(
            "%{x|%Y-%m-%d %H:%M}<br>"
            "Price: $%{y:.2f}"
            "<extra></extra>"
        ),
    ))
    fig.add_trace(go.Scatter(
        x=dates,
        y=ranks,
        mode="lines",
        name="BSR",
        yaxis="y2",
        line={"dash": "dot"},
        hovertemplate=(
            "%{x|%Y-%m-%d %H:%M}<br>"
            "BSR: #%{y:,}"
            "<extra></extra>"
        ),
    ))

    min_price = min(prices)
    min_idx = prices.index(min_price)
    fig.add_annotation(
        x=dates[min_idx], y=min_price,
        text=f"Low: ${min_price:.2f}",
        showarrow=True, arrowhead=2,
    )

    fig.update_layout(
        title=f"History: {title[:60]}",
        xaxis_title="Date",
        yaxis={"title": "Price (USD)"},
        # Lower rank is better, so the rank axis runs top-down
        yaxis2={
            "title": "Best-seller rank",
            "overlaying": "y",
            "side": "right",
            "autorange": "reversed",
        },
        hovermode="x unified",
        template="plotly_white",
    )
    return fig


def export_history_chart(
    asin: str,
    db: ResearchDB,
    open_browser: bool = True,
    charts_dir: Path | None = None,
) -> Path | None:
    """Export one ASIN's price/rank history as HTML."""
    samples = db.get_history(asin)
    if len(samples) < 2:
        logger.warning("Not enough data points for chart: %s", asin)
        return None

    fig = _build_history_chart(samples, samples[-1].title)

    target = _ensure_charts_dir(charts_dir)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = target / f"{samples[-1].asin}_{stamp}.html"
    fig.write_html(str(filepath))
    logger.info("Chart saved to %s", filepath)

    if open_browser:
        webbrowser.open(filepath.as_uri())

    return filepath


def export_watchlist_dashboard(
    db: ResearchDB,
    open_browser: bool = True,
    charts_dir: Path | None = None,
) -> Path | None:
    """Overlay price histories for every watched competitor."""
    asins = [str(c["asin"]) for c in db.get_competitors()]
    if not asins:
        logger.warning("No competitors on the watchlist")
        return None

    histories = db.get_histories(asins)
    go = _get_plotly_go()
    fig: Any = go.Figure()
    for asin, samples in histories.items():
        if len(samples) < 2:
            continue
        fig.add_trace(go.Scatter(
            x=[s.timestamp for s in samples],
            y=[s.price for s in samples],
            mode="lines+markers",
            name=f"{samples[-1].title[:40]} ({asin})",
            hovertemplate=(
                "%{x|%Y-%m-%d %H:%M}<br>"
                "Price: $%{y:.2f}"
                "<extra></extra>"
            ),
        ))

    if not fig.data:
        logger.warning("No competitor has enough history to chart")
        return None

    fig.update_layout(
        title="Competitor Watchlist",
        xaxis_title="Date",
        yaxis_title="Price (USD)",
        hovermode="x unified",
        template="plotly_white",
        legend={"orientation": "h", "y": -0.15},
    )

    target = _ensure_charts_dir(charts_dir)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = target / f"watchlist_{stamp}.html"
    fig.write_html(str(filepath))
    logger.info("Watchlist chart saved to %s", filepath)

    if open_browser:
        webbrowser.open(filepath.as_uri())

    return filepath
