"""Decision and calibration output formatters: Rich table, JSON, CSV."""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone

from rich.console import Console
from rich.table import Table

from oracle_edge.common.types import JsonDict
from oracle_edge.sizing.models import TradeDecision


def _by_confidence(decisions: list[TradeDecision]) -> list[TradeDecision]:
    return sorted(decisions, key=lambda d: d.confidence, reverse=True)


def decision_to_dict(d: TradeDecision) -> JsonDict:
    return {
        "market_id": d.market.market_id,
        "question": d.market.question,
        "category": d.prediction.category.value,
        "outcome": d.prediction.outcome,
        "model": d.prediction.model,
        "raw_confidence": d.prediction.raw_confidence,
        "confidence": d.confidence,
        "aggregate_score": d.aggregate_score,
        "signal_count": d.signal_count,
        "market_price": d.market_price,
        "edge": round(d.edge, 4),
        "size": d.position.size,
        "capped_by_max_bet": d.position.capped_by_max_bet,
        "platform": d.position.platform.value,
        "actionable": d.actionable,
        "timestamp": d.timestamp.isoformat(),
    }


def format_table(decisions: list[TradeDecision], console: Console | None = None) -> None:
    """Print decisions as a Rich table sorted by confidence (descending)."""
    if console is None:
        console = Console()

    if not decisions:
        console.print("[yellow]No decisions produced.[/yellow]")
        return

    table = Table(
        title="Oracle Edge Decisions",
        caption=f"Generated at {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}",
        show_lines=True,
    )

    table.add_column("Call", style="bold", width=5)
    table.add_column("Conf", justify="right", width=6)
    table.add_column("Price", justify="right", width=6)
    table.add_column("Edge", justify="right", width=7)
    table.add_column("Size", justify="right", width=9)
    table.add_column("Venue", width=10)
    table.add_column("Evidence", justify="right", width=8)
    table.add_column("Category", width=10)
    table.add_column("Question", width=40, no_wrap=False)

    for d in _by_confidence(decisions):
        edge_color = "green" if d.edge > 0 else "red"
        call_color = "green" if d.actionable else "dim"
        size = f"{d.position.size:,.2f}" + ("*" if d.position.capped_by_max_bet else "")

        table.add_row(
            f"[{call_color}]{d.prediction.outcome}[/{call_color}]",
            f"{d.confidence:.0%}",
            f"{d.market_price:.2f}",
            f"[{edge_color}]{d.edge:+.1%}[/{edge_color}]",
            size,
            d.position.platform.value,
            f"{d.aggregate_score:.2f} ({d.signal_count})",
            d.prediction.category.value,
            d.market.question[:80],
        )

    console.print(table)
    actionable = sum(1 for d in decisions if d.actionable)
    console.print(f"\n[dim]{len(decisions)} decision(s), {actionable} actionable; * = capped by max bet[/dim]")


def format_json(decisions: list[TradeDecision]) -> str:
    """Format decisions as a JSON string."""
    return json.dumps([decision_to_dict(d) for d in _by_confidence(decisions)], indent=2)


_CSV_FIELDS = [
    "market_id", "question", "category", "outcome", "confidence", "market_price",
    "edge", "size", "platform", "actionable", "timestamp",
]


def format_csv(decisions: list[TradeDecision]) -> str:
    """Format decisions as CSV."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(_CSV_FIELDS)
    for d in _by_confidence(decisions):
        row = decision_to_dict(d)
        writer.writerow([row[name] for name in _CSV_FIELDS])
    return output.getvalue()


def format_calibration(report: dict[str, JsonDict], console: Console | None = None) -> None:
    """Print a calibration ledger report, one table per market type."""
    if console is None:
        console = Console()

    if not report:
        console.print("[yellow]Calibration ledger is empty.[/yellow]")
        return

    for market_type, entry in report.items():
        table = Table(title=f"Calibration: {market_type} ({entry['samples']} samples)")
        table.add_column("Bucket", width=8)
        table.add_column("Samples", justify="right", width=8)
        table.add_column("Correct", justify="right", width=8)
        table.add_column("Accuracy", justify="right", width=9)

        for label, bucket in entry["buckets"].items():
            table.add_row(
                f"{label}+",
                str(bucket["samples"]),
                str(bucket["correct"]),
                f"{bucket['accuracy']:.1%}",
            )
        console.print(table)
