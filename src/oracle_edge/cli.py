"""Typer CLI: oracle-edge evaluate, resolve, calibration, stats."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console

app = typer.Typer(
    name="oracle-edge",
    help="Prediction market confidence scoring and position sizing",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def evaluate(
    market_id: str = typer.Argument(help="Market ID to evaluate"),
    question: str = typer.Option(..., "--question", "-q", help="Market question text"),
    category: str = typer.Option(
        "general", "--category", "-c",
        help="Market category: crypto, politics, sports, popculture, general",
    ),
    price: Optional[float] = typer.Option(
        None, "--price", "-p", help="Current YES price (0-1); defaults to 0.5",
    ),
    liquidity: Optional[float] = typer.Option(None, "--liquidity", help="Market liquidity"),
    volume: float = typer.Option(0.0, "--volume", help="Market traded volume"),
    bankroll: Optional[float] = typer.Option(None, "--bankroll", help="Override bankroll"),
    max_bet: Optional[float] = typer.Option(None, "--max-bet", help="Override maximum bet size"),
    output: str = typer.Option(
        "table", "--output", "-o",
        help="Output format: table, json, csv",
    ),
    execute: bool = typer.Option(
        False, "--execute", "-x",
        help="Submit actionable decisions to the (dry-run) venue",
    ),
) -> None:
    """Score a market and size a position."""
    from oracle_edge.formatters import format_csv, format_json, format_table

    async def _run() -> None:
        from oracle_edge.common.errors import ValidationError
        from oracle_edge.execution.venues import DryRunVenue
        from oracle_edge.markets.models import Category, Market
        from oracle_edge.pipeline import ScoringPipeline
        from oracle_edge.predictions.base import SignalConsensusPredictor
        from oracle_edge.scoring.confidence import ConfidenceEngine
        from oracle_edge.signals.aggregator import SignalAggregator
        from oracle_edge.signals.sources import MarketActivitySource, NewsFeedSource
        from oracle_edge.sizing.models import Platform
        from oracle_edge.sizing.position import PositionSizer
        from oracle_edge.storage.tracker import DecisionTracker

        market_category = Category.parse(category)
        market = Market(
            market_id=market_id,
            question=question,
            category=market_category,
            yes_price=price,
            volume=volume,
            liquidity=liquidity,
        )

        tracker = DecisionTracker()
        ledger = await tracker.load_ledger()
        performance = await tracker.get_performance_history(market_category.value)
        snapshots = await tracker.load_volume_snapshots()

        pipeline = ScoringPipeline(
            aggregator=SignalAggregator([
                NewsFeedSource(),
                MarketActivitySource(snapshots=snapshots),
            ]),
            engine=ConfidenceEngine(ledger),
            sizer=PositionSizer(),
        )
        predictor = SignalConsensusPredictor(market_type=market_category.value)

        async with pipeline:
            try:
                decision = await pipeline.evaluate(
                    market, predictor, performance,
                    bankroll=bankroll, max_bet_size=max_bet,
                )
            except ValidationError as exc:
                console.print(f"[red]Invalid input: {exc}[/red]")
                raise typer.Exit(code=1)

            await tracker.log_decision(decision)
            if volume > 0:
                await tracker.save_volume_snapshot(market_id, volume)

            if output == "json":
                console.print(format_json([decision]))
            elif output == "csv":
                console.print(format_csv([decision]))
            else:
                format_table([decision], console)

            if execute:
                venues = {platform: DryRunVenue(platform) for platform in Platform}
                receipt = await pipeline.execute(decision, venues)
                if receipt is None:
                    console.print("[dim]Not executed (below minimum confidence or zero size)[/dim]")
                else:
                    console.print(
                        f"[bold]{receipt.status.upper()}[/bold] {receipt.outcome} "
                        f"{receipt.size:.2f} on {receipt.platform.value} ({receipt.order_id})"
                    )

    asyncio.run(_run())


@app.command()
def resolve(
    market_id: str = typer.Argument(help="Market ID that resolved"),
    correct: bool = typer.Option(
        ..., "--correct/--wrong",
        help="Whether the logged call turned out right",
    ),
    pnl: float = typer.Option(0.0, "--pnl", help="Realized profit or loss"),
) -> None:
    """Record a market's outcome and feed it to the calibration ledger."""

    async def _run() -> None:
        from oracle_edge.storage.tracker import DecisionTracker

        tracker = DecisionTracker()
        pending = await tracker.get_unresolved(market_id)
        if not pending:
            console.print(f"[yellow]No unresolved decisions for '{market_id}'[/yellow]")
            return

        ledger = await tracker.load_ledger()
        for row in pending:
            ledger.record_outcome(row["confidence"], correct, row["market_type"] or "default")

        updated = await tracker.record_outcome(market_id, correct, pnl)
        await tracker.save_ledger(ledger)

        mark = "[green]correct[/green]" if correct else "[red]wrong[/red]"
        console.print(f"Resolved {updated} decision(s) for {market_id}: {mark}")

    asyncio.run(_run())


@app.command()
def calibration() -> None:
    """Show the calibration ledger."""

    async def _run() -> None:
        from oracle_edge.formatters import format_calibration
        from oracle_edge.storage.tracker import DecisionTracker

        ledger = await DecisionTracker().load_ledger()
        format_calibration(ledger.to_dict(), console)

    asyncio.run(_run())


@app.command()
def stats() -> None:
    """Show historical decision performance statistics."""

    async def _run() -> None:
        from oracle_edge.storage.tracker import DecisionTracker

        summary = await DecisionTracker().get_performance_summary()

        console.print("[bold]Decision Performance Summary[/bold]")
        console.print(f"  Total decisions logged: {summary['total_decisions']}")
        console.print(f"  Actionable:             {summary['actionable']}")
        console.print(f"  Resolved outcomes:      {summary['resolved']}")
        if summary["win_rate"] is not None:
            console.print(f"  Win rate:               {summary['win_rate']:.1%}")
            console.print(f"  PnL:                    {summary['pnl']:+,.2f}")
        else:
            console.print("  Win rate:               N/A (no resolved outcomes)")
        if summary["brier_score"] is not None:
            console.print(f"  Brier score:            {summary['brier_score']:.3f}")

    asyncio.run(_run())


if __name__ == "__main__":
    app()
