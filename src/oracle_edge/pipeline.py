"""Top-level pipeline orchestrator.

Wires together: evidence aggregation → prediction → confidence → sizing → execution.
Markets are evaluated concurrently with asyncio.gather; the calibration ledger
and the aggregation cache are the only state shared between evaluations.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from rich.console import Console

from oracle_edge.common.errors import ValidationError
from oracle_edge.common.lifecycle import Component
from oracle_edge.config import Settings, get_settings
from oracle_edge.execution.venues import Order, Receipt, Venue, execute_order
from oracle_edge.markets.models import Market
from oracle_edge.predictions.base import Predictor
from oracle_edge.scoring.confidence import ConfidenceEngine
from oracle_edge.scoring.models import PerformanceHistory
from oracle_edge.signals.aggregator import SignalAggregator
from oracle_edge.sizing.models import Platform, PositionDecision, TradeDecision
from oracle_edge.sizing.position import DEFAULT_MARKET_PRICE, PositionSizer

logger = logging.getLogger(__name__)
console = Console()


class ScoringPipeline:
    """Scores markets and sizes positions with injected components."""

    def __init__(
        self,
        aggregator: SignalAggregator,
        engine: ConfidenceEngine,
        sizer: PositionSizer,
        settings: Settings | None = None,
    ) -> None:
        self.aggregator = aggregator
        self.engine = engine
        self.sizer = sizer
        self._settings = settings or get_settings()
        self._started = False

    @property
    def components(self) -> list[Component]:
        return [self.aggregator, self.engine, self.sizer]

    async def start(self) -> None:
        if self._started:
            return
        for component in self.components:
            await component.init()
        self._started = True

    async def stop(self) -> None:
        if not self._started:
            return
        for component in reversed(self.components):
            await component.shutdown()
        self._started = False

    async def __aenter__(self) -> ScoringPipeline:
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.stop()

    async def evaluate(
        self,
        market: Market,
        predictor: Predictor,
        performance: PerformanceHistory | None = None,
        bankroll: float | None = None,
        max_bet_size: float | None = None,
    ) -> TradeDecision:
        """Run one market through aggregation, prediction, scoring and sizing.

        Raises:
            ValidationError: if the market price or sizing limits are invalid
        """
        aggregate = await self.aggregator.aggregate(market, market.category)
        prediction = predictor.predict(market, aggregate)
        confidence = self.engine.calculate(prediction, aggregate, performance)

        # Sizing a NO call means buying the NO side at its own price
        market_price = market.yes_price if market.yes_price is not None else DEFAULT_MARKET_PRICE
        if prediction.outcome.upper() == "NO":
            market_price = 1.0 - market_price

        position = self.sizer.size(
            confidence,
            market_price,
            bankroll=bankroll,
            max_bet_size=max_bet_size,
            category=prediction.category,
        )
        if not aggregate.signals:
            # No evidence, no stake; sizing above still validates the inputs
            position = PositionDecision(
                size=0.0, capped_by_max_bet=False, platform=position.platform,
            )

        actionable = confidence >= self._settings.min_confidence and position.size > 0
        decision = TradeDecision(
            market=market,
            prediction=prediction,
            aggregate_score=round(aggregate.score, 4),
            signal_count=aggregate.source_count,
            confidence=round(confidence, 4),
            market_price=round(market_price, 4),
            position=position,
            actionable=actionable,
        )

        logger.info(
            "%s: %s conf=%.2f price=%.2f size=%.2f on %s%s",
            market.market_id, prediction.outcome, confidence, market_price,
            position.size, position.platform.value, "" if actionable else " (skip)",
        )
        return decision

    async def evaluate_many(
        self,
        markets: Sequence[Market],
        predictor: Predictor,
        performance: PerformanceHistory | None = None,
    ) -> list[TradeDecision]:
        """Evaluate markets concurrently; markets with invalid inputs are skipped."""
        console.print(f"[bold]Scoring {len(markets)} market(s)...[/bold]")

        results = await asyncio.gather(
            *(self.evaluate(market, predictor, performance) for market in markets),
            return_exceptions=True,
        )

        decisions: list[TradeDecision] = []
        for market, result in zip(markets, results):
            if isinstance(result, ValidationError):
                logger.warning("Skipping market %s: %s", market.market_id, result)
                console.print(f"  [yellow]Skipped {market.market_id}: {result}[/yellow]")
                continue
            if isinstance(result, BaseException):
                raise result
            decisions.append(result)

        actionable = sum(1 for d in decisions if d.actionable)
        console.print(
            f"  [green]{actionable}[/green] actionable decision(s) "
            f"(from {len(decisions)} scored)"
        )
        return decisions

    async def execute(
        self,
        decision: TradeDecision,
        venues: dict[Platform, Venue],
    ) -> Receipt | None:
        """Submit an actionable decision to its venue. Returns None when skipped."""
        if not decision.actionable:
            logger.info(
                "Not executing %s: confidence %.2f below %.2f or zero size",
                decision.market.market_id, decision.confidence, self._settings.min_confidence,
            )
            return None

        slippage = self._settings.max_slippage
        order = Order(
            market_id=decision.market.market_id,
            outcome=decision.prediction.outcome,
            size=decision.position.size,
            platform=decision.position.platform,
            min_price=round(max(0.01, decision.market_price - slippage), 4),
            max_price=round(min(0.99, decision.market_price + slippage), 4),
        )
        return await execute_order(order, venues)
