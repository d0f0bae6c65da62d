"""Predictor protocol and the default evidence-driven predictor."""

from __future__ import annotations

from typing import Protocol

from oracle_edge.markets.models import Market
from oracle_edge.scoring.models import RawPrediction
from oracle_edge.signals.models import AggregateResult


class Predictor(Protocol):
    """Protocol for domain predictors.

    A predictor turns a market plus its aggregated evidence into a raw
    directional call; calibration and sizing happen downstream.
    """

    def predict(self, market: Market, aggregate: AggregateResult) -> RawPrediction:
        """Produce a raw prediction for the market.

        Args:
            market: Market under evaluation
            aggregate: Evidence collected for the market

        Returns:
            RawPrediction with outcome, raw confidence, model id and data quality
        """
        ...


class SignalConsensusPredictor:
    """Follows the aggregate evidence score.

    Calls YES when the score leans positive; confidence grows with the
    distance from neutral.
    """

    model = "signal_consensus"

    def __init__(self, market_type: str = "default") -> None:
        self._market_type = market_type

    def predict(self, market: Market, aggregate: AggregateResult) -> RawPrediction:
        score = aggregate.score
        return RawPrediction(
            outcome="YES" if score >= 0.5 else "NO",
            raw_confidence=0.5 + abs(score - 0.5),
            model=self.model,
            data_quality=0.7 if len(aggregate.signals) > 3 else 0.5,
            market_type=self._market_type,
            category=market.category,
        )
