"""Sizing and decision data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from oracle_edge.markets.models import Market
from oracle_edge.scoring.models import RawPrediction


class Platform(Enum):
    POLYMARKET = "polymarket"
    KALSHI = "kalshi"


@dataclass
class PositionDecision:
    size: float
    capped_by_max_bet: bool
    platform: Platform


@dataclass
class TradeDecision:
    """Outcome of one pass through the pipeline for one market.

    Attributes:
        market: Market that was evaluated
        prediction: Raw call from the predictor
        aggregate_score: Normalized evidence score (0-1)
        signal_count: Number of signals behind the score
        confidence: Calibrated confidence (0.01-0.99)
        market_price: Price the position was sized against
        position: Stake and venue
        actionable: Confidence clears the minimum and the stake is positive
        timestamp: When the decision was made
    """

    market: Market
    prediction: RawPrediction
    aggregate_score: float
    signal_count: int
    confidence: float
    market_price: float
    position: PositionDecision
    actionable: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def edge(self) -> float:
        """Calibrated confidence minus the price paid."""
        return self.confidence - self.market_price
