"""Prediction and performance data models."""

from __future__ import annotations

from dataclasses import dataclass

from oracle_edge.markets.models import Category


@dataclass
class RawPrediction:
    """Directional call produced by a domain predictor, before calibration.

    Attributes:
        outcome: Predicted outcome label (e.g. "YES", "NO")
        raw_confidence: Predictor's own confidence (0-1), None if it has none
        model: Identifier of the model that produced the call
        data_quality: Quality of the inputs (0-1), None if unknown
        market_type: Key into the calibration ledger
        category: Market domain, used for venue routing
    """

    outcome: str
    raw_confidence: float | None = None
    model: str = ""
    data_quality: float | None = None
    market_type: str = "default"
    category: Category = Category.GENERAL


@dataclass
class PerformanceHistory:
    """Track record of the calling agent. Read-only to the confidence engine."""

    total: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    recent_win_rate: float | None = None
    pnl: float = 0.0

    @classmethod
    def from_results(
        cls,
        results: list[tuple[bool, float]],
        recent_window: int = 20,
    ) -> PerformanceHistory:
        """Build a history from chronological (correct, pnl) pairs."""
        total = len(results)
        wins = sum(1 for correct, _ in results if correct)
        recent_win_rate = None
        if total > recent_window:
            recent = results[-recent_window:]
            recent_win_rate = sum(1 for correct, _ in recent if correct) / len(recent)
        return cls(
            total=total,
            wins=wins,
            losses=total - wins,
            win_rate=wins / total if total else 0.0,
            recent_win_rate=recent_win_rate,
            pnl=sum(pnl for _, pnl in results),
        )
