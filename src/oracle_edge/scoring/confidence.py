"""Calibrated confidence from model, evidence and track record.

Three estimators are blended into one number:

- base: the predictor's own confidence, adjusted for model class and data quality
- signal: agreement, diversity and strength of the aggregated evidence
- history: the agent's win rate, checked against the calibration ledger

The blend is then nudged toward observed bucket accuracy (once the ledger
has enough samples), dampened for volatile or illiquid markets, and clamped
to [0.01, 0.99].
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from oracle_edge.common.types import JsonDict, clamp
from oracle_edge.config import Settings, get_settings
from oracle_edge.scoring.ledger import CalibrationBucket, CalibrationLedger, DEFAULT_MARKET_TYPE
from oracle_edge.scoring.models import PerformanceHistory, RawPrediction
from oracle_edge.signals.models import AggregateResult

logger = logging.getLogger(__name__)

NEUTRAL = 0.5
MIN_CONFIDENCE = 0.01
MAX_CONFIDENCE = 0.99

# Base component never exceeds this, whatever the model boost
_BASE_CAP = 0.95

# Signal component sub-weights
_CONSENSUS_WEIGHT = 0.4
_DIVERSITY_WEIGHT = 0.3
_STRENGTH_WEIGHT = 0.3
_DIVERSITY_TARGET = 3

# History blending
_RECENT_BLEND = 0.4
_LEDGER_BLEND = 0.3
_NEGATIVE_PNL_PENALTY = 0.8

# Share of the gap to observed accuracy closed by calibration
_CALIBRATION_STEP = 0.3

# (volatility threshold, multiplier), highest threshold first
_VOLATILITY_PENALTIES = ((0.8, 0.85), (0.5, 0.95))
_LOW_LIQUIDITY_PENALTY = 0.9


@dataclass
class ConfidenceComponents:
    base: float
    signal: float
    history: float


class ConfidenceEngine:
    """Combines independent confidence estimators into one calibrated value.

    Stateless per call; the only shared state is the injected ledger, which
    the owner is responsible for persisting.
    """

    name = "scoring"

    def __init__(
        self,
        ledger: CalibrationLedger | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.ledger = ledger if ledger is not None else CalibrationLedger()
        self._settings = settings or get_settings()

    async def init(self) -> None:
        logger.info(
            "Confidence engine ready (calibration %s, %d market type(s) in ledger)",
            "on" if self._settings.calibration_enabled else "off",
            len(self.ledger.market_types()),
        )

    async def shutdown(self) -> None:
        logger.debug("Confidence engine stopped")

    # -- components -----------------------------------------------------

    def base_confidence(self, prediction: RawPrediction) -> float:
        score = prediction.raw_confidence if prediction.raw_confidence is not None else NEUTRAL
        score *= self._settings.model_quality_factors.get(prediction.model, 1.0)

        if prediction.data_quality is not None:
            score *= 0.5 + 0.5 * clamp(prediction.data_quality)

        return clamp(score, 0.0, _BASE_CAP)

    def signal_confidence(self, aggregate: AggregateResult | None) -> float:
        if aggregate is None or not aggregate.signals:
            return NEUTRAL

        signals = aggregate.signals
        sentiments = [s.sentiment for s in signals if s.sentiment is not None]

        consensus = NEUTRAL
        if len(sentiments) > 1:
            # Population variance: tight agreement means high consensus
            consensus = max(0.0, 1.0 - float(np.var(sentiments)))

        diversity = min(len({s.type for s in signals}) / _DIVERSITY_TARGET, 1.0)
        strength = float(np.mean([abs(s.sentiment or NEUTRAL) for s in signals]))

        return clamp(
            consensus * _CONSENSUS_WEIGHT
            + diversity * _DIVERSITY_WEIGHT
            + strength * _STRENGTH_WEIGHT
        )

    def history_confidence(
        self,
        performance: PerformanceHistory | None,
        prediction: RawPrediction,
    ) -> float:
        if performance is None or performance.total < self._settings.min_samples_for_history:
            return NEUTRAL

        score = performance.win_rate
        if performance.recent_win_rate is not None:
            score = score * (1 - _RECENT_BLEND) + performance.recent_win_rate * _RECENT_BLEND

        raw = prediction.raw_confidence if prediction.raw_confidence is not None else NEUTRAL
        bucket = self._ledger_bucket(prediction.market_type, raw)
        if bucket is not None and bucket.samples > self._settings.bucket_min_samples:
            score = score * (1 - _LEDGER_BLEND) + bucket.accuracy * _LEDGER_BLEND

        if performance.pnl < 0:
            score *= _NEGATIVE_PNL_PENALTY

        return clamp(score)

    def components(
        self,
        prediction: RawPrediction,
        aggregate: AggregateResult | None,
        performance: PerformanceHistory | None,
    ) -> ConfidenceComponents:
        return ConfidenceComponents(
            base=self.base_confidence(prediction),
            signal=self.signal_confidence(aggregate),
            history=self.history_confidence(performance, prediction),
        )

    # -- adjustments ----------------------------------------------------

    def _ledger_bucket(self, market_type: str | None, confidence: float) -> CalibrationBucket | None:
        resolved = self.ledger.resolve_market_type(market_type)
        if resolved is None:
            return None
        return self.ledger.bucket(resolved, confidence)

    def apply_calibration(self, confidence: float, market_type: str | None) -> float:
        """Move confidence 30% toward the observed accuracy of its bucket."""
        resolved = self.ledger.resolve_market_type(market_type)
        if resolved is None:
            return confidence
        if self.ledger.market_samples(resolved) < self._settings.calibration_min_samples:
            return confidence

        bucket = self.ledger.bucket(resolved, confidence)
        if bucket is None or bucket.samples <= self._settings.bucket_min_samples:
            return confidence

        return confidence + (bucket.accuracy - confidence) * _CALIBRATION_STEP

    def apply_market_adjustments(self, confidence: float, aggregate: AggregateResult | None) -> float:
        """Independent multiplicative penalties for volatility and thin liquidity."""
        if aggregate is None:
            return confidence

        adjusted = confidence
        if aggregate.volatility is not None:
            for threshold, multiplier in _VOLATILITY_PENALTIES:
                if aggregate.volatility > threshold:
                    adjusted *= multiplier
                    break

        if aggregate.liquidity is not None and aggregate.liquidity < self._settings.min_liquidity:
            adjusted *= _LOW_LIQUIDITY_PENALTY

        return adjusted

    # -- public API -----------------------------------------------------

    def calculate(
        self,
        prediction: RawPrediction,
        aggregate: AggregateResult | None,
        performance: PerformanceHistory | None,
    ) -> float:
        """Calibrated confidence in [0.01, 0.99] that the prediction is correct."""
        parts = self.components(prediction, aggregate, performance)
        settings = self._settings

        confidence = (
            parts.base * settings.base_weight
            + parts.signal * settings.signal_weight
            + parts.history * settings.history_weight
        )

        if settings.calibration_enabled:
            confidence = self.apply_calibration(confidence, prediction.market_type)

        confidence = self.apply_market_adjustments(confidence, aggregate)

        final = clamp(confidence, MIN_CONFIDENCE, MAX_CONFIDENCE)
        logger.debug(
            "Confidence %.3f (base=%.3f signal=%.3f history=%.3f, model=%s)",
            final, parts.base, parts.signal, parts.history, prediction.model,
        )
        return final

    def record_outcome(
        self,
        predicted_confidence: float,
        was_correct: bool,
        market_type: str = DEFAULT_MARKET_TYPE,
    ) -> CalibrationBucket:
        return self.ledger.record_outcome(predicted_confidence, was_correct, market_type)

    def calibration_report(self) -> dict[str, JsonDict]:
        return self.ledger.to_dict()
