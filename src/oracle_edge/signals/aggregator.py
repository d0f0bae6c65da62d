"""Evidence aggregation: concurrent source fetches, weighting and a TTL cache."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence

from oracle_edge.common.errors import EvidenceFetchError
from oracle_edge.common.types import CacheKey, clamp
from oracle_edge.config import get_settings
from oracle_edge.markets.models import Category, Market
from oracle_edge.signals.models import AggregateResult, Signal, SignalType
from oracle_edge.signals.sources import EvidenceSource

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 0.5

# On-chain change rates are clipped to +/-50% before mapping to [0, 1]
_MAX_CHANGE_PCT = 50.0


def normalize_signal(signal: Signal) -> float:
    """Map a signal onto [0, 1] according to its type.

    Sentiment-bearing evidence maps linearly from [-1, 1]; on-chain metrics
    map their 24h change rate around 0.5; anything else is neutral.
    """
    if signal.type == SignalType.ONCHAIN.value:
        change = clamp(signal.change_24h or 0.0, -_MAX_CHANGE_PCT, _MAX_CHANGE_PCT)
        return clamp(0.5 + change / 100.0)
    if signal.sentiment is not None:
        return clamp((signal.sentiment + 1.0) / 2.0)
    return NEUTRAL_SCORE


def calculate_weighted_score(signals: Sequence[Signal]) -> float:
    """Weight-weighted mean of normalized signals; 0.5 without evidence."""
    if not signals:
        return NEUTRAL_SCORE

    total_weight = 0.0
    weighted_sum = 0.0
    for signal in signals:
        weight = signal.weight
        weighted_sum += normalize_signal(signal) * weight
        total_weight += weight

    if total_weight <= 0:
        return NEUTRAL_SCORE
    return clamp(weighted_sum / total_weight)


def _reported_volatility(signals: Sequence[Signal]) -> float | None:
    readings = [
        s.value for s in signals
        if s.metric == "volatility" and s.value is not None
    ]
    return max(readings) if readings else None


class SignalAggregator:
    """Collects evidence from independent sources into one AggregateResult.

    Results are cached per (category, market id) for ``ttl_seconds``. Two
    callers missing the cache for the same key at once may both fetch; the
    later write wins.
    """

    name = "aggregation"

    def __init__(
        self,
        sources: Sequence[EvidenceSource],
        ttl_seconds: float | None = None,
    ) -> None:
        self._sources = list(sources)
        self._ttl = ttl_seconds if ttl_seconds is not None else get_settings().cache_ttl_seconds
        self._cache: dict[CacheKey, tuple[AggregateResult, float]] = {}

    @property
    def sources(self) -> list[EvidenceSource]:
        return list(self._sources)

    async def init(self) -> None:
        logger.info(
            "Signal aggregator ready: %d source(s), cache TTL %.0fs",
            len(self._sources), self._ttl,
        )

    async def shutdown(self) -> None:
        for source in self._sources:
            await source.close()
        self.clear_cache()

    def _cached(self, key: CacheKey) -> AggregateResult | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        result, stored_at = entry
        if time.monotonic() - stored_at < self._ttl:
            return result
        return None

    async def _fetch_source(
        self, source: EvidenceSource, market: Market, category: Category,
    ) -> list[Signal]:
        try:
            return list(await source.fetch(market, category))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise EvidenceFetchError(source.name, market.market_id, exc) from exc

    async def aggregate(self, market: Market, category: Category | str) -> AggregateResult:
        """Aggregate evidence for a market, using the cache when fresh."""
        category = Category.parse(category)
        key: CacheKey = (category.value, market.market_id)

        cached = self._cached(key)
        if cached is not None:
            logger.debug("Aggregation cache hit for %s", key)
            return cached

        fetched = await asyncio.gather(
            *(self._fetch_source(source, market, category) for source in self._sources),
            return_exceptions=True,
        )

        signals: list[Signal] = []
        failures = 0
        for source, result in zip(self._sources, fetched):
            if isinstance(result, EvidenceFetchError):
                failures += 1
                logger.warning(
                    "Evidence source %s failed for market %s: %s",
                    source.name, market.market_id, result.cause,
                    extra={
                        "event": "evidence_fetch_error",
                        "source": source.name,
                        "market_id": market.market_id,
                        "category": category.value,
                    },
                )
                continue
            if isinstance(result, BaseException):
                raise result
            signals.extend(result)

        aggregated = AggregateResult(
            signals=tuple(signals),
            score=calculate_weighted_score(signals),
            source_count=len(signals),
            volatility=_reported_volatility(signals),
            liquidity=market.liquidity,
        )
        self._cache[key] = (aggregated, time.monotonic())

        logger.debug(
            "Aggregated %d signal(s) for %s (%d source failure(s)), score=%.3f",
            len(signals), market.market_id, failures, aggregated.score,
        )
        return aggregated

    def calculate_weighted_score(self, signals: Sequence[Signal]) -> float:
        return calculate_weighted_score(signals)

    def normalize_signal(self, signal: Signal) -> float:
        return normalize_signal(signal)

    def clear_cache(self) -> None:
        """Drop every cached aggregation."""
        self._cache.clear()
