"""Tests for signal normalization, weighting and the aggregation cache."""

from __future__ import annotations

import asyncio
import logging

import pytest

from oracle_edge.markets.models import Category, Market
from oracle_edge.signals.aggregator import (
    SignalAggregator,
    calculate_weighted_score,
    normalize_signal,
)
from oracle_edge.signals.models import Signal


class TestNormalizeSignal:
    def test_sentiment_maps_linearly(self):
        assert normalize_signal(Signal(type="news", sentiment=-1.0)) == 0.0
        assert normalize_signal(Signal(type="news", sentiment=1.0)) == 1.0
        assert normalize_signal(Signal(type="social", sentiment=0.2)) == pytest.approx(0.6)

    def test_onchain_change_rate(self):
        assert normalize_signal(Signal(type="onchain", change_24h=30.0)) == pytest.approx(0.8)
        assert normalize_signal(Signal(type="onchain", change_24h=-30.0)) == pytest.approx(0.2)

    def test_onchain_change_clipped(self):
        """Changes beyond +/-50% saturate at the ends of [0, 1]."""
        assert normalize_signal(Signal(type="onchain", change_24h=80.0)) == 1.0
        assert normalize_signal(Signal(type="onchain", change_24h=-500.0)) == 0.0

    def test_onchain_without_change_is_neutral(self):
        assert normalize_signal(Signal(type="onchain", metric="volume", value=10.0)) == 0.5

    def test_unknown_type_is_neutral(self):
        assert normalize_signal(Signal(type="oracle_feed")) == 0.5


class TestWeightedScore:
    def test_empty_is_neutral(self):
        assert calculate_weighted_score([]) == 0.5

    def test_news_and_onchain_mix(self):
        """0.9 at weight 0.25 and 0.8 at weight 0.5 → ~0.833."""
        signals = [
            Signal(type="news", sentiment=0.8, weight=0.25),
            Signal(type="onchain", metric="volume", change_24h=30.0, weight=0.5),
        ]
        assert calculate_weighted_score(signals) == pytest.approx(0.8333, abs=0.01)

    def test_zero_total_weight_is_neutral(self):
        assert calculate_weighted_score([Signal(type="news", sentiment=1.0, weight=0.0)]) == 0.5

    def test_default_weight_is_one(self):
        signals = [Signal(type="news", sentiment=1.0), Signal(type="news", sentiment=-1.0)]
        assert calculate_weighted_score(signals) == pytest.approx(0.5)

    def test_always_in_unit_interval(self):
        for sentiment in (-1.0, -0.5, 0.0, 0.5, 1.0):
            for change in (-200.0, -10.0, 0.0, 10.0, 200.0):
                for weight in (0.1, 1.0, 5.0):
                    score = calculate_weighted_score([
                        Signal(type="social", sentiment=sentiment, weight=weight),
                        Signal(type="onchain", change_24h=change, weight=1.0),
                        Signal(type="custom", weight=weight),
                    ])
                    assert 0.0 <= score <= 1.0


class TestAggregate:
    @pytest.mark.asyncio
    async def test_concatenates_in_registration_order(self, crypto_market, make_source):
        first = make_source("news", [Signal(type="news", sentiment=0.2, title="a"),
                                     Signal(type="news", sentiment=0.4, title="b")])
        second = make_source("onchain", [Signal(type="onchain", change_24h=10.0)])
        aggregator = SignalAggregator([first, second], ttl_seconds=300)

        result = await aggregator.aggregate(crypto_market, Category.CRYPTO)

        assert [s.title for s in result.signals[:2]] == ["a", "b"]
        assert result.signals[2].type == "onchain"
        assert result.source_count == 3
        assert 0.0 <= result.score <= 1.0

    @pytest.mark.asyncio
    async def test_failed_source_is_skipped(self, crypto_market, make_source, caplog):
        good = make_source("news", [Signal(type="news", sentiment=1.0)])
        bad = make_source("social", exc=RuntimeError("rate limited"))
        aggregator = SignalAggregator([bad, good], ttl_seconds=300)

        with caplog.at_level(logging.WARNING, logger="oracle_edge.signals.aggregator"):
            result = await aggregator.aggregate(crypto_market, "crypto")

        assert result.source_count == 1
        assert result.score == 1.0
        events = [r for r in caplog.records if getattr(r, "event", None) == "evidence_fetch_error"]
        assert len(events) == 1
        assert events[0].source == "social"
        assert events[0].market_id == "btc-100k"

    @pytest.mark.asyncio
    async def test_all_sources_failing_gives_neutral_result(self, crypto_market, make_source):
        aggregator = SignalAggregator(
            [make_source("news", exc=ValueError("bad feed")),
             make_source("social", exc=TimeoutError())],
            ttl_seconds=300,
        )

        result = await aggregator.aggregate(crypto_market, Category.CRYPTO)

        assert result.signals == ()
        assert result.score == 0.5

    @pytest.mark.asyncio
    async def test_no_sources(self, crypto_market):
        result = await SignalAggregator([], ttl_seconds=300).aggregate(crypto_market, "crypto")
        assert result.score == 0.5
        assert result.source_count == 0

    @pytest.mark.asyncio
    async def test_cache_hit_skips_fetch(self, crypto_market, make_source):
        source = make_source("news", [Signal(type="news", sentiment=0.5)])
        aggregator = SignalAggregator([source], ttl_seconds=300)

        first = await aggregator.aggregate(crypto_market, Category.CRYPTO)
        second = await aggregator.aggregate(crypto_market, Category.CRYPTO)

        assert second is first
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_cache_keyed_by_category(self, crypto_market, make_source):
        source = make_source("news", [])
        aggregator = SignalAggregator([source], ttl_seconds=300)

        await aggregator.aggregate(crypto_market, Category.CRYPTO)
        await aggregator.aggregate(crypto_market, Category.POLITICS)

        assert source.calls == 2

    @pytest.mark.asyncio
    async def test_clear_cache_refetches(self, crypto_market, make_source):
        source = make_source("news", [])
        aggregator = SignalAggregator([source], ttl_seconds=300)

        await aggregator.aggregate(crypto_market, Category.CRYPTO)
        aggregator.clear_cache()
        await aggregator.aggregate(crypto_market, Category.CRYPTO)

        assert source.calls == 2

    @pytest.mark.asyncio
    async def test_expired_entry_refetches(self, crypto_market, make_source):
        source = make_source("news", [])
        aggregator = SignalAggregator([source], ttl_seconds=0)

        await aggregator.aggregate(crypto_market, Category.CRYPTO)
        await aggregator.aggregate(crypto_market, Category.CRYPTO)

        assert source.calls == 2

    @pytest.mark.asyncio
    async def test_sources_fetched_concurrently(self, crypto_market):
        """Each source waits on the other; sequential fetching would deadlock."""
        news_started = asyncio.Event()
        social_started = asyncio.Event()

        class WaitingSource:
            def __init__(self, name, mine, other):
                self.name = name
                self._mine = mine
                self._other = other

            async def fetch(self, market, category):
                self._mine.set()
                await self._other.wait()
                return [Signal(type=self.name, sentiment=0.0)]

            async def close(self):
                pass

        aggregator = SignalAggregator(
            [WaitingSource("news", news_started, social_started),
             WaitingSource("social", social_started, news_started)],
            ttl_seconds=300,
        )

        result = await asyncio.wait_for(aggregator.aggregate(crypto_market, "crypto"), timeout=2)
        assert result.source_count == 2

    @pytest.mark.asyncio
    async def test_reports_liquidity_and_volatility(self, make_source):
        market = Market(market_id="m1", question="Q", liquidity=2_500.0)
        source = make_source("onchain", [
            Signal(type="onchain", metric="volatility", value=0.4),
            Signal(type="onchain", metric="volatility", value=0.9),
        ])
        result = await SignalAggregator([source], ttl_seconds=300).aggregate(market, "crypto")

        assert result.liquidity == 2_500.0
        assert result.volatility == 0.9

    @pytest.mark.asyncio
    async def test_shutdown_closes_sources_and_clears_cache(self, crypto_market, make_source):
        source = make_source("news", [])
        aggregator = SignalAggregator([source], ttl_seconds=300)
        await aggregator.aggregate(crypto_market, Category.CRYPTO)

        await aggregator.shutdown()
        await aggregator.aggregate(crypto_market, Category.CRYPTO)

        assert source.closed is True
        assert source.calls == 2
