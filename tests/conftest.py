"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from oracle_edge.config import Settings
from oracle_edge.markets.models import Category, Market
from oracle_edge.scoring.ledger import CalibrationLedger
from oracle_edge.scoring.models import PerformanceHistory, RawPrediction
from oracle_edge.signals.models import AggregateResult, Signal
from oracle_edge.sizing.models import Platform, PositionDecision, TradeDecision


class StubSource:
    """Evidence source returning canned signals, or raising."""

    def __init__(self, name: str, signals=None, exc: Exception | None = None) -> None:
        self.name = name
        self.signals = list(signals or [])
        self.exc = exc
        self.calls = 0
        self.closed = False

    async def fetch(self, market, category):
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return list(self.signals)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_source():
    return StubSource


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def ledger():
    return CalibrationLedger()


@pytest.fixture
def crypto_market():
    """Will BTC close above $100k? priced at 40c YES."""
    return Market(
        market_id="btc-100k",
        question="Will Bitcoin close above $100k this month?",
        description="Resolves YES if BTC/USD closes above 100,000.",
        category=Category.CRYPTO,
        yes_price=0.40,
        volume=250_000.0,
        liquidity=50_000.0,
    )


@pytest.fixture
def news_signals():
    return [
        Signal(type="news", sentiment=0.8, weight=0.4, source="CoinDesk", title="BTC bullish"),
        Signal(type="social", sentiment=0.6, weight=0.3, source="twitter", volume=420),
    ]


@pytest.fixture
def aggregate(news_signals):
    return AggregateResult(
        signals=tuple(news_signals),
        score=0.75,
        source_count=len(news_signals),
    )


@pytest.fixture
def prediction():
    return RawPrediction(
        outcome="YES",
        raw_confidence=0.7,
        model="test",
        market_type="default",
        category=Category.CRYPTO,
    )


@pytest.fixture
def seasoned_performance():
    """Twenty resolved calls at 60%, profitable."""
    return PerformanceHistory(total=20, wins=12, losses=8, win_rate=0.6, pnl=35.0)


@pytest.fixture
def sample_decision(crypto_market, prediction, now):
    return TradeDecision(
        market=crypto_market,
        prediction=prediction,
        aggregate_score=0.75,
        signal_count=2,
        confidence=0.72,
        market_price=0.40,
        position=PositionDecision(size=66.67, capped_by_max_bet=False, platform=Platform.POLYMARKET),
        actionable=True,
        timestamp=now,
    )
