"""Tests for the news and market activity evidence sources."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from oracle_edge.markets.models import Category, Market
from oracle_edge.signals.sources import (
    MarketActivitySource,
    NewsFeedSource,
    keyword_sentiment,
    parse_rss,
)

RSS = """<?xml version="1.0"?>
<rss version="2.0"><channel>
  <title>Feed</title>
  <item>
    <title>Bitcoin bullish as growth continues</title>
    <description>Analysts upbeat.</description>
    <pubDate>Mon, 06 Jan 2025 12:00:00 GMT</pubDate>
  </item>
  <item>
    <title>Bitcoin crash fears</title>
    <description></description>
  </item>
  <item>
    <title>Ethereum ETF approved</title>
    <description>Regulators sign off.</description>
  </item>
</channel></rss>
"""


def _client_returning(text: str) -> MagicMock:
    client = MagicMock()
    client.get = AsyncMock(return_value=MagicMock(text=text))
    client.close = AsyncMock()
    return client


class TestKeywordSentiment:
    def test_positive_and_negative_words(self):
        assert keyword_sentiment("Bullish growth ahead") == pytest.approx(0.2)
        assert keyword_sentiment("Markets crash, traders fear loss.") == pytest.approx(-0.2)

    def test_neutral_text(self):
        assert keyword_sentiment("Committee meets on Tuesday") == 0.0

    def test_whole_words_only(self):
        assert keyword_sentiment("upgrade winter") == 0.0


class TestParseRss:
    def test_items(self):
        items = parse_rss(RSS)
        assert [i["title"] for i in items] == [
            "Bitcoin bullish as growth continues",
            "Bitcoin crash fears",
            "Ethereum ETF approved",
        ]
        assert items[0]["date"].year == 2025
        assert items[1]["date"] is None


class TestNewsFeedSource:
    @pytest.mark.asyncio
    async def test_relevant_headlines_become_signals(self, crypto_market):
        client = _client_returning(RSS)
        source = NewsFeedSource(
            feeds={Category.CRYPTO: [("TestFeed", "https://example.com/rss")]},
            weight=0.4,
            client=client,
        )

        signals = await source.fetch(crypto_market, Category.CRYPTO)

        assert [s.title for s in signals] == ["Bitcoin bullish as growth continues", "Bitcoin crash fears"]
        assert signals[0].sentiment == pytest.approx(0.2)
        assert signals[1].sentiment == pytest.approx(-0.1)
        assert all(s.type == "news" and s.weight == 0.4 and s.source == "TestFeed" for s in signals)

    @pytest.mark.asyncio
    async def test_category_without_feeds(self, crypto_market):
        client = _client_returning(RSS)
        source = NewsFeedSource(feeds={}, weight=0.4, client=client)

        assert await source.fetch(crypto_market, Category.GENERAL) == []
        client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_feed_skipped(self, crypto_market):
        client = MagicMock()
        client.get = AsyncMock(side_effect=[httpx.ConnectError("down"), MagicMock(text=RSS)])
        source = NewsFeedSource(
            feeds={Category.CRYPTO: [("A", "https://a.example"), ("B", "https://b.example")]},
            weight=0.4,
            client=client,
        )

        signals = await source.fetch(crypto_market, Category.CRYPTO)

        assert {s.source for s in signals} == {"B"}

    @pytest.mark.asyncio
    async def test_malformed_feed_skipped(self, crypto_market):
        source = NewsFeedSource(
            feeds={Category.CRYPTO: [("A", "https://a.example")]},
            weight=0.4,
            client=_client_returning("<rss><channel>"),
        )
        assert await source.fetch(crypto_market, Category.CRYPTO) == []

    @pytest.mark.asyncio
    async def test_close_releases_client(self):
        client = _client_returning(RSS)
        source = NewsFeedSource(feeds={}, weight=0.4, client=client)

        await source.close()

        client.close.assert_awaited_once()


class TestMarketActivitySource:
    @pytest.mark.asyncio
    async def test_first_observation_is_silent(self, crypto_market):
        source = MarketActivitySource(weight=0.3)
        assert await source.fetch(crypto_market, Category.CRYPTO) == []

    @pytest.mark.asyncio
    async def test_volume_change(self):
        source = MarketActivitySource(weight=0.3)
        market = Market(market_id="m1", question="Q", volume=1000.0)
        await source.fetch(market, Category.CRYPTO)

        market.volume = 1250.0
        signals = await source.fetch(market, Category.CRYPTO)

        assert len(signals) == 1
        assert signals[0].type == "onchain"
        assert signals[0].metric == "volume"
        assert signals[0].change_24h == pytest.approx(25.0)
        assert signals[0].weight == 0.3

    @pytest.mark.asyncio
    async def test_close_forgets_snapshots(self):
        source = MarketActivitySource(weight=0.3)
        market = Market(market_id="m1", question="Q", volume=1000.0)
        await source.fetch(market, Category.CRYPTO)
        await source.close()

        assert await source.fetch(market, Category.CRYPTO) == []

    @pytest.mark.asyncio
    async def test_non_crypto_markets_get_no_onchain_evidence(self):
        source = MarketActivitySource(weight=0.3, snapshots={"m1": 1000.0})
        market = Market(market_id="m1", question="Q", volume=2000.0)

        assert await source.fetch(market, Category.POLITICS) == []
        assert source.snapshots == {"m1": 1000.0}

    @pytest.mark.asyncio
    async def test_resumes_from_snapshots(self):
        source = MarketActivitySource(weight=0.3, snapshots={"m1": 1000.0})
        market = Market(market_id="m1", question="Q", volume=1500.0)

        signals = await source.fetch(market, Category.CRYPTO)

        assert signals[0].change_24h == pytest.approx(50.0)
        assert source.snapshots == {"m1": 1500.0}
