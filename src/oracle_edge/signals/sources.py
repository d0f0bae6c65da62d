"""Evidence sources feeding the signal aggregator.

Each source turns a market into zero or more signals. Sources are independent:
the aggregator runs them concurrently and drops any that raise.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from email.utils import parsedate_to_datetime
from typing import Protocol

import httpx

from oracle_edge.common.http import HttpClient
from oracle_edge.common.types import clamp
from oracle_edge.config import get_settings
from oracle_edge.markets.models import Category, Market
from oracle_edge.signals.models import Signal, SignalType

logger = logging.getLogger(__name__)

# (feed name, URL) per category
_NEWS_FEEDS: dict[Category, list[tuple[str, str]]] = {
    Category.CRYPTO: [
        ("CoinDesk", "https://www.coindesk.com/arc/outboundfeeds/rss/"),
        ("TheBlock", "https://www.theblock.co/rss.xml"),
    ],
    Category.SPORTS: [("ESPN", "https://www.espn.com/espn/rss/news")],
    Category.POLITICS: [("Politico", "https://rss.politico.com/politics-news.xml")],
    Category.POPCULTURE: [("Variety", "https://variety.com/feed/")],
}

_POSITIVE_WORDS = ("bullish", "up", "growth", "positive", "win", "success")
_NEGATIVE_WORDS = ("bearish", "down", "crash", "negative", "loss", "fail")

_MAX_ITEMS_PER_FEED = 5


class EvidenceSource(Protocol):
    """Protocol for evidence sources registered with the aggregator."""

    name: str

    async def fetch(self, market: Market, category: Category) -> list[Signal]:
        """Return signals relevant to the market. May raise on failure."""
        ...

    async def close(self) -> None:
        """Release any connections held by the source."""
        ...


def keyword_sentiment(text: str) -> float:
    """Score text in [-1, 1]: +0.1 per positive word, -0.1 per negative word."""
    lowered = text.lower()
    words = set(lowered.replace(",", " ").replace(".", " ").split())
    score = 0.0
    for word in _POSITIVE_WORDS:
        if word in words:
            score += 0.1
    for word in _NEGATIVE_WORDS:
        if word in words:
            score -= 0.1
    return clamp(score, -1.0, 1.0)


def parse_rss(xml_text: str) -> list[dict]:
    """Parse RSS 2.0 items into dicts with title, description and date."""
    root = ET.fromstring(xml_text)
    items: list[dict] = []
    for item in root.iter("item"):
        pub_date = None
        raw_date = item.findtext("pubDate")
        if raw_date:
            try:
                pub_date = parsedate_to_datetime(raw_date)
            except (TypeError, ValueError):
                logger.debug("Unparseable pubDate: %s", raw_date)
        items.append({
            "title": (item.findtext("title") or "").strip(),
            "description": (item.findtext("description") or "").strip(),
            "date": pub_date,
        })
    return items


class NewsFeedSource:
    """Headlines from per-category RSS feeds, scored with a keyword lexicon."""

    name = "news"

    def __init__(
        self,
        feeds: dict[Category, list[tuple[str, str]]] | None = None,
        weight: float | None = None,
        client: HttpClient | None = None,
    ) -> None:
        self._feeds = feeds if feeds is not None else _NEWS_FEEDS
        self._weight = weight if weight is not None else get_settings().news_weight
        self._client = client

    async def _get_client(self) -> HttpClient:
        if self._client is None:
            self._client = HttpClient()
        return self._client

    async def fetch(self, market: Market, category: Category) -> list[Signal]:
        feeds = self._feeds.get(category, [])
        if not feeds:
            return []

        client = await self._get_client()
        keywords = market.keywords
        signals: list[Signal] = []

        for feed_name, url in feeds:
            try:
                resp = await client.get(url)
                items = parse_rss(resp.text)
            except (httpx.HTTPError, ET.ParseError) as exc:
                logger.warning("News feed %s failed: %s", feed_name, exc)
                continue

            relevant = [
                item for item in items
                if any(kw in f"{item['title']} {item['description']}".lower() for kw in keywords)
            ]
            for item in relevant[:_MAX_ITEMS_PER_FEED]:
                signals.append(Signal(
                    type=SignalType.NEWS.value,
                    weight=self._weight,
                    sentiment=keyword_sentiment(f"{item['title']} {item['description']}"),
                    source=feed_name,
                    title=item["title"],
                    timestamp=item["date"],
                ))

        return signals

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


class MarketActivitySource:
    """Volume momentum of the market itself, as an on-chain style metric.

    Only crypto markets get on-chain evidence. Remembers the last seen volume
    per market; the first observation of a market only records a snapshot
    and emits nothing. Pass ``snapshots`` (market id -> volume) to resume
    from volumes persisted by an earlier run.
    """

    name = "onchain"

    def __init__(
        self,
        weight: float | None = None,
        snapshots: dict[str, float] | None = None,
    ) -> None:
        self._weight = weight if weight is not None else get_settings().onchain_weight
        self._last_volume: dict[str, float] = dict(snapshots or {})

    @property
    def snapshots(self) -> dict[str, float]:
        return dict(self._last_volume)

    async def fetch(self, market: Market, category: Category) -> list[Signal]:
        if Category.parse(category) is not Category.CRYPTO:
            return []

        previous = self._last_volume.get(market.market_id)
        self._last_volume[market.market_id] = market.volume

        if previous is None or previous <= 0:
            return []

        change = (market.volume - previous) / previous * 100.0
        return [
            Signal(
                type=SignalType.ONCHAIN.value,
                weight=self._weight,
                source="market",
                metric="volume",
                value=market.volume,
                change_24h=round(change, 4),
            )
        ]

    async def close(self) -> None:
        self._last_volume.clear()
