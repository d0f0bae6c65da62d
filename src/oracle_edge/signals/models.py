"""Evidence data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class SignalType(Enum):
    """Known evidence kinds. Sources may emit other type strings."""

    NEWS = "news"
    SOCIAL = "social"
    ONCHAIN = "onchain"


@dataclass(frozen=True)
class Signal:
    """A single piece of weighted evidence.

    Attributes:
        type: Evidence kind ("news", "social", "onchain", or anything else)
        weight: Relative weight in the aggregate score (> 0)
        sentiment: Directional reading in [-1, 1], if the evidence has one
        volume: Activity count for social/volume style evidence
        source: Feed or platform the evidence came from
        title: Headline or short description
        metric: Metric name for on-chain style evidence ("volume", "volatility", ...)
        value: Current metric value
        change_24h: 24h change of the metric in percent
        timestamp: When the underlying event happened
    """

    type: str
    weight: float = 1.0
    sentiment: float | None = None
    volume: float | None = None
    source: str = ""
    title: str = ""
    metric: str | None = None
    value: float | None = None
    change_24h: float | None = None
    timestamp: datetime | None = None


@dataclass(frozen=True)
class AggregateResult:
    """Merged evidence for one market plus its normalized score.

    Attributes:
        signals: All signals in source-registration then emission order
        score: Weighted, normalized evidence score in [0, 1]
        source_count: Number of signals collected
        timestamp: When the aggregation ran
        volatility: Highest volatility reading reported by any signal
        liquidity: Market liquidity at aggregation time, if known
    """

    signals: tuple[Signal, ...]
    score: float
    source_count: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    volatility: float | None = None
    liquidity: float | None = None
