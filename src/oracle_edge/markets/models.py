"""Market data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Category(Enum):
    """Domain a market belongs to; selects evidence feeds and venue routing."""

    CRYPTO = "crypto"
    POLITICS = "politics"
    SPORTS = "sports"
    POPCULTURE = "popculture"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: str | Category | None) -> Category:
        """Lenient lookup; unknown or empty values map to GENERAL."""
        if isinstance(value, Category):
            return value
        if not value:
            return cls.GENERAL
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.GENERAL


@dataclass
class Market:
    """A prediction market under evaluation.

    Discovery and filtering happen upstream; the pipeline only needs the
    identity, a price and whatever liquidity/volume the venue reports.
    """

    market_id: str
    question: str
    description: str = ""
    category: Category = Category.GENERAL
    yes_price: float | None = None  # Current YES price (0-1, market-implied probability)
    volume: float = 0.0
    liquidity: float | None = None
    slug: str = ""

    @property
    def keywords(self) -> list[str]:
        """Lower-cased words from the question long enough to be meaningful."""
        words = [w.strip("?!.,:;\"'()").lower() for w in self.question.split()]
        return [w for w in words if len(w) > 3]
