"""Fractional-Kelly position sizing and venue routing."""

from __future__ import annotations

import logging
import math

from oracle_edge.common.errors import ValidationError
from oracle_edge.config import Settings, get_settings
from oracle_edge.markets.models import Category
from oracle_edge.sizing.models import Platform, PositionDecision

logger = logging.getLogger(__name__)

# Substituted when the caller has no market price
DEFAULT_MARKET_PRICE = 0.5

# Full Kelly is capped at half the bankroll regardless of edge
MAX_KELLY = 0.5

_ROUTES: dict[Category, Platform] = {
    Category.CRYPTO: Platform.POLYMARKET,
    Category.POLITICS: Platform.KALSHI,
    Category.SPORTS: Platform.KALSHI,
}


def _require_finite(name: str, value: float) -> None:
    if value is None or not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number, got {value}")


def kelly_fraction_of_bankroll(confidence: float, market_price: float) -> float:
    """Full Kelly fraction for buying at ``market_price``, clamped to [0, 0.5].

    f = (b*p - q) / b  with  b = 1/price - 1  (net odds per unit staked)
    """
    b = 1.0 / market_price - 1.0
    p = confidence
    q = 1.0 - p
    kelly = (b * p - q) / b
    return max(0.0, min(kelly, MAX_KELLY))


class PositionSizer:
    """Turns a calibrated confidence and a market price into a bet size.

    Performs no I/O. Invalid inputs raise ValidationError instead of
    producing NaN or infinite sizes.
    """

    name = "sizing"

    def __init__(self, settings: Settings | None = None, platform: str | None = None) -> None:
        self._settings = settings or get_settings()
        self._platform = (platform or self._settings.platform).lower()

    async def init(self) -> None:
        logger.info("Position sizer ready (platform=%s)", self._platform)

    async def shutdown(self) -> None:
        logger.debug("Position sizer stopped")

    def calculate_position_size(
        self,
        confidence: float,
        market_price: float | None,
        bankroll: float,
        max_bet_size: float,
        kelly_fraction: float = 0.25,
    ) -> float:
        """Quarter-Kelly (by default) stake, never above ``max_bet_size``.

        Args:
            confidence: Calibrated probability the position wins (0-1)
            market_price: Market-implied probability in (0, 1); None means 0.5
            bankroll: Capital available (> 0)
            max_bet_size: Hard cap on the stake (>= 0)
            kelly_fraction: Share of full Kelly to stake, in (0, 1]

        Returns:
            Stake in bankroll units, in [0, min(bankroll * 0.5 * kelly_fraction, max_bet_size)]
        """
        if market_price is None:
            market_price = DEFAULT_MARKET_PRICE

        for name, value in (
            ("confidence", confidence),
            ("market_price", market_price),
            ("bankroll", bankroll),
            ("max_bet_size", max_bet_size),
            ("kelly_fraction", kelly_fraction),
        ):
            _require_finite(name, value)

        if not 0.0 <= confidence <= 1.0:
            raise ValidationError(f"confidence must be in [0, 1], got {confidence}")
        if not 0.0 < market_price < 1.0:
            raise ValidationError(f"market_price must be in (0, 1), got {market_price}")
        if bankroll <= 0:
            raise ValidationError(f"bankroll must be > 0, got {bankroll}")
        if max_bet_size < 0:
            raise ValidationError(f"max_bet_size must be >= 0, got {max_bet_size}")
        if not 0.0 < kelly_fraction <= 1.0:
            raise ValidationError(f"kelly_fraction must be in (0, 1], got {kelly_fraction}")

        kelly = kelly_fraction_of_bankroll(confidence, market_price)
        raw_size = bankroll * kelly * kelly_fraction
        return min(raw_size, max_bet_size)

    def select_platform(self, category: Category | str) -> Platform:
        """Venue for a market category.

        A single configured platform always wins; in "both" mode crypto goes
        to Polymarket, politics and sports to Kalshi, everything else to
        Polymarket.
        """
        if self._platform != "both":
            return Platform(self._platform)
        return _ROUTES.get(Category.parse(category), Platform.POLYMARKET)

    def size(
        self,
        confidence: float,
        market_price: float | None,
        bankroll: float | None = None,
        max_bet_size: float | None = None,
        category: Category | str = Category.GENERAL,
        kelly_fraction: float | None = None,
    ) -> PositionDecision:
        """Size and route a position, using configured defaults for omitted limits."""
        settings = self._settings
        bankroll = settings.bankroll if bankroll is None else bankroll
        max_bet_size = settings.max_bet_size if max_bet_size is None else max_bet_size
        kelly_fraction = settings.kelly_fraction if kelly_fraction is None else kelly_fraction

        size = self.calculate_position_size(
            confidence, market_price, bankroll, max_bet_size, kelly_fraction,
        )
        uncapped = bankroll * kelly_fraction_of_bankroll(
            confidence, market_price if market_price is not None else DEFAULT_MARKET_PRICE,
        ) * kelly_fraction

        return PositionDecision(
            size=round(size, 2),
            capped_by_max_bet=uncapped > max_bet_size,
            platform=self.select_platform(category),
        )
