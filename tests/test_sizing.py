"""Tests for Kelly position sizing and venue routing."""

from __future__ import annotations

import math

import pytest

from oracle_edge.common.errors import ValidationError
from oracle_edge.config import Settings
from oracle_edge.markets.models import Category
from oracle_edge.sizing.models import Platform
from oracle_edge.sizing.position import PositionSizer, kelly_fraction_of_bankroll


@pytest.fixture
def sizer(settings):
    return PositionSizer(settings)


class TestKelly:
    def test_positive_edge(self):
        # b = 1/0.55 - 1; (0.7b - 0.3) / b = 1/3
        assert kelly_fraction_of_bankroll(0.7, 0.55) == pytest.approx(1 / 3)

    def test_no_edge_is_zero(self):
        assert kelly_fraction_of_bankroll(0.5, 0.5) == 0.0
        assert kelly_fraction_of_bankroll(0.3, 0.6) == 0.0

    def test_capped_at_half(self):
        assert kelly_fraction_of_bankroll(0.99, 0.1) == 0.5


class TestCalculatePositionSize:
    def test_quarter_kelly(self, sizer):
        size = sizer.calculate_position_size(0.7, 0.55, 1000, 100, 0.25)
        assert size == pytest.approx(83.33, abs=0.01)

    def test_capped_by_max_bet(self, sizer):
        assert sizer.calculate_position_size(0.9, 0.5, 1000, 50, 0.25) == 50

    def test_no_edge_no_bet(self, sizer):
        assert sizer.calculate_position_size(0.4, 0.5, 1000, 100) == 0.0

    def test_missing_price_defaults_to_even(self, sizer):
        # Kelly 0.8 capped to 0.5 → 125, then max bet 100
        assert sizer.calculate_position_size(0.9, None, 1000, 100) == 100

    def test_zero_max_bet(self, sizer):
        assert sizer.calculate_position_size(0.9, 0.5, 1000, 0) == 0

    def test_never_exceeds_half_bankroll_fraction(self, sizer):
        for confidence in (0.0, 0.25, 0.5, 0.75, 1.0):
            for price in (0.01, 0.2, 0.5, 0.8, 0.99):
                size = sizer.calculate_position_size(confidence, price, 1000, 10_000, 0.25)
                assert 0.0 <= size <= 1000 * 0.5 * 0.25
                assert math.isfinite(size)

    @pytest.mark.parametrize(
        "args",
        [
            (0.7, 0.0, 1000, 100, 0.25),
            (0.7, 1.0, 1000, 100, 0.25),
            (0.7, 1.2, 1000, 100, 0.25),
            (1.1, 0.5, 1000, 100, 0.25),
            (-0.1, 0.5, 1000, 100, 0.25),
            (0.7, 0.5, 0, 100, 0.25),
            (0.7, 0.5, 1000, -1, 0.25),
            (0.7, 0.5, 1000, 100, 0.0),
            (0.7, 0.5, 1000, 100, 1.5),
            (float("nan"), 0.5, 1000, 100, 0.25),
            (0.7, float("nan"), 1000, 100, 0.25),
            (0.7, 0.5, float("inf"), 100, 0.25),
        ],
    )
    def test_invalid_inputs_raise(self, sizer, args):
        with pytest.raises(ValidationError):
            sizer.calculate_position_size(*args)

    def test_validation_error_is_value_error(self, sizer):
        with pytest.raises(ValueError):
            sizer.calculate_position_size(0.7, 0.0, 1000, 100)


class TestSize:
    def test_uses_configured_limits(self, sizer):
        decision = sizer.size(0.7, 0.55)
        assert decision.size == 83.33
        assert decision.capped_by_max_bet is False
        assert decision.platform == Platform.POLYMARKET

    def test_flags_capped_positions(self, sizer):
        decision = sizer.size(0.9, 0.5)
        assert decision.size == 100
        assert decision.capped_by_max_bet is True

    def test_overrides(self, sizer):
        decision = sizer.size(0.7, 0.55, bankroll=2000, max_bet_size=500, kelly_fraction=0.5)
        assert decision.size == pytest.approx(333.33)


class TestSelectPlatform:
    def test_single_platform_wins(self, settings):
        sizer = PositionSizer(settings, platform="kalshi")
        assert sizer.select_platform(Category.CRYPTO) == Platform.KALSHI

    @pytest.mark.parametrize(
        "category,expected",
        [
            (Category.CRYPTO, Platform.POLYMARKET),
            (Category.POLITICS, Platform.KALSHI),
            (Category.SPORTS, Platform.KALSHI),
            (Category.POPCULTURE, Platform.POLYMARKET),
            ("general", Platform.POLYMARKET),
            ("unknown", Platform.POLYMARKET),
        ],
    )
    def test_both_mode_routes_by_category(self, settings, category, expected):
        sizer = PositionSizer(settings, platform="both")
        assert sizer.select_platform(category) == expected

    def test_platform_from_settings(self):
        sizer = PositionSizer(Settings(_env_file=None, platform="Both"))
        assert sizer.size(0.7, 0.55, category=Category.POLITICS).platform == Platform.KALSHI
