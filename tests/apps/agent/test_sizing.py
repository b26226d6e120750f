"""Tests for expected value and fractional-Kelly sizing."""

from decimal import Decimal

import pytest

from polyquant.apps.agent.models import BotConfig
from polyquant.apps.agent.sizing import expected_value, kelly_fraction, position_size

_FOUR_DP = Decimal("0.0001")
_BALANCE = Decimal(1000)


def _make_config(**overrides: object) -> BotConfig:
    """Create a BotConfig with field overrides."""
    return BotConfig.from_mapping(overrides)


class TestExpectedValue:
    """Tests for expected_value."""

    def test_underpriced_outcome(self) -> None:
        """Price a 60% outcome trading at 0.40 at +0.20 per dollar."""
        assert expected_value(Decimal("0.40"), Decimal("0.60")) == Decimal("0.20")

    def test_fair_price_has_zero_ev(self) -> None:
        """Give zero EV when the estimate equals the price."""
        ev = expected_value(Decimal("0.50"), Decimal("0.50"))
        assert ev == Decimal(0)
        assert ev < BotConfig().min_ev

    def test_overpriced_outcome_is_negative(self) -> None:
        """Give negative EV when the price is above the estimate."""
        assert expected_value(Decimal("0.70"), Decimal("0.50")) < 0

    @pytest.mark.parametrize(
        "price", [Decimal("0.1"), Decimal("0.42"), Decimal("0.5"), Decimal("0.9")]
    )
    def test_certain_outcomes(self, price: Decimal) -> None:
        """Lose the price on a sure loss and win ``1 - price`` on a sure win."""
        assert expected_value(price, Decimal(0)) == -price
        assert expected_value(price, Decimal(1)) == Decimal(1) - price

    @pytest.mark.parametrize("price", [Decimal(0), Decimal(1)])
    def test_degenerate_price(self, price: Decimal) -> None:
        """Return zero at prices with no odds."""
        assert expected_value(price, Decimal("0.9")) == Decimal(0)

    def test_increases_with_probability(self) -> None:
        """Grow monotonically with the estimated probability."""
        price = Decimal("0.45")
        probs = [Decimal(p) / 10 for p in range(11)]
        values = [expected_value(price, p) for p in probs]
        assert values == sorted(values)
        assert len(set(values)) == len(values)


class TestKellyFraction:
    """Tests for kelly_fraction."""

    def test_underpriced_outcome(self) -> None:
        """Bet a third of the bankroll at odds 1.5 and 60% win rate."""
        fraction = kelly_fraction(Decimal("0.40"), Decimal("0.60"))
        assert fraction.quantize(_FOUR_DP) == Decimal("0.3333")

    def test_negative_without_edge(self) -> None:
        """Go negative when the market price is above the estimate."""
        assert kelly_fraction(Decimal("0.60"), Decimal("0.40")) < 0

    def test_degenerate_price(self) -> None:
        """Return zero at a price of exactly one."""
        assert kelly_fraction(Decimal(1), Decimal("0.9")) == Decimal(0)


class TestPositionSize:
    """Tests for position_size."""

    def test_exposure_cap_binds(self) -> None:
        """Cap a large Kelly stake at the per-trade exposure."""
        size = position_size(Decimal("0.40"), Decimal("0.60"), _BALANCE, BotConfig())
        # 0.3333 * 0.2 = 0.0667 > 0.05 cap, so 5% of 1000
        assert size == Decimal(50)

    def test_max_trade_size_binds(self) -> None:
        """Clamp to the max trade size."""
        config = _make_config(max_trade_size=20)
        size = position_size(Decimal("0.40"), Decimal("0.60"), _BALANCE, config)
        assert size == Decimal(20)

    def test_fractional_kelly(self) -> None:
        """Scale the Kelly fraction by the multiplier when under the cap."""
        config = _make_config(max_exposure_per_trade=0.5, max_trade_size=1000)
        size = position_size(Decimal("0.40"), Decimal("0.60"), _BALANCE, config)
        assert size.quantize(Decimal("0.01")) == Decimal("66.67")

    def test_no_edge_gives_zero(self) -> None:
        """Return zero when Kelly is not positive."""
        assert position_size(Decimal("0.50"), Decimal("0.50"), _BALANCE, BotConfig()) == 0
        assert position_size(Decimal("0.60"), Decimal("0.40"), _BALANCE, BotConfig()) == 0

    def test_below_min_trade_size_gives_zero(self) -> None:
        """Return zero instead of a dust trade."""
        size = position_size(Decimal("0.40"), Decimal("0.60"), Decimal(10), BotConfig())
        # 5% of 10 = 0.50 < 1.00 minimum
        assert size == Decimal(0)

    def test_empty_balance_gives_zero(self) -> None:
        """Return zero with no balance."""
        assert position_size(Decimal("0.40"), Decimal("0.60"), Decimal(0), BotConfig()) == 0

    @pytest.mark.parametrize(
        ("price", "prob"),
        [("0.10", "0.90"), ("0.30", "0.35"), ("0.55", "0.95"), ("0.90", "0.99")],
    )
    def test_size_within_bounds(self, price: str, prob: str) -> None:
        """Keep any non-zero stake inside [min_trade_size, max_trade_size]."""
        config = BotConfig()
        size = position_size(Decimal(price), Decimal(prob), _BALANCE, config)
        assert size == 0 or config.min_trade_size <= size <= config.max_trade_size
        assert size <= _BALANCE * config.max_exposure_per_trade
