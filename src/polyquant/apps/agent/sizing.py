"""Expected value and fractional-Kelly sizing for binary outcome markets.

Pure functions over ``Decimal``. Buying the positive token at ``price``
pays ``1 - price`` per share when the outcome happens and loses ``price``
otherwise, so the decimal odds are ``b = 1 / price - 1``. A price of
exactly 0 or 1 has no odds and is never tradable.
"""

from decimal import Decimal

from polyquant.apps.agent.models import BotConfig
from polyquant.core.models import ONE, ZERO


def _is_tradable_price(price: Decimal) -> bool:
    return ZERO < price < ONE


def expected_value(price: Decimal, prob: Decimal) -> Decimal:
    """Return the expected profit per dollar of buying the positive outcome.

        EV = prob * (1 - price) - (1 - prob) * price

    Args:
        price: Price of the positive token (0-1).
        prob: Estimated probability of the positive outcome (0-1).

    Returns:
        Expected value, or ``ZERO`` when the price is not strictly inside (0, 1).

    """
    if not _is_tradable_price(price):
        return ZERO
    return prob * (ONE - price) - (ONE - prob) * price


def kelly_fraction(price: Decimal, prob: Decimal) -> Decimal:
    """Return the full Kelly fraction ``(b*p - q) / b`` for the positive outcome.

    The result is negative when the market price is above the estimate.

    Args:
        price: Price of the positive token (0-1).
        prob: Estimated probability of the positive outcome (0-1).

    Returns:
        Kelly fraction, or ``ZERO`` when the price is not strictly inside (0, 1).

    """
    if not _is_tradable_price(price):
        return ZERO
    odds = ONE / price - ONE
    return (odds * prob - (ONE - prob)) / odds


def position_size(price: Decimal, prob: Decimal, balance: Decimal, config: BotConfig) -> Decimal:
    """Return the stake in USDC after layering the risk caps on Kelly.

    The Kelly fraction is scaled by ``config.kelly_multiplier`` and capped at
    ``config.max_exposure_per_trade`` before multiplying by ``balance``; the
    stake is then clamped to ``config.max_trade_size``. A non-positive Kelly
    fraction or a stake below ``config.min_trade_size`` both give zero.

    Args:
        price: Price of the positive token (0-1).
        prob: Estimated probability of the positive outcome (0-1).
        balance: USDC balance the fraction applies to.
        config: Run configuration carrying the caps.

    Returns:
        Stake in USDC, zero when the trade should be skipped. Never negative.

    """
    fraction = kelly_fraction(price, prob)
    if fraction <= ZERO or balance <= ZERO:
        return ZERO
    scaled = min(fraction * config.kelly_multiplier, config.max_exposure_per_trade)
    size = min(scaled * balance, config.max_trade_size)
    if size < config.min_trade_size:
        return ZERO
    return size
