"""Order-book liquidity checks run before any order is placed."""

from decimal import Decimal

from polyquant.apps.agent.models import BotConfig
from polyquant.clients.polymarket.models import OrderBook
from polyquant.core.models import ZERO


def available_depth(book: OrderBook, levels: int) -> Decimal:
    """Return the USDC notional resting on the best ``levels`` ask levels.

    Args:
        book: Order book with asks ordered best-first.
        levels: Number of ask levels to include; shallower books use all.

    Returns:
        Sum of ``price * size`` over the included levels.

    """
    return sum((level.price * level.size for level in book.asks[:levels]), ZERO)


def has_sufficient_liquidity(book: OrderBook, trade_size: Decimal, config: BotConfig) -> bool:
    """Return whether ``book`` can absorb a buy of ``trade_size`` USDC.

    A spread wider than ``config.max_spread`` fails regardless of size.
    Otherwise the ask depth over ``config.depth_levels`` levels must be at
    least ``trade_size * config.min_liquidity_multiplier``.

    Args:
        book: Order book of the token to buy.
        trade_size: Intended stake in USDC.
        config: Run configuration with the spread, depth and multiplier limits.

    Returns:
        ``True`` when the trade may proceed.

    """
    if book.spread > config.max_spread:
        return False
    required = trade_size * config.min_liquidity_multiplier
    return available_depth(book, config.depth_levels) >= required
