"""Market data gateway: tradable-market discovery and order-book reads.

Wrap ``PolymarketClient`` with the agent's filtering rules and turn every
exchange failure into an empty result, so a bad scan shows up in the
listing stats instead of as an exception in the decision loop.
"""

import logging

import httpx

from polyquant.apps.agent.models import BotConfig, MarketSnapshot, ScanStats
from polyquant.clients.polymarket._constants import TERMINAL_CURSOR
from polyquant.clients.polymarket.client import PolymarketClient
from polyquant.clients.polymarket.exceptions import PolymarketAPIError
from polyquant.clients.polymarket.models import Market, MarketToken, OrderBook
from polyquant.core.models import ONE, ZERO

logger = logging.getLogger(__name__)

POSITIVE_LABELS = frozenset({"yes", "true", "will happen", "hit", "over"})
NEGATIVE_LABELS = frozenset({"no", "false", "won't happen", "will not happen", "miss", "under"})


def _label(token: MarketToken) -> str:
    return token.outcome.strip().lower()


def select_tokens(tokens: tuple[MarketToken, ...]) -> tuple[MarketToken, MarketToken] | None:
    """Pick the positive and negative outcome tokens of a market.

    The positive token is the first whose label is in ``POSITIVE_LABELS``,
    else the first token. The negative token is the first whose label is in
    ``NEGATIVE_LABELS``, else the second token, else the first.

    Args:
        tokens: Outcome tokens in exchange order.

    Returns:
        ``(positive, negative)``, or ``None`` when the market has no tokens.

    """
    if not tokens:
        return None
    positive = next((t for t in tokens if _label(t) in POSITIVE_LABELS), tokens[0])
    fallback_negative = tokens[1] if len(tokens) > 1 else tokens[0]
    negative = next((t for t in tokens if _label(t) in NEGATIVE_LABELS), fallback_negative)
    return positive, negative


def is_tradable(market: Market, *, binary_only: bool = False) -> bool:
    """Return whether a listed market can be traded on the order book.

    Args:
        market: Market listing.
        binary_only: Additionally require an outcome labelled "yes".

    """
    if market.closed or market.archived:
        return False
    if not (market.accepting_orders and market.enable_order_book):
        return False
    if not market.tokens:
        return False
    return not binary_only or any(_label(t) == "yes" for t in market.tokens)


def to_snapshot(market: Market) -> MarketSnapshot | None:
    """Convert a market listing into the snapshot the agent trades on.

    Returns:
        The snapshot, or ``None`` when the market has no tokens.

    """
    selected = select_tokens(market.tokens)
    if selected is None:
        return None
    positive, negative = selected
    price = min(max(positive.price, ZERO), ONE)
    return MarketSnapshot(
        condition_id=market.condition_id,
        question=market.question,
        description=market.description,
        category=market.category,
        yes_token_id=positive.token_id,
        no_token_id=negative.token_id,
        price=price,
        outcomes=tuple(t.outcome for t in market.tokens),
        accepting_orders=market.accepting_orders,
        order_book_enabled=market.enable_order_book,
    )


class MarketGateway:
    """Read-only access to tradable markets and their order books.

    Args:
        client: Polymarket client used for all exchange reads.

    """

    def __init__(self, client: PolymarketClient) -> None:
        """Initialize the gateway with an exchange client."""
        self._client = client

    async def list_tradable_markets(
        self, config: BotConfig
    ) -> tuple[list[MarketSnapshot], ScanStats]:
        """List markets that pass the tradability filter.

        Read up to ``config.market_pages`` listing pages, stopping early at
        the terminal cursor. Markets are returned in exchange order.

        Args:
            config: Run configuration (``binary_only``, ``market_pages``).

        Returns:
            Tradable snapshots and the listing stats. On any exchange or
            network failure, an empty list with all-zero stats. Never raises.

        """
        listed: list[Market] = []
        cursor = ""
        try:
            for _ in range(config.market_pages):
                page = await self._client.list_markets(cursor)
                listed.extend(page.markets)
                cursor = page.next_cursor
                if not cursor or cursor == TERMINAL_CURSOR:
                    break
        except (PolymarketAPIError, httpx.HTTPError):
            logger.warning("Market listing failed", exc_info=True)
            return [], ScanStats()

        snapshots: list[MarketSnapshot] = []
        for market in listed:
            if not is_tradable(market, binary_only=config.binary_only):
                continue
            snapshot = to_snapshot(market)
            if snapshot is not None:
                snapshots.append(snapshot)

        stats = ScanStats(
            total=len(listed),
            discarded=len(listed) - len(snapshots),
            tradable=len(snapshots),
        )
        logger.info(
            "Listed %d markets: %d tradable, %d discarded",
            stats.total,
            stats.tradable,
            stats.discarded,
        )
        return snapshots, stats

    async def get_orderbook(self, token_id: str) -> OrderBook | None:
        """Fetch the order book of a token.

        Args:
            token_id: CLOB token identifier.

        Returns:
            The book with both sides populated, or ``None`` for an empty token
            id, a failed request, or a book with an empty side. No retries.

        """
        if not token_id:
            return None
        try:
            book = await self._client.get_order_book(token_id)
        except (PolymarketAPIError, httpx.HTTPError):
            logger.warning("Order book fetch failed for %s", token_id[:12], exc_info=True)
            return None
        if not book.bids or not book.asks:
            logger.info("Order book for %s has an empty side", token_id[:12])
            return None
        return book
