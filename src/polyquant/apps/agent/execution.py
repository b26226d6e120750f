"""Execution gateway: simulated midpoint fills and live CLOB orders.

Simulation always fills at the book midpoint. Live execution checks that
the wallet can settle the trade, then signs and submits a limit order for
the chosen outcome token. A failed settlement check raises
``SettlementError`` and ends the run. An order the exchange rejects is
logged and skipped.
"""

import logging
import time
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

from polyquant.apps.agent.exceptions import InsufficientFundsError, SettlementError
from polyquant.apps.agent.models import (
    BotConfig,
    ExecutionMode,
    MarketSnapshot,
    Trade,
    TradeStatus,
    now_ms,
)
from polyquant.apps.agent.protocols import BalanceSource
from polyquant.clients.polymarket.client import PolymarketClient
from polyquant.clients.polymarket.exceptions import PolymarketAPIError
from polyquant.clients.polymarket.models import OrderBook, OrderRequest
from polyquant.core.models import ZERO, Outcome

logger = logging.getLogger(__name__)

_TICK = Decimal("0.01")
_MIN_PRICE = Decimal("0.01")
_MAX_PRICE = Decimal("0.99")
_SHARE_STEP = Decimal("0.01")


def limit_price(midpoint: Decimal) -> Decimal:
    """Round a midpoint to the 0.01 tick, inside the exchange's [0.01, 0.99] band."""
    rounded = midpoint.quantize(_TICK, rounding=ROUND_HALF_UP)
    return min(max(rounded, _MIN_PRICE), _MAX_PRICE)


def share_count(size: Decimal, price: Decimal) -> Decimal:
    """Return the shares a USDC stake buys at ``price``, rounded down to 0.01."""
    if price <= ZERO:
        return ZERO
    return (size / price).quantize(_SHARE_STEP, rounding=ROUND_DOWN)


class ExecutionGateway:
    """Place one trade in simulated or live mode.

    Args:
        config: Run configuration (gas threshold, order time-to-live).
        balances: Source consulted by the live settlement check.
        client: Authenticated Polymarket client; required for live mode only.

    """

    def __init__(
        self,
        config: BotConfig,
        balances: BalanceSource,
        client: PolymarketClient | None = None,
    ) -> None:
        """Initialize the execution gateway."""
        self._config = config
        self._balances = balances
        self._client = client

    async def execute(  # noqa: PLR0913
        self,
        mode: ExecutionMode,
        market: MarketSnapshot,
        book: OrderBook,
        size: Decimal,
        side: Outcome,
        edge: Decimal,
    ) -> Trade | None:
        """Execute a trade of ``size`` USDC on ``side`` of ``market``.

        Args:
            mode: Simulated or live execution.
            market: Market being traded.
            book: Order book of the token being bought.
            size: Stake in USDC.
            side: Outcome token to buy.
            edge: Expected value at entry, recorded on the trade.

        Returns:
            The trade, or ``None`` when a live order was rejected or failed.

        Raises:
            SettlementError: Live mode without an authenticated client.
            InsufficientFundsError: Live mode with too little USDC or gas.

        """
        if mode is ExecutionMode.SIMULATION:
            return self._simulate_fill(market, book, size, side, edge)
        return await self._place_live_order(market, book, size, side, edge)

    def _simulate_fill(
        self,
        market: MarketSnapshot,
        book: OrderBook,
        size: Decimal,
        side: Outcome,
        edge: Decimal,
    ) -> Trade:
        timestamp = now_ms()
        return Trade(
            trade_id=f"sim-{timestamp}",
            market_id=market.condition_id,
            market_question=market.question,
            entry_price=book.midpoint,
            size=size,
            side=side,
            status=TradeStatus.OPEN,
            pnl=ZERO,
            edge=edge,
            timestamp=timestamp,
            is_simulated=True,
        )

    async def verify_settlement(self, size: Decimal) -> PolymarketClient:
        """Check that the wallet can settle a live trade of ``size`` USDC.

        Returns:
            The authenticated client to submit the order with.

        Raises:
            SettlementError: When no authenticated client is available.
            InsufficientFundsError: When USDC or gas is below what is needed.

        """
        if self._client is None or not self._client.is_authenticated:
            msg = "Live execution requires an authenticated Polymarket client"
            logger.error("[LIVE] %s", msg)
            raise SettlementError(msg)

        balances = await self._balances.get_balances()
        if balances.usdc < size:
            msg = (
                f"Insufficient USDC for settlement: trade size ${size:.2f} "
                f"> wallet ${balances.usdc:.2f}"
            )
            logger.error("[LIVE] %s", msg)
            raise InsufficientFundsError(msg)
        if balances.gas < self._config.min_gas_balance:
            msg = (
                f"Insufficient POL for gas: {balances.gas:.4f} "
                f"< threshold {self._config.min_gas_balance}"
            )
            logger.error("[LIVE] %s", msg)
            raise InsufficientFundsError(msg)
        return self._client

    async def _place_live_order(
        self,
        market: MarketSnapshot,
        book: OrderBook,
        size: Decimal,
        side: Outcome,
        edge: Decimal,
    ) -> Trade | None:
        client = await self.verify_settlement(size)

        token_id = market.yes_token_id if side is Outcome.YES else market.no_token_id
        price = limit_price(book.midpoint)
        shares = share_count(size, price)
        if shares <= ZERO:
            logger.warning("[LIVE] Order for %s rounds to zero shares", market.short_id)
            return None

        ttl = self._config.order_ttl_seconds
        expiration = int(time.time()) + ttl if ttl > 0 else 0
        request = OrderRequest(
            token_id=token_id,
            side="BUY",
            price=price,
            size=shares,
            expiration=expiration,
        )
        try:
            response = await client.place_order(request)
        except PolymarketAPIError:
            logger.warning("[LIVE] Order submission failed for %s", market.short_id, exc_info=True)
            return None

        if not response.success or not response.order_id:
            logger.warning(
                "[LIVE] Order rejected for %s: %s",
                market.short_id,
                response.error_msg or response.status,
            )
            return None

        logger.info(
            "[LIVE] Order %s accepted: BUY %s %s shares @ %s (status %s)",
            response.order_id[:12],
            side.value,
            shares,
            price,
            response.status,
        )
        return Trade(
            trade_id=response.order_id,
            market_id=market.condition_id,
            market_question=market.question,
            entry_price=price,
            size=size,
            side=side,
            status=TradeStatus.OPEN,
            pnl=ZERO,
            edge=edge,
            timestamp=now_ms(),
            is_simulated=False,
        )
