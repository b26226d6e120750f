"""Typed data models for Polymarket CLOB data.

Provide frozen dataclasses that insulate the rest of the codebase from the
untyped dictionaries returned by the CLOB REST API and ``py-clob-client``.
All prices and sizes use ``Decimal``.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class OrderLevel:
    """Single price level in an order book.

    Args:
        price: Price of the level as a decimal between 0 and 1.
        size: Shares resting at this price level.

    """

    price: Decimal
    size: Decimal


@dataclass(frozen=True)
class OrderBook:
    """Order book snapshot for one outcome token.

    Both ladders are ordered best-first: bids descending, asks ascending.
    When either side is empty, ``spread`` and ``midpoint`` are zero.

    Args:
        token_id: CLOB token identifier for the market outcome.
        bids: Buy-side price levels, best (highest) first.
        asks: Sell-side price levels, best (lowest) first.
        spread: ``(best_ask - best_bid) / midpoint``, a fraction of the midpoint.
        midpoint: Average of best bid and best ask prices.

    """

    token_id: str
    bids: tuple[OrderLevel, ...]
    asks: tuple[OrderLevel, ...]
    spread: Decimal
    midpoint: Decimal

    @property
    def best_bid(self) -> Decimal | None:
        """Return the highest bid price, or ``None`` for an empty bid side."""
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Decimal | None:
        """Return the lowest ask price, or ``None`` for an empty ask side."""
        return self.asks[0].price if self.asks else None


@dataclass(frozen=True)
class MarketToken:
    """Outcome token of a market.

    Args:
        token_id: CLOB token identifier.
        outcome: Outcome label as listed by the exchange (e.g. ``"Yes"``).
        price: Last listed price between 0 and 1.

    """

    token_id: str
    outcome: str
    price: Decimal


@dataclass(frozen=True)
class Market:
    """Typed representation of a CLOB market listing.

    Args:
        condition_id: Unique identifier for the market condition.
        question: The prediction question.
        description: Resolution criteria text.
        category: Exchange category tag, empty when absent.
        tokens: Outcome tokens in exchange order.
        end_date: ISO-8601 date string when the market resolves.
        active: Exchange ``active`` flag.
        closed: Whether the market has closed.
        archived: Whether the market has been archived.
        accepting_orders: Whether the book currently accepts orders.
        enable_order_book: Whether the market trades on the order book.

    """

    condition_id: str
    question: str
    description: str
    category: str
    tokens: tuple[MarketToken, ...]
    end_date: str
    active: bool
    closed: bool
    archived: bool
    accepting_orders: bool
    enable_order_book: bool


@dataclass(frozen=True)
class MarketPage:
    """One page of the paginated ``/markets`` listing.

    Args:
        markets: Markets on this page.
        next_cursor: Cursor for the following page, ``"LTE="`` or empty on the last page.

    """

    markets: tuple[Market, ...]
    next_cursor: str


@dataclass(frozen=True)
class OrderRequest:
    """Typed input for placing a limit order on the CLOB.

    Args:
        token_id: CLOB token identifier for the outcome to trade.
        side: Order side, ``"BUY"`` or ``"SELL"``.
        price: Limit price between 0 and 1 on the 0.01 tick.
        size: Number of shares to trade.
        expiration: Unix timestamp after which the order lapses. ``0`` places
            a good-till-cancelled order.

    """

    token_id: str
    side: str
    price: Decimal
    size: Decimal
    expiration: int = 0


@dataclass(frozen=True)
class OrderResponse:
    """Typed result from submitting an order to the CLOB.

    Args:
        order_id: Identifier assigned by the CLOB, empty when rejected.
        status: Order status (e.g. ``"live"``, ``"matched"``).
        success: Whether the exchange accepted the order.
        error_msg: Provider error message for rejected orders.
        token_id: Token that was traded.
        side: Order side.
        price: Submitted limit price.
        size: Submitted size in shares.

    """

    order_id: str
    status: str
    success: bool
    error_msg: str
    token_id: str
    side: str
    price: Decimal
    size: Decimal


@dataclass(frozen=True)
class Balance:
    """Collateral balance and exchange allowance held by the trading wallet.

    Args:
        asset_type: ``"COLLATERAL"`` for USDC.
        balance: Available balance in USDC.
        allowance: Amount approved for the exchange contract.

    """

    asset_type: str
    balance: Decimal
    allowance: Decimal


@dataclass(frozen=True)
class WalletHoldings:
    """On-chain holdings of a Polygon address.

    Args:
        address: The address that was read.
        usdc: USDC collateral balance.
        pol: Native POL balance used to pay gas.

    """

    address: str
    usdc: Decimal
    pol: Decimal
