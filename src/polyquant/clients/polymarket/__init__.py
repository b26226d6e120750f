"""Polymarket CLOB client: listings, order books, signed orders and wallet balances."""

from polyquant.clients.polymarket.client import PolymarketClient
from polyquant.clients.polymarket.exceptions import (
    PolymarketAPIError,
    PolymarketError,
)
from polyquant.clients.polymarket.models import (
    Balance,
    Market,
    MarketPage,
    MarketToken,
    OrderBook,
    OrderLevel,
    OrderRequest,
    OrderResponse,
    WalletHoldings,
)

__all__ = [
    "Balance",
    "Market",
    "MarketPage",
    "MarketToken",
    "OrderBook",
    "OrderLevel",
    "OrderRequest",
    "OrderResponse",
    "PolymarketAPIError",
    "PolymarketClient",
    "PolymarketError",
    "WalletHoldings",
]
