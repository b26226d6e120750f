"""Typed async facade for the Polymarket CLOB.

Compose the async REST client (listings and books), the synchronous
``py-clob-client`` adapter (signed orders and collateral balance) and the
``web3`` wallet reader into a single async interface. Synchronous calls
are wrapped in ``asyncio.to_thread()`` so they never block the event loop.
"""

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from polyquant.clients.polymarket import _clob_adapter, _wallet_reader
from polyquant.clients.polymarket._constants import HTTP_UNAUTHORIZED, USDC_DECIMALS
from polyquant.clients.polymarket._rest_client import ClobRestClient
from polyquant.clients.polymarket.exceptions import PolymarketAPIError
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

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)
_TWO = Decimal(2)


class PolymarketClient:
    """Typed async client for Polymarket prediction markets.

    Without a private key the client is read-only: listings and order books
    work, while orders and balances raise ``PolymarketAPIError`` (401).

    Args:
        host: Base URL for the Polymarket CLOB API.
        private_key: Polygon wallet private key for trading.
        api_key: CLOB API key.
        api_secret: CLOB API secret.
        api_passphrase: CLOB API passphrase.
        funder_address: Proxy wallet address holding the trading funds.
        timeout: HTTP timeout for REST reads, in seconds.

    """

    CLOB_HOST = "https://clob.polymarket.com"

    def __init__(  # noqa: PLR0913
        self,
        host: str = CLOB_HOST,
        private_key: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        api_passphrase: str | None = None,
        funder_address: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the Polymarket client.

        When ``private_key`` is given, build an authenticated SDK client.
        If all three API credentials are also given, it connects at Level 2
        immediately; otherwise credentials are derived on first use.

        Args:
            host: Base URL for the Polymarket CLOB API.
            private_key: Polygon wallet private key (hex ``0x…`` string).
            api_key: Pre-existing CLOB API key.
            api_secret: Pre-existing CLOB API secret.
            api_passphrase: Pre-existing CLOB API passphrase.
            funder_address: Proxy wallet address holding the trading funds.
            timeout: HTTP timeout for REST reads, in seconds.

        """
        self._host = host
        self._private_key = private_key
        self._funder_address = funder_address
        self._clob_client: Any = None
        self._has_creds = bool(api_key and api_secret and api_passphrase)
        if private_key is not None:
            creds = (
                (str(api_key), str(api_secret), str(api_passphrase)) if self._has_creds else None
            )
            self._clob_client = _clob_adapter.create_authenticated_clob_client(
                host, private_key, creds=creds, funder=funder_address
            )
        self._rest = ClobRestClient(base_url=host, timeout=timeout)
        self._clob_lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        """Return whether the client was built with a private key."""
        return self._private_key is not None

    @property
    def wallet_address(self) -> str | None:
        """Return the address that holds funds: the funder, else the key's EOA."""
        if self._funder_address:
            return self._funder_address
        if self._private_key is None:
            return None
        return _clob_adapter.derive_funder_address(self._private_key)

    async def list_markets(self, next_cursor: str = "") -> MarketPage:
        """Fetch one page of the CLOB market listing.

        Args:
            next_cursor: Cursor from the previous page, empty for the first.

        Returns:
            Typed page of markets and the cursor for the next page.

        Raises:
            PolymarketAPIError: When the CLOB API call fails.

        """
        raw = await self._rest.get_markets(next_cursor)
        markets = tuple(self._parse_market(item) for item in raw["data"] if isinstance(item, dict))
        return MarketPage(markets=markets, next_cursor=raw["next_cursor"])

    async def get_market(self, condition_id: str) -> Market:
        """Fetch a single market by condition ID.

        Args:
            condition_id: Unique identifier for the market condition.

        Returns:
            Typed market listing.

        Raises:
            PolymarketAPIError: When the market is not found or the API fails.

        """
        raw = await self._rest.get_market(condition_id)
        return self._parse_market(raw)

    async def get_order_book(self, token_id: str) -> OrderBook:
        """Fetch a typed order book for a token.

        Args:
            token_id: CLOB token identifier.

        Returns:
            Order book with best-first ladders, fractional spread and midpoint.

        Raises:
            PolymarketAPIError: When the CLOB API call fails.

        """
        raw = await self._rest.get_order_book(token_id)
        return self._parse_order_book(token_id, raw)

    def _require_auth(self) -> None:
        """Raise an error if the client is not authenticated.

        Raises:
            PolymarketAPIError: When no private key was provided at init.

        """
        if not self.is_authenticated:
            raise PolymarketAPIError(
                msg="Authentication required. Provide a private key to enable trading.",
                status_code=HTTP_UNAUTHORIZED,
            )

    async def _ensure_level2(self) -> None:
        """Derive and install API credentials when none were supplied."""
        if self._has_creds:
            return
        creds = await asyncio.to_thread(_clob_adapter.derive_api_creds, self._clob_client)
        self._clob_client = _clob_adapter.create_authenticated_clob_client(
            self._host, str(self._private_key), creds=creds, funder=self._funder_address
        )
        self._has_creds = True
        logger.info("Derived CLOB API credentials for %s", (self.wallet_address or "")[:10])

    async def place_order(self, request: OrderRequest) -> OrderResponse:
        """Sign and submit a limit order.

        Args:
            request: Typed order request with token, side, price, size and expiry.

        Returns:
            Typed order response. ``success`` is ``False`` when the exchange
            rejected the order, with the reason in ``error_msg``.

        Raises:
            PolymarketAPIError: When not authenticated or submission fails.

        """
        self._require_auth()
        async with self._clob_lock:
            await self._ensure_level2()
            raw = await asyncio.to_thread(
                _clob_adapter.place_limit_order,
                self._clob_client,
                request.token_id,
                request.side,
                float(request.price),
                float(request.size),
                request.expiration,
            )
        return _parse_order_response(raw, request)

    async def sync_balance(self) -> None:
        """Tell the CLOB to re-sync its cached collateral balance from chain.

        Raises:
            PolymarketAPIError: When not authenticated or the sync fails.

        """
        self._require_auth()
        async with self._clob_lock:
            await self._ensure_level2()
            await asyncio.to_thread(_clob_adapter.update_balance, self._clob_client)

    async def get_balance(self) -> Balance:
        """Fetch the USDC collateral balance and allowance known to the CLOB.

        Returns:
            Typed balance in whole USDC.

        Raises:
            PolymarketAPIError: When not authenticated or the query fails.

        """
        self._require_auth()
        async with self._clob_lock:
            await self._ensure_level2()
            raw = await asyncio.to_thread(_clob_adapter.get_balance, self._clob_client)
        return Balance(
            asset_type="COLLATERAL",
            balance=_safe_decimal(raw.get("balance")) / USDC_DECIMALS,
            allowance=_safe_decimal(raw.get("allowance")) / USDC_DECIMALS,
        )

    async def get_wallet_holdings(
        self,
        rpc_url: str,
        usdc_address: str = _wallet_reader.USDC_E_ADDRESS,
        address: str | None = None,
    ) -> WalletHoldings:
        """Read on-chain USDC and POL balances of the trading wallet.

        Args:
            rpc_url: Polygon JSON-RPC endpoint URL.
            usdc_address: ERC-20 contract of the USDC collateral token.
            address: Address to read. Defaults to ``wallet_address``.

        Returns:
            Typed wallet holdings.

        Raises:
            PolymarketAPIError: When no address is known or the RPC fails.

        """
        resolved = address or self.wallet_address
        if not resolved:
            raise PolymarketAPIError(
                msg="No wallet address. Set POLYMARKET_FUNDER_ADDRESS or a private key.",
                status_code=HTTP_UNAUTHORIZED,
            )
        usdc, pol = await asyncio.to_thread(
            _wallet_reader.read_wallet_balances, rpc_url, resolved, usdc_address
        )
        return WalletHoldings(address=resolved, usdc=usdc, pol=pol)

    async def close(self) -> None:
        """Close underlying HTTP clients."""
        await self._rest.close()

    async def __aenter__(self) -> "PolymarketClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()

    @staticmethod
    def _parse_market(raw: dict[str, Any]) -> Market:
        """Convert a raw CLOB market dict into a typed Market.

        Args:
            raw: Market dictionary from the CLOB ``/markets`` endpoint.

        Returns:
            Typed Market dataclass.

        """
        tokens = tuple(
            MarketToken(
                token_id=str(t.get("token_id", "")),
                outcome=str(t.get("outcome", "")),
                price=_safe_decimal(t.get("price")),
            )
            for t in raw.get("tokens") or []
            if isinstance(t, dict)
        )
        return Market(
            condition_id=str(raw.get("condition_id", "")),
            question=str(raw.get("question", "")),
            description=str(raw.get("description") or ""),
            category=str(raw.get("category") or ""),
            tokens=tokens,
            end_date=str(raw.get("end_date_iso") or ""),
            active=bool(raw.get("active", False)),
            closed=bool(raw.get("closed", False)),
            archived=bool(raw.get("archived", False)),
            accepting_orders=bool(raw.get("accepting_orders", False)),
            enable_order_book=bool(raw.get("enable_order_book", False)),
        )

    @staticmethod
    def _parse_order_book(token_id: str, raw: dict[str, Any]) -> OrderBook:
        """Convert a raw CLOB order book dict into a typed OrderBook.

        Levels are sorted best-first so the result does not depend on the
        order the exchange sent them in.

        Args:
            token_id: CLOB token identifier.
            raw: Raw order book dictionary with ``bids`` and ``asks``.

        Returns:
            Typed OrderBook dataclass.

        """
        bids = tuple(
            sorted(
                (
                    OrderLevel(
                        price=_safe_decimal(level.get("price")),
                        size=_safe_decimal(level.get("size")),
                    )
                    for level in raw.get("bids") or []
                ),
                key=lambda lvl: lvl.price,
                reverse=True,
            )
        )
        asks = tuple(
            sorted(
                (
                    OrderLevel(
                        price=_safe_decimal(level.get("price")),
                        size=_safe_decimal(level.get("size")),
                    )
                    for level in raw.get("asks") or []
                ),
                key=lambda lvl: lvl.price,
            )
        )

        midpoint = _ZERO
        spread = _ZERO
        if bids and asks:
            best_bid = bids[0].price
            best_ask = asks[0].price
            midpoint = (best_bid + best_ask) / _TWO
            if midpoint > _ZERO:
                spread = (best_ask - best_bid) / midpoint

        return OrderBook(
            token_id=token_id,
            bids=bids,
            asks=asks,
            spread=spread,
            midpoint=midpoint,
        )


def _safe_decimal(value: Any) -> Decimal:
    """Convert a value to Decimal, returning zero for None/empty strings.

    Args:
        value: Value to convert (string, float, int, or None).

    Returns:
        Decimal representation, or ``Decimal("0")`` for None/empty.

    Raises:
        PolymarketAPIError: If the value is non-empty but malformed.

    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return _ZERO
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        msg = f"Cannot convert {value!r} to Decimal"
        raise PolymarketAPIError(msg=msg, status_code=0) from exc


def _parse_order_response(raw: dict[str, Any], request: OrderRequest) -> OrderResponse:
    """Convert a raw ``post_order`` response into a typed OrderResponse.

    Args:
        raw: Raw dictionary from the CLOB ``post_order`` call.
        request: Original order request used for the echoed fields.

    Returns:
        Typed OrderResponse dataclass.

    """
    order_id = str(raw.get("orderID") or raw.get("id") or "")
    error_msg = str(raw.get("errorMsg") or "")
    success = bool(raw.get("success", bool(order_id))) and not error_msg
    return OrderResponse(
        order_id=order_id,
        status=str(raw.get("status", "unknown")),
        success=success,
        error_msg=error_msg,
        token_id=request.token_id,
        side=request.side,
        price=request.price,
        size=request.size,
    )
