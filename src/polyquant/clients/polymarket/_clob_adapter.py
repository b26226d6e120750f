"""Isolated bridge to the untyped ``py-clob-client`` library.

This is the only module that imports from ``py_clob_client``. The SDK
builds the EIP-712 order signature and the ``POLY_*`` HMAC headers for
Level 2 calls. Functions here are synchronous and return primitive types;
the async facade runs them in a worker thread and converts the results
into typed dataclasses.
"""

import logging
from typing import Any

from eth_account import Account  # type: ignore[import-untyped]
from py_clob_client.client import ClobClient  # type: ignore[import-untyped]
from py_clob_client.clob_types import (  # type: ignore[import-untyped]
    ApiCreds,
    AssetType,
    BalanceAllowanceParams,
    OrderArgs,
    OrderType,
    PartialCreateOrderOptions,
)
from py_clob_client.exceptions import PolyApiException  # type: ignore[import-untyped]

from polyquant.clients.polymarket._constants import (
    HTTP_INTERNAL_ERROR,
    POLYGON_CHAIN_ID,
    TICK_SIZE,
)
from polyquant.clients.polymarket.exceptions import PolymarketAPIError

_POLYGON_PROXY_WALLET = 1

_logger = logging.getLogger(__name__)


def _safe_clob_call(action: str, fn: Any, *args: Any) -> Any:
    """Execute a CLOB SDK call, converting every failure into ``PolymarketAPIError``.

    Args:
        action: Human-readable description for error messages.
        fn: The callable to invoke.
        *args: Positional arguments forwarded to *fn*.

    Returns:
        The raw result from *fn*.

    Raises:
        PolymarketAPIError: When the call fails for any reason.

    """
    try:
        return fn(*args)
    except PolyApiException as exc:
        status = getattr(exc, "status_code", None) or HTTP_INTERNAL_ERROR
        _logger.debug("CLOB call failed: %s (status %s)", action, status)
        raise PolymarketAPIError(msg=f"Failed to {action}: {exc}", status_code=status) from exc
    except Exception as exc:
        raise PolymarketAPIError(
            msg=f"Failed to {action}: {exc}",
            status_code=HTTP_INTERNAL_ERROR,
        ) from exc


def derive_funder_address(private_key: str) -> str:
    """Derive the EOA address from a private key.

    Args:
        private_key: Hex-encoded private key (with ``0x`` prefix).

    Returns:
        Checksummed Ethereum address string.

    """
    return Account.from_key(private_key).address  # type: ignore[no-any-return]


def create_authenticated_clob_client(
    host: str,
    private_key: str,
    chain_id: int = POLYGON_CHAIN_ID,
    creds: tuple[str, str, str] | None = None,
    funder: str | None = None,
) -> ClobClient:  # type: ignore[no-any-unimported]
    """Create an authenticated CLOB client for trading.

    With ``creds`` the client is Level 2 and can post orders and read
    balances. Without them it is Level 1 and can only derive credentials.

    Args:
        host: Base URL for the Polymarket CLOB API.
        private_key: Polygon wallet private key.
        chain_id: Blockchain chain ID (137 for Polygon mainnet).
        creds: Optional ``(api_key, api_secret, api_passphrase)`` tuple.
        funder: Proxy wallet address holding the funds. Falls back to the
            EOA derived from the key.

    Returns:
        Configured ``ClobClient``.

    """
    resolved_funder = funder or derive_funder_address(private_key)
    api_creds = None
    if creds is not None:
        api_key, api_secret, api_passphrase = creds
        api_creds = ApiCreds(
            api_key=api_key,
            api_secret=api_secret,
            api_passphrase=api_passphrase,
        )
    return ClobClient(  # type: ignore[no-any-return]
        host,
        chain_id=chain_id,
        key=private_key,
        creds=api_creds,
        signature_type=_POLYGON_PROXY_WALLET,
        funder=resolved_funder,
    )


def derive_api_creds(client: Any) -> tuple[str, str, str]:
    """Derive HMAC API credentials from a Level 1 client.

    Args:
        client: A Level 1 ``ClobClient`` instance.

    Returns:
        Tuple of ``(api_key, api_secret, api_passphrase)``.

    Raises:
        PolymarketAPIError: When credential derivation fails.

    """
    raw = _safe_clob_call("derive API credentials", client.create_or_derive_api_creds)
    return (str(raw.api_key), str(raw.api_secret), str(raw.api_passphrase))


def place_limit_order(
    client: Any,
    token_id: str,
    side: str,
    price: float,
    size: float,
    expiration: int = 0,
) -> dict[str, Any]:
    """Sign and post a limit order.

    A positive ``expiration`` submits a good-till-date order that lapses at
    that Unix timestamp; zero submits a good-till-cancelled order.

    Args:
        client: A Level 2 ``ClobClient`` instance.
        token_id: CLOB token identifier for the outcome to trade.
        side: ``"BUY"`` or ``"SELL"``.
        price: Limit price on the 0.01 tick.
        size: Number of shares.
        expiration: Unix expiry timestamp, or ``0``.

    Returns:
        Raw API response with ``success``, ``orderID``, ``status`` and ``errorMsg``.

    Raises:
        PolymarketAPIError: When signing or submission fails.

    """
    order_type = OrderType.GTD if expiration > 0 else OrderType.GTC

    def _create_and_post() -> dict[str, Any]:
        order = client.create_order(
            OrderArgs(
                token_id=token_id,
                price=price,
                size=size,
                side=side,
                expiration=expiration,
            ),
            options=PartialCreateOrderOptions(tick_size=TICK_SIZE),
        )
        return client.post_order(order, orderType=order_type)  # type: ignore[no-any-return]

    return _safe_clob_call("place limit order", _create_and_post)


def get_balance(client: Any) -> dict[str, Any]:
    """Fetch the USDC collateral balance and allowance.

    Args:
        client: A Level 2 ``ClobClient`` instance.

    Returns:
        Dictionary with ``balance`` and ``allowance`` in base units (1e6).

    Raises:
        PolymarketAPIError: When the balance query fails.

    """
    params = BalanceAllowanceParams(asset_type=AssetType.COLLATERAL)  # type: ignore[reportArgumentType]

    def _fetch() -> dict[str, Any]:
        return client.get_balance_allowance(params=params)  # type: ignore[no-any-return]

    return _safe_clob_call("fetch balance", _fetch)


def update_balance(client: Any) -> None:
    """Ask the CLOB to re-sync its cached collateral balance from chain.

    Args:
        client: A Level 2 ``ClobClient`` instance.

    Raises:
        PolymarketAPIError: When the update call fails.

    """
    params = BalanceAllowanceParams(asset_type=AssetType.COLLATERAL)  # type: ignore[reportArgumentType]

    def _update() -> dict[str, Any]:
        return client.update_balance_allowance(params=params)  # type: ignore[no-any-return]

    _safe_clob_call("update balance", _update)
