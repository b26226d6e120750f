"""Read on-chain collateral and gas balances from a Polygon RPC.

Query the ERC-20 ``balanceOf`` of the USDC collateral token and the
native POL balance of a wallet. Calls are synchronous ``web3`` calls;
the facade runs them through ``asyncio.to_thread``.
"""

import logging
from decimal import Decimal
from typing import Any

from web3 import Web3

from polyquant.clients.polymarket._constants import USDC_DECIMALS
from polyquant.clients.polymarket.exceptions import PolymarketAPIError

logger = logging.getLogger(__name__)

USDC_E_ADDRESS = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"

_ERC20_BALANCE_ABI: list[dict[str, Any]] = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


def read_wallet_balances(
    rpc_url: str,
    address: str,
    usdc_address: str = USDC_E_ADDRESS,
) -> tuple[Decimal, Decimal]:
    """Read the USDC and POL balances of an address.

    Args:
        rpc_url: Polygon JSON-RPC endpoint URL.
        address: Wallet address to inspect.
        usdc_address: ERC-20 contract of the collateral token (bridged USDC.e).
            Native USDC is not read.

    Returns:
        ``(usdc, pol)`` balances in whole-token units.

    Raises:
        PolymarketAPIError: When the RPC is unreachable or a call fails.

    """
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    if not w3.is_connected():
        raise PolymarketAPIError(
            msg=f"Cannot connect to Polygon RPC at {rpc_url}",
            status_code=0,
        )

    try:
        owner = Web3.to_checksum_address(address)
        token = w3.eth.contract(
            address=Web3.to_checksum_address(usdc_address),
            abi=_ERC20_BALANCE_ABI,
        )
        raw_usdc: int = token.functions.balanceOf(owner).call()
        raw_pol = w3.eth.get_balance(owner)
    except Exception as exc:
        raise PolymarketAPIError(
            msg=f"Failed to read balances for {address}: {exc}",
            status_code=0,
        ) from exc

    usdc = Decimal(raw_usdc) / USDC_DECIMALS
    pol = Decimal(str(Web3.from_wei(raw_pol, "ether")))
    logger.debug("Wallet %s holds %s USDC and %s POL", owner[:10], usdc, pol)
    return usdc, pol
