"""Balance sources for simulated and live runs."""

import logging
from decimal import Decimal

from polyquant.apps.agent.models import WalletBalances
from polyquant.clients.polymarket._wallet_reader import USDC_E_ADDRESS
from polyquant.clients.polymarket.client import PolymarketClient

logger = logging.getLogger(__name__)

DEFAULT_SIM_USDC = Decimal(1000)
DEFAULT_SIM_GAS = Decimal(10)


class StaticBalanceSource:
    """Fixed balances for simulation runs and tests.

    Args:
        usdc: USDC balance to report.
        gas: POL balance to report.

    """

    def __init__(self, usdc: Decimal = DEFAULT_SIM_USDC, gas: Decimal = DEFAULT_SIM_GAS) -> None:
        """Initialize with the balances to report."""
        self._balances = WalletBalances(usdc=usdc, gas=gas)

    async def get_balances(self) -> WalletBalances:
        """Return the configured balances."""
        return self._balances


class WalletBalanceSource:
    """On-chain USDC and POL balances of the trading wallet.

    Args:
        client: Polymarket client that knows the wallet address.
        rpc_url: Polygon JSON-RPC endpoint URL.
        usdc_address: ERC-20 contract of the USDC collateral token.

    """

    def __init__(
        self,
        client: PolymarketClient,
        rpc_url: str,
        usdc_address: str = USDC_E_ADDRESS,
    ) -> None:
        """Initialize the wallet balance source."""
        self._client = client
        self._rpc_url = rpc_url
        self._usdc_address = usdc_address

    async def get_balances(self) -> WalletBalances:
        """Read the wallet's balances from chain.

        Raises:
            PolymarketAPIError: When the wallet address is unknown or the RPC fails.

        """
        holdings = await self._client.get_wallet_holdings(self._rpc_url, self._usdc_address)
        logger.debug("Wallet balances: %s USDC, %s POL", holdings.usdc, holdings.pol)
        return WalletBalances(usdc=holdings.usdc, gas=holdings.pol)
