"""CLI command for checking the trading wallet's balances.

Re-sync and print the collateral balance and allowance the CLOB has on
record, then the on-chain USDC and POL balances the live settlement
check reads.
"""

import asyncio

import typer

from polyquant.apps.agent.cli._helpers import build_client, exchange_setting
from polyquant.clients.polymarket._wallet_reader import USDC_E_ADDRESS
from polyquant.clients.polymarket.exceptions import PolymarketAPIError


def balance() -> None:
    """Display CLOB collateral and on-chain wallet balances."""
    asyncio.run(_balance())


async def _balance() -> None:
    client = build_client(authenticated=True)
    rpc_url = exchange_setting("polygon_rpc_url", "https://polygon-rpc.com")
    usdc_address = exchange_setting("usdc_address", USDC_E_ADDRESS)
    try:
        async with client:
            await client.sync_balance()
            collateral = await client.get_balance()
            holdings = await client.get_wallet_holdings(rpc_url, usdc_address)
    except PolymarketAPIError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"\nWallet:         {holdings.address}")
    typer.echo(f"CLOB balance:   {collateral.balance:.2f} USDC")
    typer.echo(f"CLOB allowance: {collateral.allowance:.2f} USDC")
    typer.echo(f"Wallet USDC:    {holdings.usdc:.2f}")
    typer.echo(f"Wallet POL:     {holdings.pol:.4f}")
