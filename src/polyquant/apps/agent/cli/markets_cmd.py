"""CLI command for listing tradable Polymarket markets.

Run the same listing and tradability filter the agent uses and print the
surviving markets with their positive-outcome price.
"""

import asyncio
from typing import Annotated

import typer

from polyquant.apps.agent.cli._helpers import build_client
from polyquant.apps.agent.gateway import MarketGateway
from polyquant.apps.agent.models import BotConfig

_DEFAULT_LIMIT = 20
_DEFAULT_PAGES = 1
_MAX_QUESTION_LEN = 58


def markets(
    binary_only: Annotated[  # noqa: FBT002
        bool, typer.Option("--binary-only", help="Only markets with a YES outcome")
    ] = False,
    limit: Annotated[int, typer.Option(help="Maximum number of markets to show")] = _DEFAULT_LIMIT,
    pages: Annotated[int, typer.Option(help="Listing pages to read")] = _DEFAULT_PAGES,
) -> None:
    """List markets that pass the agent's tradability filter."""
    asyncio.run(_markets(binary_only=binary_only, limit=limit, pages=pages))


async def _markets(*, binary_only: bool, limit: int, pages: int) -> None:
    """Fetch and display tradable markets.

    Args:
        binary_only: Require an explicit YES outcome.
        limit: Maximum number of rows to print.
        pages: Listing pages to read.

    """
    config = BotConfig(binary_only=binary_only, market_pages=max(1, pages))
    async with build_client() as client:
        snapshots, stats = await MarketGateway(client).list_tradable_markets(config)

    typer.echo(
        f"\nListed {stats.total} markets: {stats.tradable} tradable, {stats.discarded} discarded"
    )
    if not snapshots:
        typer.echo("No tradable markets found.")
        return

    typer.echo(f"\n{'Condition':<12} {'Question':<60} {'YES':>6}")
    typer.echo("-" * 80)
    for snapshot in snapshots[:limit]:
        question = snapshot.question[:_MAX_QUESTION_LEN]
        typer.echo(f"{snapshot.short_id:<12} {question:<60} {snapshot.price:>6.2f}")
