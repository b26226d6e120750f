"""CLI command for a one-off edge analysis of a single market.

Fetch the market and its positive-outcome order book, ask the estimator
for a probability, and print the EV, Kelly fraction, sized stake and
liquidity verdict the agent would compute. Never places an order.
"""

import asyncio
from decimal import Decimal
from typing import Annotated

import typer

from polyquant.apps.agent.cli._helpers import (
    build_client,
    build_estimator,
    build_reasoning_client,
    parse_decimal,
)
from polyquant.apps.agent.exceptions import InvalidConfigError
from polyquant.apps.agent.gateway import MarketGateway, to_snapshot
from polyquant.apps.agent.liquidity import available_depth, has_sufficient_liquidity
from polyquant.apps.agent.models import BotConfig, MarketSnapshot, Signal
from polyquant.apps.agent.presets import DEFAULT_PRESET, load_preset
from polyquant.apps.agent.sizing import expected_value, kelly_fraction, position_size
from polyquant.clients.polymarket.exceptions import PolymarketAPIError
from polyquant.clients.polymarket.models import OrderBook
from polyquant.clients.reasoning.exceptions import ReasoningAPIError

_DEFAULT_BALANCE = "1000"


def analyze(
    condition_id: str,
    preset: Annotated[str, typer.Option(help="Preset supplying the thresholds")] = DEFAULT_PRESET,
    balance: Annotated[
        str, typer.Option(help="USDC balance to size the position against")
    ] = _DEFAULT_BALANCE,
) -> None:
    """Estimate the edge on one market without trading it.

    Args:
        condition_id: Condition id of the market to analyze.
        preset: Name of the preset whose thresholds are applied.
        balance: USDC balance used for Kelly sizing.

    """
    try:
        config = load_preset(preset).validate()
    except InvalidConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    asyncio.run(
        _analyze(
            condition_id=condition_id,
            config=config,
            balance=parse_decimal(balance, "--balance"),
        )
    )


async def _analyze(*, condition_id: str, config: BotConfig, balance: Decimal) -> None:
    """Fetch, estimate and print the analysis.

    Args:
        condition_id: Condition id of the market.
        config: Validated preset config.
        balance: USDC balance used for sizing.

    """
    reasoning = build_reasoning_client()
    try:
        async with build_client() as client, reasoning:
            market = await client.get_market(condition_id)
            snapshot = to_snapshot(market)
            if snapshot is None:
                typer.echo(f"Error: market {condition_id} has no outcome tokens", err=True)
                raise typer.Exit(code=1)
            order_book = await MarketGateway(client).get_orderbook(snapshot.yes_token_id)
            if order_book is None:
                typer.echo("Error: order book unavailable or one-sided", err=True)
                raise typer.Exit(code=1)
            signal = await build_estimator(reasoning).estimate_signal(snapshot)
    except (PolymarketAPIError, ReasoningAPIError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    _display_market(snapshot, order_book)
    if signal is None:
        typer.echo("\nNo usable probability in the estimator's answer.")
        return
    _display_signal(signal, order_book, config, balance)


def _display_market(snapshot: MarketSnapshot, order_book: OrderBook) -> None:
    typer.echo(f"\nMarket: {snapshot.question}")
    typer.echo(f"Condition: {snapshot.condition_id}")
    typer.echo(f"Listed YES price: {snapshot.price:.3f}")
    typer.echo(f"Midpoint: {order_book.midpoint:.4f}  |  Spread: {order_book.spread:.2%}")


def _display_signal(
    signal: Signal,
    order_book: OrderBook,
    config: BotConfig,
    balance: Decimal,
) -> None:
    """Print the estimator output and every gate the agent would apply.

    Args:
        signal: Parsed estimator signal.
        order_book: Order book of the positive-outcome token.
        config: Thresholds to evaluate against.
        balance: USDC balance used for sizing.

    """
    price = order_book.midpoint
    prob = signal.implied_probability
    ev = expected_value(price, prob)
    size = position_size(price, prob, balance, config)

    typer.echo(f"\nImplied probability: {prob:.2%}")
    typer.echo(f"Confidence:          {signal.confidence:.2%}")
    typer.echo(f"Expected value:      {ev:.2%}  (min {config.min_ev:.2%})")
    typer.echo(f"Kelly fraction:      {kelly_fraction(price, prob):.4f}")
    typer.echo(f"Position size:       ${size:.2f}  (balance ${balance:.2f})")

    depth = available_depth(order_book, config.depth_levels)
    if size > 0:
        verdict = "OK" if has_sufficient_liquidity(order_book, size, config) else "INSUFFICIENT"
        typer.echo(f"Liquidity:           {verdict} (ask depth ${depth:.2f})")
    else:
        typer.echo(f"Liquidity:           n/a (ask depth ${depth:.2f})")

    if signal.reasoning:
        typer.echo(f"\nReasoning: {signal.reasoning}")
    if signal.sources:
        typer.echo("\nSources:")
        for source in signal.sources:
            typer.echo(f"  {source.title}: {source.uri}")
