"""CLI command for running the edge-trading agent.

Load a preset, apply flag overrides, and run the decision loop in
simulation or live mode. Live mode requires ``--confirm-live`` and a
wallet private key. Ctrl-C stops the loop gracefully; the run summary
with the reject-reason distribution is printed on exit.
"""

import asyncio
import signal
from decimal import Decimal
from typing import Annotated, Any

import typer

from polyquant.apps.agent.balances import (
    DEFAULT_SIM_GAS,
    DEFAULT_SIM_USDC,
    StaticBalanceSource,
    WalletBalanceSource,
)
from polyquant.apps.agent.cli._helpers import (
    EchoSink,
    build_client,
    build_estimator,
    build_reasoning_client,
    configure_verbose_logging,
    exchange_setting,
    parse_decimal,
)
from polyquant.apps.agent.engine import TradingAgent
from polyquant.apps.agent.exceptions import InvalidConfigError
from polyquant.apps.agent.execution import ExecutionGateway
from polyquant.apps.agent.gateway import MarketGateway
from polyquant.apps.agent.models import BotState, ExecutionMode, RunState
from polyquant.apps.agent.presets import DEFAULT_PRESET, load_preset
from polyquant.apps.agent.protocols import BalanceSource
from polyquant.apps.agent.session import RunSession
from polyquant.clients.polymarket._wallet_reader import USDC_E_ADDRESS
from polyquant.clients.polymarket.client import PolymarketClient
from polyquant.core.config import get_config

_DEFAULT_CAPITAL = "100"


def run(  # noqa: PLR0913
    mode: Annotated[str, typer.Option(help="Execution mode: simulation or live")] = "simulation",
    preset: Annotated[
        str, typer.Option(help="Preset name: conservative, optimal or aggressive")
    ] = DEFAULT_PRESET,
    capital: Annotated[str, typer.Option(help="USDC allocated to this run")] = _DEFAULT_CAPITAL,
    max_iterations: Annotated[
        int | None, typer.Option(help="Stop after N iterations (None = until exhausted)")
    ] = None,
    interval: Annotated[
        int | None, typer.Option(help="Seconds between scans (overrides preset)")
    ] = None,
    max_spread: Annotated[
        float | None, typer.Option(help="Maximum fractional spread (overrides preset)")
    ] = None,
    min_ev: Annotated[
        float | None, typer.Option(help="Minimum expected value per dollar (overrides preset)")
    ] = None,
    min_confidence: Annotated[
        float | None, typer.Option(help="Minimum estimator confidence (overrides preset)")
    ] = None,
    kelly_multiplier: Annotated[
        float | None, typer.Option(help="Fractional Kelly multiplier (overrides preset)")
    ] = None,
    confirm_live: Annotated[  # noqa: FBT002
        bool, typer.Option("--confirm-live", help="Required flag to enable live trading")
    ] = False,
    verbose: Annotated[  # noqa: FBT002
        bool, typer.Option("--verbose", "-v", help="Enable step-by-step logging")
    ] = False,
) -> None:
    """Run the autonomous edge-trading agent.

    In simulation mode fills happen at the order-book midpoint against a
    fixed balance. In live mode real CLOB orders are signed and submitted;
    ``--confirm-live`` is required to prevent accidental execution.
    """
    overrides: dict[str, Any] = {
        "mode": mode,
        "scan_interval_seconds": interval,
        "max_spread": max_spread,
        "min_ev": min_ev,
        "min_confidence": min_confidence,
        "kelly_multiplier": kelly_multiplier,
    }
    try:
        config = load_preset(preset, overrides)
        session = RunSession(config, parse_decimal(capital, "--capital"))
    except InvalidConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if session.state.allocated_capital <= 0:
        typer.echo("Error: --capital must be greater than zero.", err=True)
        raise typer.Exit(code=1)

    if session.config.mode is ExecutionMode.LIVE and not confirm_live:
        typer.echo("Error: --confirm-live is required for live trading.", err=True)
        typer.echo("This flag prevents accidental live trading with real money.", err=True)
        raise typer.Exit(code=1)

    if verbose:
        configure_verbose_logging()

    _display_banner(session)
    state = asyncio.run(_run(session, max_iterations=max_iterations))
    _display_results(state)


def _build_balances(client: PolymarketClient, mode: ExecutionMode) -> BalanceSource:
    """Return the balance source for ``mode``.

    Live runs read the wallet on chain; simulated runs use the fixed
    ``simulation`` balances from settings.yaml.
    """
    if mode is ExecutionMode.LIVE:
        return WalletBalanceSource(
            client,
            exchange_setting("polygon_rpc_url", "https://polygon-rpc.com"),
            exchange_setting("usdc_address", USDC_E_ADDRESS),
        )
    simulation = get_config().get_section("simulation")
    return StaticBalanceSource(
        usdc=Decimal(str(simulation.get("usdc_balance", DEFAULT_SIM_USDC))),
        gas=Decimal(str(simulation.get("gas_balance", DEFAULT_SIM_GAS))),
    )


async def _run(session: RunSession, *, max_iterations: int | None) -> BotState:
    """Wire the collaborators and run the agent until it stops.

    Args:
        session: Validated run session.
        max_iterations: Iteration cap, or ``None`` for unlimited.

    Returns:
        Final state of the run.

    """
    mode = session.config.mode
    client = build_client(authenticated=mode is ExecutionMode.LIVE)
    reasoning = build_reasoning_client()
    balances = _build_balances(client, mode)

    async with client, reasoning:
        agent = TradingAgent(
            session,
            MarketGateway(client),
            build_estimator(reasoning),
            ExecutionGateway(
                session.config, balances, client if mode is ExecutionMode.LIVE else None
            ),
            balances,
            sink=EchoSink(),
        )
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, agent.stop, "interrupted")
        loop.add_signal_handler(signal.SIGTERM, agent.stop, "terminated")
        try:
            return await agent.run(max_iterations=max_iterations)
        finally:
            loop.remove_signal_handler(signal.SIGINT)
            loop.remove_signal_handler(signal.SIGTERM)


def _display_banner(session: RunSession) -> None:
    config = session.config
    typer.echo("")
    typer.echo("=" * 60)
    if config.mode is ExecutionMode.LIVE:
        typer.echo("  LIVE TRADING MODE -- real money at risk")
    else:
        typer.echo("  SIMULATION MODE -- no orders are sent")
    typer.echo("=" * 60)
    typer.echo("")
    typer.echo(f"Preset: {config.preset}")
    typer.echo(f"Allocated capital: ${session.state.allocated_capital:.2f}")
    typer.echo(f"Scan interval: {config.scan_interval_seconds}s")
    typer.echo(
        f"Gates: spread <= {config.max_spread:.2%} | EV >= {config.min_ev:.2%} "
        f"| confidence >= {config.min_confidence:.0%}"
    )
    typer.echo(
        f"Sizing: Kelly x{config.kelly_multiplier} | max {config.max_exposure_per_trade:.0%} "
        f"of balance | ${config.min_trade_size:.2f}-${config.max_trade_size:.2f}"
    )
    typer.echo("")


def _display_reasons(stats: RunState) -> None:
    total = sum(stats.blocked_reasons.values())
    if not total:
        return
    typer.echo("\nRejected candidates:")
    for reason, count in stats.blocked_reasons.most_common():
        typer.echo(f"  {reason.value:<16} {count:>5}  ({count / total:.0%})")


def _display_results(state: BotState) -> None:
    """Display the run summary.

    Args:
        state: Final state returned by the agent.

    """
    stats = state.stats
    typer.echo("\n--- Agent Results ---")
    typer.echo(f"Stopped: {state.stop_reason or 'n/a'} (step {state.step.value})")
    typer.echo(f"Scans: {stats.scans}")
    typer.echo(f"Valid signals: {stats.valid_signals}")
    typer.echo(f"Trades: {stats.total_trades} ({stats.simulated_trades} simulated)")
    typer.echo(
        f"Spent: ${stats.cumulative_spent:.2f} of ${stats.allocated_capital:.2f} "
        f"(remaining ${stats.remaining_budget:.2f})"
    )
    typer.echo(f"USDC balance: ${stats.initial_usdc_balance:.2f} -> ${stats.usdc_balance:.2f}")
    _display_reasons(stats)

    if state.trades:
        typer.echo("\nTrades:")
        for trade in state.trades:
            typer.echo(
                f"  {trade.trade_id[:16]:<16} {trade.market_id[:8]} {trade.side.value:<3} "
                f"${trade.size:>8.2f} @ {trade.entry_price:.3f}  EV {trade.edge:.2%}"
            )
