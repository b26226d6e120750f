"""Tests for the agent CLI commands."""

from collections import Counter
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from polyquant.apps.agent.cli import app
from polyquant.apps.agent.models import (
    BotState,
    BotStep,
    MarketSnapshot,
    RunState,
    ScanStats,
    Signal,
    SkipReason,
)
from polyquant.clients.polymarket.exceptions import PolymarketAPIError
from polyquant.clients.polymarket.models import (
    Balance,
    Market,
    MarketToken,
    OrderBook,
    OrderLevel,
    WalletHoldings,
)

_CLI = "polyquant.apps.agent.cli"
_CONDITION_ID = "0xcond00000001"


@pytest.fixture
def runner() -> CliRunner:
    """Create a Typer CLI test runner."""
    return CliRunner()


def _make_async_context(**methods: Any) -> AsyncMock:
    """Create an AsyncMock usable with ``async with`` that returns itself."""
    mock = AsyncMock()
    for name, value in methods.items():
        setattr(mock, name, value)
    mock.__aenter__ = AsyncMock(return_value=mock)
    mock.__aexit__ = AsyncMock(return_value=None)
    return mock


def _make_market() -> Market:
    """Create a Market listing with YES and NO tokens."""
    return Market(
        condition_id=_CONDITION_ID,
        question="Will the bill pass this session?",
        description="Resolves YES if signed into law.",
        category="Politics",
        tokens=(
            MarketToken(token_id="yes-token", outcome="Yes", price=Decimal("0.50")),
            MarketToken(token_id="no-token", outcome="No", price=Decimal("0.50")),
        ),
        end_date="2026-12-31",
        active=True,
        closed=False,
        archived=False,
        accepting_orders=True,
        enable_order_book=True,
    )


def _make_order_book() -> OrderBook:
    """Create a tight, deep OrderBook around 0.50."""
    return OrderBook(
        token_id="yes-token",
        bids=(OrderLevel(price=Decimal("0.49"), size=Decimal(1000)),),
        asks=(OrderLevel(price=Decimal("0.51"), size=Decimal(1000)),),
        spread=Decimal("0.04"),
        midpoint=Decimal("0.50"),
    )


def _make_state() -> BotState:
    """Create the final state of a finished simulated run."""
    stats = RunState(
        allocated_capital=Decimal(100),
        cumulative_spent=Decimal(20),
        total_trades=1,
        usdc_balance=Decimal(980),
        initial_usdc_balance=Decimal(1000),
        scans=4,
        valid_signals=2,
        simulated_trades=1,
        blocked_reasons=Counter({SkipReason.SPREAD: 3, SkipReason.EV: 1}),
    )
    return BotState(
        stats=stats,
        trades=(),
        is_running=False,
        step=BotStep.IDLE,
        stop_reason="iteration limit reached",
    )


class TestPresetsCommand:
    """Tests for the presets command."""

    def test_lists_all_presets(self, runner: CliRunner) -> None:
        """Print every configured preset and its thresholds."""
        result = runner.invoke(app, ["presets"])

        assert result.exit_code == 0
        for name in ("conservative", "optimal", "aggressive"):
            assert f"[{name}]" in result.output
        assert "kelly_multiplier" in result.output
        assert "RETRY" in result.output


class TestRunCommand:
    """Tests for the run command."""

    def test_live_requires_confirmation(self, runner: CliRunner) -> None:
        """Refuse live mode without --confirm-live."""
        with patch(f"{_CLI}.run_cmd._run") as mock_run:
            result = runner.invoke(app, ["run", "--mode", "live"])

        assert result.exit_code == 1
        assert "--confirm-live" in result.output
        mock_run.assert_not_called()

    def test_unknown_preset(self, runner: CliRunner) -> None:
        """Reject a preset that is not configured."""
        result = runner.invoke(app, ["run", "--preset", "yolo"])

        assert result.exit_code == 1
        assert "unknown preset" in result.output

    def test_invalid_override(self, runner: CliRunner) -> None:
        """Reject overrides that break validation instead of clamping."""
        result = runner.invoke(app, ["run", "--kelly-multiplier", "2"])

        assert result.exit_code == 1
        assert "kelly_multiplier" in result.output

    def test_invalid_mode(self, runner: CliRunner) -> None:
        """Reject an unknown execution mode."""
        result = runner.invoke(app, ["run", "--mode", "paper"])

        assert result.exit_code == 1
        assert "mode" in result.output

    def test_non_positive_capital(self, runner: CliRunner) -> None:
        """Reject zero capital."""
        result = runner.invoke(app, ["run", "--capital", "0"])

        assert result.exit_code == 1
        assert "--capital" in result.output

    def test_simulation_prints_summary(self, runner: CliRunner) -> None:
        """Run in simulation and print the result summary."""
        with patch(f"{_CLI}.run_cmd._run", new=AsyncMock(return_value=_make_state())) as mock_run:
            result = runner.invoke(
                app, ["run", "--preset", "conservative", "--max-iterations", "4"]
            )

        assert result.exit_code == 0
        assert "SIMULATION MODE" in result.output
        assert "Preset: conservative" in result.output
        assert "--- Agent Results ---" in result.output
        assert "iteration limit reached" in result.output
        assert "spread" in result.output
        session = mock_run.await_args.args[0]
        assert session.config.preset == "conservative"
        assert mock_run.await_args.kwargs["max_iterations"] == 4

    def test_overrides_reach_session(self, runner: CliRunner) -> None:
        """Apply flag overrides on top of the preset."""
        with patch(f"{_CLI}.run_cmd._run", new=AsyncMock(return_value=_make_state())) as mock_run:
            result = runner.invoke(app, ["run", "--min-ev", "0.02", "--interval", "5"])

        assert result.exit_code == 0
        config = mock_run.await_args.args[0].config
        assert config.min_ev == Decimal("0.02")
        assert config.scan_interval_seconds == 5

    def test_missing_reasoning_key(self, runner: CliRunner) -> None:
        """Abort before scanning when no reasoning API key is set."""
        result = runner.invoke(app, ["run", "--max-iterations", "1"])

        assert result.exit_code == 1
        assert "GEMINI_API_KEY" in result.output


class TestMarketsCommand:
    """Tests for the markets command."""

    def test_displays_tradable_markets(self, runner: CliRunner) -> None:
        """Print listing stats and one row per tradable market."""
        snapshot = MarketSnapshot(
            condition_id=_CONDITION_ID,
            question="Will the bill pass this session?",
            description="",
            category="",
            yes_token_id="yes-token",
            no_token_id="no-token",
            price=Decimal("0.62"),
        )
        stats = ScanStats(total=3, discarded=2, tradable=1)
        with (
            patch(f"{_CLI}.markets_cmd.build_client", return_value=_make_async_context()),
            patch(f"{_CLI}.markets_cmd.MarketGateway") as mock_gateway,
        ):
            mock_gateway.return_value.list_tradable_markets = AsyncMock(
                return_value=([snapshot], stats)
            )
            result = runner.invoke(app, ["markets"])

        assert result.exit_code == 0
        assert "Listed 3 markets: 1 tradable, 2 discarded" in result.output
        assert "Will the bill pass" in result.output
        assert "0.62" in result.output

    def test_no_markets(self, runner: CliRunner) -> None:
        """Say so when nothing is tradable."""
        with (
            patch(f"{_CLI}.markets_cmd.build_client", return_value=_make_async_context()),
            patch(f"{_CLI}.markets_cmd.MarketGateway") as mock_gateway,
        ):
            mock_gateway.return_value.list_tradable_markets = AsyncMock(
                return_value=([], ScanStats())
            )
            result = runner.invoke(app, ["markets"])

        assert result.exit_code == 0
        assert "No tradable markets found." in result.output


class TestBookCommand:
    """Tests for the book command."""

    def test_displays_order_book(self, runner: CliRunner) -> None:
        """Print spread, midpoint and ask depth."""
        client = _make_async_context(get_order_book=AsyncMock(return_value=_make_order_book()))
        with patch(f"{_CLI}.book_cmd.build_client", return_value=client):
            result = runner.invoke(app, ["book", "yes-token"])

        assert result.exit_code == 0
        assert "Order Book: yes-token" in result.output
        assert "Spread: 4.00%" in result.output
        assert "Midpoint: 0.5000" in result.output
        assert "$510.00" in result.output

    def test_api_error(self, runner: CliRunner) -> None:
        """Exit with an error when the book cannot be fetched."""
        client = _make_async_context(
            get_order_book=AsyncMock(side_effect=PolymarketAPIError(msg="Failed", status_code=500))
        )
        with patch(f"{_CLI}.book_cmd.build_client", return_value=client):
            result = runner.invoke(app, ["book", "bad-token"])

        assert result.exit_code == 1


class TestAnalyzeCommand:
    """Tests for the analyze command."""

    def _invoke(self, runner: CliRunner, signal: Signal | None) -> Any:
        """Run analyze against mocked exchange and estimator."""
        client = _make_async_context(
            get_market=AsyncMock(return_value=_make_market()),
            get_order_book=AsyncMock(return_value=_make_order_book()),
        )
        estimator = MagicMock()
        estimator.estimate_signal = AsyncMock(return_value=signal)
        with (
            patch(f"{_CLI}.analyze_cmd.build_client", return_value=client),
            patch(f"{_CLI}.analyze_cmd.build_reasoning_client", return_value=_make_async_context()),
            patch(f"{_CLI}.analyze_cmd.build_estimator", return_value=estimator),
        ):
            return runner.invoke(app, ["analyze", _CONDITION_ID])

    def test_prints_edge_analysis(self, runner: CliRunner) -> None:
        """Print EV, sizing and liquidity for a priced market."""
        signal = Signal(
            market_id=_CONDITION_ID,
            implied_probability=Decimal("0.70"),
            confidence=Decimal("0.90"),
            reasoning="Whip count favours passage.",
        )
        result = self._invoke(runner, signal)

        assert result.exit_code == 0
        assert "Will the bill pass this session?" in result.output
        assert "Expected value:      20.00%" in result.output
        assert "Position size:       $50.00" in result.output
        assert "Liquidity:           OK" in result.output
        assert "Whip count favours passage." in result.output

    def test_no_signal(self, runner: CliRunner) -> None:
        """Report an answer without a usable probability."""
        result = self._invoke(runner, None)

        assert result.exit_code == 0
        assert "No usable probability" in result.output

    def test_unknown_preset(self, runner: CliRunner) -> None:
        """Reject an unknown preset before any network call."""
        result = runner.invoke(app, ["analyze", _CONDITION_ID, "--preset", "yolo"])

        assert result.exit_code == 1
        assert "unknown preset" in result.output


class TestBalanceCommand:
    """Tests for the balance command."""

    def test_displays_balances(self, runner: CliRunner) -> None:
        """Print CLOB collateral and on-chain holdings."""
        client = _make_async_context(
            sync_balance=AsyncMock(return_value=None),
            get_balance=AsyncMock(
                return_value=Balance(
                    asset_type="COLLATERAL", balance=Decimal("25.5"), allowance=Decimal(1000)
                )
            ),
            get_wallet_holdings=AsyncMock(
                return_value=WalletHoldings(address="0xwallet", usdc=Decimal(40), pol=Decimal(2))
            ),
        )
        with patch(f"{_CLI}.balance_cmd.build_client", return_value=client):
            result = runner.invoke(app, ["balance"])

        assert result.exit_code == 0
        assert "0xwallet" in result.output
        assert "25.50 USDC" in result.output
        assert "2.0000" in result.output
        client.sync_balance.assert_awaited_once()

    def test_requires_private_key(self, runner: CliRunner) -> None:
        """Abort without wallet credentials."""
        result = runner.invoke(app, ["balance"])

        assert result.exit_code == 1
        assert "POLYMARKET_PRIVATE_KEY" in result.output
