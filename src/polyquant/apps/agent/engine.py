"""Decision loop of the edge-trading agent.

Each iteration scans the CLOB for tradable markets and walks the first
few candidates in order: order book, spread pre-filter, probability
estimate, EV and confidence gates, Kelly sizing capped by the remaining
budget, liquidity check, then execution. The first candidate that fills
ends the iteration, so at most one trade is placed per iteration.

Between iterations the loop waits ``scan_interval_seconds``; after a
faulted iteration it waits longer in ``COOLING``. Both waits end early on
``stop()``. The run ends when the budget is spent (``EXHAUSTED``), when
stopped, or on a settlement fault.
"""

import logging
from decimal import Decimal

from polyquant.apps.agent.estimator import EdgeEstimator
from polyquant.apps.agent.events import EVENT_LOG_LEVELS
from polyquant.apps.agent.exceptions import SettlementError
from polyquant.apps.agent.execution import ExecutionGateway
from polyquant.apps.agent.gateway import MarketGateway
from polyquant.apps.agent.liquidity import available_depth, has_sufficient_liquidity
from polyquant.apps.agent.models import (
    BotEvent,
    BotState,
    BotStep,
    EventLevel,
    ExecutionMode,
    MarketSnapshot,
    MissingSignalPolicy,
    SkipReason,
    Trade,
    now_ms,
)
from polyquant.apps.agent.protocols import BalanceSource, EventSink
from polyquant.apps.agent.session import RunSession
from polyquant.apps.agent.sizing import expected_value, position_size
from polyquant.clients.polymarket.exceptions import PolymarketAPIError
from polyquant.clients.polymarket.models import OrderBook
from polyquant.clients.reasoning.exceptions import ReasoningAPIError, ReasoningRateLimitError
from polyquant.core.models import HUNDRED, ZERO, Outcome

logger = logging.getLogger(__name__)

_WARNING_REASONS = frozenset(
    {
        SkipReason.NO_BOOK,
        SkipReason.NO_SIGNAL,
        SkipReason.ESTIMATOR_ERROR,
        SkipReason.REJECTED,
    }
)


def _pct(value: Decimal) -> str:
    return f"{value * HUNDRED:.2f}%"


class TradingAgent:
    """Autonomous scan, estimate, size and execute loop for one run.

    Args:
        session: Run session holding config, state and the stop signal.
        gateway: Market data gateway.
        estimator: Edge estimator.
        execution: Execution gateway.
        balances: Source of wallet balances.
        sink: Optional observer receiving one event per decision point.

    """

    def __init__(  # noqa: PLR0913
        self,
        session: RunSession,
        gateway: MarketGateway,
        estimator: EdgeEstimator,
        execution: ExecutionGateway,
        balances: BalanceSource,
        sink: EventSink | None = None,
    ) -> None:
        """Initialize the agent with its collaborators."""
        self._session = session
        self._gateway = gateway
        self._estimator = estimator
        self._execution = execution
        self._balances = balances
        self._sink = sink
        self._executing = False

    @property
    def session(self) -> RunSession:
        """Return the run session."""
        return self._session

    @property
    def _prefix(self) -> str:
        return self._session.config.mode.prefix

    async def run(self, *, max_iterations: int | None = None) -> BotState:
        """Run the decision loop until exhausted, stopped or a settlement fault.

        Args:
            max_iterations: Stop after this many iterations (``None`` for unlimited).

        Returns:
            Final state of the run.

        """
        session = self._session
        config = session.config
        state = session.state
        session.is_running = True
        iterations = 0
        try:
            self._emit(
                EventLevel.SUCCESS,
                f"{self._prefix} Agent deployed: {config.mode.value} | preset {config.preset} "
                f"| allocated ${state.allocated_capital:.2f}",
            )
            await self._refresh_balances()

            while not session.stop_requested:
                if state.remaining_budget <= config.budget_epsilon:
                    session.step = BotStep.EXHAUSTED
                    session.request_stop("budget exhausted")
                    self._emit(
                        EventLevel.SUCCESS,
                        f"{self._prefix} Budget exhausted: spent ${state.cumulative_spent:.2f} "
                        f"of ${state.allocated_capital:.2f}",
                    )
                    break
                if max_iterations is not None and iterations >= max_iterations:
                    session.request_stop("iteration limit reached")
                    break

                faulted = False
                try:
                    await self.run_iteration()
                except SettlementError as exc:
                    session.request_stop(f"settlement fault: {exc}")
                    self._emit(EventLevel.ERROR, f"{self._prefix} Settlement fault: {exc}")
                    break
                except Exception as exc:
                    logger.exception("Iteration %d failed", iterations + 1)
                    self._emit(EventLevel.ERROR, f"{self._prefix} Loop fault: {exc}")
                    faulted = True
                iterations += 1

                if max_iterations is not None and iterations >= max_iterations:
                    continue
                if faulted:
                    session.step = BotStep.COOLING
                    delay = float(config.scan_interval_seconds * config.fault_backoff_multiplier)
                    self._emit(
                        EventLevel.WARNING,
                        f"{self._prefix} Cooling down for {delay:.0f}s after fault",
                    )
                else:
                    delay = float(config.scan_interval_seconds)
                await session.wait(delay)
        finally:
            session.is_running = False
            if session.step is not BotStep.EXHAUSTED:
                session.step = BotStep.IDLE

        self._emit(
            EventLevel.INFO,
            f"{self._prefix} Agent halted: {session.stop_reason or 'stopped'} "
            f"({state.total_trades} trades, ${state.cumulative_spent:.2f} spent)",
        )
        return self.get_state()

    async def run_iteration(self) -> Trade | None:
        """Run one scan and place at most one trade.

        A call made while another iteration is in flight is ignored.

        Returns:
            The trade executed in this iteration, if any.

        Raises:
            SettlementError: When a live trade cannot be settled.
            ReasoningRateLimitError: When the estimator exhausted its retries.

        """
        if self._executing:
            logger.warning("Iteration already in progress; ignoring re-entrant call")
            return None
        self._executing = True
        try:
            return await self._iterate()
        finally:
            self._executing = False

    def stop(self, reason: str = "manual stop") -> None:
        """Request the loop to stop; pending waits end immediately."""
        self._session.request_stop(reason)
        logger.info("%s Stop requested: %s", self._prefix, reason)

    def get_state(self) -> BotState:
        """Return a snapshot of the run's counters, trades and step."""
        session = self._session
        return BotState(
            stats=session.state.copy(),
            trades=tuple(session.trades),
            is_running=session.is_running,
            step=session.step,
            stop_reason=session.stop_reason,
        )

    async def _iterate(self) -> Trade | None:
        session = self._session
        config = session.config
        if config.mode is ExecutionMode.LIVE:
            await self._refresh_balances()

        session.step = BotStep.SCANNING
        session.state.scans += 1
        self._emit(EventLevel.INFO, f"{self._prefix} Polling CLOB for tradable markets...")
        markets, stats = await self._gateway.list_tradable_markets(config)
        candidates = [m for m in markets if m.condition_id not in session.excluded]
        candidates = candidates[: config.max_markets_per_scan]
        self._emit(
            EventLevel.INFO,
            f"{self._prefix} Scan: {stats.total} listed, {stats.tradable} tradable, "
            f"{len(candidates)} candidates",
        )

        trade: Trade | None = None
        for index, market in enumerate(candidates):
            if session.stop_requested:
                break
            if index > 0 and await session.wait(float(config.candidate_delay_seconds)):
                break
            trade = await self._evaluate(market)
            if trade is not None:
                break

        session.step = BotStep.MONITORING
        return trade

    async def _evaluate(self, market: MarketSnapshot) -> Trade | None:  # noqa: C901, PLR0911
        session = self._session
        config = session.config
        state = session.state

        book = await self._gateway.get_orderbook(market.yes_token_id)
        if book is None:
            self._skip(market, SkipReason.NO_BOOK, "order book unavailable or one-sided")
            return None
        if book.spread > config.max_spread:
            self._skip(
                market,
                SkipReason.SPREAD,
                f"spread {_pct(book.spread)} > max {_pct(config.max_spread)}",
            )
            return None
        if session.stop_requested:
            return None

        session.step = BotStep.ANALYZING
        self._emit(
            EventLevel.INFO,
            f"{self._prefix} Analyzing {market.short_id}: {market.question[:60]}",
            market_id=market.condition_id,
        )
        try:
            signal = await self._estimator.estimate_signal(market)
        except ReasoningRateLimitError:
            raise
        except ReasoningAPIError as exc:
            self._skip(market, SkipReason.ESTIMATOR_ERROR, f"estimator failed: {exc}")
            return None
        if session.stop_requested:
            return None
        if signal is None:
            if config.on_missing_signal is MissingSignalPolicy.SKIP:
                session.excluded.add(market.condition_id)
            self._skip(
                market,
                SkipReason.NO_SIGNAL,
                f"no usable signal (policy {config.on_missing_signal.value})",
            )
            return None
        state.valid_signals += 1

        session.step = BotStep.RISK_CHECK
        price = book.midpoint
        ev = expected_value(price, signal.implied_probability)
        self._emit(
            EventLevel.SIGNAL,
            f"{self._prefix} Edge analysis {market.short_id}: prob "
            f"{_pct(signal.implied_probability)} | conf {_pct(signal.confidence)} "
            f"| mid {price:.3f} | EV {_pct(ev)}",
            market_id=market.condition_id,
        )
        if ev < config.min_ev:
            self._skip(market, SkipReason.EV, f"EV {_pct(ev)} < min {_pct(config.min_ev)}")
            return None
        if signal.confidence < config.min_confidence:
            self._skip(
                market,
                SkipReason.CONFIDENCE,
                f"confidence {_pct(signal.confidence)} < min {_pct(config.min_confidence)}",
            )
            return None

        size = position_size(price, signal.implied_probability, state.usdc_balance, config)
        if size <= ZERO:
            self._skip(
                market,
                SkipReason.SIZE,
                f"position size below min ${config.min_trade_size:.2f} "
                f"(balance ${state.usdc_balance:.2f})",
            )
            return None
        remaining = state.remaining_budget
        if size > remaining:
            size = remaining
            if size < config.min_trade_size:
                self._skip(
                    market,
                    SkipReason.BUDGET,
                    f"remaining budget ${remaining:.2f} < min ${config.min_trade_size:.2f}",
                )
                return None

        if not has_sufficient_liquidity(book, size, config):
            self._skip(market, SkipReason.LIQUIDITY, self._liquidity_detail(book, size))
            return None
        if session.stop_requested:
            return None

        session.step = BotStep.EXECUTING
        trade = await self._execution.execute(config.mode, market, book, size, Outcome.YES, ev)
        if trade is None:
            self._skip(market, SkipReason.REJECTED, "order was not filled")
            return None
        self._record(trade)
        return trade

    def _liquidity_detail(self, book: OrderBook, size: Decimal) -> str:
        config = self._session.config
        depth = available_depth(book, config.depth_levels)
        required = size * config.min_liquidity_multiplier
        return f"ask depth ${depth:.2f} < required ${required:.2f}"

    def _record(self, trade: Trade) -> None:
        session = self._session
        state = session.state
        session.trades.append(trade)
        state.cumulative_spent += trade.size
        state.usdc_balance -= trade.size
        state.total_trades += 1
        if trade.is_simulated:
            state.simulated_trades += 1
        self._emit(
            EventLevel.SUCCESS,
            f"{self._prefix} FILLED: {trade.market_id[:8]} | {trade.side.value} "
            f"| Size ${trade.size:.2f} @ {trade.entry_price:.3f} | EV {_pct(trade.edge)}",
            market_id=trade.market_id,
        )

    async def _refresh_balances(self) -> None:
        """Read balances into the run state, keeping the last known values on failure."""
        state = self._session.state
        try:
            balances = await self._balances.get_balances()
        except PolymarketAPIError as exc:
            logger.warning("Balance refresh failed, keeping last known balances", exc_info=True)
            self._emit(EventLevel.WARNING, f"{self._prefix} Balance refresh failed: {exc}")
            return
        state.usdc_balance = balances.usdc
        state.gas_balance = balances.gas
        if state.initial_usdc_balance == ZERO:
            state.initial_usdc_balance = balances.usdc

    def _skip(self, market: MarketSnapshot, reason: SkipReason, detail: str) -> None:
        self._session.state.blocked_reasons[reason] += 1
        level = EventLevel.WARNING if reason in _WARNING_REASONS else EventLevel.INFO
        self._emit(
            level,
            f"{self._prefix} Skip {market.short_id}: {detail}",
            reason=reason,
            market_id=market.condition_id,
        )

    def _emit(
        self,
        level: EventLevel,
        message: str,
        *,
        reason: SkipReason | None = None,
        market_id: str | None = None,
    ) -> None:
        logger.log(EVENT_LOG_LEVELS[level], "%s", message)
        if self._sink is None:
            return
        event = BotEvent(
            timestamp=now_ms(),
            level=level,
            message=message,
            reason=reason,
            market_id=market_id,
        )
        try:
            self._sink.on_event(event)
        except Exception:
            logger.warning("Event sink raised; event dropped", exc_info=True)
