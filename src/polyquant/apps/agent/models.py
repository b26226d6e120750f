"""Data models for the edge-trading agent.

Define the immutable value objects that flow through one decision-loop
iteration (market snapshots, signals, trades, events), the frozen
``BotConfig`` that a run snapshots at start, and the mutable ``RunState``
aggregate that only the decision loop updates.
"""

import time
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar

from polyquant.apps.agent.exceptions import InvalidConfigError
from polyquant.core.models import ONE, ZERO, Outcome

_DEFAULT_MIN_LIQUIDITY_MULTIPLIER = Decimal("1.5")
_DEFAULT_MAX_SPREAD = Decimal("0.05")
_DEFAULT_MIN_EV = Decimal("0.01")
_DEFAULT_MIN_CONFIDENCE = Decimal("0.70")
_DEFAULT_KELLY_MULTIPLIER = Decimal("0.2")
_DEFAULT_MIN_TRADE_SIZE = Decimal("1.0")
_DEFAULT_MAX_TRADE_SIZE = Decimal("50.0")
_DEFAULT_MAX_EXPOSURE = Decimal("0.05")
_DEFAULT_SCAN_INTERVAL = 30
_DEFAULT_MAX_MARKETS_PER_SCAN = 3
_DEFAULT_DEPTH_LEVELS = 5
_DEFAULT_CANDIDATE_DELAY = Decimal("1.5")
_DEFAULT_BUDGET_EPSILON = Decimal("0.5")
_DEFAULT_FAULT_BACKOFF = Decimal(2)
_DEFAULT_MIN_GAS_BALANCE = Decimal("0.1")
_DEFAULT_ORDER_TTL = 3600


class ExecutionMode(Enum):
    """Whether fills are simulated at the midpoint or sent to the exchange."""

    SIMULATION = "SIMULATION"
    LIVE = "LIVE"

    @property
    def prefix(self) -> str:
        """Return the log prefix for this mode, ``[SIM]`` or ``[LIVE]``."""
        return "[SIM]" if self is ExecutionMode.SIMULATION else "[LIVE]"


class MissingSignalPolicy(Enum):
    """What to do with a market the estimator could not price.

    ``SKIP`` excludes the market for the rest of the run. ``RETRY`` leaves
    it eligible on the next scan.
    """

    SKIP = "SKIP"
    RETRY = "RETRY"


class BotStep(Enum):
    """Decision-loop state."""

    IDLE = "IDLE"
    SCANNING = "SCANNING"
    ANALYZING = "ANALYZING"
    RISK_CHECK = "RISK_CHECK"
    EXECUTING = "EXECUTING"
    MONITORING = "MONITORING"
    COOLING = "COOLING"
    EXHAUSTED = "EXHAUSTED"


class SkipReason(Enum):
    """Why a candidate market did not produce a trade."""

    NO_BOOK = "no_book"
    SPREAD = "spread"
    NO_SIGNAL = "no_signal"
    ESTIMATOR_ERROR = "estimator_error"
    EV = "ev"
    CONFIDENCE = "confidence"
    SIZE = "size"
    BUDGET = "budget"
    LIQUIDITY = "liquidity"
    REJECTED = "rejected"


class EventLevel(Enum):
    """Severity of a ``BotEvent``."""

    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"
    SIGNAL = "SIGNAL"


class TradeStatus(Enum):
    """Lifecycle status of a recorded trade."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


def _to_decimal(name: str, value: Any) -> Decimal:
    """Convert a YAML or CLI value to ``Decimal``, naming the field on failure."""
    if isinstance(value, bool):
        msg = f"{name} must be a number, got {value!r}"
        raise InvalidConfigError([msg])
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        msg = f"{name} must be a number, got {value!r}"
        raise InvalidConfigError([msg]) from exc


def _to_int(name: str, value: Any) -> int:
    """Convert a YAML or CLI value to ``int``, rejecting fractional input."""
    number = _to_decimal(name, value)
    if number != number.to_integral_value():
        msg = f"{name} must be a whole number, got {value!r}"
        raise InvalidConfigError([msg])
    return int(number)


def _to_bool(name: str, value: Any) -> bool:
    """Convert a YAML or CLI value to ``bool``."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"true", "yes", "1", "on"}:
        return True
    if text in {"false", "no", "0", "off"}:
        return False
    msg = f"{name} must be a boolean, got {value!r}"
    raise InvalidConfigError([msg])


E = TypeVar("E", bound=Enum)


def _to_enum(name: str, value: Any, enum_type: type[E]) -> E:
    """Convert a YAML or CLI value to a member of ``enum_type`` by value."""
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).strip().upper())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_type)
        msg = f"{name} must be one of {allowed}, got {value!r}"
        raise InvalidConfigError([msg]) from exc


@dataclass(frozen=True)
class BotConfig:
    """Tunable policy for one agent run.

    All thresholds are ``Decimal``. The config is snapshotted into the
    ``RunSession`` when a run starts and is never re-read mid-run.

    Args:
        mode: Simulated or live execution.
        preset: Name of the preset the values came from.
        min_liquidity_multiplier: Required ask depth as a multiple of trade size.
        max_spread: Maximum fractional spread of a tradable book.
        binary_only: Only trade markets with an explicit "yes" outcome.
        min_ev: Minimum expected value per dollar staked.
        min_confidence: Minimum estimator confidence.
        on_missing_signal: Policy for markets the estimator could not price.
        kelly_multiplier: Fractional-Kelly safety multiplier.
        min_trade_size: Smallest trade in USDC; smaller sizes are skipped.
        max_trade_size: Largest trade in USDC.
        max_exposure_per_trade: Maximum fraction of balance per trade.
        scan_interval_seconds: Pause between iterations.
        max_markets_per_scan: Candidates evaluated per iteration.
        depth_levels: Ask levels summed by the liquidity check.
        market_pages: Listing pages read per scan.
        candidate_delay_seconds: Pause between candidates.
        budget_epsilon: Remaining budget at or below which the run is exhausted.
        fault_backoff_multiplier: Interval multiplier after an iteration fault.
        min_gas_balance: Minimum POL needed to settle a live order.
        order_ttl_seconds: Live order lifetime; ``0`` places GTC orders.

    """

    mode: ExecutionMode = ExecutionMode.SIMULATION
    preset: str = "optimal"
    min_liquidity_multiplier: Decimal = _DEFAULT_MIN_LIQUIDITY_MULTIPLIER
    max_spread: Decimal = _DEFAULT_MAX_SPREAD
    binary_only: bool = False
    min_ev: Decimal = _DEFAULT_MIN_EV
    min_confidence: Decimal = _DEFAULT_MIN_CONFIDENCE
    on_missing_signal: MissingSignalPolicy = MissingSignalPolicy.SKIP
    kelly_multiplier: Decimal = _DEFAULT_KELLY_MULTIPLIER
    min_trade_size: Decimal = _DEFAULT_MIN_TRADE_SIZE
    max_trade_size: Decimal = _DEFAULT_MAX_TRADE_SIZE
    max_exposure_per_trade: Decimal = _DEFAULT_MAX_EXPOSURE
    scan_interval_seconds: int = _DEFAULT_SCAN_INTERVAL
    max_markets_per_scan: int = _DEFAULT_MAX_MARKETS_PER_SCAN
    depth_levels: int = _DEFAULT_DEPTH_LEVELS
    market_pages: int = 1
    candidate_delay_seconds: Decimal = _DEFAULT_CANDIDATE_DELAY
    budget_epsilon: Decimal = _DEFAULT_BUDGET_EPSILON
    fault_backoff_multiplier: Decimal = _DEFAULT_FAULT_BACKOFF
    min_gas_balance: Decimal = _DEFAULT_MIN_GAS_BALANCE
    order_ttl_seconds: int = _DEFAULT_ORDER_TTL

    def violations(self) -> list[str]:  # noqa: C901, PLR0912
        """Return a message for every rule this config breaks."""
        problems: list[str] = []
        if self.min_trade_size <= ZERO:
            problems.append(f"min_trade_size must be > 0, got {self.min_trade_size}")
        if self.min_trade_size > self.max_trade_size:
            problems.append(
                f"min_trade_size {self.min_trade_size} exceeds max_trade_size {self.max_trade_size}"
            )
        if not (ZERO < self.kelly_multiplier <= ONE):
            problems.append(f"kelly_multiplier must be in (0, 1], got {self.kelly_multiplier}")
        if not (ZERO < self.max_exposure_per_trade <= ONE):
            problems.append(
                f"max_exposure_per_trade must be in (0, 1], got {self.max_exposure_per_trade}"
            )
        if self.min_liquidity_multiplier < ONE:
            problems.append(
                f"min_liquidity_multiplier must be >= 1, got {self.min_liquidity_multiplier}"
            )
        if self.max_spread <= ZERO:
            problems.append(f"max_spread must be > 0, got {self.max_spread}")
        if not (ZERO <= self.min_confidence <= ONE):
            problems.append(f"min_confidence must be in [0, 1], got {self.min_confidence}")
        if not (-ONE < self.min_ev < ONE):
            problems.append(f"min_ev must be in (-1, 1), got {self.min_ev}")
        if self.scan_interval_seconds <= 0:
            problems.append(f"scan_interval_seconds must be > 0, got {self.scan_interval_seconds}")
        if self.max_markets_per_scan < 1:
            problems.append(f"max_markets_per_scan must be >= 1, got {self.max_markets_per_scan}")
        if self.depth_levels < 1:
            problems.append(f"depth_levels must be >= 1, got {self.depth_levels}")
        if self.market_pages < 1:
            problems.append(f"market_pages must be >= 1, got {self.market_pages}")
        if self.candidate_delay_seconds < ZERO:
            problems.append(
                f"candidate_delay_seconds must be >= 0, got {self.candidate_delay_seconds}"
            )
        if self.budget_epsilon < ZERO:
            problems.append(f"budget_epsilon must be >= 0, got {self.budget_epsilon}")
        if self.fault_backoff_multiplier < ONE:
            problems.append(
                f"fault_backoff_multiplier must be >= 1, got {self.fault_backoff_multiplier}"
            )
        if self.min_gas_balance < ZERO:
            problems.append(f"min_gas_balance must be >= 0, got {self.min_gas_balance}")
        if self.order_ttl_seconds < 0:
            problems.append(f"order_ttl_seconds must be >= 0, got {self.order_ttl_seconds}")
        return problems

    def validate(self) -> "BotConfig":
        """Reject an invalid config instead of clamping it.

        Returns:
            This config, unchanged, so calls can be chained.

        Raises:
            InvalidConfigError: Listing every violated rule.

        """
        problems = self.violations()
        if problems:
            raise InvalidConfigError(problems)
        return self

    def with_overrides(self, overrides: Mapping[str, Any]) -> "BotConfig":
        """Return a copy with ``overrides`` applied, converting value types.

        Keys whose value is ``None`` are ignored so optional CLI flags can be
        passed straight through.

        Raises:
            InvalidConfigError: For unknown keys or unconvertible values.

        """
        converted = _convert_fields({k: v for k, v in overrides.items() if v is not None})
        return replace(self, **converted)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "BotConfig":
        """Build a config from a YAML section or CLI dictionary.

        Missing keys keep their defaults. The result is not validated; call
        ``validate()`` or start a run to check it.

        Args:
            values: Field names mapped to raw values.

        Returns:
            A new ``BotConfig``.

        Raises:
            InvalidConfigError: For unknown keys or unconvertible values.

        """
        return cls(**_convert_fields(values))


_DECIMAL_FIELDS = frozenset(
    {
        "min_liquidity_multiplier",
        "max_spread",
        "min_ev",
        "min_confidence",
        "kelly_multiplier",
        "min_trade_size",
        "max_trade_size",
        "max_exposure_per_trade",
        "candidate_delay_seconds",
        "budget_epsilon",
        "fault_backoff_multiplier",
        "min_gas_balance",
    }
)
_INT_FIELDS = frozenset(
    {
        "scan_interval_seconds",
        "max_markets_per_scan",
        "depth_levels",
        "market_pages",
        "order_ttl_seconds",
    }
)


def _convert_fields(values: Mapping[str, Any]) -> dict[str, Any]:
    """Convert raw values to the field types of ``BotConfig``."""
    known = {f.name for f in fields(BotConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise InvalidConfigError([f"unknown config key: {key}" for key in unknown])

    converted: dict[str, Any] = {}
    for name, value in values.items():
        if name in _DECIMAL_FIELDS:
            converted[name] = _to_decimal(name, value)
        elif name in _INT_FIELDS:
            converted[name] = _to_int(name, value)
        elif name == "binary_only":
            converted[name] = _to_bool(name, value)
        elif name == "mode":
            converted[name] = _to_enum(name, value, ExecutionMode)
        elif name == "on_missing_signal":
            converted[name] = _to_enum(name, value, MissingSignalPolicy)
        else:
            converted[name] = str(value)
    return converted


@dataclass(frozen=True)
class MarketSnapshot:
    """A tradable market as seen by one scan.

    Built fresh by the gateway on every scan and never persisted.

    Args:
        condition_id: Unique identifier for the market condition.
        question: The prediction question.
        description: Resolution criteria text.
        category: Exchange category tag.
        yes_token_id: Token of the positive outcome.
        no_token_id: Token of the negative outcome.
        price: Listed price of the positive token, 0..1.
        outcomes: Outcome labels in exchange order.
        accepting_orders: Exchange ``accepting_orders`` flag.
        order_book_enabled: Exchange ``enable_order_book`` flag.

    Raises:
        ValueError: If ``price`` is outside [0, 1].

    """

    condition_id: str
    question: str
    description: str
    category: str
    yes_token_id: str
    no_token_id: str
    price: Decimal
    outcomes: tuple[str, ...] = ()
    accepting_orders: bool = True
    order_book_enabled: bool = True

    def __post_init__(self) -> None:
        """Validate that the listed price is a probability."""
        if not (ZERO <= self.price <= ONE):
            msg = f"price must be between 0 and 1, got {self.price}"
            raise ValueError(msg)

    @property
    def short_id(self) -> str:
        """Return the first eight characters of the condition id, for log lines."""
        return self.condition_id[:8]


@dataclass(frozen=True)
class ScanStats:
    """Counts reported by one market listing.

    Args:
        total: Markets returned by the exchange.
        discarded: Markets filtered out as untradable.
        tradable: Markets that passed the filter.

    """

    total: int = 0
    discarded: int = 0
    tradable: int = 0


@dataclass(frozen=True)
class Source:
    """Web page cited by the estimator."""

    title: str
    uri: str


@dataclass(frozen=True)
class Signal:
    """Probability estimate for the positive outcome of one market.

    Args:
        market_id: Condition id the estimate is for.
        implied_probability: Estimated probability of the positive outcome.
        confidence: Estimator's confidence in the estimate.
        reasoning: Short explanation from the estimator.
        sources: Grounding sources the estimator cited.

    Raises:
        ValueError: If probability or confidence is outside [0, 1].

    """

    market_id: str
    implied_probability: Decimal
    confidence: Decimal
    reasoning: str = ""
    sources: tuple[Source, ...] = ()

    def __post_init__(self) -> None:
        """Validate both values are probabilities."""
        if not (ZERO <= self.implied_probability <= ONE):
            msg = f"implied_probability must be between 0 and 1, got {self.implied_probability}"
            raise ValueError(msg)
        if not (ZERO <= self.confidence <= ONE):
            msg = f"confidence must be between 0 and 1, got {self.confidence}"
            raise ValueError(msg)


@dataclass(frozen=True)
class Trade:
    """A filled (simulated) or accepted (live) order.

    Args:
        trade_id: ``sim-<ms>`` for simulated fills, the CLOB order id for live.
        market_id: Condition id of the market.
        market_question: Question text, for reports.
        entry_price: Fill price (simulated) or limit price (live).
        size: Stake in USDC.
        side: Outcome bought.
        status: Lifecycle status.
        pnl: Realized profit and loss, zero at creation.
        edge: Expected value at entry.
        timestamp: Unix epoch milliseconds of execution.
        is_simulated: Whether the trade was simulated.

    """

    trade_id: str
    market_id: str
    market_question: str
    entry_price: Decimal
    size: Decimal
    side: Outcome
    status: TradeStatus
    pnl: Decimal
    edge: Decimal
    timestamp: int
    is_simulated: bool


@dataclass(frozen=True)
class WalletBalances:
    """Collateral and gas balances reported by a ``BalanceSource``.

    Args:
        usdc: USDC available for trading.
        gas: POL available for gas.

    """

    usdc: Decimal
    gas: Decimal


@dataclass(frozen=True)
class BotEvent:
    """One decision-point record published to the event sink.

    Args:
        timestamp: Unix epoch milliseconds.
        level: Event severity.
        message: Human-readable message, prefixed with the mode.
        reason: Skip reason, for candidate rejections.
        market_id: Condition id the event concerns, if any.

    """

    timestamp: int
    level: EventLevel
    message: str
    reason: SkipReason | None = None
    market_id: str | None = None


def now_ms() -> int:
    """Return the current Unix time in milliseconds."""
    return int(time.time() * 1000)


def _empty_reasons() -> Counter[SkipReason]:
    """Create an empty reject-reason counter."""
    return Counter()


@dataclass
class RunState:
    """Mutable capital, balance and diagnostic counters of a run.

    Only the decision loop mutates this object.

    Args:
        allocated_capital: USDC the operator allocated to this run.
        cumulative_spent: USDC spent on trades so far.
        total_trades: Trades executed so far.
        usdc_balance: Current USDC balance.
        gas_balance: Current POL balance.
        initial_usdc_balance: USDC balance at the first balance read.
        scans: Iterations that reached the scanning step.
        valid_signals: Estimator calls that produced a signal.
        simulated_trades: Simulated fills.
        blocked_reasons: Rejected candidates counted by reason.

    """

    allocated_capital: Decimal = ZERO
    cumulative_spent: Decimal = ZERO
    total_trades: int = 0
    usdc_balance: Decimal = ZERO
    gas_balance: Decimal = ZERO
    initial_usdc_balance: Decimal = ZERO
    scans: int = 0
    valid_signals: int = 0
    simulated_trades: int = 0
    blocked_reasons: Counter[SkipReason] = field(default_factory=_empty_reasons)

    @property
    def remaining_budget(self) -> Decimal:
        """Return allocated capital not yet spent."""
        return self.allocated_capital - self.cumulative_spent

    def copy(self) -> "RunState":
        """Return an independent copy, safe to hand to observers."""
        return replace(self, blocked_reasons=Counter(self.blocked_reasons))


@dataclass(frozen=True)
class BotState:
    """Snapshot of a run returned by ``TradingAgent.get_state()``.

    Args:
        stats: Copy of the run's counters and balances.
        trades: Trades executed so far, oldest first.
        is_running: Whether the loop is still scheduling iterations.
        step: Current decision-loop state.
        stop_reason: Why the run stopped, if it has.

    """

    stats: RunState
    trades: tuple[Trade, ...]
    is_running: bool
    step: BotStep
    stop_reason: str | None
