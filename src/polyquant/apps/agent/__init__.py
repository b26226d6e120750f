"""Autonomous edge-trading agent for Polymarket prediction markets.

Scan the CLOB for tradable markets, ask a search-grounded model for the
probability of each outcome, size positive-EV trades with fractional
Kelly, check order-book depth, and execute in simulation or live mode.
"""

from polyquant.apps.agent.balances import StaticBalanceSource, WalletBalanceSource
from polyquant.apps.agent.engine import TradingAgent
from polyquant.apps.agent.estimator import EdgeEstimator, parse_signal
from polyquant.apps.agent.events import EventRecorder
from polyquant.apps.agent.exceptions import (
    AgentError,
    InsufficientFundsError,
    InvalidConfigError,
    SettlementError,
)
from polyquant.apps.agent.execution import ExecutionGateway
from polyquant.apps.agent.gateway import MarketGateway
from polyquant.apps.agent.liquidity import available_depth, has_sufficient_liquidity
from polyquant.apps.agent.models import (
    BotConfig,
    BotEvent,
    BotState,
    BotStep,
    EventLevel,
    ExecutionMode,
    MarketSnapshot,
    MissingSignalPolicy,
    RunState,
    Signal,
    SkipReason,
    Trade,
)
from polyquant.apps.agent.presets import available_presets, load_preset
from polyquant.apps.agent.session import RunSession
from polyquant.apps.agent.sizing import expected_value, kelly_fraction, position_size

__all__ = [
    "AgentError",
    "BotConfig",
    "BotEvent",
    "BotState",
    "BotStep",
    "EdgeEstimator",
    "EventLevel",
    "EventRecorder",
    "ExecutionGateway",
    "ExecutionMode",
    "InsufficientFundsError",
    "InvalidConfigError",
    "MarketGateway",
    "MarketSnapshot",
    "MissingSignalPolicy",
    "RunSession",
    "RunState",
    "SettlementError",
    "Signal",
    "SkipReason",
    "StaticBalanceSource",
    "Trade",
    "TradingAgent",
    "WalletBalanceSource",
    "available_depth",
    "available_presets",
    "expected_value",
    "has_sufficient_liquidity",
    "kelly_fraction",
    "load_preset",
    "parse_signal",
    "position_size",
]
