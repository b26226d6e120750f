"""Exceptions raised by the trading agent."""

from collections.abc import Sequence


class AgentError(Exception):
    """Base exception for trading agent errors."""


class InvalidConfigError(AgentError, ValueError):
    """A ``BotConfig`` broke one or more validation rules.

    Args:
        problems: One message per violated rule.

    """

    def __init__(self, problems: Sequence[str]) -> None:
        """Initialize with the list of violated rules."""
        self.problems = tuple(problems)
        super().__init__("Invalid bot config: " + "; ".join(self.problems))


class SettlementError(AgentError):
    """A live order cannot be settled. Fatal to the run."""


class InsufficientFundsError(SettlementError):
    """The wallet lacks USDC for the stake or POL for gas."""
