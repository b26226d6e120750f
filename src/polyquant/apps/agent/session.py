"""Run session: everything one agent run owns.

A ``RunSession`` holds the config snapshot, the mutable ``RunState``, the
trade list, the current ``BotStep``, the set of markets excluded for the
rest of the run, and the stop signal. Independent sessions never share
state, so several simulated runs can coexist in one process.
"""

import asyncio
from decimal import Decimal

from polyquant.apps.agent.models import BotConfig, BotStep, RunState, Trade


class RunSession:
    """State of one agent run.

    Args:
        config: Configuration to snapshot; validated on construction.
        allocated_capital: USDC the operator allocates to this run.

    Raises:
        InvalidConfigError: When ``config`` breaks a validation rule.

    """

    def __init__(self, config: BotConfig, allocated_capital: Decimal) -> None:
        """Validate and snapshot the config and start in ``IDLE``."""
        self.config = config.validate()
        self.state = RunState(allocated_capital=allocated_capital)
        self.trades: list[Trade] = []
        self.step = BotStep.IDLE
        self.stop_reason: str | None = None
        self.excluded: set[str] = set()
        self.is_running = False
        self._stop_event = asyncio.Event()

    @property
    def stop_requested(self) -> bool:
        """Return whether a stop has been requested."""
        return self._stop_event.is_set()

    def request_stop(self, reason: str) -> None:
        """Signal the run to stop and wake any pending wait.

        The first reason recorded wins.
        """
        if self.stop_reason is None:
            self.stop_reason = reason
        self._stop_event.set()

    async def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``, returning early when a stop is requested.

        Returns:
            ``True`` if the wait ended because of a stop request.

        """
        if seconds <= 0:
            return self.stop_requested
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except TimeoutError:
            return False
        return True
