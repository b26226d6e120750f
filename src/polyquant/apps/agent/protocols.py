"""Protocols that plug external collaborators into the trading agent.

``BalanceSource`` hides where wallet balances come from (a fixed
simulation purse or an on-chain read). ``EventSink`` receives one
``BotEvent`` per decision point. ``ReasoningService`` is the narrow
surface the estimator needs from a search-grounded model client.
"""

from typing import Protocol, runtime_checkable

from polyquant.apps.agent.models import BotEvent, WalletBalances
from polyquant.clients.reasoning.models import GroundedResponse


@runtime_checkable
class BalanceSource(Protocol):
    """Async provider of the trading wallet's USDC and gas balances."""

    async def get_balances(self) -> WalletBalances:
        """Return the current balances."""
        ...


@runtime_checkable
class EventSink(Protocol):
    """Observer of decision-loop events."""

    def on_event(self, event: BotEvent) -> None:
        """Handle one event. Must not raise."""
        ...


@runtime_checkable
class ReasoningService(Protocol):
    """Search-grounded text generation used by the edge estimator."""

    async def generate_grounded(self, prompt: str) -> GroundedResponse:
        """Answer ``prompt`` with grounding sources attached."""
        ...
