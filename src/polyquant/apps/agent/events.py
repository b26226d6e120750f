"""Event sinks for decision-loop events."""

import logging
from collections import Counter

from polyquant.apps.agent.models import BotEvent, EventLevel, SkipReason

EVENT_LOG_LEVELS: dict[EventLevel, int] = {
    EventLevel.INFO: logging.INFO,
    EventLevel.SUCCESS: logging.INFO,
    EventLevel.SIGNAL: logging.INFO,
    EventLevel.WARNING: logging.WARNING,
    EventLevel.ERROR: logging.ERROR,
}


class EventRecorder:
    """In-memory sink that keeps every event it receives.

    Args:
        limit: Keep at most this many recent events; ``None`` keeps all.

    """

    def __init__(self, limit: int | None = None) -> None:
        """Initialize an empty recorder."""
        self._limit = limit
        self.events: list[BotEvent] = []

    def on_event(self, event: BotEvent) -> None:
        """Record one event, dropping the oldest beyond ``limit``."""
        self.events.append(event)
        if self._limit is not None and len(self.events) > self._limit:
            del self.events[: len(self.events) - self._limit]

    def reason_counts(self) -> Counter[SkipReason]:
        """Count recorded skip events by reason."""
        return Counter(e.reason for e in self.events if e.reason is not None)

    def messages(self, level: EventLevel | None = None) -> list[str]:
        """Return recorded messages, optionally only those at ``level``."""
        return [e.message for e in self.events if level is None or e.level is level]
