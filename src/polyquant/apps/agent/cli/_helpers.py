"""Shared helpers for agent CLI commands.

Centralise logging setup, client construction from the environment and
``settings.yaml``, and the console event sink so every command builds its
collaborators the same way.
"""

import logging
import os
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation

import typer

from polyquant.apps.agent.estimator import EdgeEstimator
from polyquant.apps.agent.models import BotEvent, EventLevel
from polyquant.clients.polymarket.client import PolymarketClient
from polyquant.clients.reasoning.client import GeminiClient
from polyquant.core.config import get_config

_LEVEL_TAGS: dict[EventLevel, str] = {
    EventLevel.INFO: "INFO ",
    EventLevel.SUCCESS: "OK   ",
    EventLevel.WARNING: "WARN ",
    EventLevel.ERROR: "ERROR",
    EventLevel.SIGNAL: "EDGE ",
}


def configure_verbose_logging() -> None:
    """Enable INFO-level logging for step-by-step agent output."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_decimal(value: str, name: str) -> Decimal:
    """Parse a CLI string into a ``Decimal``, aborting with a clear message.

    Args:
        value: Raw option value.
        name: Option name used in the error message.

    Returns:
        The parsed decimal.

    """
    try:
        return Decimal(value)
    except (InvalidOperation, ValueError) as exc:
        typer.echo(f"Error: {name} must be a number, got {value!r}", err=True)
        raise typer.Exit(code=1) from exc


def build_client(*, authenticated: bool = False) -> PolymarketClient:
    """Build a PolymarketClient from ``settings.yaml`` and the environment.

    The CLOB host and timeout come from the ``exchange`` config section.
    Wallet credentials are read from ``POLYMARKET_*`` environment variables.

    Args:
        authenticated: Require ``POLYMARKET_PRIVATE_KEY`` and abort without it.

    Returns:
        A read-only client, or an authenticated one when a key is set.

    """
    exchange = get_config().get_section("exchange")
    host = str(exchange.get("clob_host") or PolymarketClient.CLOB_HOST)
    timeout = float(exchange.get("timeout") or 30)

    private_key = os.environ.get("POLYMARKET_PRIVATE_KEY") or None
    if authenticated and private_key is None:
        typer.echo("Error: POLYMARKET_PRIVATE_KEY environment variable is required.", err=True)
        raise typer.Exit(code=1)

    return PolymarketClient(
        host=host,
        private_key=private_key,
        api_key=os.environ.get("POLYMARKET_API_KEY") or None,
        api_secret=os.environ.get("POLYMARKET_API_SECRET") or None,
        api_passphrase=os.environ.get("POLYMARKET_API_PASSPHRASE") or None,
        funder_address=os.environ.get("POLYMARKET_FUNDER_ADDRESS") or None,
        timeout=timeout,
    )


def build_reasoning_client() -> GeminiClient:
    """Build the Gemini client from the ``reasoning`` config section.

    Aborts when no API key is configured.
    """
    section = get_config().get_section("reasoning")
    api_key = str(section.get("api_key") or "")
    if not api_key:
        typer.echo("Error: GEMINI_API_KEY environment variable is required.", err=True)
        raise typer.Exit(code=1)
    return GeminiClient(
        api_key=api_key,
        model=str(section.get("model") or GeminiClient.DEFAULT_MODEL),
        base_url=str(section.get("base_url") or GeminiClient.BASE_URL),
        timeout=float(section.get("timeout") or 60),
    )


def build_estimator(service: GeminiClient) -> EdgeEstimator:
    """Wrap ``service`` in an estimator using the configured retry policy."""
    section = get_config().get_section("reasoning")
    return EdgeEstimator(
        service,
        max_attempts=int(section.get("retry_max_attempts") or 3),
        initial_delay=float(section.get("retry_initial_delay") or 3.0),
    )


def exchange_setting(key: str, default: str) -> str:
    """Return one ``exchange`` config value as a string."""
    return str(get_config().get_section("exchange").get(key) or default)


class EchoSink:
    """Event sink that prints each event as one timestamped console line."""

    def on_event(self, event: BotEvent) -> None:
        """Print ``event``; errors go to stderr."""
        stamp = datetime.fromtimestamp(event.timestamp / 1000, tz=UTC).strftime("%H:%M:%S")
        line = f"{stamp} {_LEVEL_TAGS[event.level]} {event.message}"
        typer.echo(line, err=event.level is EventLevel.ERROR)
