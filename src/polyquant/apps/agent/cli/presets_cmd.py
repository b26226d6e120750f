"""CLI command for listing the configured strategy presets."""

import typer

from polyquant.apps.agent.exceptions import InvalidConfigError
from polyquant.apps.agent.presets import available_presets, load_preset

_SHOWN_FIELDS = (
    "min_liquidity_multiplier",
    "max_spread",
    "binary_only",
    "min_ev",
    "min_confidence",
    "on_missing_signal",
    "kelly_multiplier",
    "min_trade_size",
    "max_trade_size",
    "max_exposure_per_trade",
    "scan_interval_seconds",
    "max_markets_per_scan",
)


def presets() -> None:
    """Print every preset defined in settings.yaml with its values."""
    names = available_presets()
    if not names:
        typer.echo("No presets configured.")
        return

    for name in names:
        try:
            config = load_preset(name)
        except InvalidConfigError as exc:
            typer.echo(f"\n[{name}] invalid: {exc}", err=True)
            continue
        problems = config.violations()
        status = "" if not problems else f"  (invalid: {'; '.join(problems)})"
        typer.echo(f"\n[{name}]{status}")
        for key in _SHOWN_FIELDS:
            value = getattr(config, key)
            shown = getattr(value, "value", value)
            typer.echo(f"  {key:<26} {shown}")
