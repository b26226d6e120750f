"""Named configuration presets read from ``settings.yaml``.

A preset is a mapping of ``BotConfig`` field names under ``presets.<name>``.
Loading merges the preset over the defaults and then applies caller
overrides, such as CLI flags.
"""

from collections.abc import Mapping
from typing import Any, cast

from polyquant.apps.agent.exceptions import InvalidConfigError
from polyquant.apps.agent.models import BotConfig
from polyquant.core.config import ConfigLoader, get_config

DEFAULT_PRESET = "optimal"


def available_presets(loader: ConfigLoader | None = None) -> list[str]:
    """Return preset names defined in the configuration, sorted."""
    resolved = loader or get_config()
    return sorted(resolved.get_section("presets"))


def load_preset(
    name: str = DEFAULT_PRESET,
    overrides: Mapping[str, Any] | None = None,
    loader: ConfigLoader | None = None,
) -> BotConfig:
    """Build a ``BotConfig`` from a named preset.

    Args:
        name: Preset name (case-insensitive).
        overrides: Field values applied on top of the preset; ``None``
            values are ignored.
        loader: Config loader to read presets from. Defaults to the global one.

    Returns:
        The resulting config. It is not validated here.

    Raises:
        InvalidConfigError: For an unknown preset, unknown keys or bad values.

    """
    resolved = loader or get_config()
    presets = resolved.get_section("presets")
    key = name.strip().lower()
    if key not in presets:
        known = ", ".join(sorted(presets)) or "none"
        raise InvalidConfigError([f"unknown preset {name!r} (available: {known})"])
    values = dict(cast("Mapping[str, Any]", presets[key] or {}))
    values["preset"] = key
    config = BotConfig.from_mapping(values)
    if overrides:
        config = config.with_overrides(overrides)
    return config
