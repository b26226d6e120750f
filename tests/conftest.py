"""Shared test configuration and fixtures."""

import os
from collections.abc import Iterator
from unittest.mock import patch

import pytest

from polyquant.core import config as config_module

_ISOLATED_ENV_VARS = (
    "POLYMARKET_PRIVATE_KEY",
    "POLYMARKET_API_KEY",
    "POLYMARKET_API_SECRET",
    "POLYMARKET_API_PASSPHRASE",
    "POLYMARKET_FUNDER_ADDRESS",
    "POLYMARKET_CLOB_HOST",
    "POLYGON_RPC_URL",
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
)


@pytest.fixture(autouse=True)
def _isolate_environment() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    """Hide wallet and API credentials from the developer's shell.

    The CLI builds clients from ``POLYMARKET_*`` and ``GEMINI_*`` variables
    and ``settings.yaml`` resolves several of them, so tests must never see
    real values. The global config singleton is reset around every test so
    each one loads settings against its own environment.
    """
    with patch.dict(os.environ, clear=False):
        for name in _ISOLATED_ENV_VARS:
            os.environ.pop(name, None)
        with patch.object(config_module, "_config", None):
            yield
