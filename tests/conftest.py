"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration and shared task
helpers. Fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os
import threading

import pytest

from tether import config as config_module
from tether.config import Config

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests."""
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )
    monkeypatch.setattr(config_module, "_DOTENV_LOADED", False)


@pytest.fixture(autouse=True)
def isolate_tether_env(monkeypatch):
    """Clear TETHER_* variables and the cached default config for each test."""
    for key in list(os.environ.keys()):
        if key.startswith("TETHER_"):
            monkeypatch.delenv(key, raising=False)
    config_module._default_config.cache_clear()
    yield
    config_module._default_config.cache_clear()


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def debug_tether_logging():
    """Route tether DEBUG records to pytest's log capture."""
    logging.getLogger("tether").setLevel(logging.DEBUG)


# =============================================================================
# Helpers
# =============================================================================


@pytest.fixture
def daemon_config() -> Config:
    """Config whose workers cannot keep the test process alive."""
    return Config(daemon_workers=True)


@pytest.fixture
def gate():
    """An Event that tests set to release a blocked computation.

    Set on teardown so no worker is left blocked.
    """
    event = threading.Event()
    yield event
    event.set()
