"""Unit tests for configuration resolution and ambient scope."""

from __future__ import annotations

import pytest

from tether import Task
from tether import config as config_module
from tether.config import (
    Config,
    Settings,
    config_scope,
    current_config,
    load_env,
    resolve_config,
)
from tether.errors import ConfigurationError
from tether.telemetry import MemoryReporter

pytestmark = pytest.mark.unit


def test_defaults_match_schema() -> None:
    cfg = resolve_config()
    defaults = Settings()

    assert cfg == Config()
    assert cfg.thread_name_prefix == defaults.thread_name_prefix == "tether-worker"
    assert cfg.daemon_workers is False
    assert cfg.capture_creation_site is True
    assert cfg.creation_site_limit == 32
    assert cfg.telemetry_enabled is False
    assert cfg.reporters == ()


def test_env_values_are_coerced(monkeypatch) -> None:
    monkeypatch.setenv("TETHER_DAEMON_WORKERS", "yes")
    monkeypatch.setenv("TETHER_CREATION_SITE_LIMIT", "5")
    monkeypatch.setenv("TETHER_THREAD_NAME_PREFIX", "  env-worker ")

    assert load_env() == {
        "daemon_workers": True,
        "creation_site_limit": 5,
        "thread_name_prefix": "  env-worker ",
    }
    cfg = resolve_config()
    assert cfg.daemon_workers is True
    assert cfg.creation_site_limit == 5
    assert cfg.thread_name_prefix == "env-worker"


def test_overrides_beat_env(monkeypatch) -> None:
    monkeypatch.setenv("TETHER_CAPTURE_CREATION_SITE", "0")

    assert resolve_config().capture_creation_site is False
    assert resolve_config({"capture_creation_site": True}).capture_creation_site


@pytest.mark.parametrize(
    "overrides",
    [
        {"creation_site_limit": -1},
        {"thread_name_prefix": "   "},
        {"daemon_workers": "sometimes"},
        {"unknown_field": 1},
    ],
)
def test_invalid_values_raise_configuration_error(overrides) -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        resolve_config(overrides)
    assert exc_info.value.hint is not None
    assert "TETHER_" in exc_info.value.hint


def test_bad_env_value_names_variable(monkeypatch) -> None:
    monkeypatch.setenv("TETHER_CREATION_SITE_LIMIT", "many")

    with pytest.raises(ConfigurationError, match="creation_site_limit") as exc_info:
        resolve_config()
    assert "TETHER_CREATION_SITE_LIMIT" in (exc_info.value.hint or "")


def test_reporters_are_programmatic() -> None:
    reporter = MemoryReporter()
    cfg = resolve_config({"telemetry_enabled": True}, reporters=(reporter,))

    assert cfg.reporters == (reporter,)
    assert cfg.telemetry_enabled is True


def test_config_is_frozen() -> None:
    cfg = resolve_config()
    with pytest.raises(AttributeError):
        cfg.daemon_workers = True  # type: ignore[misc]


def test_current_config_default_is_cached() -> None:
    assert current_config() is current_config()


def test_config_scope_sets_and_restores() -> None:
    outside = current_config()

    with config_scope(daemon_workers=True) as scoped:
        assert current_config() is scoped
        assert scoped.daemon_workers is True

    assert current_config() is outside


def test_config_scope_accepts_config_instance() -> None:
    cfg = Config(thread_name_prefix="given")
    with config_scope(cfg) as scoped:
        assert scoped is cfg
        assert current_config() is cfg


def test_config_scope_resets_on_error() -> None:
    outside = current_config()
    with pytest.raises(RuntimeError), config_scope({"daemon_workers": True}):
        raise RuntimeError("inside")
    assert current_config() is outside


def test_unrelated_env_names_are_ignored(monkeypatch) -> None:
    monkeypatch.setenv("TETHER_UNRELATED", "1")
    monkeypatch.setenv("TETHER_DEBUG", "1")

    assert "unrelated" not in load_env()
    assert resolve_config() == Config()
    assert Task.resolved(5).await_() == 5
    assert Task.from_callable(lambda: "still works").await_() == "still works"


def test_dotenv_is_loaded_once_on_first_resolution(monkeypatch) -> None:
    calls: list[int] = []
    monkeypatch.setattr("dotenv.load_dotenv", lambda *_a, **_k: calls.append(1))

    resolve_config()
    resolve_config()

    assert calls == [1]
    assert config_module._DOTENV_LOADED is True


def test_dotenv_values_reach_resolution(monkeypatch) -> None:
    def fake_load_dotenv(*_args, **_kwargs) -> bool:
        monkeypatch.setenv("TETHER_THREAD_NAME_PREFIX", "from-dotenv")
        return True

    monkeypatch.setattr("dotenv.load_dotenv", fake_load_dotenv)

    assert resolve_config().thread_name_prefix == "from-dotenv"
