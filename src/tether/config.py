"""Configuration: pydantic schema, frozen runtime config, ambient scope.

Resolution order is defaults < ``TETHER_*`` environment < explicit overrides.
The schema (``Settings``) validates; the result is a frozen ``Config`` that
tasks carry and hand on to the tasks derived from them.
"""

from __future__ import annotations

from contextlib import contextmanager
import contextvars
from dataclasses import dataclass, field
from functools import cache
import logging
import os
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from tether.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Generator, Mapping

    from tether.telemetry import TelemetryReporter

log = logging.getLogger(__name__)

ENV_PREFIX = "TETHER_"


class Settings(BaseModel):
    """Schema for configuration fields, defaults and validation rules."""

    thread_name_prefix: str = Field(default="tether-worker", min_length=1)
    # Non-daemon by default so pending computations finish before exit.
    daemon_workers: bool = Field(default=False)
    capture_creation_site: bool = Field(default=True)
    # 0 keeps the whole creating stack.
    creation_site_limit: int = Field(default=32, ge=0)
    telemetry_enabled: bool = Field(default=False)

    model_config = {"extra": "forbid"}

    @field_validator("thread_name_prefix", mode="before")
    @classmethod
    def normalize_prefix(cls, v: Any) -> Any:
        """Trim surrounding whitespace on the worker name prefix."""
        if isinstance(v, str):
            return v.strip()
        return v


@dataclass(frozen=True)
class Config:
    """Immutable configuration carried by every task.

    Example:
        config = resolve_config({"daemon_workers": True})
        task = Task.from_callable(compute, config=config)
    """

    thread_name_prefix: str = "tether-worker"
    daemon_workers: bool = False
    capture_creation_site: bool = True
    creation_site_limit: int = 32
    telemetry_enabled: bool = False
    #: Programmatic only; used when ``telemetry_enabled`` is set.
    reporters: tuple[TelemetryReporter, ...] = field(default=(), compare=False)


def _coerce_bool(v: str) -> bool:
    """Convert string to boolean using common conventions."""
    return v.strip().lower() in {"1", "true", "yes", "on"}


def load_env() -> dict[str, Any]:
    """Read ``TETHER_*`` variables, coerced to the schema's bool/int types.

    Names outside the schema are skipped; other tools may share the prefix.
    """
    config: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX) :].lower()
        info = Settings.model_fields.get(name)
        if info is None:
            log.debug("Ignoring unknown environment variable %s", key)
            continue
        target = info.annotation
        if target is bool:
            config[name] = _coerce_bool(value)
        elif target is int:
            try:
                config[name] = int(value)
            except ValueError:
                config[name] = value
        else:
            config[name] = value
    return config


_DOTENV_LOADED: bool = False


def _try_load_dotenv() -> None:
    """Load a project ``.env`` file once, on first resolution."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    from dotenv import load_dotenv

    load_dotenv()
    _DOTENV_LOADED = True


def resolve_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    reporters: tuple[TelemetryReporter, ...] = (),
) -> Config:
    """Resolve defaults, environment and *overrides* into a ``Config``.

    Raises:
        ConfigurationError: If any merged value fails schema validation.
    """
    _try_load_dotenv()
    merged = {**load_env(), **(overrides or {})}
    try:
        settings = Settings(**merged)
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
        raise ConfigurationError(
            f"Invalid configuration for {loc!r}: {first.get('msg')}",
            hint=f"Check the {ENV_PREFIX}{loc.upper()} environment variable "
            "or the override passed to resolve_config().",
        ) from e
    log.debug("Resolved tether config: %s", settings)
    return Config(**settings.model_dump(), reporters=tuple(reporters))


# --- Ambient scope ---

_AMBIENT: contextvars.ContextVar[Config | None] = contextvars.ContextVar(
    "tether_ambient_config", default=None
)


@cache
def _default_config() -> Config:
    return resolve_config()


def current_config() -> Config:
    """Return the ambient config if one is set, else the process default."""
    ambient = _AMBIENT.get()
    if ambient is not None:
        return ambient
    return _default_config()


@contextmanager
def config_scope(
    cfg_or_overrides: Mapping[str, Any] | Config | None = None,
    **overrides: Any,
) -> Generator[Config]:
    """Set an ambient config for tasks created inside the block.

    Tasks copy the caller's context, so the scope is also visible inside their
    computations.

    Example:
        with config_scope(daemon_workers=True):
            task = Task.from_callable(compute)
    """
    if isinstance(cfg_or_overrides, Config):
        cfg = cfg_or_overrides
    else:
        cfg = resolve_config({**(cfg_or_overrides or {}), **overrides})
    token = _AMBIENT.set(cfg)
    try:
        yield cfg
    finally:
        _AMBIENT.reset(token)
