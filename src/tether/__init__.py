"""tether: thread-backed tasks with blocking await and combinators.

Public API:
    - Task: handle over the eventual outcome of a computation
    - Success / Failure / Outcome: completed results
    - Config / resolve_config / config_scope: configuration
    - TetherError and subclasses: errors
"""

from __future__ import annotations

import logging

from tether.cell import ResultCell
from tether.config import Config, config_scope, current_config, resolve_config
from tether.context import CreationSite
from tether.errors import (
    ConfigurationError,
    ConstructionError,
    InternalError,
    TaskFailedError,
    TetherError,
    root_cause,
)
from tether.outcome import Failure, Outcome, Success, is_success
from tether.task import Task
from tether.telemetry import LoggingReporter, MemoryReporter, TelemetryReporter

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("tether-tasks")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("tether").addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Core
    "Task",
    "ResultCell",
    "Success",
    "Failure",
    "Outcome",
    "is_success",
    "CreationSite",
    # Configuration
    "Config",
    "resolve_config",
    "config_scope",
    "current_config",
    # Telemetry
    "TelemetryReporter",
    "LoggingReporter",
    "MemoryReporter",
    # Errors
    "TetherError",
    "ConstructionError",
    "ConfigurationError",
    "InternalError",
    "TaskFailedError",
    "root_cause",
]
