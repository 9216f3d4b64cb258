"""Telemetry context and reporter interfaces.

Disabled by default: tasks then share a stateless no-op context. When a
``Config`` has ``telemetry_enabled`` set, workers report per-computation
timings and failure counts to the configured reporters.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
import logging
import threading
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from tether.config import Config

log = logging.getLogger(__name__)


@runtime_checkable
class TelemetryReporter(Protocol):
    """Duck-typed protocol for telemetry reporters."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _NoOpTelemetryContext:
    """Immutable, stateless context used when telemetry is off."""

    @property
    def is_enabled(self) -> bool:
        return False

    def timing(self, scope: str, duration: float, **metadata: Any) -> None:
        pass

    def count(self, scope: str, increment: int = 1, **metadata: Any) -> None:
        pass


class _EnabledTelemetryContext:
    """Fans records out to reporters; a failing reporter never breaks a task."""

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    @property
    def is_enabled(self) -> bool:
        return True

    def timing(self, scope: str, duration: float, **metadata: Any) -> None:
        """Record a duration in seconds."""
        for reporter in self.reporters:
            try:
                reporter.record_timing(scope, duration, **metadata)
            except Exception as e:
                log.error(
                    "Telemetry reporter '%s' failed: %s",
                    type(reporter).__name__,
                    e,
                    exc_info=True,
                )

    def count(self, scope: str, increment: int = 1, **metadata: Any) -> None:
        """Record a counter metric."""
        for reporter in self.reporters:
            try:
                reporter.record_metric(
                    scope, increment, metric_type="counter", **metadata
                )
            except Exception as e:
                log.error(
                    "Telemetry reporter '%s' failed: %s",
                    type(reporter).__name__,
                    e,
                    exc_info=True,
                )


_NO_OP_SINGLETON = _NoOpTelemetryContext()

type TelemetryContextProtocol = _EnabledTelemetryContext | _NoOpTelemetryContext


def TelemetryContext(config: Config) -> TelemetryContextProtocol:  # noqa: N802
    """Return the telemetry context for *config*.

    Enabled configs without reporters fall back to a ``LoggingReporter``.
    """
    if not config.telemetry_enabled:
        return _NO_OP_SINGLETON
    return _EnabledTelemetryContext(*(config.reporters or (LoggingReporter(),)))


class LoggingReporter:
    """Writes every record to the ``tether.telemetry`` logger at DEBUG."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        log.debug("%s took %.6fs %s", scope, duration, metadata)

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        log.debug("%s = %r %s", scope, value, metadata)


class MemoryReporter:
    """Collects records in memory, bounded per scope.

    Workers report from their own threads, so appends are locked.
    """

    def __init__(self, max_entries_per_scope: int = 1000):
        self.max_entries = max_entries_per_scope
        self.timings: dict[str, deque[tuple[float, dict[str, Any]]]] = {}
        self.metrics: dict[str, deque[tuple[Any, dict[str, Any]]]] = {}
        self._lock = threading.Lock()

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        with self._lock:
            if scope not in self.timings:
                self.timings[scope] = deque(maxlen=self.max_entries)
            self.timings[scope].append((duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        with self._lock:
            if scope not in self.metrics:
                self.metrics[scope] = deque(maxlen=self.max_entries)
            self.metrics[scope].append((value, metadata))

    def reset(self) -> None:
        """Clear all collected telemetry (testing convenience)."""
        with self._lock:
            self.timings.clear()
            self.metrics.clear()

    def as_dict(self) -> dict[str, Any]:
        """Return a snapshot of collected data."""
        with self._lock:
            return {
                "timings": {k: list(v) for k, v in self.timings.items()},
                "metrics": {k: list(v) for k, v in self.metrics.items()},
            }
