"""Task: a handle over the eventual outcome of a computation.

Every computation-backed task runs on its own dedicated worker thread and
publishes exactly one ``Outcome`` into its ``ResultCell``. Combinators build new
tasks whose computations block on the source task first, so a chain of N
combinators runs on N workers.

Example:
    total = (
        Task.from_callable(load_numbers)
        .map(sum)
        .or_(lambda exc: 0)
        .await_()
    )
"""

from __future__ import annotations

import contextvars
import itertools
import logging
import threading
import time
from typing import TYPE_CHECKING

from tether.cell import ResultCell
from tether.config import current_config
from tether.context import attach_creation_site, capture_creation_site
from tether.errors import ConstructionError, TaskFailedError
from tether.outcome import Failure, Success
from tether.telemetry import TelemetryContext

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from tether.config import Config
    from tether.context import CreationSite
    from tether.outcome import Outcome

log = logging.getLogger(__name__)

_worker_ids = itertools.count(1)


class Task[T]:
    """Eventual outcome of a computation, with blocking wait and combinators.

    ``Task(computation)`` is the same as ``Task.from_callable(computation)``.
    """

    __slots__ = ("_cell", "_config", "_creation_site", "_worker")

    def __init__(
        self, computation: Callable[[], T], *, config: Config | None = None
    ) -> None:
        if not callable(computation):
            raise TypeError(
                f"Task computation must be callable, got {type(computation).__name__}"
            )
        self._bind(config)
        self._start(lambda: Success(computation()))

    # --- Construction ---

    @classmethod
    def from_outcome(cls, outcome: Outcome[T], *, config: Config | None = None) -> Task[T]:
        """Build a task that is already complete with *outcome*. No worker is started."""
        if not isinstance(outcome, (Success, Failure)):
            raise ConstructionError(
                f"Expected Success or Failure, got {type(outcome).__name__}",
                hint="Use Task.resolved(value) or Task.failed(error).",
            )
        task = cls.__new__(cls)
        task._bind(config)
        task._cell.set(outcome)
        return task

    @classmethod
    def resolved(cls, value: T, *, config: Config | None = None) -> Task[T]:
        """Build a task already completed with *value*.

        Raises:
            ConstructionError: If *value* is None.
        """
        return cls.from_outcome(Success(value), config=config)

    @classmethod
    def failed(cls, error: BaseException, *, config: Config | None = None) -> Task[T]:
        """Build a task already failed with *error*.

        Raises:
            ConstructionError: If *error* is None or not an exception.
        """
        return cls.from_outcome(Failure(error), config=config)

    @classmethod
    def from_callable(
        cls, computation: Callable[[], T], *, config: Config | None = None
    ) -> Task[T]:
        """Start *computation* on a dedicated worker and return its task."""
        return cls(computation, config=config)

    @classmethod
    def _spawn[V](
        cls, produce: Callable[[], Outcome[V]], config: Config | None
    ) -> Task[V]:
        task: Task[V] = cls.__new__(cls)
        task._bind(config)
        task._start(produce)
        return task

    def _bind(self, config: Config | None) -> None:
        self._config = config if config is not None else current_config()
        self._cell: ResultCell[T] = ResultCell()
        self._creation_site: CreationSite | None = None
        self._worker: threading.Thread | None = None

    def _start(self, produce: Callable[[], Outcome[T]]) -> None:
        cfg = self._config
        if cfg.capture_creation_site:
            self._creation_site = capture_creation_site(cfg.creation_site_limit)
        context = contextvars.copy_context()
        self._worker = threading.Thread(
            target=self._run,
            args=(context, produce),
            name=f"{cfg.thread_name_prefix}-{next(_worker_ids)}",
            daemon=cfg.daemon_workers,
        )
        self._worker.start()
        log.debug("Started worker %s", self._worker.name)

    def _run(
        self, context: contextvars.Context, produce: Callable[[], Outcome[T]]
    ) -> None:
        thread_name = threading.current_thread().name
        started = time.perf_counter()
        try:
            outcome = context.run(produce)
        except BaseException as exc:  # noqa: BLE001
            outcome = Failure(attach_creation_site(exc, self._creation_site))
            log.debug(
                "Worker %s captured %s: %s", thread_name, type(exc).__name__, exc
            )
        try:
            telemetry = TelemetryContext(self._config)
            kind = "success" if isinstance(outcome, Success) else "failure"
            telemetry.timing(
                "task.run",
                time.perf_counter() - started,
                outcome=kind,
                thread=thread_name,
            )
            if kind == "failure":
                telemetry.count("task.failure", thread=thread_name)
        finally:
            self._cell.set(outcome)
            log.debug("Worker %s finished", thread_name)

    # --- Observation ---

    @property
    def done(self) -> bool:
        """Whether the outcome has been written."""
        return self._cell.done

    @property
    def creation_site(self) -> CreationSite | None:
        """Where this task was built, when capture is enabled and it has a worker."""
        return self._creation_site

    def peek(self) -> Outcome[T] | None:
        """Return the outcome if available, without blocking."""
        return self._cell.peek()

    def wait(self) -> Outcome[T]:
        """Block until the outcome is available and return it without raising."""
        return self._cell.wait()

    def await_(self) -> T:
        """Block until the task completes and return its value.

        Raises:
            TaskFailedError: If the task failed. The original exception is the
                ``__cause__``.
        """
        outcome = self._cell.wait()
        if isinstance(outcome, Failure):
            raise TaskFailedError(outcome.error) from outcome.error
        return outcome.value

    # --- Combinators ---

    def and_[V](self, f: Callable[[T], Task[V]]) -> Task[V]:
        """Chain a task-returning step onto this task's value.

        If this task fails, *f* is never called and the new task fails with the
        same error. Otherwise the new task completes with the outcome of the
        task returned by *f*.
        """

        def produce() -> Outcome[V]:
            outcome = self._cell.wait()
            if isinstance(outcome, Failure):
                return outcome
            inner = f(outcome.value)
            if not isinstance(inner, Task):
                raise TypeError(
                    f"and_() callback must return a Task, got {type(inner).__name__}"
                )
            return inner._cell.wait()

        return Task._spawn(produce, self._config)

    def map[V](self, f: Callable[[T], V]) -> Task[V]:
        """Transform this task's value with *f* on a new worker.

        Failures skip *f* and pass through unchanged.
        """

        def produce() -> Outcome[V]:
            outcome = self._cell.wait()
            if isinstance(outcome, Failure):
                return outcome
            return Success(f(outcome.value))

        return Task._spawn(produce, self._config)

    def or_(self, f: Callable[[BaseException], T]) -> Task[T]:
        """Recover from a failure with *f*.

        On success the value passes through and *f* is never called. On failure
        ``f(error)`` supplies the value; if *f* raises, the new task fails with
        that exception.
        """

        def produce() -> Outcome[T]:
            outcome = self._cell.wait()
            if isinstance(outcome, Success):
                return outcome
            return Success(f(outcome.error))

        return Task._spawn(produce, self._config)

    # --- Aggregation ---

    @classmethod
    def all(
        cls, tasks: Iterable[Task[T]], *, config: Config | None = None
    ) -> Task[list[T]]:
        """Join *tasks* into one task whose value lists theirs in input order.

        Inputs are awaited in order; the first failure met that way fails the
        aggregate. Remaining inputs keep running to completion.
        """
        pending = tuple(tasks)
        for item in pending:
            if not isinstance(item, Task):
                raise TypeError(
                    f"Task.all() expects Task instances, got {type(item).__name__}"
                )

        def produce() -> Outcome[list[T]]:
            values: list[T] = []
            for task in pending:
                outcome = task._cell.wait()
                if isinstance(outcome, Failure):
                    return outcome
                values.append(outcome.value)
            return Success(values)

        return cls._spawn(produce, config)

    def __repr__(self) -> str:
        outcome = self._cell.peek()
        if outcome is None:
            state = "pending"
        elif isinstance(outcome, Success):
            state = f"success value={outcome.value!r}"
        else:
            state = f"failure error={outcome.error!r}"
        return f"<Task {state}>"
