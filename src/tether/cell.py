"""Single-assignment result slot shared between one writer and many waiters."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from tether.errors import InternalError

if TYPE_CHECKING:
    from tether.outcome import Outcome


class ResultCell[T]:
    """Thread-safe slot holding a task's eventual outcome.

    The slot starts empty and is written at most once. Publishing happens under
    the condition's lock, so any reader that sees a non-empty slot sees the
    complete outcome.
    """

    __slots__ = ("_condition", "_outcome")

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._outcome: Outcome[T] | None = None

    def set(self, outcome: Outcome[T]) -> None:
        """Store *outcome* and wake every waiter.

        Raises:
            InternalError: If the cell was already written. The first outcome
                is kept.
        """
        with self._condition:
            if self._outcome is not None:
                raise InternalError(
                    "ResultCell was already set",
                    hint="Each task outcome is written exactly once.",
                )
            self._outcome = outcome
            self._condition.notify_all()

    def peek(self) -> Outcome[T] | None:
        """Return the outcome if present, without blocking."""
        with self._condition:
            return self._outcome

    @property
    def done(self) -> bool:
        return self.peek() is not None

    def wait(self) -> Outcome[T]:
        """Block until an outcome exists and return it.

        Wake-ups without an outcome (spurious notifies, or signal handlers
        that return normally) go back to waiting. An exception raised by a
        signal handler on the waiting thread, such as ``KeyboardInterrupt``
        from the default SIGINT handler, is not absorbed: it propagates out of
        this call and the outcome stays available to later waits.
        """
        with self._condition:
            while self._outcome is None:
                self._condition.wait()
            return self._outcome
