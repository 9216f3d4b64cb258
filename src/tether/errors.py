"""Exception hierarchy for tether."""

from __future__ import annotations


class TetherError(Exception):
    """Base exception for all tether errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConstructionError(TetherError):
    """An outcome was built with an absent value or error."""


class ConfigurationError(TetherError):
    """Configuration validation or resolution failed."""


class InternalError(TetherError):
    """A tether internal error (bug) or invariant violation."""


class TaskFailedError(TetherError):
    """Raised by ``Task.await_()`` when the task's outcome is a failure.

    Every failure surfaces through this one type regardless of what the
    computation raised. The original exception is chained as ``__cause__``
    and kept on ``error``.
    """

    def __init__(self, error: BaseException, *, hint: str | None = None) -> None:
        super().__init__(f"Task failed: {type(error).__name__}: {error}", hint=hint)
        self.error = error


def root_cause(exc: BaseException) -> BaseException:
    """Return the innermost error behind nested ``TaskFailedError`` wrappers.

    Awaiting a task inside another task's computation wraps the inner failure;
    this unwraps those layers so callers can match on the original error.
    """
    while isinstance(exc, TaskFailedError):
        exc = exc.error
    return exc
