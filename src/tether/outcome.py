"""Outcome sum type for completed computations.

An outcome is either ``Success(value)`` or ``Failure(error)``. Both arms reject
absent payloads at construction, so a task can never complete "empty".
"""

from __future__ import annotations

import dataclasses
from typing import TypeGuard

from tether.errors import ConstructionError


@dataclasses.dataclass(frozen=True, slots=True)
class Success[T]:
    """A computation that returned a value."""

    value: T

    def __post_init__(self) -> None:
        """Reject absent values."""
        if self.value is None:
            raise ConstructionError(
                "Success value cannot be None",
                hint="Return a concrete value from the computation.",
            )


@dataclasses.dataclass(frozen=True, slots=True)
class Failure:
    """A computation that raised, containing the error."""

    error: BaseException

    def __post_init__(self) -> None:
        """Reject absent or non-exception errors."""
        if self.error is None:
            raise ConstructionError("Failure error cannot be None")
        if not isinstance(self.error, BaseException):
            raise ConstructionError(
                f"Failure error must be an exception, got {type(self.error).__name__}",
                hint="Pass an exception instance, e.g. ValueError('...').",
            )


type Outcome[T] = Success[T] | Failure


def is_success[T](outcome: Outcome[T]) -> TypeGuard[Success[T]]:
    """Return True when *outcome* is a ``Success``."""
    return isinstance(outcome, Success)
