"""Creation-site capture for tasks.

A task's computation runs on a worker thread, so a traceback raised there only
shows the worker's frames. The creating call site is captured when the task is
built and attached to any exception its computation raises, so diagnostics show
both where the failure happened and where the task came from.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
import threading
import traceback
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import FrameType

# Frames from this package are construction machinery, not the caller's code.
_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__)) + os.sep


def _is_internal(filename: str) -> bool:
    return os.path.abspath(filename).startswith(_PACKAGE_DIR)


@dataclass(frozen=True, slots=True)
class CreationSite:
    """The stack and thread that constructed a task."""

    frames: traceback.StackSummary
    thread_name: str

    def format(self) -> str:
        """Render as a traceback-style block."""
        header = f"Task created in thread {self.thread_name!r} at:\n"
        return header + "".join(self.frames.format()).rstrip("\n")


def capture_creation_site(limit: int = 0) -> CreationSite:
    """Capture the caller's stack, skipping the innermost frames from this package.

    Walks outward from the caller and stops once *limit* frames are kept.
    Source lines are not read until the site is formatted.

    Args:
        limit: Keep at most this many frames nearest the call site. ``0``
            keeps the whole stack.
    """
    kept: list[tuple[FrameType, int]] = []
    for frame, lineno in traceback.walk_stack(None):
        if not kept and _is_internal(frame.f_code.co_filename):
            continue
        kept.append((frame, lineno))
        if limit > 0 and len(kept) >= limit:
            break
    kept.reverse()
    return CreationSite(
        frames=traceback.StackSummary.extract(kept, lookup_lines=False),
        thread_name=threading.current_thread().name,
    )


def attach_creation_site(
    exc: BaseException, site: CreationSite | None
) -> BaseException:
    """Splice *site* onto *exc* as a note and return *exc*.

    Does nothing when *site* is None.
    """
    if site is not None:
        exc.add_note(site.format())
    return exc
