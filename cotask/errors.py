"""Error types raised by the cotask runtime."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cotask.task import Task, TaskState


class CotaskError(Exception):
    """Base class for runtime errors."""


class TaskStateError(CotaskError, RuntimeError):
    """Raised when a task transition is attempted from an illegal state.

    Attributes:
        task: The task the transition was attempted on.
        state: The state the task was in at the time.
    """

    def __init__(self, message: str, task: Task | None = None, state: TaskState | None = None) -> None:
        self.task = task
        self.state = state
        super().__init__(message)


class DeferredStateError(CotaskError, RuntimeError):
    """Raised when a Deferred that already settled is resolved or rejected again."""

    def __init__(self, deferred: Any, state: Any) -> None:
        self.deferred = deferred
        self.state = state
        super().__init__(f"Deferred already settled ({state.name.lower()})")


class SyncTimeoutError(CotaskError, TimeoutError):
    """Failure delivered by ``Synchronizable.timeout`` when the timer wins."""


class ConfigError(CotaskError, ValueError):
    """Raised for invalid runtime configuration."""


__all__ = [
    "ConfigError",
    "CotaskError",
    "DeferredStateError",
    "SyncTimeoutError",
    "TaskStateError",
]
