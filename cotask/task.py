"""Tasks: suspended computations driven through a fixed lifecycle.

State machine::

    NEWBORN --start()--> STARTED --pause()--> PAUSED --unpause()--> STARTED
    NEWBORN | STARTED | PAUSED --stop()--> CANCELLED
    STARTED   --computation returns or raises--> CLOSED
    CANCELLED --teardown step--> CLOSED

A task resumes one step at a time, only when the scheduler picks it.  A step
delivers the pending signal into the computation and either blocks the task
on the synchronizable it yields, or finishes the task.  The outcome of a task
is observable through :attr:`Task.future`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Generator
from contextvars import ContextVar
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from cotask.computation import Completed, Computation, StepOutcome
from cotask.errors import TaskStateError
from cotask.signal import Err, Ok, Signal
from cotask.sync import Synchronizable, coerce_sync

if TYPE_CHECKING:
    from cotask.scheduler import Scheduler

logger = logging.getLogger(__name__)

_MISSING: Any = object()

_current_task: ContextVar[Task | None] = ContextVar("cotask_current_task", default=None)


class TaskState(IntEnum):
    NEWBORN = 0    # not yet started
    STARTED = 1    # may or may not currently be executing
    PAUSED = 2
    CANCELLED = 3  # cancelled, teardown not yet run
    CLOSED = 4     # completely done


class TaskFuture(Synchronizable[Any]):
    """Completion value of a task.

    Settles with the task's return value, its uncaught failure, or the
    timestamp at which a stopped task finished tearing down.  Cancelling it
    stops the task.
    """

    def __init__(self, task: Task) -> None:
        super().__init__()
        self.task = task

    def on_cancel(self) -> None:
        if self.task.state < TaskState.CANCELLED:
            self.task.stop()

    def __repr__(self) -> str:
        return f"<TaskFuture {self.task.tid} {self.state.value}>"


class Task:
    """A managed suspended computation.

    Tasks are created by :meth:`cotask.runtime.Runtime.task` or
    :meth:`~cotask.runtime.Runtime.spawn`; the scheduler is the only caller of
    :meth:`run_step`.
    """

    def __init__(self, scheduler: Scheduler, computation: Computation, name: str | None = None) -> None:
        self.tid = scheduler.next_tid()
        self.name = name
        self.scheduler = scheduler
        self.scheduled = False
        self.running = False
        self.future = TaskFuture(self)
        self._computation: Computation | None = computation
        self._state = TaskState.NEWBORN
        self._pending: Signal | None = None
        self._blocked_on: Synchronizable[Any] | None = None
        self._uncaught: BaseException | None = None
        self._entered = False

    @staticmethod
    def current() -> Task | None:
        """The task whose step is executing right now, if any."""
        return _current_task.get()

    # ===== queries =====

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def pending(self) -> Signal | None:
        return self._pending

    @property
    def blocked_on(self) -> Synchronizable[Any] | None:
        return self._blocked_on

    @property
    def uncaught(self) -> BaseException | None:
        return self._uncaught

    @property
    def is_blocked(self) -> bool:
        return self._state < TaskState.CANCELLED and self._blocked_on is not None

    @property
    def is_ready(self) -> bool:
        if self._state is TaskState.CANCELLED:
            return True
        return self._state is TaskState.STARTED and self._blocked_on is None

    @property
    def is_done(self) -> bool:
        return self._state is TaskState.CLOSED

    def to_sync(self) -> TaskFuture:
        return self.future

    def __await__(self) -> Generator[Synchronizable[Any], Any, Any]:
        return (yield self.future)

    # ===== waiter =====

    def notify(self, sync: Synchronizable[Any], signal: Signal) -> None:
        if self._blocked_on is not sync:
            return
        sync.unblock(self)
        self._blocked_on = None
        self._set_pending(signal)
        self.scheduler.schedule(self)

    # ===== state transitions =====

    def start(self) -> Task:
        if self._state is not TaskState.NEWBORN:
            raise TaskStateError(f"{self!r} already started", self, self._state)
        self._state = TaskState.STARTED
        logger.debug("%r started", self)
        self.scheduler.schedule(self)
        return self

    def pause(self) -> None:
        if self._state is not TaskState.STARTED:
            raise TaskStateError(f"{self!r} is not started", self, self._state)
        self._state = TaskState.PAUSED
        logger.debug("%r paused", self)

    def unpause(self, value: Any = _MISSING) -> None:
        if self._state is not TaskState.PAUSED:
            raise TaskStateError(f"{self!r} is not paused", self, self._state)
        self._state = TaskState.STARTED
        if value is not _MISSING:
            self._set_pending(Ok(value))
        logger.debug("%r unpaused", self)
        self.scheduler.schedule(self)

    def stop(self) -> None:
        if self._state is TaskState.CLOSED:
            raise TaskStateError(f"{self!r} is closed", self, self._state)
        if self._state is TaskState.CANCELLED:
            return
        self._state = TaskState.CANCELLED
        logger.debug("%r cancelled", self)
        blocked, self._blocked_on = self._blocked_on, None
        if blocked is not None:
            blocked.unblock(self)
        self.scheduler.schedule(self)

    def _set_pending(self, signal: Signal) -> None:
        if self._state >= TaskState.CANCELLED:
            return
        # first failure wins over any later success
        if self._pending is None or not self._pending.failed:
            self._pending = signal

    # ===== resumption =====

    def run_step(self) -> None:
        """Run one resumption step, or the teardown step of a stopped task."""
        if self._state is TaskState.CANCELLED:
            self._teardown()
            return
        if self._state is not TaskState.STARTED or self._blocked_on is not None:
            return
        pending, self._pending = self._pending, None
        outcome = self._enter(pending)
        if isinstance(outcome, Completed):
            self._complete(outcome.signal)
            return
        if self._state is TaskState.CANCELLED:
            # stopped from inside its own step
            self.scheduler.schedule(self)
            return
        if outcome.value is None:
            self.scheduler.schedule(self)
            return
        try:
            sync = coerce_sync(outcome.value)
        except TypeError as exc:
            self._set_pending(Err(exc))
            self.scheduler.schedule(self)
            return
        self._blocked_on = sync
        sync.block(self)
        self.scheduler.schedule(self)

    def _enter(self, pending: Signal | None) -> StepOutcome:
        computation = self._computation
        assert computation is not None
        token = _current_task.set(self)
        self.running = True
        try:
            if not self._entered:
                self._entered = True
                return computation.start()
            if pending is None:
                return computation.resume_with_value(None)
            if pending.failed:
                return computation.resume_with_failure(pending.payload)
            return computation.resume_with_value(pending.payload)
        finally:
            self.running = False
            _current_task.reset(token)

    def _complete(self, signal: Signal) -> None:
        if signal.failed:
            self._uncaught = signal.payload
            if self.future.waiter_count:
                logger.debug("%r failed with %r", self, signal.payload)
            else:
                logger.warning("%r failed with unobserved error %r", self, signal.payload, exc_info=signal.payload)
        else:
            logger.debug("%r returned %r", self, signal.payload)
        self.future.fulfill_signal(signal)
        self._shutdown()

    def _teardown(self) -> None:
        computation = self._computation
        if computation is not None:
            token = _current_task.set(self)
            self.running = True
            try:
                outcome = computation.force_close()
            finally:
                self.running = False
                _current_task.reset(token)
            if isinstance(outcome, Completed) and outcome.signal.failed:
                self._uncaught = outcome.signal.payload
                logger.warning("%r raised during teardown: %r", self, self._uncaught)
        self._state = TaskState.CLOSED
        logger.debug("%r closed after cancellation", self)
        self.future.succeed(time.time())
        self._shutdown()

    def _shutdown(self) -> None:
        self.running = False
        self._state = TaskState.CLOSED
        self._computation = None
        self._blocked_on = None

    def __repr__(self) -> str:
        label = f" {self.name}" if self.name else ""
        return f"<Task {self.tid}{label} {self._state.name.lower()}>"


__all__ = [
    "Task",
    "TaskFuture",
    "TaskState",
]
