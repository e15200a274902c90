"""Scheduler for cooperative task execution.

The scheduler owns the ready queue.  :meth:`Scheduler.schedule` is the only
place that mutates it, and it never resumes a task inline: when tasks are
ready and no pump is pending, one pump thunk is handed to the host's enqueue
primitive.  Each pump step resumes exactly one task chosen by the policy, then
re-arms itself if more work is ready.

The default policy picks uniformly at random so that code relying on an
accidental task ordering fails loudly under test.  Swap in
:class:`FifoPolicy` or :class:`SeededPolicy` for repeatable runs.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from cotask.host import Host
    from cotask.task import Task

logger = logging.getLogger(__name__)


class SchedulingPolicy(Protocol):
    def choose(self, ready: Sequence[Task]) -> int:
        """Return the index of the task to resume next."""
        ...


class RandomPolicy:
    """Uniform random choice among ready tasks."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng if rng is not None else random.Random()

    def choose(self, ready: Sequence[Task]) -> int:
        return self.rng.randrange(len(ready))


class SeededPolicy(RandomPolicy):
    """Random choice that replays identically for the same seed."""

    def __init__(self, seed: int) -> None:
        super().__init__(random.Random(seed))
        self.seed = seed

    def __repr__(self) -> str:
        return f"SeededPolicy(seed={self.seed})"


class FifoPolicy:
    """Resume tasks in the order they became ready."""

    def choose(self, ready: Sequence[Task]) -> int:
        return 0


class Scheduler:
    """Single coordination point for all ready tasks."""

    def __init__(
        self,
        host: Host,
        policy: SchedulingPolicy | None = None,
        *,
        trace: bool = False,
    ) -> None:
        self.host = host
        self.policy: SchedulingPolicy = policy if policy is not None else RandomPolicy()
        self.trace: list[tuple[int, int]] | None = [] if trace else None
        self._ready: list[Task] = []
        self._idle = True
        self._counter = 0

    def next_tid(self) -> int:
        tid = self._counter
        self._counter = (self._counter + 1) & 0xFFFF
        return tid

    @property
    def ready(self) -> tuple[Task, ...]:
        return tuple(self._ready)

    @property
    def is_idle(self) -> bool:
        return self._idle

    def schedule(self, task: Task | None = None) -> None:
        if task is not None and not task.scheduled and task.is_ready:
            task.scheduled = True
            self._ready.append(task)
        if self._idle and self._ready:
            self._idle = False
            self.host.enqueue(self._pump)

    def _pump(self) -> None:
        index = self.policy.choose(self._ready)
        task = self._ready.pop(index)
        task.scheduled = False
        if self.trace is not None:
            self.trace.append((index, task.tid))
        logger.debug("resuming %r (%d of %d ready)", task, index, len(self._ready) + 1)
        try:
            task.run_step()
        finally:
            self._idle = True
            self.schedule()


__all__ = [
    "FifoPolicy",
    "RandomPolicy",
    "Scheduler",
    "SchedulingPolicy",
    "SeededPolicy",
]
