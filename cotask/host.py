"""Hosts: the macrotask enqueue primitive the scheduler runs on.

A host schedules thunks to run later, outside the current call stack, and
provides timers.  Two hosts ship with the package:

- :class:`SimulationHost` runs everything on a virtual clock, under explicit
  control of the caller.  Time only moves when no macrotask is queued, jumping
  straight to the next timer, so tests involving long timeouts run instantly
  and deterministically.
- :class:`AsyncioHost` delegates to a running asyncio event loop.
"""

from __future__ import annotations

import asyncio
import heapq
import math
from collections import deque
from collections.abc import Callable
from typing import Protocol

from cotask.errors import CotaskError

Thunk = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Host(Protocol):
    def enqueue(self, thunk: Thunk) -> None: ...

    def call_later(self, delay: float, thunk: Thunk) -> TimerHandle: ...

    def time(self) -> float: ...


def _coerce_finite_float(value: float, *, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"{name} must be float, got {type(value).__name__}")
    coerced = float(value)
    if math.isnan(coerced) or math.isinf(coerced):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return coerced


class SimulationTimer:
    __slots__ = ("when", "thunk", "cancelled")

    def __init__(self, when: float, thunk: Thunk) -> None:
        self.when = when
        self.thunk = thunk
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self) -> str:
        state = " cancelled" if self.cancelled else ""
        return f"<SimulationTimer at {self.when}{state}>"


class SimulationHost:
    """Deterministic host on a virtual clock."""

    def __init__(self, start_time: float = 0.0, max_steps: int = 100_000) -> None:
        self._now = _coerce_finite_float(start_time, name="start_time")
        self.max_steps = max_steps
        self._macrotasks: deque[Thunk] = deque()
        self._timers: list[tuple[float, int, SimulationTimer]] = []
        self._sequence = 0

    def time(self) -> float:
        return self._now

    def enqueue(self, thunk: Thunk) -> None:
        self._macrotasks.append(thunk)

    def call_later(self, delay: float, thunk: Thunk) -> SimulationTimer:
        delay = max(0.0, _coerce_finite_float(delay, name="delay"))
        timer = SimulationTimer(self._now + delay, thunk)
        self._sequence += 1
        heapq.heappush(self._timers, (timer.when, self._sequence, timer))
        return timer

    @property
    def queued(self) -> int:
        """Macrotasks waiting to run, not counting timers."""
        return len(self._macrotasks)

    @property
    def timers(self) -> int:
        """Live (uncancelled) timers."""
        return sum(1 for _, _, timer in self._timers if not timer.cancelled)

    def next_timer(self) -> float | None:
        self._drop_cancelled()
        if not self._timers:
            return None
        return self._timers[0][0]

    def _drop_cancelled(self) -> None:
        while self._timers and self._timers[0][2].cancelled:
            heapq.heappop(self._timers)

    def run_once(self) -> bool:
        """Run one macrotask, or fire the next timer. Returns ``False`` when idle."""
        if self._macrotasks:
            self._macrotasks.popleft()()
            return True
        self._drop_cancelled()
        if not self._timers:
            return False
        when, _, timer = heapq.heappop(self._timers)
        if when > self._now:
            self._now = when
        timer.thunk()
        return True

    def run_until(self, predicate: Callable[[], bool], max_steps: int | None = None) -> bool:
        """Run until ``predicate()`` holds. Returns ``False`` if the host went idle first."""
        limit = self.max_steps if max_steps is None else max_steps
        for _ in range(limit):
            if predicate():
                return True
            if not self.run_once():
                return predicate()
        if predicate():
            return True
        raise CotaskError("Maximum steps exceeded")

    def run_until_idle(self, max_steps: int | None = None) -> None:
        self.run_until(lambda: False, max_steps)

    def advance(self, seconds: float) -> None:
        """Run everything due within the next ``seconds`` of virtual time."""
        target = self._now + max(0.0, _coerce_finite_float(seconds, name="seconds"))
        for _ in range(self.max_steps):
            if self._macrotasks:
                self._macrotasks.popleft()()
                continue
            upcoming = self.next_timer()
            if upcoming is None or upcoming > target:
                self._now = target
                return
            self.run_once()
        raise CotaskError("Maximum steps exceeded")


class AsyncioHost:
    """Host backed by an asyncio event loop.

    Without an explicit ``loop`` the running loop is looked up on first use,
    so the host must then be used from inside that loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def enqueue(self, thunk: Thunk) -> None:
        self.loop.call_soon(thunk)

    def call_later(self, delay: float, thunk: Thunk) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, thunk)

    def time(self) -> float:
        return self.loop.time()


__all__ = [
    "AsyncioHost",
    "Host",
    "SimulationHost",
    "SimulationTimer",
    "Thunk",
    "TimerHandle",
]
