"""Synchronizable values and the combinators built from them.

A :class:`Synchronizable` represents a result that becomes available at most
once.  Waiters (tasks and combinators) register with :meth:`~Synchronizable.block`
and receive ``notify(sync, signal)`` when it settles.

Combinators are themselves synchronizable:

- :class:`Join` settles with the list of all results, or the first failure.
- :class:`Choice` settles with whichever child settles first.
- :class:`Guard` transforms the result of a single child.

Children may also be tasks or promises; they are converted with
:func:`coerce_sync`.

When the last waiter of a pending synchronizable unblocks, it cancels itself.
This is what lets a stopped task unwind the whole tree of combinators it was
waiting on without explicit teardown at every level.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Generator, Iterable
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar

from cotask.errors import SyncTimeoutError
from cotask.identity_map import IdentityMap
from cotask.signal import Err, Ok, Signal, signal_of

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class SyncState(Enum):
    PENDING = "pending"
    SETTLED = "settled"
    ABORTED = "aborted"


class Waiter(Protocol):
    def notify(self, sync: Synchronizable[Any], signal: Signal) -> None: ...


class Clock(Protocol):
    def sleep(self, seconds: float) -> Synchronizable[Any]: ...


class Synchronizable(Generic[T]):
    """A value that settles at most once and notifies its waiters.

    Subclasses hook into the lifecycle by overriding :meth:`on_cancel` (release
    whatever backs the value) and :meth:`on_ready` (react to settlement before
    waiters are notified).  Neither hook may raise.
    """

    def __init__(self) -> None:
        self._state = SyncState.PENDING
        self._signal: Signal | None = None
        self._waiters: IdentityMap[Waiter, bool] = IdentityMap()

    # ===== queries =====

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def signal(self) -> Signal | None:
        return self._signal

    @property
    def is_pending(self) -> bool:
        return self._state is SyncState.PENDING

    @property
    def is_settled(self) -> bool:
        return self._state is SyncState.SETTLED

    @property
    def is_aborted(self) -> bool:
        return self._state is SyncState.ABORTED

    @property
    def waiter_count(self) -> int:
        return len(self._waiters)

    # ===== hooks =====

    def on_cancel(self) -> None:
        pass

    def on_ready(self, signal: Signal) -> None:
        pass

    # ===== settlement =====

    def cancel(self) -> None:
        if self._state is not SyncState.PENDING:
            return
        self._state = SyncState.ABORTED
        try:
            self.on_cancel()
        except Exception:
            logger.warning("on_cancel hook of %r raised", self, exc_info=True)

    def fulfill(self, value: Any, failure: bool = False) -> None:
        self.fulfill_signal(signal_of(value, failure))

    def succeed(self, value: T) -> None:
        self.fulfill_signal(Ok(value))

    def fail(self, error: BaseException) -> None:
        self.fulfill_signal(Err(error))

    def fulfill_signal(self, signal: Signal) -> None:
        if self._state is not SyncState.PENDING:
            return
        self._state = SyncState.SETTLED
        self._signal = signal
        self.on_ready(signal)
        for waiter, _ in self._waiters.items():
            waiter.notify(self, signal)
        self._waiters.clear()

    # ===== waiters =====

    def block(self, waiter: Waiter) -> None:
        if self._state is SyncState.SETTLED:
            assert self._signal is not None
            waiter.notify(self, self._signal)
            return
        self._waiters.set(waiter, True)

    def unblock(self, waiter: Waiter) -> None:
        self._waiters.remove(waiter)
        if not self._waiters and self._state is SyncState.PENDING:
            self.cancel()

    # ===== combinators =====

    def or_(self, *others: Any) -> Choice[Any]:
        return Choice((self, *others))

    def and_(self, *others: Any) -> Join:
        return Join((self, *others))

    def guard(
        self,
        on_success: Callable[[T], U] | None,
        on_failure: Callable[[BaseException], BaseException] | None = None,
    ) -> Guard[U]:
        return Guard(self, on_success, on_failure)

    with_ = guard

    def timeout(self, seconds: float, clock: Clock) -> Choice[Any]:
        """Race this value against a timer that fails with :class:`SyncTimeoutError`."""
        return self.or_(clock.sleep(seconds).guard(_raise_timeout))

    def __or__(self, other: Any) -> Choice[Any]:
        return self.or_(other)

    def __and__(self, other: Any) -> Join:
        return self.and_(other)

    def to_sync(self) -> Synchronizable[T]:
        return self

    def __await__(self) -> Generator[Synchronizable[T], Any, T]:
        return (yield self)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._state.value}>"


def _raise_timeout(_elapsed: Any) -> Any:
    raise SyncTimeoutError("operation timed out")


class Join(Synchronizable[list[Any]]):
    """Settles with every child's value in input order, or the first failure."""

    def __init__(self, syncs: Iterable[Any]) -> None:
        super().__init__()
        self.syncs = tuple(coerce_sync(sync) for sync in syncs)
        self._results: list[Any] = [None] * len(self.syncs)
        self._pending: IdentityMap[Synchronizable[Any], list[int]] = IdentityMap()
        for index, sync in enumerate(self.syncs):
            self._pending.get_default(sync, list).append(index)
        if not self._pending:
            self.succeed([])
            return
        for sync in self._pending.keys():
            if not self.is_pending:
                break
            sync.block(self)

    def on_cancel(self) -> None:
        self._cancel_pending()

    def on_ready(self, signal: Signal) -> None:
        if signal.failed:
            self._cancel_pending()

    def _cancel_pending(self) -> None:
        for sync, _ in self._pending.items():
            sync.cancel()

    def notify(self, sync: Synchronizable[Any], signal: Signal) -> None:
        indices = self._pending.remove(sync)
        if indices is None or not self.is_pending:
            return
        if signal.failed:
            self.fulfill_signal(signal)
            return
        for index in indices:
            self._results[index] = signal.payload
        if not self._pending:
            self.succeed(list(self._results))


class Choice(Synchronizable[T]):
    """Settles with the signal of whichever child settles first.

    Children that are already settled when the choice is built are all
    equally ready; one of them is picked uniformly at random.
    """

    def __init__(
        self,
        syncs: Iterable[Any],
        rng: random.Random | None = None,
    ) -> None:
        super().__init__()
        self.syncs = tuple(coerce_sync(sync) for sync in syncs)
        ready = [sync for sync in self.syncs if sync.is_settled]
        if ready:
            winner = ready[0] if len(ready) == 1 else (rng or random).choice(ready)
            assert winner.signal is not None
            self._decide(winner, winner.signal)
            return
        for sync in self.syncs:
            if not self.is_pending:
                break
            sync.block(self)

    def on_cancel(self) -> None:
        for sync in self.syncs:
            sync.cancel()

    def notify(self, sync: Synchronizable[Any], signal: Signal) -> None:
        if self.is_pending:
            self._decide(sync, signal)

    def _decide(self, winner: Synchronizable[Any], signal: Signal) -> None:
        for sync in self.syncs:
            if sync is not winner:
                sync.cancel()
        self.fulfill_signal(signal)


class Guard(Synchronizable[T]):
    """Transforms the result of one child.

    Exceptions raised by either transform become the guard's failure.  The
    failure transform must return an exception.
    """

    def __init__(
        self,
        sync: Any,
        on_success: Callable[[Any], T] | None,
        on_failure: Callable[[BaseException], BaseException] | None = None,
    ) -> None:
        super().__init__()
        self.sync = coerce_sync(sync)
        self._on_success = on_success
        self._on_failure = on_failure
        self.sync.block(self)

    def on_cancel(self) -> None:
        self.sync.cancel()

    def notify(self, sync: Synchronizable[Any], signal: Signal) -> None:
        if not self.is_pending:
            return
        try:
            if signal.failed:
                result = signal if self._on_failure is None else signal.map_err(self._on_failure)
            else:
                result = signal if self._on_success is None else Ok(self._on_success(signal.payload))
        except Exception as exc:
            result = Err(exc)
        self.fulfill_signal(result)


class _Always(Synchronizable[bool]):
    def __init__(self) -> None:
        super().__init__()
        self.succeed(True)

    def __repr__(self) -> str:
        return "ALWAYS"


class _Never(Synchronizable[Any]):
    # shared instance: never registers waiters and can never be aborted
    def block(self, waiter: Waiter) -> None:
        pass

    def unblock(self, waiter: Waiter) -> None:
        pass

    def cancel(self) -> None:
        pass

    def __repr__(self) -> str:
        return "NEVER"


ALWAYS: Synchronizable[bool] = _Always()
NEVER: Synchronizable[Any] = _Never()


def join(*syncs: Any) -> Join:
    return Join(syncs)


def choose(*syncs: Any, rng: random.Random | None = None) -> Choice[Any]:
    return Choice(syncs, rng=rng)


def coerce_sync(obj: Any) -> Synchronizable[Any]:
    """Return the synchronizable behind ``obj`` (a task, a promise, or itself)."""
    if isinstance(obj, Synchronizable):
        return obj
    to_sync = getattr(obj, "to_sync", None)
    if callable(to_sync):
        sync = to_sync()
        if isinstance(sync, Synchronizable):
            return sync
    raise TypeError(f"expected a Synchronizable, Task or Promise, got {type(obj).__name__}")


__all__ = [
    "ALWAYS",
    "NEVER",
    "Choice",
    "Clock",
    "Guard",
    "Join",
    "SyncState",
    "Synchronizable",
    "Waiter",
    "choose",
    "coerce_sync",
    "join",
]
