"""Deferred/Promise settlement primitive.

A :class:`Deferred` is settled once by its owner with :meth:`~Deferred.resolve`
or :meth:`~Deferred.reject`; consumers get the read-only :class:`Promise` view
and chain transforms with :meth:`Promise.then`.  Listeners always run through
the host's enqueue primitive, so a listener registered after settlement is
invoked exactly as asynchronously as one registered before.

Deferreds are independent of tasks, but a task can yield a promise: it is
converted with :meth:`Promise.to_sync`.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Generator
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Generic, TypeVar

from cotask.errors import DeferredStateError
from cotask.signal import Err, Ok, Signal
from cotask.sync import Synchronizable

logger = logging.getLogger(__name__)

T = TypeVar("T")

Enqueue = Callable[[Callable[[], None]], None]


class DeferredState(Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class _Listener:
    on_success: Callable[[Any], Any] | None
    on_failure: Callable[[BaseException], Any] | None
    downstream: Deferred[Any]


class Deferred(Generic[T]):
    """Owner side of a settle-once value.

    Args:
        enqueue: Schedules a thunk on the host's task queue. Listener
            callbacks never run inline.
    """

    def __init__(self, enqueue: Enqueue) -> None:
        self._enqueue = enqueue
        self._state = DeferredState.UNRESOLVED
        self._signal: Signal | None = None
        self._listeners: deque[_Listener] = deque()
        self._promise: Promise[T] = Promise(self)

    @property
    def promise(self) -> Promise[T]:
        return self._promise

    @property
    def state(self) -> DeferredState:
        return self._state

    @property
    def signal(self) -> Signal | None:
        return self._signal

    def resolve(self, value: T) -> None:
        self._settle(Ok(value))

    def reject(self, error: BaseException) -> None:
        self._settle(Err(error))

    def cancel(self) -> None:
        if self._state is not DeferredState.UNRESOLVED:
            return
        self._state = DeferredState.CANCELLED
        logger.debug("deferred cancelled, dropping %d listener(s)", len(self._listeners))
        self._listeners.clear()

    def _settle(self, signal: Signal) -> None:
        if self._state is DeferredState.CANCELLED:
            return
        if self._state is not DeferredState.UNRESOLVED:
            raise DeferredStateError(self, self._state)
        self._state = DeferredState.REJECTED if signal.failed else DeferredState.RESOLVED
        self._signal = signal
        logger.debug("deferred %s with %r", self._state.value, signal.payload)
        while self._listeners:
            self._dispatch(self._listeners.popleft())

    def _listen(self, listener: _Listener) -> None:
        if self._state is DeferredState.UNRESOLVED:
            self._listeners.append(listener)
        elif self._state is not DeferredState.CANCELLED:
            self._dispatch(listener)

    def _dispatch(self, listener: _Listener) -> None:
        self._enqueue(partial(self._run_listener, listener))

    def _run_listener(self, listener: _Listener) -> None:
        signal = self._signal
        assert signal is not None
        downstream = listener.downstream
        if downstream.state is DeferredState.CANCELLED:
            return
        handler = listener.on_failure if signal.failed else listener.on_success
        if handler is None:
            downstream._settle(signal)
            return
        try:
            result = handler(signal.payload)
        except Exception as exc:
            downstream.reject(exc)
            return
        if isinstance(result, Promise):
            result._deferred._listen(_Listener(None, None, downstream))
        else:
            downstream.resolve(result)

    def __repr__(self) -> str:
        return f"<Deferred {self._state.value}>"


class Promise(Generic[T]):
    """Consumer side of a :class:`Deferred`."""

    __slots__ = ("_deferred",)

    def __init__(self, deferred: Deferred[T]) -> None:
        self._deferred = deferred

    @property
    def state(self) -> DeferredState:
        return self._deferred.state

    @property
    def signal(self) -> Signal | None:
        return self._deferred.signal

    def then(
        self,
        on_success: Callable[[T], Any] | None = None,
        on_failure: Callable[[BaseException], Any] | None = None,
    ) -> Promise[Any]:
        downstream: Deferred[Any] = Deferred(self._deferred._enqueue)
        self._deferred._listen(_Listener(on_success, on_failure, downstream))
        return downstream.promise

    def catch(self, on_failure: Callable[[BaseException], Any]) -> Promise[Any]:
        return self.then(None, on_failure)

    def to_sync(self) -> Synchronizable[T]:
        """A fresh synchronizable settled by this promise."""
        return PromiseSync(self)

    def __await__(self) -> Generator[Synchronizable[T], Any, T]:
        return (yield self.to_sync())

    def __repr__(self) -> str:
        return f"<Promise {self._deferred.state.value}>"


class PromiseSync(Synchronizable[T]):
    """Synchronizable view of a promise.

    Cancelling it only detaches this view; the deferred stays owned by
    whoever created it.
    """

    def __init__(self, promise: Promise[T]) -> None:
        super().__init__()
        self.promise = promise
        promise.then(self._on_value, self._on_error)

    def _on_value(self, value: T) -> None:
        self.succeed(value)

    def _on_error(self, error: BaseException) -> None:
        self.fail(error)


__all__ = [
    "Deferred",
    "DeferredState",
    "Promise",
    "PromiseSync",
]
