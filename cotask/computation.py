"""Suspendable computations driven by tasks.

A task never touches a generator directly; it talks to a
:class:`Computation`, whose four operations each report either that the
computation yielded a dependency or that it completed.  Python generators and
native coroutines (``async def`` awaiting synchronizables) are both adapted by
:class:`GeneratorComputation`.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, Union, runtime_checkable

from cotask.signal import Err, Ok, Signal


@dataclass(frozen=True)
class Yielded:
    """The computation suspended on ``value``."""

    value: Any


@dataclass(frozen=True)
class Completed:
    """The computation finished, returning or raising."""

    signal: Signal


StepOutcome = Union[Yielded, Completed]

# never turned into task failures
_FATAL = (KeyboardInterrupt, SystemExit)


@runtime_checkable
class Computation(Protocol):
    def start(self) -> StepOutcome: ...

    def resume_with_value(self, value: Any) -> StepOutcome: ...

    def resume_with_failure(self, error: BaseException) -> StepOutcome: ...

    def force_close(self) -> StepOutcome: ...


def _is_suspendable(obj: Any) -> bool:
    return inspect.isgenerator(obj) or inspect.iscoroutine(obj)


class GeneratorComputation:
    """Adapts a generator or coroutine object to :class:`Computation`."""

    __slots__ = ("_gen",)

    def __init__(self, gen: Any) -> None:
        if not _is_suspendable(gen):
            raise TypeError(f"expected generator or coroutine, got {type(gen).__name__}")
        self._gen = gen

    def start(self) -> StepOutcome:
        return self._advance(self._gen.send, None)

    def resume_with_value(self, value: Any) -> StepOutcome:
        return self._advance(self._gen.send, value)

    def resume_with_failure(self, error: BaseException) -> StepOutcome:
        return self._advance(self._gen.throw, error)

    def force_close(self) -> StepOutcome:
        try:
            self._gen.close()
        except _FATAL:
            raise
        except BaseException as exc:
            return Completed(Err(exc))
        return Completed(Ok(None))

    @staticmethod
    def _advance(resume: Callable[[Any], Any], arg: Any) -> StepOutcome:
        try:
            value = resume(arg)
        except StopIteration as stop:
            return Completed(Ok(stop.value))
        except _FATAL:
            raise
        except BaseException as exc:
            return Completed(Err(exc))
        return Yielded(value)

    def __repr__(self) -> str:
        name = getattr(self._gen, "__qualname__", type(self._gen).__name__)
        return f"<GeneratorComputation {name}>"


def make_computation(fn: Any, *args: Any, **kwargs: Any) -> Computation:
    """Build a computation from a generator/coroutine function or object.

    Calling ``fn`` happens here, so an exception raised by a plain function
    propagates to the caller before any task exists.
    """
    if isinstance(fn, Computation):
        return fn
    if _is_suspendable(fn):
        return GeneratorComputation(fn)
    if not callable(fn):
        raise TypeError(f"expected generator function, got {fn!r}")
    gen = fn(*args, **kwargs)
    if not _is_suspendable(gen):
        raise TypeError(f"expected generator function, got {fn!r}")
    return GeneratorComputation(gen)


__all__ = [
    "Completed",
    "Computation",
    "GeneratorComputation",
    "StepOutcome",
    "Yielded",
    "make_computation",
]
