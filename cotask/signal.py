"""Settlement payloads.

A :data:`Signal` is what a synchronizable value settles with: either
``Ok(value)`` for success or ``Err(error)`` for failure.  Failures always
carry an exception instance so they can be thrown into a suspended
generator.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, NoReturn, TypeVar, Union, cast

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)
U = TypeVar("U")


class Result(Generic[T_co]):
    """Sum type representing either a successful value or an error."""

    __slots__ = ()

    def is_ok(self) -> bool:
        """Return ``True`` when the result is successful."""

        return isinstance(self, Ok)

    def is_err(self) -> bool:
        """Return ``True`` when the result represents a failure."""

        return isinstance(self, Err)

    @property
    def failed(self) -> bool:
        return isinstance(self, Err)

    @property
    def payload(self) -> Any:
        """The value for ``Ok`` or the exception for ``Err``."""

        if isinstance(self, Ok):
            return self.value
        return cast(Err, self).error

    def ok(self) -> T_co | None:
        """Return the contained value, or ``None`` if this is an error."""

        if isinstance(self, Ok):
            return self.value
        return None

    def err(self) -> BaseException | None:
        """Return the contained error, or ``None`` if this is a success."""

        if isinstance(self, Err):
            return self.error
        return None

    def unwrap(self) -> T_co:
        """Return the value or raise the stored error."""

        if isinstance(self, Ok):
            return self.value
        raise cast(Err, self).error

    def unwrap_or(self, default: U) -> T_co | U:
        """Return the contained value, or ``default`` if this is an error."""

        if isinstance(self, Ok):
            return self.value
        return default

    def map(self, f: Callable[[T_co], U]) -> Result[U]:
        """Apply ``f`` to the contained value if this is a success."""

        if isinstance(self, Ok):
            return Ok(f(self.value))
        return cast(Result[U], self)

    def map_err(self, f: Callable[[BaseException], BaseException]) -> Result[T_co]:
        """Apply ``f`` to the contained error if this is a failure."""

        if isinstance(self, Err):
            error = f(self.error)
            if not isinstance(error, BaseException):
                raise TypeError(
                    f"failure transform must return an exception, got {type(error).__name__}"
                )
            return Err(error)
        return self

    def __bool__(self) -> bool:
        """Truthiness matches :meth:`is_ok`."""

        return self.is_ok()


@dataclass(frozen=True)
class Ok(Result[T], Generic[T]):
    """Success result."""

    value: T


@dataclass(frozen=True)
class Err(Result[NoReturn]):
    """Error result."""

    error: BaseException

    def __post_init__(self) -> None:
        if not isinstance(self.error, BaseException):
            raise TypeError(f"Err requires an exception, got {type(self.error).__name__}")


Signal = Union[Ok[Any], Err]


def signal_of(value: Any, failure: bool = False) -> Signal:
    """Build a signal from a payload and a failure flag."""
    if failure:
        return Err(value)
    return Ok(value)


__all__ = [
    "Err",
    "Ok",
    "Result",
    "Signal",
    "signal_of",
]
