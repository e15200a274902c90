"""I/O adapters producing synchronizable values.

Every adapter settles exactly once, with ``Ok(value)`` or ``Err(error)``, and
aborts its underlying operation without raising when cancelled.

Example (asyncio host)::

    async def main():
        runtime = Runtime(host=AsyncioHost())
        async with httpx.AsyncClient() as client:

            def fetch_all():
                foo, bar = yield join(fetch(client, "https://example.org/foo.json"),
                                      fetch(client, "https://example.org/bar.json"))
                return foo.json(), bar.json()

            task = runtime.spawn(fetch_all)
            print(await runtime.wait(task))
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from cotask.errors import CotaskError
from cotask.signal import Signal
from cotask.sync import Synchronizable

if TYPE_CHECKING:
    from cotask.host import Host, TimerHandle

T = TypeVar("T")


class Timer(Synchronizable[float]):
    """Settles with the elapsed host time once ``seconds`` have passed."""

    def __init__(self, host: Host, seconds: float) -> None:
        super().__init__()
        self.seconds = seconds
        self._host = host
        self._started_at = host.time()
        self._handle: TimerHandle | None = host.call_later(seconds, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self.succeed(self._host.time() - self._started_at)

    def on_cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AwaitableSync(Synchronizable[T]):
    """Runs an asyncio awaitable and settles with its outcome.

    Cancelling the synchronizable cancels the underlying asyncio task.
    """

    def __init__(
        self,
        awaitable: Awaitable[T],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        super().__init__()
        loop = loop if loop is not None else asyncio.get_running_loop()
        self._future: asyncio.Future[T] = asyncio.ensure_future(awaitable, loop=loop)
        self._future.add_done_callback(self._on_done)

    def _on_done(self, future: asyncio.Future[T]) -> None:
        if future.cancelled():
            self.fail(asyncio.CancelledError())
            return
        # retrieve even when aborted so asyncio does not report it as unhandled
        error = future.exception()
        if not self.is_pending:
            return
        if error is not None:
            self.fail(error)
        else:
            self.succeed(future.result())

    def on_cancel(self) -> None:
        self._future.cancel()


def fetch(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    *,
    loop: asyncio.AbstractEventLoop | None = None,
    **kwargs: Any,
) -> Synchronizable[httpx.Response]:
    """Issue an HTTP request; responses with status >= 400 settle as failures."""

    async def _request() -> httpx.Response:
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    return AwaitableSync(_request(), loop=loop)


class _FutureWaiter:
    __slots__ = ("future",)

    def __init__(self, future: asyncio.Future[Any]) -> None:
        self.future = future

    def notify(self, sync: Synchronizable[Any], signal: Signal) -> None:
        if self.future.done():
            return
        if signal.failed:
            self.future.set_exception(signal.payload)
        else:
            self.future.set_result(signal.payload)


def wait_for(
    sync: Synchronizable[T],
    loop: asyncio.AbstractEventLoop | None = None,
) -> asyncio.Future[T]:
    """An asyncio future mirroring ``sync``.

    Cancelling the asyncio future withdraws interest in ``sync``, which
    cancels it if nothing else is waiting on it.  A ``sync`` that was
    already cancelled fails the future with :class:`CotaskError`.
    """
    loop = loop if loop is not None else asyncio.get_running_loop()
    future: asyncio.Future[T] = loop.create_future()
    waiter = _FutureWaiter(future)

    def _on_done(done: asyncio.Future[T]) -> None:
        if done.cancelled():
            sync.unblock(waiter)

    if sync.is_aborted:
        future.set_exception(CotaskError(f"{sync!r} was cancelled"))
        return future
    future.add_done_callback(_on_done)
    sync.block(waiter)
    return future


__all__ = [
    "AwaitableSync",
    "Timer",
    "fetch",
    "wait_for",
]
