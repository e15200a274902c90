"""The runtime context object.

A :class:`Runtime` bundles a host, a scheduler and a configuration.  The
hosting application creates one and passes it to whatever needs to spawn
tasks or create timers and deferreds; there is no process-wide instance.

Example (simulation host)::

    runtime = Runtime(policy=FifoPolicy())

    def worker(n):
        yield runtime.sleep(1.0)
        return n * 2

    def main():
        results = yield runtime.join(runtime.spawn(worker, 1), runtime.spawn(worker, 2))
        return sum(results)

    assert runtime.run_until_complete(runtime.spawn(main)) == 6
"""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping
from typing import Any

from cotask.adapters import Timer, wait_for
from cotask.computation import make_computation
from cotask.config import RuntimeConfig
from cotask.deferred import Deferred
from cotask.errors import CotaskError
from cotask.host import Host, SimulationHost
from cotask.scheduler import Scheduler, SchedulingPolicy
from cotask.sync import Choice, Join, Synchronizable, coerce_sync
from cotask.task import Task

logger = logging.getLogger(__name__)


class Runtime:
    """Explicit runtime context.

    Args:
        host: Macrotask/timer host. Defaults to a fresh :class:`SimulationHost`.
        policy: Scheduling policy; overrides the one derived from ``config``.
        config: Runtime configuration. Defaults to ``RuntimeConfig()``.
    """

    def __init__(
        self,
        host: Host | None = None,
        policy: SchedulingPolicy | None = None,
        config: RuntimeConfig | None = None,
    ) -> None:
        self.config = config if config is not None else RuntimeConfig()
        if self.config.debug:
            logging.getLogger("cotask").setLevel(logging.DEBUG)
        self.host: Host = host if host is not None else SimulationHost()
        self.scheduler = Scheduler(
            self.host,
            policy if policy is not None else self.config.make_policy(),
            trace=self.config.trace,
        )
        logger.debug("runtime created with %r on %r", self.scheduler.policy, self.host)

    @classmethod
    def from_env(cls, host: Host | None = None, environ: Mapping[str, str] | None = None) -> Runtime:
        return cls(host=host, config=RuntimeConfig.from_env(environ))

    # ===== tasks =====

    def task(self, fn: Any, *args: Any, **kwargs: Any) -> Task:
        """Create a newborn task; it runs once :meth:`Task.start` is called."""
        return Task(self.scheduler, make_computation(fn, *args, **kwargs))

    def spawn(self, fn: Any, *args: Any, **kwargs: Any) -> Task:
        return self.task(fn, *args, **kwargs).start()

    def current_task(self) -> Task | None:
        task = Task.current()
        if task is not None and task.scheduler is self.scheduler:
            return task
        return None

    # ===== synchronizables =====

    def deferred(self) -> Deferred[Any]:
        return Deferred(self.host.enqueue)

    def sleep(self, seconds: float) -> Timer:
        return Timer(self.host, seconds)

    def timeout(self, target: Any, seconds: float) -> Choice[Any]:
        return coerce_sync(target).timeout(seconds, self)

    def join(self, *targets: Any) -> Join:
        return Join(targets)

    def choose(self, *targets: Any, rng: random.Random | None = None) -> Choice[Any]:
        return Choice(targets, rng=rng)

    # ===== driving =====

    def run_until_complete(self, target: Any, max_steps: int | None = None) -> Any:
        """Drive a :class:`SimulationHost` until ``target`` settles.

        Returns the settled value, or raises the settled failure.
        """
        if not isinstance(self.host, SimulationHost):
            raise CotaskError("run_until_complete requires a SimulationHost")
        sync = coerce_sync(target)
        self.host.run_until(lambda: not sync.is_pending, max_steps)
        if sync.is_pending:
            raise CotaskError(f"host went idle before {sync!r} settled")
        if sync.is_aborted:
            raise CotaskError(f"{sync!r} was cancelled")
        assert sync.signal is not None
        return sync.signal.unwrap()

    async def wait(self, target: Any) -> Any:
        """Await ``target`` from asyncio code running on the host's loop."""
        sync: Synchronizable[Any] = coerce_sync(target)
        return await wait_for(sync)

    def __repr__(self) -> str:
        return f"<Runtime host={type(self.host).__name__} policy={self.scheduler.policy!r}>"


__all__ = ["Runtime"]
