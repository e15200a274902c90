"""cotask: cooperative tasks over synchronizable values.

Tasks are generators (or ``async def`` coroutines) that yield
synchronizable values and are resumed by a scheduler once those values
settle::

    from cotask import Runtime, FifoPolicy, join

    runtime = Runtime(policy=FifoPolicy())

    def fetch_both():
        a, b = yield join(runtime.sleep(1.0), runtime.sleep(2.0))
        return a + b

    total = runtime.run_until_complete(runtime.spawn(fetch_both))
"""

from cotask.adapters import AwaitableSync, Timer, fetch, wait_for
from cotask.computation import Completed, Computation, GeneratorComputation, Yielded
from cotask.config import RuntimeConfig
from cotask.deferred import Deferred, DeferredState, Promise
from cotask.errors import (
    ConfigError,
    CotaskError,
    DeferredStateError,
    SyncTimeoutError,
    TaskStateError,
)
from cotask.host import AsyncioHost, Host, SimulationHost
from cotask.identity_map import IdentityMap
from cotask.runtime import Runtime
from cotask.scheduler import FifoPolicy, RandomPolicy, Scheduler, SchedulingPolicy, SeededPolicy
from cotask.signal import Err, Ok, Signal
from cotask.sync import (
    ALWAYS,
    NEVER,
    Choice,
    Guard,
    Join,
    SyncState,
    Synchronizable,
    choose,
    coerce_sync,
    join,
)
from cotask.task import Task, TaskFuture, TaskState

__all__ = [
    "ALWAYS",
    "NEVER",
    "AsyncioHost",
    "AwaitableSync",
    "Choice",
    "Completed",
    "Computation",
    "ConfigError",
    "CotaskError",
    "Deferred",
    "DeferredState",
    "DeferredStateError",
    "Err",
    "FifoPolicy",
    "GeneratorComputation",
    "Guard",
    "Host",
    "IdentityMap",
    "Join",
    "Ok",
    "Promise",
    "RandomPolicy",
    "Runtime",
    "RuntimeConfig",
    "Scheduler",
    "SchedulingPolicy",
    "SeededPolicy",
    "Signal",
    "SimulationHost",
    "SyncState",
    "SyncTimeoutError",
    "Synchronizable",
    "Task",
    "TaskFuture",
    "TaskState",
    "TaskStateError",
    "Timer",
    "Yielded",
    "choose",
    "coerce_sync",
    "fetch",
    "join",
    "wait_for",
]
