"""Runtime configuration.

Configuration comes from constructor arguments or from the environment:

- ``COTASK_POLICY``: ``random`` (default), ``fifo`` or ``seeded``
- ``COTASK_SEED``: integer seed; with the ``random`` policy it makes the
  random choices reproducible
- ``COTASK_DEBUG``: ``1``/``true``/``yes`` sets the ``cotask`` logger to DEBUG
- ``COTASK_TRACE``: record every scheduling choice on ``Scheduler.trace``
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from cotask.errors import ConfigError
from cotask.scheduler import FifoPolicy, RandomPolicy, SchedulingPolicy, SeededPolicy

POLICIES = ("random", "fifo", "seeded")

_TRUTHY = ("1", "true", "yes")


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class RuntimeConfig:
    policy: str = "random"
    seed: int | None = None
    debug: bool = False
    trace: bool = False

    def __post_init__(self) -> None:
        if self.policy not in POLICIES:
            raise ConfigError(f"policy must be one of {', '.join(POLICIES)}, got {self.policy!r}")
        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, int)):
            raise ConfigError(f"seed must be int, got {type(self.seed).__name__}")
        if self.policy == "seeded" and self.seed is None:
            raise ConfigError("policy 'seeded' requires a seed")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RuntimeConfig:
        env = os.environ if environ is None else environ
        policy = env.get("COTASK_POLICY", "").strip().lower() or "random"
        raw_seed = env.get("COTASK_SEED", "").strip()
        seed: int | None = None
        if raw_seed:
            try:
                seed = int(raw_seed)
            except ValueError as exc:
                raise ConfigError(f"COTASK_SEED must be an integer, got {raw_seed!r}") from exc
        return cls(
            policy=policy,
            seed=seed,
            debug=_flag(env.get("COTASK_DEBUG")),
            trace=_flag(env.get("COTASK_TRACE")),
        )

    def make_policy(self) -> SchedulingPolicy:
        if self.policy == "fifo":
            return FifoPolicy()
        if self.seed is not None:
            return SeededPolicy(self.seed)
        return RandomPolicy()


__all__ = [
    "POLICIES",
    "RuntimeConfig",
]
