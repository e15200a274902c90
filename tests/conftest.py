"""Shared fixtures for cotask tests.

Most tests run on a :class:`SimulationHost` with FIFO scheduling so that task
interleavings are fully deterministic; tests that exercise the randomized
scheduler use a seeded policy instead.
"""

from __future__ import annotations

import pytest

from cotask import FifoPolicy, Runtime, SeededPolicy, SimulationHost


@pytest.fixture
def host() -> SimulationHost:
    return SimulationHost()


@pytest.fixture
def runtime(host: SimulationHost) -> Runtime:
    return Runtime(host=host, policy=FifoPolicy())


@pytest.fixture
def random_runtime(host: SimulationHost) -> Runtime:
    return Runtime(host=host, policy=SeededPolicy(1234))
