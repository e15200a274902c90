"""Tests for the simulation host and the Timer adapter."""

from __future__ import annotations

import math

import pytest

from cotask import NEVER, CotaskError, SimulationHost, Timer


class TestSimulationHost:
    """Macrotask queue and virtual clock."""

    def test_macrotasks_run_in_order_before_timers(self, host):
        order = []
        host.call_later(0, lambda: order.append("timer"))
        host.enqueue(lambda: order.append("first"))
        host.enqueue(lambda: order.append("second"))
        host.run_until_idle()

        assert order == ["first", "second", "timer"]

    def test_clock_jumps_to_next_timer(self, host):
        fired = []
        host.call_later(30, lambda: fired.append(host.time()))
        host.call_later(10, lambda: fired.append(host.time()))
        host.run_until_idle()

        assert fired == [10.0, 30.0]
        assert host.time() == 30.0

    def test_equal_deadlines_fire_in_insertion_order(self, host):
        fired = []
        for label in "xyz":
            host.call_later(1, lambda label=label: fired.append(label))
        host.run_until_idle()

        assert fired == ["x", "y", "z"]

    def test_cancelled_timer_never_fires(self, host):
        fired = []
        handle = host.call_later(5, lambda: fired.append(True))
        assert host.timers == 1
        handle.cancel()

        assert host.timers == 0
        assert host.next_timer() is None
        host.run_until_idle()
        assert fired == []
        assert host.time() == 0.0

    def test_negative_delay_is_clamped(self, host):
        fired = []
        host.call_later(-3, lambda: fired.append(host.time()))
        host.run_until_idle()

        assert fired == [0.0]

    def test_rejects_non_finite_delay(self, host):
        with pytest.raises(ValueError, match="finite"):
            host.call_later(math.inf, lambda: None)
        with pytest.raises(TypeError):
            host.call_later("1", lambda: None)
        with pytest.raises(TypeError):
            host.call_later(True, lambda: None)

    def test_start_time(self):
        assert SimulationHost(start_time=100).time() == 100.0

    def test_run_until_reports_idle(self, host):
        assert host.run_until(lambda: False) is False
        assert host.run_once() is False

    def test_run_until_stops_when_predicate_holds(self, host):
        counter = []
        for _ in range(5):
            host.enqueue(lambda: counter.append(1))

        assert host.run_until(lambda: len(counter) == 2) is True
        assert host.queued == 3

    def test_step_limit(self):
        host = SimulationHost(max_steps=10)

        def forever():
            host.enqueue(forever)

        host.enqueue(forever)
        with pytest.raises(CotaskError, match="Maximum steps exceeded"):
            host.run_until_idle()

    def test_advance_runs_only_due_timers(self, host):
        fired = []
        host.call_later(2, lambda: fired.append(2))
        host.call_later(8, lambda: fired.append(8))
        host.advance(5)

        assert fired == [2]
        assert host.time() == 5.0
        assert host.timers == 1


class TestTimer:
    def test_settles_with_elapsed_time(self, host):
        host.advance(4)
        timer = Timer(host, 1.5)
        host.run_until_idle()

        assert timer.signal.payload == 1.5
        assert host.time() == 5.5

    def test_cancel_releases_host_timer(self, host):
        timer = Timer(host, 10)
        timer.cancel()

        assert timer.is_aborted
        assert host.timers == 0

    def test_sleeping_task(self, runtime, host):
        def worker():
            yield runtime.sleep(3)
            yield runtime.sleep(4)
            return host.time()

        assert runtime.run_until_complete(runtime.spawn(worker)) == 7.0

    def test_run_until_complete_requires_progress(self, runtime):
        def stuck():
            yield NEVER

        with pytest.raises(CotaskError, match="went idle"):
            runtime.run_until_complete(runtime.spawn(stuck))
