"""Test doubles shared across the cotask test suite."""

from __future__ import annotations

from typing import Any

from cotask import Signal, Synchronizable


class Recorder:
    """Waiter that records every notification it receives."""

    def __init__(self) -> None:
        self.calls: list[tuple[Synchronizable[Any], Signal]] = []

    def notify(self, sync: Synchronizable[Any], signal: Signal) -> None:
        self.calls.append((sync, signal))


class Tracked(Synchronizable[Any]):
    """Synchronizable that counts how often its cancel hook ran."""

    def __init__(self) -> None:
        super().__init__()
        self.cancels = 0

    def on_cancel(self) -> None:
        self.cancels += 1


class Stubborn(Synchronizable[Any]):
    """Synchronizable that ignores cancellation, so it can still settle late."""

    def cancel(self) -> None:
        pass
