"""
Kronos · Shared Test-Fixtures.

EventCollector / CallbackTracker zeichnen Aufrufe auf und können auf eine
Mindestanzahl warten. FakeWallClock liefert eine Wanduhr, die bei einem
frei gewählten Zeitpunkt startet und in Echtzeit weiterläuft.
"""

from __future__ import annotations

import asyncio
import sys
import time
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest
import structlog

from kronos.config import KronosConfig, SchedulerConfig

if TYPE_CHECKING:
    from kronos.models import Event


async def _wait_until(predicate: Any, timeout: float, message: str) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError(message)
        await asyncio.sleep(0.01)


class EventCollector:
    """Handler, der alle empfangenen Events mitschreibt."""

    def __init__(self) -> None:
        self.events: list[Event] = []
        self.received_at: list[float] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)
        self.received_at.append(time.monotonic())

    @property
    def count(self) -> int:
        return len(self.events)

    def of_type(self, event_type: str) -> list[Event]:
        return [e for e in self.events if e.type == event_type]

    async def wait_for(self, count: int, timeout: float = 5.0) -> list[Event]:
        await _wait_until(
            lambda: len(self.events) >= count,
            timeout,
            f"Timeout: erwartet {count} Events, erhalten {len(self.events)}",
        )
        return list(self.events)

    def reset(self) -> None:
        self.events.clear()
        self.received_at.clear()


class CallbackTracker:
    """Zählt Aufrufe eines argumentlosen Callbacks."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self) -> None:
        self.calls.append(time.monotonic())

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def wait_for(self, count: int, timeout: float = 5.0) -> list[float]:
        await _wait_until(
            lambda: len(self.calls) >= count,
            timeout,
            f"Timeout: erwartet {count} Aufrufe, erhalten {len(self.calls)}",
        )
        return list(self.calls)


class FakeWallClock:
    """Wanduhr ab ``start``, die mit der echten Zeit mitläuft."""

    def __init__(self, start: datetime) -> None:
        self._start = start
        self._t0 = time.monotonic()

    def __call__(self) -> datetime:
        return self._start + timedelta(seconds=time.monotonic() - self._t0)


@pytest.fixture
def collector() -> EventCollector:
    return EventCollector()


@pytest.fixture
def make_collector() -> type[EventCollector]:
    return EventCollector


@pytest.fixture
def tracker() -> CallbackTracker:
    return CallbackTracker()


@pytest.fixture
def make_clock() -> type[FakeWallClock]:
    return FakeWallClock


@pytest.fixture
def utc_scheduler_config() -> SchedulerConfig:
    """Scheduler-Konfiguration mit Feldauswertung in UTC."""
    return SchedulerConfig(utc_offset_minutes=0)


@pytest.fixture
def config() -> KronosConfig:
    return KronosConfig(scheduler=SchedulerConfig(utc_offset_minutes=0))


@pytest.fixture(autouse=True)
def _structlog_to_stderr() -> Any:
    """Logs wie in main() auf stderr, damit stdout nur Events enthält."""
    structlog.configure(logger_factory=structlog.PrintLoggerFactory(sys.stderr))
    yield
    structlog.reset_defaults()
