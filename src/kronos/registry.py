"""Kronos: Subscription-Registry über zeitgesteuerten Jobs.

Jeder Subscription-Key (Zeitraum-Token wie ``"5s"`` oder ein Cron-Ausdruck)
besitzt genau einen ScheduledJob. Pro Tick werden zwei Events mit
identischem Inhalt veröffentlicht: auf ``TIME/<key>`` und auf ``TIME/*``.

Verwendung::

    async with Kronos() as kronos:
        kronos.on("TIME/*", print)
        kronos.subscribe("1s")
        await asyncio.sleep(5)
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from functools import partial
from types import MappingProxyType
from typing import Any

from kronos.bus import EventBus, EventHandler
from kronos.config import SchedulerConfig
from kronos.cron.job import ScheduledJob
from kronos.models import (
    SUBSCRIBED,
    SUBSCRIPTIONS_TOPIC,
    UNSUBSCRIBED,
    WILDCARD_TOPIC,
    Event,
)
from kronos.timeframe import to_cron_rule
from kronos.utils.logging import get_logger

log = get_logger(__name__)


class Kronos:
    """Registry: Subscription-Key → ScheduledJob, mit Event-Fanout.

    ``subscribe`` und ``unsubscribe_all`` sind über einen Lock serialisiert,
    damit die Registry auch aus mehreren Threads heraus konsistent bleibt.
    Jobs selbst laufen auf der asyncio-Eventloop, in der ``subscribe``
    aufgerufen wurde.

    Attributes:
        events: Der EventBus, auf dem alle Events veröffentlicht werden.
    """

    def __init__(
        self,
        config: SchedulerConfig | None = None,
        *,
        bus: EventBus | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config or SchedulerConfig()
        self.events = bus or EventBus()
        self._clock = clock
        self._jobs: dict[str, ScheduledJob] = {}
        self._lock = threading.Lock()

    async def __aenter__(self) -> Kronos:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, timeframe: object) -> bool:
        return timeframe in self._jobs

    @property
    def jobs(self) -> Mapping[str, ScheduledJob]:
        """Schreibgeschützte Sicht auf die registrierten Jobs."""
        return MappingProxyType(self._jobs)

    @property
    def subscriptions(self) -> list[str]:
        return list(self._jobs)

    # -- Event-Listener ----------------------------------------------------------

    def on(self, topic: str, handler: EventHandler) -> None:
        self.events.on(topic, handler)

    def once(self, topic: str, handler: EventHandler) -> None:
        self.events.once(topic, handler)

    def off(self, topic: str, handler: EventHandler) -> bool:
        return self.events.off(topic, handler)

    # -- Subscriptions -----------------------------------------------------------

    def subscribe(self, timeframe: str) -> ScheduledJob:
        """Startet Ticks für ``timeframe`` oder gibt den bestehenden Job zurück.

        Ein bereits registrierter Key erzeugt weder einen zweiten Timer noch
        ein zweites SUBSCRIBED-Event.

        Args:
            timeframe: Zeitraum-Token (``"<N><s|m|h|d>"``) oder 5/6-Feld-Cron.

        Returns:
            Der ScheduledJob für diesen Key.

        Raises:
            InvalidTimeframe: Unbekannter Token oder ungültiger Cron-Ausdruck
                (InvalidCronExpression). Die Registry bleibt unverändert.
            RuntimeError: Wenn keine asyncio-Eventloop läuft.
        """
        with self._lock:
            existing = self._jobs.get(timeframe)
            if existing is not None:
                log.debug("subscription_exists", timeframe=timeframe)
                return existing

            job = ScheduledJob(
                to_cron_rule(timeframe),
                tz=self._config.job_timezone(),
                clock=self._clock,
                on_error=partial(self._on_job_error, timeframe),
                horizon_seconds=self._config.search_horizon_seconds,
            )
            job.on_tick = partial(self._publish_tick, timeframe, job)
            job.start()
            self._jobs[timeframe] = job

        log.info("subscribed", timeframe=timeframe, rule=job.cron_rule)
        self.events.emit(SUBSCRIPTIONS_TOPIC, Event.subscription(SUBSCRIBED, timeframe))
        return job

    def unsubscribe(self, timeframe: str) -> bool:
        """Stoppt und entfernt den Job für ``timeframe``. True wenn vorhanden."""
        with self._lock:
            job = self._jobs.pop(timeframe, None)
            if job is None:
                return False
            job.stop()

        log.info("unsubscribed", timeframe=timeframe)
        self.events.emit(SUBSCRIPTIONS_TOPIC, Event.subscription(UNSUBSCRIBED, timeframe))
        return True

    def unsubscribe_all(self) -> None:
        """Stoppt alle Jobs und leert die Registry. Mehrfach aufrufbar."""
        with self._lock:
            removed = list(self._jobs.items())
            for _, job in removed:
                job.stop()
            self._jobs.clear()

        if removed:
            log.info("unsubscribed_all", count=len(removed))
        for timeframe, _ in removed:
            self.events.emit(SUBSCRIPTIONS_TOPIC, Event.subscription(UNSUBSCRIBED, timeframe))

    async def aclose(self) -> None:
        """Wie ``unsubscribe_all``, wartet zusätzlich auf das Ende der Job-Tasks."""
        jobs = list(self._jobs.values())
        self.unsubscribe_all()
        await asyncio.gather(*(job.wait_closed() for job in jobs))

    # -- Job-Callbacks -----------------------------------------------------------

    def _publish_tick(self, timeframe: str, job: ScheduledJob) -> None:
        event = Event.tick(timeframe, job.last_tick_at or datetime.now(UTC))
        self.events.emit(event.type, event)
        self.events.emit(WILDCARD_TOPIC, event)

    def _on_job_error(self, timeframe: str, exc: Exception) -> None:
        log.error("subscription_failed", timeframe=timeframe, error=str(exc))
        self.events.emit(SUBSCRIPTIONS_TOPIC, Event.failure(timeframe, str(exc)))
