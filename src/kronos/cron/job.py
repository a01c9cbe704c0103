"""ScheduledJob: selbst-neuplanender Timer für einen Cron-Ausdruck.

Ein Job besitzt genau einen asyncio-Task. Jede Runde liest die Uhr,
sucht den nächsten Treffer, schläft bis dahin und ruft dann ``on_tick``.
Die Wartezeit wird in jeder Runde neu aus der aktuellen Uhrzeit
berechnet, Verzögerungen eines Ticks summieren sich daher nicht auf.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from collections.abc import Callable
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from functools import partial
from typing import Any

from kronos.config import DEFAULT_SEARCH_HORIZON_SECONDS, local_timezone
from kronos.cron.expression import CronExpression
from kronos.cron.search import next_match
from kronos.errors import SearchExhausted
from kronos.utils.logging import bind_context, get_logger

log = get_logger(__name__)

TickCallback = Callable[[], Any]
CompleteCallback = Callable[[], Any]
ErrorCallback = Callable[[Exception], Any]

_EPSILON = timedelta(microseconds=1)


class JobState(Enum):
    """Lebenszyklus eines Jobs. IDLE und STOPPED verhalten sich gleich."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class ScheduledJob:
    """Cron-gesteuerter Job auf der laufenden asyncio-Eventloop.

    Callbacks dürfen synchron sein oder ein Awaitable zurückgeben.
    ``on_tick`` wird innerhalb des Job-Tasks awaited, Ticks desselben Jobs
    überlappen sich also nie.

    Attributes:
        expression: Geparster Cron-Ausdruck.
        cron_rule: Der Ausdruck als Text.
        tz: Feste Zeitzone, in der die Felder ausgewertet werden.
        state: Aktueller JobState.
        tick_count: Anzahl ausgeführter Ticks.
        last_tick_at: Geplanter Zeitpunkt des laufenden bzw. letzten Ticks.
        next_run_at: Geplanter Zeitpunkt des nächsten Ticks (None wenn gestoppt).
        last_error: Fehler, der den Job beendet hat.
    """

    def __init__(
        self,
        cron_rule: CronExpression | str,
        on_tick: TickCallback | None = None,
        on_complete: CompleteCallback | None = None,
        start: bool = False,
        *,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
        on_error: ErrorCallback | None = None,
        horizon_seconds: int = DEFAULT_SEARCH_HORIZON_SECONDS,
    ) -> None:
        """Erzeugt den Job, standardmäßig ohne ihn zu starten.

        Args:
            cron_rule: 5- oder 6-Feld-Ausdruck oder fertige CronExpression.
            on_tick: Wird bei jedem Treffer aufgerufen.
            on_complete: Wird bei jedem ``stop()`` aufgerufen.
            start: True = sofort starten (benötigt laufende Eventloop).
            tz: Zeitzone für die Feldauswertung. Default: lokaler Offset
                zum Erzeugungszeitpunkt.
            clock: Liefert die aktuelle Zeit (für Tests), wird nach ``tz`` umgerechnet.
            on_error: Wird aufgerufen, wenn die Suche den Job beendet.
            horizon_seconds: Suchhorizont für ``next_match``.

        Raises:
            InvalidCronExpression: Wenn ``cron_rule`` nicht geparst werden kann.
        """
        if isinstance(cron_rule, CronExpression):
            self.expression = cron_rule
        else:
            self.expression = CronExpression.parse(cron_rule)
        self.cron_rule = self.expression.source
        self.on_tick = on_tick
        self.on_complete = on_complete
        self.on_error = on_error
        self.horizon_seconds = horizon_seconds
        self.tz = tz or local_timezone()
        self._clock = clock or partial(datetime.now, self.tz)

        self.state = JobState.IDLE
        self.tick_count = 0
        self.last_tick_at: datetime | None = None
        self.next_run_at: datetime | None = None
        self.last_error: Exception | None = None

        self._task: asyncio.Task[None] | None = None
        # Task, dessen Tick gerade läuft; stop() bricht genau diesen nicht ab
        self._ticking_task: asyncio.Task[Any] | None = None
        self._background: set[asyncio.Future[Any]] = set()

        if start:
            self.start()

    def __repr__(self) -> str:
        return f"ScheduledJob({self.cron_rule!r}, state={self.state.value})"

    @property
    def is_running(self) -> bool:
        return self.state is JobState.RUNNING

    def start(self) -> None:
        """Startet den Job. Auf einem laufenden Job ohne Wirkung."""
        if self.state is JobState.RUNNING:
            return
        loop = asyncio.get_running_loop()
        self.state = JobState.RUNNING
        self.last_error = None
        self._task = loop.create_task(self._run(), name=f"kronos-job[{self.cron_rule}]")
        log.debug("job_started", rule=self.cron_rule)

    def stop(self) -> None:
        """Stoppt den Job und ruft ``on_complete`` auf.

        Nach der Rückkehr feuert kein neuer Tick mehr. Ein Tick, der gerade
        läuft, wird noch zu Ende ausgeführt. ``on_complete`` wird bei jedem
        Aufruf ausgelöst, auch wenn der Job schon gestoppt war.
        """
        was_running = self.state is JobState.RUNNING
        self.state = JobState.STOPPED
        self.next_run_at = None

        task = self._task
        if task is not None and not task.done() and task is not self._ticking_task:
            task.cancel()

        if was_running:
            log.debug("job_stopped", rule=self.cron_rule, ticks=self.tick_count)

        if self.on_complete is not None:
            self._fire_and_forget(self.on_complete())

    async def wait_closed(self) -> None:
        """Wartet, bis der Task eines gestoppten Jobs beendet ist."""
        task = self._task
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    # -- Task-Schleife ---------------------------------------------------------

    def _is_current(self, task: asyncio.Task[Any] | None) -> bool:
        return self.state is JobState.RUNNING and self._task is task

    async def _run(self) -> None:
        task = asyncio.current_task()
        bind_context(cron_rule=self.cron_rule)
        previous: datetime | None = None

        while self._is_current(task):
            now = self._clock().astimezone(self.tz)
            # Nie zweimal für denselben Zeitpunkt feuern
            search_from = now if previous is None else max(now, previous + _EPSILON)
            try:
                target = next_match(
                    self.expression, search_from, horizon_seconds=self.horizon_seconds
                )
            except SearchExhausted as exc:
                self._fail(exc)
                return

            self.next_run_at = target
            while (remaining := (target - self._clock()).total_seconds()) > 0:
                await asyncio.sleep(remaining)

            if not self._is_current(task):
                return
            await self._tick(target)
            previous = target

    async def _tick(self, target: datetime) -> None:
        task = asyncio.current_task()
        self._ticking_task = task
        self.last_tick_at = target
        try:
            if self.on_tick is not None:
                result = self.on_tick()
                if inspect.isawaitable(result):
                    await result
        except Exception:
            log.exception("job_tick_failed", rule=self.cron_rule, scheduled_for=target.isoformat())
        finally:
            if self._ticking_task is task:
                self._ticking_task = None
            self.tick_count += 1

    def _fail(self, exc: SearchExhausted) -> None:
        log.error("job_search_exhausted", rule=self.cron_rule, error=str(exc))
        self.last_error = exc
        self.state = JobState.STOPPED
        self.next_run_at = None
        if self.on_error is not None:
            self._fire_and_forget(self.on_error(exc))

    def _fire_and_forget(self, result: Any) -> None:
        """Plant ein von einem Callback zurückgegebenes Awaitable ein."""
        if not inspect.isawaitable(result):
            return
        future = asyncio.ensure_future(result)
        self._background.add(future)
        future.add_done_callback(self._background.discard)
