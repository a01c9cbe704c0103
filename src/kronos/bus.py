"""Publish/Subscribe Event-Bus mit benannten Topics.

Handler werden pro Topic registriert (``on``) oder für alle Topics
(``on_any``). Synchrone Handler laufen direkt in ``emit``, Handler, die
ein Awaitable zurückgeben, werden als Task auf der laufenden Eventloop
eingeplant. Ein fehlerhafter Handler wird geloggt und hält die übrigen
nicht auf.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import deque
from collections.abc import Callable
from typing import Any

from kronos.models import Event
from kronos.utils.logging import get_logger

log = get_logger(__name__)

EventHandler = Callable[[Event], Any]


class EventBus:
    """In-Process Event-Bus für Kronos-Events.

    Ein Handler, der mehrfach für dasselbe Topic registriert wird, wird
    auch mehrfach aufgerufen.
    """

    def __init__(self, max_history: int = 1000) -> None:
        self._handlers: dict[str | None, list[EventHandler]] = {}
        self._history: deque[tuple[str, Event]] = deque(maxlen=max_history)
        self._streams: list[asyncio.Queue[tuple[str, Event]]] = []
        self._pending: set[asyncio.Future[Any]] = set()

    # -- Registrierung -----------------------------------------------------------

    def on(self, topic: str, handler: EventHandler) -> None:
        """Registriert ``handler`` für ``topic``."""
        self._handlers.setdefault(topic, []).append(handler)

    def on_any(self, handler: EventHandler) -> None:
        """Registriert ``handler`` für alle Topics."""
        self._handlers.setdefault(None, []).append(handler)

    def once(self, topic: str, handler: EventHandler) -> None:
        """Registriert ``handler`` für genau ein Event auf ``topic``."""

        def _once(event: Event) -> Any:
            self.off(topic, _once)
            return handler(event)

        self.on(topic, _once)

    def off(self, topic: str | None, handler: EventHandler) -> bool:
        """Entfernt eine Registrierung. True wenn sie existierte."""
        handlers = self._handlers.get(topic, [])
        if handler not in handlers:
            return False
        handlers.remove(handler)
        if not handlers:
            del self._handlers[topic]
        return True

    def remove_all_listeners(self, topic: str | None = None) -> None:
        """Entfernt alle Handler eines Topics oder, ohne Topic, alle überhaupt."""
        if topic is None:
            self._handlers.clear()
        else:
            self._handlers.pop(topic, None)

    def listener_count(self, topic: str | None) -> int:
        return len(self._handlers.get(topic, []))

    # -- Veröffentlichen ---------------------------------------------------------

    def emit(self, topic: str, event: Event) -> None:
        """Veröffentlicht ``event`` auf ``topic``."""
        self._history.append((topic, event))

        # Kopie: Handler dürfen sich während des Aufrufs abmelden (once)
        handlers = [*self._handlers.get(topic, []), *self._handlers.get(None, [])]
        for handler in handlers:
            try:
                result = handler(event)
            except Exception as exc:
                log.warning("event_handler_error", topic=topic, error=str(exc))
                continue
            if inspect.isawaitable(result):
                self._schedule(topic, result)

        dead_streams: list[asyncio.Queue[tuple[str, Event]]] = []
        for queue in self._streams:
            try:
                queue.put_nowait((topic, event))
            except asyncio.QueueFull:
                dead_streams.append(queue)
                log.debug("event_stream_removed_full", topic=topic)
        for queue in dead_streams:
            self._streams.remove(queue)

    def _schedule(self, topic: str, awaitable: Any) -> None:
        future = asyncio.ensure_future(awaitable)
        self._pending.add(future)
        future.add_done_callback(lambda f: self._finish(topic, f))

    def _finish(self, topic: str, future: asyncio.Future[Any]) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            log.warning("async_event_handler_error", topic=topic, error=str(exc))

    # -- Streams & Historie ------------------------------------------------------

    def create_stream(self, maxsize: int = 100) -> asyncio.Queue[tuple[str, Event]]:
        """Erstellt eine Queue, die jedes weitere ``(topic, event)`` erhält.

        Läuft die Queue voll, wird sie beim nächsten ``emit`` entfernt.
        """
        queue: asyncio.Queue[tuple[str, Event]] = asyncio.Queue(maxsize=maxsize)
        self._streams.append(queue)
        return queue

    def remove_stream(self, queue: asyncio.Queue[tuple[str, Event]]) -> None:
        if queue in self._streams:
            self._streams.remove(queue)

    def recent_events(self, n: int = 50, topic: str | None = None) -> list[Event]:
        """Gibt die letzten Events zurück, optional nach Topic gefiltert."""
        events = [event for t, event in self._history if topic is None or t == topic]
        return events[-n:]

    @property
    def event_count(self) -> int:
        return len(self._history)

    @property
    def stream_count(self) -> int:
        return len(self._streams)
