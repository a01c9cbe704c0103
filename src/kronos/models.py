"""
Kronos · Event-Modelle.

Alle Events haben die Form ``{"type": ..., "payload": {...}}`` und sind
JSON-serialisierbar (``event.model_dump()`` / ``event.model_dump_json()``).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Union

from pydantic import BaseModel

# ============================================================================
# Topics & Event-Typen
# ============================================================================

TIME_TOPIC_PREFIX = "TIME/"
WILDCARD_TOPIC = "TIME/*"
SUBSCRIPTIONS_TOPIC = "SUBSCRIPTIONS"

SUBSCRIBED = "SUBSCRIBED"
UNSUBSCRIBED = "UNSUBSCRIBED"
FAILED = "FAILED"


def time_topic(timeframe: str) -> str:
    """Topic für die Ticks eines Zeitraums, z.B. ``TIME/5s``."""
    return f"{TIME_TOPIC_PREFIX}{timeframe}"


def format_timestamp(instant: datetime) -> str:
    """ISO-8601 in UTC, auf volle Sekunden gekürzt: ``2024-01-01T12:30:00.000Z``."""
    utc = instant.astimezone(UTC).replace(microsecond=0)
    return utc.strftime("%Y-%m-%dT%H:%M:%S") + ".000Z"


# ============================================================================
# Payloads
# ============================================================================


class TickPayload(BaseModel, frozen=True):
    """Payload eines ``TIME/<timeframe>``-Events."""

    timestamp: str
    timeframe: str


class SubscriptionPayload(BaseModel, frozen=True):
    """Payload von SUBSCRIBED / UNSUBSCRIBED."""

    timeframe: str


class FailurePayload(BaseModel, frozen=True):
    """Payload von FAILED: der Job für ``timeframe`` wurde beendet."""

    timeframe: str
    error: str


Payload = Union[TickPayload, SubscriptionPayload, FailurePayload]


class Event(BaseModel, frozen=True):
    """Ein veröffentlichtes Event."""

    type: str
    payload: Payload

    @classmethod
    def tick(cls, timeframe: str, instant: datetime) -> Event:
        return cls(
            type=time_topic(timeframe),
            payload=TickPayload(timestamp=format_timestamp(instant), timeframe=timeframe),
        )

    @classmethod
    def subscription(cls, event_type: str, timeframe: str) -> Event:
        return cls(type=event_type, payload=SubscriptionPayload(timeframe=timeframe))

    @classmethod
    def failure(cls, timeframe: str, error: str) -> Event:
        return cls(type=FAILED, payload=FailurePayload(timeframe=timeframe, error=error))
