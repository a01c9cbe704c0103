"""Kronos · Cron-gesteuerte Zeit-Events.

Berechnet aus Zeiträumen (``"5s"``, ``"2h"``) oder Cron-Ausdrücken den
nächsten passenden Zeitpunkt, feuert dort einen Callback und veröffentlicht
die Ticks als Events auf einem Publish/Subscribe-Bus.
"""

from kronos.bus import EventBus
from kronos.cron import CronExpression, JobState, ScheduledJob, iter_matches, match_field, next_match
from kronos.errors import InvalidCronExpression, InvalidTimeframe, KronosError, SearchExhausted
from kronos.models import Event
from kronos.registry import Kronos
from kronos.timeframe import to_cron_rule

__version__ = "0.1.0"

__all__ = [
    "CronExpression",
    "Event",
    "EventBus",
    "InvalidCronExpression",
    "InvalidTimeframe",
    "JobState",
    "Kronos",
    "KronosError",
    "ScheduledJob",
    "SearchExhausted",
    "__version__",
    "iter_matches",
    "match_field",
    "next_match",
    "to_cron_rule",
]
