"""Kronos cron module -- Cron-Ausdrücke, Suche und selbst-neuplanende Jobs."""

from kronos.cron.expression import CronExpression, match_field, parse_field
from kronos.cron.job import JobState, ScheduledJob
from kronos.cron.search import iter_matches, next_match

__all__ = [
    "CronExpression",
    "JobState",
    "ScheduledJob",
    "iter_matches",
    "match_field",
    "next_match",
    "parse_field",
]
