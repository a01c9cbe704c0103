"""Suche des nächsten passenden Zeitpunkts für einen Cron-Ausdruck.

Die Suche läuft sekundenweise vorwärts. Passt ein gröberes Feld nicht
(Datum, Stunde, Minute), wird direkt an den Anfang des nächsten Tages,
der nächsten Stunde bzw. Minute gesprungen -- keine der übersprungenen
Sekunden könnte passen, das Ergebnis ist also identisch mit dem eines
reinen Sekunden-Scans. Der Horizont zählt Sekunden, nicht Schritte.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta

from kronos.config import DEFAULT_SEARCH_HORIZON_SECONDS
from kronos.cron.expression import CronExpression
from kronos.errors import SearchExhausted

_ONE_SECOND = timedelta(seconds=1)
_ONE_MINUTE = timedelta(minutes=1)
_ONE_HOUR = timedelta(hours=1)
_ONE_DAY = timedelta(days=1)
_EPSILON = timedelta(microseconds=1)


def _coerce(rule: CronExpression | str) -> CronExpression:
    if isinstance(rule, CronExpression):
        return rule
    return CronExpression.parse(rule)


def next_match(
    rule: CronExpression | str,
    from_instant: datetime,
    *,
    horizon_seconds: int = DEFAULT_SEARCH_HORIZON_SECONDS,
) -> datetime:
    """Gibt den frühesten passenden Zeitpunkt ab ``from_instant`` zurück.

    Liegt ``from_instant`` exakt auf einer vollen Sekunde und passt, wird
    er unverändert zurückgegeben. Sonst beginnt die Suche bei der nächsten
    vollen Sekunde. Die Felder werden in der Zeitzone von ``from_instant``
    ausgewertet.

    Args:
        rule: CronExpression oder Ausdruck als String.
        from_instant: Startzeitpunkt.
        horizon_seconds: Maximale Suchweite ab der ersten Kandidaten-Sekunde.

    Returns:
        Passender Zeitpunkt mit ``microsecond == 0``.

    Raises:
        SearchExhausted: Kein Treffer innerhalb des Horizonts.
        InvalidCronExpression: Wenn ``rule`` ein ungültiger String ist.
    """
    expression = _coerce(rule)

    if from_instant.microsecond == 0 and expression.matches(from_instant):
        return from_instant

    first = from_instant.replace(microsecond=0) + _ONE_SECOND
    limit = first + timedelta(seconds=horizon_seconds)
    candidate = first

    while candidate < limit:
        if not expression.matches_date(candidate):
            candidate = candidate.replace(hour=0, minute=0, second=0) + _ONE_DAY
        elif not expression.hour.matches(candidate.hour):
            candidate = candidate.replace(minute=0, second=0) + _ONE_HOUR
        elif not expression.minute.matches(candidate.minute):
            candidate = candidate.replace(second=0) + _ONE_MINUTE
        elif not expression.second.matches(candidate.second):
            candidate += _ONE_SECOND
        else:
            return candidate

    raise SearchExhausted(
        f"Kein Treffer für '{expression}' innerhalb von {horizon_seconds} Sekunden",
        details={
            "rule": expression.source,
            "from": from_instant.isoformat(),
            "horizon_seconds": horizon_seconds,
        },
    )


def iter_matches(
    rule: CronExpression | str,
    from_instant: datetime,
    *,
    horizon_seconds: int = DEFAULT_SEARCH_HORIZON_SECONDS,
) -> Iterator[datetime]:
    """Liefert fortlaufend die passenden Zeitpunkte ab ``from_instant``."""
    expression = _coerce(rule)
    current = next_match(expression, from_instant, horizon_seconds=horizon_seconds)
    while True:
        yield current
        current = next_match(expression, current + _EPSILON, horizon_seconds=horizon_seconds)
