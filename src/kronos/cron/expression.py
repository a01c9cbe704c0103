"""Cron-Ausdrücke: Parsen und Feld-Matching.

Jedes der sechs Felder wird beim Erzeugen der CronExpression einmal in
eine Pattern-Variante übersetzt (Wildcard, Exact, AnyOf, Range,
SteppedWildcard, SteppedRange). Das Matching pro Tick arbeitet nur noch
auf diesen Objekten, Strings werden nicht erneut zerlegt.

Unterstützte Feld-Syntax::

    *        jeder Wert
    5        exakt
    1,15,30  Liste (Elemente dürfen selbst Bereiche/Schritte sein)
    9-17     Bereich inklusive
    */5      Vielfache von 5
    10-20/2  Bereich mit Schrittweite, gezählt ab Bereichsanfang
    10/15    wie 10 (Schritt ohne Bereich wird ignoriert)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from kronos.errors import InvalidCronExpression

# ============================================================================
# Feld-Domänen
# ============================================================================

FIELD_NAMES: tuple[str, ...] = (
    "second",
    "minute",
    "hour",
    "day_of_month",
    "month",
    "day_of_week",
)

FIELD_BOUNDS: dict[str, tuple[int, int]] = {
    "second": (0, 59),
    "minute": (0, 59),
    "hour": (0, 23),
    "day_of_month": (1, 31),
    "month": (1, 12),
    "day_of_week": (0, 6),  # 0 = Sonntag
}


# ============================================================================
# Pattern-Varianten
# ============================================================================


@dataclass(frozen=True)
class Wildcard:
    """``*``"""

    def matches(self, value: int) -> bool:
        return True


@dataclass(frozen=True)
class Exact:
    value: int

    def matches(self, value: int) -> bool:
        return value == self.value


@dataclass(frozen=True)
class AnyOf:
    """Komma-Liste: passt, wenn irgendein Element passt."""

    options: tuple[FieldPattern, ...]

    def matches(self, value: int) -> bool:
        return any(option.matches(value) for option in self.options)


@dataclass(frozen=True)
class Range:
    start: int
    end: int

    def matches(self, value: int) -> bool:
        return self.start <= value <= self.end


@dataclass(frozen=True)
class SteppedWildcard:
    """``*/step`` -- Vielfache von step, unabhängig vom Domänen-Minimum."""

    step: int

    def matches(self, value: int) -> bool:
        return value % self.step == 0


@dataclass(frozen=True)
class SteppedRange:
    start: int
    end: int
    step: int

    def matches(self, value: int) -> bool:
        if value < self.start or value > self.end:
            return False
        return (value - self.start) % self.step == 0


FieldPattern = Union[Wildcard, Exact, AnyOf, Range, SteppedWildcard, SteppedRange]


# ============================================================================
# Parser
# ============================================================================


def _parse_value(token: str, pattern: str, min_value: int, max_value: int) -> int:
    if not token.isdigit():
        raise InvalidCronExpression(
            f"Ungültiger Wert '{token}' in Feld '{pattern}'",
            details={"pattern": pattern, "token": token},
        )
    value = int(token)
    if not min_value <= value <= max_value:
        raise InvalidCronExpression(
            f"Wert {value} in Feld '{pattern}' liegt außerhalb von {min_value}-{max_value}",
            details={"pattern": pattern, "min": min_value, "max": max_value},
        )
    return value


def _parse_range(token: str, pattern: str, min_value: int, max_value: int) -> tuple[int, int]:
    start_token, _, end_token = token.partition("-")
    start = _parse_value(start_token, pattern, min_value, max_value)
    end = _parse_value(end_token, pattern, min_value, max_value)
    if start > end:
        raise InvalidCronExpression(
            f"Bereich '{token}' ist leer (Anfang > Ende)",
            details={"pattern": pattern},
        )
    return start, end


def parse_field(pattern: str, min_value: int, max_value: int) -> FieldPattern:
    """Übersetzt ein einzelnes Cron-Feld in seine Pattern-Variante.

    Args:
        pattern: Feld-Text, z.B. ``"*/5"`` oder ``"1-5,10"``.
        min_value: Kleinster zulässiger Wert des Felds.
        max_value: Größter zulässiger Wert des Felds.

    Raises:
        InvalidCronExpression: Bei leerem Feld, nicht-numerischen Werten,
            Werten außerhalb der Domäne, leeren Bereichen oder Schrittweite 0.
    """
    pattern = pattern.strip()
    if not pattern:
        raise InvalidCronExpression("Leeres Cron-Feld")

    if pattern == "*":
        return Wildcard()

    if "," in pattern:
        return AnyOf(tuple(parse_field(part, min_value, max_value) for part in pattern.split(",")))

    if "/" in pattern:
        range_token, _, step_token = pattern.partition("/")
        if not step_token.isdigit() or int(step_token) == 0:
            raise InvalidCronExpression(
                f"Ungültige Schrittweite in Feld '{pattern}'",
                details={"pattern": pattern},
            )
        step = int(step_token)
        if range_token == "*":
            return SteppedWildcard(step)
        if "-" in range_token:
            start, end = _parse_range(range_token, pattern, min_value, max_value)
            return SteppedRange(start, end, step)
        # Schritt ohne Bereich wirkt nicht: "10/15" passt nur auf 10
        return Exact(_parse_value(range_token, pattern, min_value, max_value))

    if "-" in pattern:
        start, end = _parse_range(pattern, pattern, min_value, max_value)
        return Range(start, end)

    return Exact(_parse_value(pattern, pattern, min_value, max_value))


def match_field(value: int, pattern: str, min_value: int, max_value: int) -> bool:
    """Prüft einen Wert gegen ein Feld-Pattern in Textform."""
    return parse_field(pattern, min_value, max_value).matches(value)


# ============================================================================
# CronExpression
# ============================================================================


@dataclass(frozen=True)
class CronExpression:
    """Geparster 6-Feld-Cron-Ausdruck.

    Ein Ausdruck mit 5 Feldern wird als ``0 <minute> <hour> <dom> <month> <dow>``
    gelesen, d.h. er feuert zur vollen Minute.

    Attributes:
        source: Der ursprüngliche Ausdruck, unverändert.
    """

    source: str
    second: FieldPattern
    minute: FieldPattern
    hour: FieldPattern
    day_of_month: FieldPattern
    month: FieldPattern
    day_of_week: FieldPattern

    @classmethod
    def parse(cls, rule: str) -> CronExpression:
        """Parst einen 5- oder 6-Feld-Ausdruck.

        Raises:
            InvalidCronExpression: Bei falscher Feldanzahl oder ungültigem Feld.
        """
        parts = rule.split()
        if len(parts) == 5:
            parts = ["0", *parts]
        if len(parts) != 6:
            raise InvalidCronExpression(
                f"Cron-Ausdruck muss 5 oder 6 Felder haben, hat {len(parts)}: '{rule}'",
                details={"rule": rule},
            )

        fields: dict[str, FieldPattern] = {}
        for name, part in zip(FIELD_NAMES, parts):
            min_value, max_value = FIELD_BOUNDS[name]
            try:
                fields[name] = parse_field(part, min_value, max_value)
            except InvalidCronExpression as exc:
                raise InvalidCronExpression(
                    f"Ungültiges Feld '{name}' in '{rule}': {exc}",
                    details={"rule": rule, "field": name, **exc.details},
                ) from exc
        return cls(source=rule, **fields)

    def matches_date(self, instant: datetime) -> bool:
        """Prüft nur Tag, Monat und Wochentag."""
        return (
            self.month.matches(instant.month)
            and self.day_of_month.matches(instant.day)
            and self.day_of_week.matches(instant.isoweekday() % 7)
        )

    def matches(self, instant: datetime) -> bool:
        """True wenn alle sechs Felder passen (kein ODER zwischen Tag-Feldern)."""
        return (
            self.second.matches(instant.second)
            and self.minute.matches(instant.minute)
            and self.hour.matches(instant.hour)
            and self.matches_date(instant)
        )

    def __str__(self) -> str:
        return self.source
