"""Übersetzung von Kurzform-Zeiträumen (``"5s"``, ``"2h"``) in Cron-Ausdrücke.

Klassifikation: Ein Token mit 5 oder 6 durch Leerzeichen getrennten Teilen
gilt als Cron-Ausdruck und wird unverändert durchgereicht. Alles andere
muss die Form ``<N><einheit>`` haben.

=======  ======================================
Einheit  Cron-Ausdruck
=======  ======================================
``s``    ``*/N * * * * *``
``m``    ``*/N * * * *``
``h``    ``0 */N * * *``
``d``    ``0 0 * * *`` (N = 1), sonst ``0 0 */N * *``
=======  ======================================
"""

from __future__ import annotations

from kronos.errors import InvalidTimeframe

TIMEFRAME_UNITS = ("s", "m", "h", "d")


def is_cron_expression(token: str) -> bool:
    """True wenn der Token aus 5 oder 6 Feldern besteht."""
    return len(token.split()) in (5, 6)


def to_cron_rule(token: str) -> str:
    """Übersetzt einen Zeitraum-Token in einen Cron-Ausdruck.

    Raises:
        InvalidTimeframe: Unbekannte Einheit oder keine positive Anzahl.
    """
    if is_cron_expression(token):
        return token

    unit = token[-1:]
    count = token[:-1]
    if unit not in TIMEFRAME_UNITS or not count.isdigit() or int(count) == 0:
        raise InvalidTimeframe(
            f"Invalid timeframe or cron string: '{token}'",
            details={"timeframe": token},
        )

    n = int(count)
    if unit == "s":
        return f"*/{n} * * * * *"
    if unit == "m":
        return f"*/{n} * * * *"
    if unit == "h":
        return f"0 */{n} * * *"
    if n == 1:
        return "0 0 * * *"
    return f"0 0 */{n} * *"
