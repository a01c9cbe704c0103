"""Kronos · Error hierarchy.

All custom exceptions inherit from KronosError, which carries an error_code
and optional details dict for programmatic handling.

Usage::

    from kronos.errors import InvalidTimeframe

    raise InvalidTimeframe("Invalid timeframe or cron string: '5x'", details={"timeframe": "5x"})
"""

from __future__ import annotations


class KronosError(Exception):
    """Base exception for all Kronos errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "KRONOS_ERROR",
        details: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class ConfigError(KronosError):
    """Configuration errors (unreadable file, invalid values)."""

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: dict | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, details=details)


class InvalidTimeframe(KronosError):
    """Timeframe token with an unknown unit or a non-positive count."""

    def __init__(
        self,
        message: str,
        error_code: str = "INVALID_TIMEFRAME",
        details: dict | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, details=details)


class InvalidCronExpression(InvalidTimeframe):
    """Cron expression that cannot be parsed.

    Subclass of InvalidTimeframe: ``subscribe()`` callers only need to
    catch one type for everything that is rejected synchronously.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "INVALID_CRON_EXPRESSION",
        details: dict | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, details=details)


class SearchExhausted(KronosError):
    """No matching instant within the search horizon."""

    def __init__(
        self,
        message: str,
        error_code: str = "SEARCH_EXHAUSTED",
        details: dict | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, details=details)
