"""Tests für Cron-Ausdrücke: Feld-Parser, Matching und 5/6-Feld-Format."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from kronos.cron.expression import (
    AnyOf,
    CronExpression,
    Exact,
    Range,
    SteppedRange,
    SteppedWildcard,
    Wildcard,
    match_field,
    parse_field,
)
from kronos.errors import InvalidCronExpression, InvalidTimeframe

# ============================================================================
# parse_field
# ============================================================================


class TestParseField:
    def test_wildcard(self) -> None:
        assert parse_field("*", 0, 59) == Wildcard()

    def test_exact(self) -> None:
        assert parse_field("7", 0, 59) == Exact(7)

    def test_range(self) -> None:
        assert parse_field("1-5", 0, 6) == Range(1, 5)

    def test_stepped_wildcard(self) -> None:
        assert parse_field("*/15", 0, 59) == SteppedWildcard(15)

    def test_stepped_range(self) -> None:
        assert parse_field("10-20/2", 0, 59) == SteppedRange(10, 20, 2)

    def test_start_with_step_is_exact(self) -> None:
        assert parse_field("10/15", 0, 59) == Exact(10)

    def test_start_with_step_still_validates_step(self) -> None:
        with pytest.raises(InvalidCronExpression, match="Schrittweite"):
            parse_field("10/0", 0, 59)

    def test_list_of_mixed_patterns(self) -> None:
        assert parse_field("1,5-7,*/20", 0, 59) == AnyOf(
            (Exact(1), Range(5, 7), SteppedWildcard(20))
        )

    def test_surrounding_whitespace_ignored(self) -> None:
        assert parse_field(" 5 ", 0, 59) == Exact(5)

    def test_step_larger_than_domain_allowed(self) -> None:
        assert parse_field("*/999", 0, 59) == SteppedWildcard(999)

    @pytest.mark.parametrize("pattern", ["*/0", "1-5/0", "*/", "*/x"])
    def test_invalid_step_rejected(self, pattern: str) -> None:
        with pytest.raises(InvalidCronExpression, match="Schrittweite"):
            parse_field(pattern, 0, 59)

    @pytest.mark.parametrize("pattern", ["60", "0-60", "99/2"])
    def test_out_of_domain_rejected(self, pattern: str) -> None:
        with pytest.raises(InvalidCronExpression, match="außerhalb"):
            parse_field(pattern, 0, 59)

    @pytest.mark.parametrize("pattern", ["MON", "-1", "1-", "a-b", "1,,2", ""])
    def test_garbage_rejected(self, pattern: str) -> None:
        with pytest.raises(InvalidCronExpression):
            parse_field(pattern, 0, 59)

    def test_reversed_range_rejected(self) -> None:
        with pytest.raises(InvalidCronExpression, match="leer"):
            parse_field("20-10", 0, 59)

    def test_error_is_an_invalid_timeframe(self) -> None:
        with pytest.raises(InvalidTimeframe):
            parse_field("*/0", 0, 59)


# ============================================================================
# match_field
# ============================================================================


class TestMatchField:
    def test_wildcard_matches_everything(self) -> None:
        assert all(match_field(v, "*", 0, 59) for v in range(60))

    def test_exact(self) -> None:
        assert match_field(30, "30", 0, 59)
        assert not match_field(31, "30", 0, 59)

    def test_step_from_zero(self) -> None:
        assert match_field(0, "*/5", 0, 59)
        assert match_field(55, "*/5", 0, 59)
        assert not match_field(7, "*/5", 0, 59)

    def test_range_inclusive(self) -> None:
        assert match_field(1, "1-5", 0, 6)
        assert match_field(5, "1-5", 0, 6)
        assert not match_field(0, "1-5", 0, 6)
        assert not match_field(6, "1-5", 0, 6)

    def test_stepped_range_counts_from_start(self) -> None:
        assert match_field(10, "10-20/2", 0, 59)
        assert match_field(20, "10-20/2", 0, 59)
        assert not match_field(11, "10-20/2", 0, 59)
        assert not match_field(22, "10-20/2", 0, 59)

    def test_step_without_range_matches_start_only(self) -> None:
        assert match_field(10, "10/15", 0, 59)
        assert not match_field(25, "10/15", 0, 59)
        assert not match_field(40, "10/15", 0, 59)

    def test_list(self) -> None:
        assert match_field(10, "5,10,15", 0, 59)
        assert not match_field(7, "5,10,15", 0, 59)

    def test_day_of_month_step_uses_modulo(self) -> None:
        # */7 auf 1-31 trifft 7, 14, 21, 28 -- nicht den 1.
        matching = [d for d in range(1, 32) if match_field(d, "*/7", 1, 31)]
        assert matching == [7, 14, 21, 28]


# ============================================================================
# CronExpression
# ============================================================================


class TestCronExpression:
    def test_six_fields(self) -> None:
        expr = CronExpression.parse("*/5 0 12 * * 1-5")
        assert expr.second == SteppedWildcard(5)
        assert expr.minute == Exact(0)
        assert expr.hour == Exact(12)
        assert expr.day_of_month == Wildcard()
        assert expr.month == Wildcard()
        assert expr.day_of_week == Range(1, 5)

    def test_five_fields_shift_and_default_second(self) -> None:
        expr = CronExpression.parse("*/2 3 4 5 6")
        assert expr.second == Exact(0)
        assert expr.minute == SteppedWildcard(2)
        assert expr.hour == Exact(3)
        assert expr.day_of_month == Exact(4)
        assert expr.month == Exact(5)
        assert expr.day_of_week == Exact(6)

    def test_source_kept_verbatim(self) -> None:
        rule = "0  0 * * *"
        expr = CronExpression.parse(rule)
        assert expr.source == rule
        assert str(expr) == rule

    @pytest.mark.parametrize("rule", ["", "* * * *", "* * * * * * *"])
    def test_wrong_field_count(self, rule: str) -> None:
        with pytest.raises(InvalidCronExpression, match="5 oder 6 Felder"):
            CronExpression.parse(rule)

    def test_invalid_field_names_field(self) -> None:
        with pytest.raises(InvalidCronExpression) as exc_info:
            CronExpression.parse("0 0 25 * * *")
        assert exc_info.value.details["field"] == "hour"
        assert exc_info.value.error_code == "INVALID_CRON_EXPRESSION"

    def test_day_of_week_7_rejected(self) -> None:
        with pytest.raises(InvalidCronExpression):
            CronExpression.parse("0 0 * * 7")

    def test_matches_all_fields(self) -> None:
        expr = CronExpression.parse("30 15 9 1 1 *")
        assert expr.matches(datetime(2024, 1, 1, 9, 15, 30, tzinfo=UTC))
        assert not expr.matches(datetime(2024, 1, 1, 9, 15, 31, tzinfo=UTC))

    def test_sunday_is_zero(self) -> None:
        expr = CronExpression.parse("0 0 0 * * 0")
        # 2024-01-07 ist ein Sonntag
        assert expr.matches(datetime(2024, 1, 7, tzinfo=UTC))
        assert not expr.matches(datetime(2024, 1, 8, tzinfo=UTC))

    def test_day_fields_are_and_not_or(self) -> None:
        # Tag 1 UND Montag: 2024-01-01 ist ein Montag, 2024-02-01 ein Donnerstag
        expr = CronExpression.parse("0 0 1 * 1")
        assert expr.matches(datetime(2024, 1, 1, tzinfo=UTC))
        assert not expr.matches(datetime(2024, 2, 1, tzinfo=UTC))
        assert not expr.matches(datetime(2024, 1, 8, tzinfo=UTC))

    def test_february_31_never_matches(self) -> None:
        expr = CronExpression.parse("0 0 31 2 *")
        assert not expr.matches(datetime(2024, 2, 29, tzinfo=UTC))

    def test_expression_is_hashable(self) -> None:
        assert hash(CronExpression.parse("*/5 * * * * *")) == hash(
            CronExpression.parse("*/5 * * * * *")
        )
