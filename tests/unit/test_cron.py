"""Unit tests for cron parsing and next-occurrence evaluation."""

from __future__ import annotations

import datetime as dt

import pytest

from gitreporter.common.time import TimezoneAwareRequiredError
from gitreporter.cron import (
    InvalidCronExpressionError,
    next_occurrence,
    parse_cron_expression,
    validate_cron_expression,
)
from gitreporter.errors import ValidationError

TUESDAY = dt.datetime(2024, 7, 2, 10, 15, tzinfo=dt.UTC)


class TestParseCronExpression:
    """Tests for ``parse_cron_expression``."""

    def test_expands_lists_ranges_and_steps(self) -> None:
        """Each field is expanded into its explicit value set."""
        expr = parse_cron_expression("*/15 8-10 1,15 * 1-5")

        assert expr.minutes == frozenset({0, 15, 30, 45})
        assert expr.hours == frozenset({8, 9, 10})
        assert expr.days_of_month == frozenset({1, 15})
        assert len(expr.months) == 12
        assert expr.days_of_week == frozenset({1, 2, 3, 4, 5})
        assert expr.day_of_month_restricted is True
        assert expr.day_of_week_restricted is True

    def test_range_step_on_hour_field(self) -> None:
        """``a-b/n`` steps through the range."""
        expr = parse_cron_expression("0 9-17/4 * * *")
        assert expr.hours == frozenset({9, 13, 17})

    def test_day_of_week_seven_means_sunday(self) -> None:
        """Both 0 and 7 denote Sunday."""
        assert parse_cron_expression("0 0 * * 7").days_of_week == frozenset({0})

    def test_normalises_whitespace(self) -> None:
        """Validation returns the single-spaced source text."""
        assert validate_cron_expression("  0   9 *  * 1 ") == "0 9 * * 1"

    @pytest.mark.parametrize(
        ("expression", "fragment"),
        [
            ("0 9 * *", "expected 5 fields"),
            ("0 9 * * * *", "expected 5 fields"),
            ("60 9 * * *", "minute value 60"),
            ("0 24 * * *", "hour value 24"),
            ("0 9 0 * *", "day-of-month value 0"),
            ("0 9 * 13 *", "month value 13"),
            ("0 9 * * 8", "day-of-week value 8"),
            ("0 9 */2 * *", "step syntax is not supported for day-of-month"),
            ("0 9 * * MON", "malformed day-of-week"),
            ("0 9 5-1 * *", "malformed day-of-month"),
            ("*/0 9 * * *", "malformed minute"),
            ("0 9 30 2 *", "no calendar date"),
        ],
        ids=[
            "too-few-fields",
            "too-many-fields",
            "minute-range",
            "hour-range",
            "dom-range",
            "month-range",
            "dow-range",
            "dom-step",
            "named-day",
            "reversed-range",
            "zero-step",
            "february-30",
        ],
    )
    def test_rejects_invalid_expressions(self, expression: str, fragment: str) -> None:
        """Invalid expressions raise a validation error naming the problem."""
        with pytest.raises(InvalidCronExpressionError) as excinfo:
            parse_cron_expression(expression)

        assert fragment in str(excinfo.value), (
            f"expected {fragment!r} in {excinfo.value}"
        )
        assert isinstance(excinfo.value, ValidationError)

    def test_february_thirtieth_allowed_when_day_of_week_restricted(self) -> None:
        """A restricted day-of-week can still fire through the OR rule."""
        reference = dt.datetime(2024, 2, 1, tzinfo=dt.UTC)
        # 2024-02-05 is the first Monday in February.
        assert next_occurrence("0 9 30 2 1", reference) == dt.datetime(
            2024, 2, 5, 9, 0, tzinfo=dt.UTC
        )


class TestNextOccurrence:
    """Tests for ``next_occurrence``."""

    def test_weekly_from_tuesday_resolves_to_next_monday(self) -> None:
        """``0 9 * * 1`` evaluated on a Tuesday lands on the next Monday."""
        result = next_occurrence("0 9 * * 1", TUESDAY)
        assert result == dt.datetime(2024, 7, 8, 9, 0, tzinfo=dt.UTC)

    def test_result_is_strictly_after_reference(self) -> None:
        """A reference exactly on a match advances to the following match."""
        reference = dt.datetime(2024, 7, 2, 9, 0, tzinfo=dt.UTC)
        assert next_occurrence("0 9 * * *", reference) == dt.datetime(
            2024, 7, 3, 9, 0, tzinfo=dt.UTC
        )

    def test_seconds_are_truncated(self) -> None:
        """Sub-minute references still yield whole-minute results."""
        reference = dt.datetime(2024, 7, 2, 9, 0, 30, tzinfo=dt.UTC)
        assert next_occurrence("* * * * *", reference) == dt.datetime(
            2024, 7, 2, 9, 1, tzinfo=dt.UTC
        )

    def test_successive_occurrences_strictly_increase(self) -> None:
        """Feeding each result back in always moves forward."""
        current = TUESDAY
        for _ in range(50):
            following = next_occurrence("*/20 */5 * * *", current)
            assert following > current
            current = following

    def test_evaluates_in_configured_timezone(self) -> None:
        """Fields are interpreted as wall-clock time in the given zone."""
        reference = dt.datetime(2024, 7, 2, 12, 0, tzinfo=dt.UTC)
        result = next_occurrence("0 9 * * *", reference, "America/New_York")
        assert result == dt.datetime(2024, 7, 2, 13, 0, tzinfo=dt.UTC)

    def test_day_of_month_or_day_of_week(self) -> None:
        """With both day fields restricted either one may match."""
        reference = dt.datetime(2024, 7, 2, 0, 0, tzinfo=dt.UTC)
        # 2024-07-05 is a Friday, earlier than the 15th.
        assert next_occurrence("0 0 15 * 5", reference) == dt.datetime(
            2024, 7, 5, 0, 0, tzinfo=dt.UTC
        )

    def test_leap_day(self) -> None:
        """February 29th resolves to the next leap year."""
        reference = dt.datetime(2024, 3, 1, tzinfo=dt.UTC)
        assert next_occurrence("0 0 29 2 *", reference) == dt.datetime(
            2028, 2, 29, 0, 0, tzinfo=dt.UTC
        )

    def test_missing_day_is_skipped_not_rolled_over(self) -> None:
        """Day 31 skips 30-day months instead of spilling into the next month."""
        reference = dt.datetime(2024, 4, 1, tzinfo=dt.UTC)
        assert next_occurrence("0 0 31 * *", reference) == dt.datetime(
            2024, 5, 31, 0, 0, tzinfo=dt.UTC
        )

    def test_repeated_hour_at_fall_back_stays_ahead(self) -> None:
        """Wall-clock times repeated by a DST fall-back never move backwards."""
        # 2024-11-03 01:30 America/New_York happens at 05:30 and 06:30 UTC.
        reference = dt.datetime(2024, 11, 3, 6, 0, tzinfo=dt.UTC)
        result = next_occurrence("30 1 * * *", reference, "America/New_York")
        assert result > reference

    def test_month_rollover(self) -> None:
        """Month-end references roll over into the next matching month."""
        reference = dt.datetime(2024, 12, 31, 23, 59, tzinfo=dt.UTC)
        assert next_occurrence("0 0 1 * *", reference) == dt.datetime(
            2025, 1, 1, 0, 0, tzinfo=dt.UTC
        )

    def test_accepts_parsed_expression(self) -> None:
        """A pre-parsed expression evaluates identically to its text."""
        expr = parse_cron_expression("30 6 * * 1-5")
        assert next_occurrence(expr, TUESDAY) == next_occurrence(
            "30 6 * * 1-5", TUESDAY
        )

    def test_rejects_naive_reference(self) -> None:
        """Naive datetimes are refused."""
        with pytest.raises(TimezoneAwareRequiredError):
            next_occurrence("0 9 * * *", dt.datetime(2024, 7, 2, 9, 0))  # noqa: DTZ001

    def test_rejects_unknown_timezone(self) -> None:
        """Unknown IANA names raise ``ValueError``."""
        with pytest.raises(ValueError, match="Mars/Olympus"):
            next_occurrence("0 9 * * *", TUESDAY, "Mars/Olympus")
