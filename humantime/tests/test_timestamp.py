"""
Tests for natural-language instant and period resolution (humantime.parser.timestamp).
"""

from datetime import datetime, timedelta

import pytest

from humantime.errors import TIMESTAMP_EXAMPLES, ParseError
from humantime.parser.timestamp import (
    is_period_phrase,
    midnight,
    resolve_instant,
    resolve_period,
)

from .conftest import TEST_TZ


def at(day: int, hour: int = 0, minute: int = 0, month: int = 1, year: int = 2024) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=TEST_TZ)


class TestResolveInstant:
    """Test cases for resolve_instant."""

    @pytest.mark.parametrize("phrase", ["", "now", "  NOW "])
    def test_now_phrases_return_reference(self, phrase: str, now: datetime) -> None:
        """Test that empty and "now" phrases return the reference instant."""
        assert resolve_instant(phrase, now) == now

    @pytest.mark.parametrize(
        "phrase,expected",
        [
            ("2 hours ago", at(15, 10)),
            ("an hour ago", at(15, 11)),
            ("a day ago", at(14, 12)),
            ("30m ago", at(15, 11, 30)),
            ("1.5 hours ago", at(15, 10, 30)),
            ("1 week ago", at(8, 12)),
        ],
    )
    def test_relative_ago(self, phrase: str, expected: datetime, now: datetime) -> None:
        """Test "<n> <unit> ago" phrases."""
        assert resolve_instant(phrase, now) == expected

    def test_clock_time_earlier_today(self) -> None:
        """Test that a clock time resolves on the reference day."""
        # Arrange
        reference = at(15, 15)

        # Act
        result = resolve_instant("9:00am", reference)

        # Assert
        assert result == at(15, 9)

    @pytest.mark.parametrize(
        "phrase,expected",
        [
            ("14:30", at(15, 14, 30)),
            ("9am", at(15, 9)),
            ("5:30 pm", at(15, 17, 30)),
            ("12am", at(15, 0)),
            ("12pm", at(15, 12)),
            ("0:05", at(15, 0, 5)),
        ],
    )
    def test_clock_forms(self, phrase: str, expected: datetime, now: datetime) -> None:
        assert resolve_instant(phrase, now) == expected

    def test_yesterday_and_today(self, now: datetime) -> None:
        """Test that bare day names resolve to midnight."""
        assert resolve_instant("today", now) == at(15)
        assert resolve_instant("yesterday", now) == at(14)

    @pytest.mark.parametrize(
        "phrase,expected",
        [
            ("yesterday at 3pm", at(14, 15)),
            ("yesterday 09:15", at(14, 9, 15)),
            ("today at 8am", at(15, 8)),
        ],
    )
    def test_day_with_clock(self, phrase: str, expected: datetime, now: datetime) -> None:
        assert resolve_instant(phrase, now) == expected

    def test_period_phrase_resolves_to_period_start(self, now: datetime) -> None:
        """Test that period names resolve to the start of the period."""
        assert resolve_instant("this week", now) == at(15)
        assert resolve_instant("last month", now) == at(1, month=12, year=2023)

    def test_iso_timestamp_takes_reference_timezone(self, now: datetime) -> None:
        """Test that naive ISO input is interpreted in the reference timezone."""
        # Act
        result = resolve_instant("2024-01-10 08:30", now)

        # Assert
        assert result == at(10, 8, 30)
        assert result.tzinfo == TEST_TZ

    def test_result_keeps_reference_timezone(self, now: datetime) -> None:
        assert resolve_instant("2 hours ago", now).tzinfo == TEST_TZ
        assert resolve_instant("9am", now).tzinfo == TEST_TZ

    @pytest.mark.parametrize(
        "phrase",
        ["gibberish", "25:00", "13pm", "12:75", "5 fortnights ago", "yesterday at noonish"],
    )
    def test_invalid_phrase_raises_parse_error(self, phrase: str, now: datetime) -> None:
        """Test that unrecognized phrases raise ParseError with examples."""
        # Act & Assert
        with pytest.raises(ParseError) as exc_info:
            resolve_instant(phrase, now)

        assert exc_info.value.field == "timestamp"
        assert exc_info.value.input == phrase
        assert exc_info.value.examples == TIMESTAMP_EXAMPLES

    @pytest.mark.parametrize(
        "phrase", ["1000000 weeks ago", "999999999999 days ago", "99999999999999 hours ago"]
    )
    def test_out_of_range_phrase_raises_parse_error(self, phrase: str, now: datetime) -> None:
        """Test that well-formed phrases beyond the calendar still raise ParseError."""
        with pytest.raises(ParseError) as exc_info:
            resolve_instant(phrase, now)

        assert exc_info.value.input == phrase

    def test_parse_error_lists_examples(self, now: datetime) -> None:
        with pytest.raises(ParseError) as exc_info:
            resolve_instant("whenever", now)

        text = exc_info.value.format_with_examples()
        assert "whenever" in text
        assert "Valid examples:" in text
        assert "  - 9am" in text


class TestResolvePeriod:
    """Test cases for resolve_period."""

    def test_today_spans_one_day_from_midnight(self, now: datetime) -> None:
        """Test that "today" starts at midnight and lasts exactly 24 hours."""
        # Act
        period = resolve_period("today", now)

        # Assert
        assert period.start == midnight(now)
        assert period.duration == timedelta(hours=24)
        assert period.contains(now)

    @pytest.mark.parametrize(
        "name,start,end",
        [
            ("yesterday", at(14), at(15)),
            ("this week", at(15), at(22)),
            ("last week", at(8), at(15)),
            ("this month", at(1), at(1, month=2)),
            ("previous month", at(1, month=12, year=2023), at(1)),
            ("this quarter", at(1), at(1, month=4)),
            ("last quarter", at(1, month=10, year=2023), at(1)),
            ("this year", at(1), at(1, year=2025)),
            ("last year", at(1, year=2023), at(1)),
            ("this hour", at(15, 12), at(15, 13)),
            ("last day", at(14), at(15)),
        ],
    )
    def test_named_periods(
        self, name: str, start: datetime, end: datetime, now: datetime
    ) -> None:
        # Act
        period = resolve_period(name, now)

        # Assert
        assert period.start == start
        assert period.end == end

    def test_week_starts_on_monday(self) -> None:
        """Test that weeks start on Monday even late in the week."""
        # Arrange - Sunday 2024-01-21
        sunday = at(21, 18)

        # Act
        period = resolve_period("this week", sunday)

        # Assert
        assert period.start == at(15)
        assert period.start.weekday() == 0

    def test_unknown_period_falls_back_to_today(self, now: datetime) -> None:
        assert resolve_period("someday", now) == resolve_period("today", now)

    def test_period_names_are_normalized(self, now: datetime) -> None:
        assert resolve_period("  This   WEEK ", now) == resolve_period("this week", now)


class TestIsPeriodPhrase:
    """Test cases for is_period_phrase."""

    @pytest.mark.parametrize("phrase", ["today", "Last Week", "current  month", "this quarter"])
    def test_known_periods(self, phrase: str) -> None:
        assert is_period_phrase(phrase) is True

    @pytest.mark.parametrize("phrase", ["", "tomorrow", "next week", "9am"])
    def test_other_phrases(self, phrase: str) -> None:
        assert is_period_phrase(phrase) is False
