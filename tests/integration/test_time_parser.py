from datetime import datetime, timedelta

import pytest
import pytz

from ordercheck.time_parser import ParseFailure, normalize_time_text, parse_relative_time, is_parse_failure

REFERENCE = datetime(2024, 3, 31, 12, 0, tzinfo=pytz.UTC)


@pytest.mark.parametrize("text, expected", [
    ("1 minute ago", REFERENCE - timedelta(minutes=1)),
    ("5 minutes ago", REFERENCE - timedelta(minutes=5)),
    ("2 hours ago", REFERENCE - timedelta(hours=2)),
    ("3 days ago", REFERENCE - timedelta(days=3)),
    ("  10   MINUTES   ago ", REFERENCE - timedelta(minutes=10)),
    ("just now", REFERENCE),
    ("Now", REFERENCE),
])
def test_parses_relative_labels(text, expected):
    assert parse_relative_time(text, REFERENCE) == expected


def test_months_and_years_use_calendar_arithmetic():
    assert parse_relative_time("1 month ago", REFERENCE) == datetime(2024, 2, 29, 12, 0, tzinfo=pytz.UTC)
    assert parse_relative_time("2 years ago", REFERENCE) == datetime(2022, 3, 31, 12, 0, tzinfo=pytz.UTC)


@pytest.mark.parametrize("text", [
    "",
    None,
    "yesterday",
    "0 minutes ago",
    "-3 minutes ago",
    "five minutes ago",
    "3 weeks ago",
    "3 minutes",
    "²3 minutes ago",
])
def test_unparseable_labels_return_failure(text):
    result = parse_relative_time(text, REFERENCE)

    assert isinstance(result, ParseFailure)
    assert is_parse_failure(result)
    assert not result
    assert result.reason


def test_normalize_time_text():
    assert normalize_time_text("  3\tHours\n ago ") == "3 hours ago"
    assert normalize_time_text(None) == ""
