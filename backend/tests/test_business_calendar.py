"""Tests for the banking calendar and the bundled holiday table."""
import json
from datetime import date

import pytest

from payables.core.config import DEFAULT_HOLIDAY_CALENDAR
from payables.core.exceptions import ValidationError
from payables.rules.business_calendar import BusinessCalendar, load_calendar, parse_holiday_table


def test_saturday_rolls_to_monday(calendar):
    assert calendar.next_business_day(date(2025, 6, 28)) == date(2025, 6, 30)


def test_business_day_is_kept(calendar):
    assert calendar.next_business_day(date(2025, 6, 30)) == date(2025, 6, 30)


def test_holiday_rolls_to_next_day(calendar):
    # Canada Day 2025 is a Tuesday
    assert not calendar.is_business_day(date(2025, 7, 1))
    assert calendar.next_business_day(date(2025, 7, 1)) == date(2025, 7, 2)


def test_christmas_run_skips_holidays_and_weekend(calendar):
    # Thu 25 + Fri 26 holidays, then the weekend
    assert calendar.next_business_day(date(2025, 12, 25)) == date(2025, 12, 29)


def test_add_business_days_skips_weekend(calendar):
    # Friday + 1 business day → Monday
    assert calendar.add_business_days(date(2025, 6, 27), 1) == date(2025, 6, 30)
    assert calendar.add_business_days(date(2025, 6, 27), 0) == date(2025, 6, 27)


def test_calendar_without_working_days_is_rejected():
    with pytest.raises(ValidationError):
        BusinessCalendar(weekend_days=frozenset(range(7)))


def test_parse_rejects_date_filed_under_wrong_year():
    table = {"CA": {"2025": {"2026-01-01": "New Year's Day"}}}
    with pytest.raises(ValidationError):
        parse_holiday_table(table, "CA")


def test_parse_rejects_unknown_jurisdiction():
    with pytest.raises(ValidationError) as exc_info:
        parse_holiday_table({"CA": {}}, "US")
    assert exc_info.value.field == "jurisdiction"


def test_load_calendar_from_file(tmp_path):
    path = tmp_path / "holidays.json"
    path.write_text(json.dumps({"QC": {"2025": {"2025-06-24": "Fête nationale"}}}), encoding="utf-8")

    calendar = load_calendar(path, "QC")

    assert calendar.is_holiday(date(2025, 6, 24))
    assert calendar.names[date(2025, 6, 24)] == "Fête nationale"


def test_bundled_canadian_calendar_covers_2024_to_2026():
    calendar = load_calendar(DEFAULT_HOLIDAY_CALENDAR, "CA")

    assert calendar.is_holiday(date(2024, 12, 25))
    assert calendar.is_holiday(date(2025, 7, 1))
    assert calendar.is_holiday(date(2026, 12, 26))
    assert len(calendar.holidays) == 33
