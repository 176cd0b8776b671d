"""Banking calendar: weekends and statutory holidays.

The holiday table is configuration, not code: ``load_calendar`` reads a JSON
file keyed by jurisdiction then year, e.g.

    {"CA": {"2025": {"2025-07-01": "Canada Day", ...}}}

Adding a year or a jurisdiction is a data change.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import lru_cache
from pathlib import Path

from payables.core.config import settings
from payables.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

SATURDAY = 5
SUNDAY = 6


@dataclass(frozen=True)
class BusinessCalendar:
    holidays: frozenset[date] = frozenset()
    weekend_days: frozenset[int] = frozenset({SATURDAY, SUNDAY})
    names: dict[date, str] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        if len(self.weekend_days) >= 7:
            raise ValidationError("A calendar needs at least one working weekday.", field="weekend_days")

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays

    def is_business_day(self, day: date) -> bool:
        return day.weekday() not in self.weekend_days and day not in self.holidays

    def next_business_day(self, day: date) -> date:
        """``day`` itself if it is a business day, otherwise the first one after it."""
        while not self.is_business_day(day):
            day += timedelta(days=1)
        return day

    def add_business_days(self, day: date, days: int) -> date:
        """Move forward ``days`` business days; 0 rolls to the next business day."""
        current = self.next_business_day(day)
        for _ in range(days):
            current = self.next_business_day(current + timedelta(days=1))
        return current


def parse_holiday_table(table: dict, jurisdiction: str) -> BusinessCalendar:
    """Build a calendar from the ``{jurisdiction: {year: {iso_date: name}}}`` table."""
    if jurisdiction not in table:
        raise ValidationError(
            f"No holiday table for jurisdiction '{jurisdiction}'.", field="jurisdiction"
        )

    names: dict[date, str] = {}
    for year, entries in table[jurisdiction].items():
        for iso_day, name in entries.items():
            day = date.fromisoformat(iso_day)
            if str(day.year) != str(year):
                raise ValidationError(
                    f"Holiday {iso_day} is filed under year {year}.", field="holidays"
                )
            names[day] = name

    return BusinessCalendar(holidays=frozenset(names), names=names)


def load_calendar(path: str | Path, jurisdiction: str) -> BusinessCalendar:
    with open(path, encoding="utf-8") as fh:
        table = json.load(fh)
    calendar = parse_holiday_table(table, jurisdiction)
    logger.info(
        "Loaded %d %s banking holidays from %s", len(calendar.holidays), jurisdiction, path,
    )
    return calendar


@lru_cache
def get_default_calendar() -> BusinessCalendar:
    """Calendar configured by HOLIDAY_CALENDAR_FILE / HOLIDAY_JURISDICTION."""
    return load_calendar(settings.HOLIDAY_CALENDAR_FILE, settings.HOLIDAY_JURISDICTION)
