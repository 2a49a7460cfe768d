"""
Gregorian <-> Bikram Sambat conversion for display.

Regional dates are shown next to Gregorian ones; they are never stored or
compared. When a date falls outside the table, callers show the Gregorian
date alone (see CalendarConverter.describe).
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional

import structlog
from pydantic import BaseModel

from myfinance.calendar.table import (
    BikramSambatTable,
    CalendarRangeError,
    CalendarTable,
)


REGIONAL_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")

logger = structlog.get_logger(__name__)


class DateDisplay(BaseModel):
    """Everything a ledger row needs to show its date."""

    gregorian: str
    regional: Optional[str] = None
    label: str


class CalendarConverter:
    """
    Converts between Gregorian dates and "YYYY-MM-DD" regional strings.

    Round-trip guarantee: to_gregorian(to_regional(d)) == d for every d
    between table.first_date and table.last_date.
    """

    def __init__(
        self,
        table: Optional[CalendarTable] = None,
        show_regional: bool = True,
    ):
        self._table = table or BikramSambatTable()
        self.show_regional = show_regional

    @property
    def table(self) -> CalendarTable:
        return self._table

    def to_regional(self, day: date) -> str:
        if isinstance(day, datetime):
            day = day.date()

        table = self._table
        if not table.first_date <= day <= table.last_date:
            raise CalendarRangeError(
                f"{day.isoformat()} is outside "
                f"{table.first_date.isoformat()}..{table.last_date.isoformat()}"
            )

        offset = (day - table.first_date).days
        year = table.first_year
        while offset >= table.days_in_year(year):
            offset -= table.days_in_year(year)
            year += 1

        month = 1
        for length in table.month_lengths(year):
            if offset < length:
                break
            offset -= length
            month += 1

        return f"{year:04d}-{month:02d}-{offset + 1:02d}"

    def to_gregorian(self, regional: str) -> date:
        match = REGIONAL_DATE_PATTERN.match(regional.strip())
        if not match:
            raise CalendarRangeError(f"Not a YYYY-MM-DD date: {regional!r}")
        year, month, day = (int(part) for part in match.groups())

        if not self._table.supports_year(year):
            raise CalendarRangeError(
                f"Year {year} is outside "
                f"{self._table.first_year}-{self._table.last_year}"
            )
        if not 1 <= day <= self._table.days_in_month(year, month):
            raise CalendarRangeError(
                f"Day {day} does not exist in {year}-{month:02d}"
            )

        before = sum(self._table.month_lengths(year)[:month - 1])
        return self._table.year_start(year) + timedelta(days=before + day - 1)

    def try_regional(self, day: date) -> Optional[str]:
        """Regional string, or None when the table cannot cover the date."""
        try:
            return self.to_regional(day)
        except CalendarRangeError as e:
            logger.debug("regional_date_unavailable", day=str(day), reason=str(e))
            return None

    def describe(
        self,
        day: date,
        today: date,
        show_regional: Optional[bool] = None,
    ) -> DateDisplay:
        """
        Build the display bundle for a date.

        The label is "Today", "Yesterday" or e.g. "Dec 5, 2024".
        show_regional=None follows the converter's own setting.
        """
        if show_regional is None:
            show_regional = self.show_regional
        if isinstance(day, datetime):
            day = day.date()

        if day == today:
            label = "Today"
        elif day == today - timedelta(days=1):
            label = "Yesterday"
        else:
            label = f"{day:%b} {day.day}, {day.year}"

        return DateDisplay(
            gregorian=day.isoformat(),
            regional=self.try_regional(day) if show_regional else None,
            label=label,
        )


_default_converter: Optional[CalendarConverter] = None


def get_converter() -> CalendarConverter:
    """Shared converter over the embedded table."""
    global _default_converter
    if _default_converter is None:
        _default_converter = CalendarConverter()
    return _default_converter


def to_regional(day: date) -> str:
    return get_converter().to_regional(day)


def to_gregorian(regional: str) -> date:
    return get_converter().to_gregorian(regional)
