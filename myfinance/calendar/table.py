"""
Bikram Sambat Calendar Table

The Bikram Sambat (BS) calendar used in Nepal has twelve months whose
lengths (29 to 32 days) change from year to year. There is no formula;
month lengths are published in advance, so conversion is a table lookup.

DESIGN DECISION: The table is a collaborator behind CalendarTable, so a
deployment can swap in a longer or corrected table without touching the
converter. The embedded table covers BS 2060 through BS 2083
(AD 2003-04-14 through AD 2027-04-13).
"""

from abc import ABC, abstractmethod
from datetime import date, timedelta


class CalendarRangeError(ValueError):
    """Date outside the years covered by the calendar table."""
    pass


class CalendarTable(ABC):
    """
    Month-length table for a regional calendar.

    Implementations provide the month lengths per year and the Gregorian
    date on which the table's first year begins. Everything else is
    derived.
    """

    @property
    @abstractmethod
    def first_year(self) -> int:
        pass

    @property
    @abstractmethod
    def last_year(self) -> int:
        pass

    @property
    @abstractmethod
    def epoch(self) -> date:
        """Gregorian date of day 1, month 1 of first_year."""
        pass

    @abstractmethod
    def month_lengths(self, year: int) -> tuple[int, ...]:
        """Day counts for months 1..12 of a regional year."""
        pass

    def supports_year(self, year: int) -> bool:
        return self.first_year <= year <= self.last_year

    def days_in_month(self, year: int, month: int) -> int:
        if not 1 <= month <= 12:
            raise CalendarRangeError(f"Month {month} does not exist")
        return self.month_lengths(year)[month - 1]

    def days_in_year(self, year: int) -> int:
        return sum(self.month_lengths(year))

    def year_start(self, year: int) -> date:
        """Gregorian date of the first day of a regional year."""
        if not self.supports_year(year):
            raise CalendarRangeError(
                f"Year {year} is outside {self.first_year}-{self.last_year}"
            )
        offset = sum(self.days_in_year(y) for y in range(self.first_year, year))
        return self.epoch + timedelta(days=offset)

    @property
    def first_date(self) -> date:
        return self.epoch

    @property
    def last_date(self) -> date:
        return self.year_start(self.last_year) + timedelta(
            days=self.days_in_year(self.last_year) - 1
        )


# Baisakh .. Chaitra
BS_MONTH_LENGTHS: dict[int, tuple[int, ...]] = {
    2060: (31, 31, 32, 32, 31, 30, 30, 29, 30, 29, 30, 30),
    2061: (31, 32, 31, 32, 31, 30, 30, 30, 29, 29, 30, 31),
    2062: (30, 32, 31, 32, 31, 31, 29, 30, 29, 30, 29, 31),
    2063: (31, 31, 32, 31, 31, 31, 30, 29, 30, 29, 30, 30),
    2064: (31, 31, 32, 32, 31, 30, 30, 29, 30, 29, 30, 30),
    2065: (31, 32, 31, 32, 31, 30, 30, 30, 29, 29, 30, 31),
    2066: (31, 31, 31, 32, 31, 31, 29, 30, 30, 29, 29, 31),
    2067: (31, 31, 32, 31, 31, 31, 30, 29, 30, 29, 30, 30),
    2068: (31, 31, 32, 32, 31, 30, 30, 29, 30, 29, 30, 30),
    2069: (31, 32, 31, 32, 31, 30, 30, 30, 29, 29, 30, 31),
    2070: (31, 31, 31, 32, 31, 31, 29, 30, 30, 29, 30, 30),
    2071: (31, 31, 32, 31, 31, 31, 30, 29, 30, 29, 30, 30),
    2072: (31, 32, 31, 32, 31, 30, 30, 29, 30, 29, 30, 30),
    2073: (31, 32, 31, 32, 31, 30, 30, 30, 29, 29, 30, 31),
    2074: (31, 31, 31, 32, 31, 31, 30, 29, 30, 29, 30, 30),
    2075: (31, 31, 32, 31, 31, 31, 30, 29, 30, 29, 30, 30),
    2076: (31, 32, 31, 32, 31, 30, 30, 30, 29, 29, 30, 30),
    2077: (31, 32, 31, 32, 31, 30, 30, 30, 29, 30, 29, 31),
    2078: (31, 31, 31, 32, 31, 31, 30, 29, 30, 29, 30, 30),
    2079: (31, 31, 32, 31, 31, 31, 30, 29, 30, 29, 30, 30),
    2080: (31, 32, 31, 32, 31, 30, 30, 30, 29, 29, 30, 30),
    2081: (31, 31, 32, 32, 31, 30, 30, 30, 29, 30, 30, 30),
    2082: (30, 32, 31, 32, 31, 30, 30, 30, 29, 30, 30, 30),
    2083: (31, 31, 32, 31, 31, 30, 30, 30, 29, 30, 30, 30),
}

# 1 Baisakh 2060
BS_EPOCH = date(2003, 4, 14)


class BikramSambatTable(CalendarTable):
    """Embedded Bikram Sambat table with cached year starts."""

    def __init__(
        self,
        month_lengths: dict[int, tuple[int, ...]] = BS_MONTH_LENGTHS,
        epoch: date = BS_EPOCH,
    ):
        years = sorted(month_lengths)
        if years != list(range(years[0], years[-1] + 1)):
            raise ValueError("Calendar table must cover consecutive years")
        for year, lengths in month_lengths.items():
            if len(lengths) != 12:
                raise ValueError(f"Year {year} must list 12 month lengths")

        self._lengths = dict(month_lengths)
        self._epoch = epoch
        self._year_starts: dict[int, date] = {}

        start = epoch
        for year in years:
            self._year_starts[year] = start
            start += timedelta(days=sum(month_lengths[year]))

    @property
    def first_year(self) -> int:
        return min(self._lengths)

    @property
    def last_year(self) -> int:
        return max(self._lengths)

    @property
    def epoch(self) -> date:
        return self._epoch

    def month_lengths(self, year: int) -> tuple[int, ...]:
        try:
            return self._lengths[year]
        except KeyError:
            raise CalendarRangeError(
                f"Year {year} is outside {self.first_year}-{self.last_year}"
            )

    def year_start(self, year: int) -> date:
        try:
            return self._year_starts[year]
        except KeyError:
            raise CalendarRangeError(
                f"Year {year} is outside {self.first_year}-{self.last_year}"
            )
