"""Regional calendar conversion package."""

from myfinance.calendar.converter import (
    CalendarConverter,
    DateDisplay,
    get_converter,
    to_gregorian,
    to_regional,
)
from myfinance.calendar.table import (
    BikramSambatTable,
    CalendarRangeError,
    CalendarTable,
)

__all__ = [
    "BikramSambatTable",
    "CalendarConverter",
    "CalendarRangeError",
    "CalendarTable",
    "DateDisplay",
    "get_converter",
    "to_gregorian",
    "to_regional",
]
