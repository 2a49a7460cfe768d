"""
Error types raised by the core, gathered in one place.

Each is defined next to the code that raises it; import from here when
handling failures at an application boundary.
"""

from myfinance.billing.calculator import ArithmeticAnomaly
from myfinance.calendar.table import CalendarRangeError
from myfinance.ledger.currency import InvalidAmountError
from myfinance.services import RecordRejectedError
from myfinance.store.interface import (
    DuplicateError,
    NotFoundError,
    StoreConnectionError,
    StoreError,
)

__all__ = [
    "ArithmeticAnomaly",
    "CalendarRangeError",
    "DuplicateError",
    "InvalidAmountError",
    "NotFoundError",
    "RecordRejectedError",
    "StoreConnectionError",
    "StoreError",
]
