"""Validation package."""

from myfinance.validation.validator import (
    INFLOW_CATEGORIES,
    OUTFLOW_CATEGORIES,
    BillingValidator,
    RecordValidator,
    get_user_friendly_summary,
)

__all__ = [
    "INFLOW_CATEGORIES",
    "OUTFLOW_CATEGORIES",
    "BillingValidator",
    "RecordValidator",
    "get_user_friendly_summary",
]
