"""Rental and utility billing package."""

from myfinance.billing.calculator import (
    ArithmeticAnomaly,
    UsagePolicy,
    build_billing_record,
    compute_total,
    compute_usage,
    compute_utility_amount,
    meter_amount,
)
from myfinance.billing.summary import (
    RentalSummary,
    bills_for_month,
    bills_for_unit,
    monthly_income,
    monthly_rental_summary,
    occupied_units,
    total_rental_income,
    vacant_units,
)

__all__ = [
    "ArithmeticAnomaly",
    "RentalSummary",
    "UsagePolicy",
    "bills_for_month",
    "bills_for_unit",
    "build_billing_record",
    "compute_total",
    "compute_usage",
    "compute_utility_amount",
    "meter_amount",
    "monthly_income",
    "monthly_rental_summary",
    "occupied_units",
    "total_rental_income",
    "vacant_units",
]
