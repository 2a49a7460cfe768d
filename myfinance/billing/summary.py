"""Rental income summaries over stored billing records."""

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from pydantic import BaseModel

from myfinance.models.records import (
    OccupancyStatus,
    PaymentStatus,
    RentalBillingRecord,
    RentalUnit,
)


class RentalSummary(BaseModel):
    """Month-level figures for the rental dashboard."""

    month: str
    total_units: int
    occupied_units: int
    total_rent: Decimal
    total_utilities: Decimal
    total_additional: Decimal
    pending_payments: int

    @property
    def total_income(self) -> Decimal:
        return self.total_rent + self.total_utilities + self.total_additional


def bills_for_month(bills: Iterable[RentalBillingRecord], month: str) -> list[RentalBillingRecord]:
    return [b for b in bills if b.billing_month == month]


def bills_for_unit(bills: Iterable[RentalBillingRecord], unit_id: UUID) -> list[RentalBillingRecord]:
    return [b for b in bills if b.unit_id == unit_id]


def occupied_units(units: Iterable[RentalUnit]) -> list[RentalUnit]:
    return [u for u in units if u.occupancy_status == OccupancyStatus.OCCUPIED]


def vacant_units(units: Iterable[RentalUnit]) -> list[RentalUnit]:
    return [u for u in units if u.occupancy_status == OccupancyStatus.VACANT]


def total_rental_income(bills: Iterable[RentalBillingRecord]) -> Decimal:
    return sum((b.total_amount for b in bills), Decimal("0"))


def monthly_income(bills: Iterable[RentalBillingRecord], month: str) -> Decimal:
    return total_rental_income(bills_for_month(bills, month))


def monthly_rental_summary(
    units: Iterable[RentalUnit],
    bills: Iterable[RentalBillingRecord],
    month: str,
) -> RentalSummary:
    units = list(units)
    monthly = bills_for_month(bills, month)

    return RentalSummary(
        month=month,
        total_units=len(units),
        occupied_units=len(occupied_units(units)),
        total_rent=sum((b.base_rent for b in monthly), Decimal("0")),
        total_utilities=sum((b.utilities_total for b in monthly), Decimal("0")),
        total_additional=sum((b.additional_total for b in monthly), Decimal("0")),
        pending_payments=sum(
            1 for b in monthly if b.payment_status == PaymentStatus.PENDING
        ),
    )
