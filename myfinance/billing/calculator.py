"""
Utility Billing Calculator

Derives a month's bill for a rental unit from two meter readings per
utility, a per-unit tariff, flat extra charges and the unit's base rent.

All arithmetic is Decimal and unrounded. Rounding happens at display time
only, so several additions never compound a rounding error.

DESIGN DECISION: A current reading below the previous one (meter
replaced, rollover, typo) is never turned silently into a negative bill
line. The UsagePolicy decides: REJECT raises ArithmeticAnomaly, CLAMP
bills zero usage and leaves it to the validator to warn.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from myfinance.ledger.currency import to_decimal
from myfinance.models.records import (
    AdditionalCharge,
    MeterReading,
    RentalBillingRecord,
    RentalUnit,
)


class UsagePolicy(str, Enum):
    """What to do when a meter reading goes backwards."""
    REJECT = "reject"
    CLAMP = "clamp"


class ArithmeticAnomaly(ArithmeticError):
    """Meter usage came out negative (current reading < previous)."""

    def __init__(self, previous: Decimal, current: Decimal, meter: str = "meter"):
        self.previous = previous
        self.current = current
        self.meter = meter
        super().__init__(
            f"{meter} reading went backwards: previous {previous}, current {current}"
        )


def compute_usage(
    previous,
    current,
    policy: UsagePolicy = UsagePolicy.REJECT,
    meter: str = "meter",
) -> Decimal:
    """Units consumed between two readings."""
    previous = to_decimal(previous, "previous reading")
    current = to_decimal(current, "current reading")

    usage = current - previous
    if usage < 0:
        if UsagePolicy(policy) == UsagePolicy.CLAMP:
            return Decimal("0")
        raise ArithmeticAnomaly(previous, current, meter)
    return usage


def compute_utility_amount(usage, rate_per_unit) -> Decimal:
    return to_decimal(usage, "usage") * to_decimal(rate_per_unit, "rate per unit")


def compute_total(
    base_rent,
    electricity_amount,
    water_amount,
    additional_charges: Iterable = (),
) -> Decimal:
    """
    base rent + electricity + water + every additional charge.

    additional_charges may hold AdditionalCharge models or
    {"description", "amount"} dicts.
    """
    total = (
        to_decimal(base_rent, "base rent")
        + to_decimal(electricity_amount, "electricity amount")
        + to_decimal(water_amount, "water amount")
    )
    for charge in additional_charges:
        amount = charge["amount"] if isinstance(charge, dict) else charge.amount
        total += to_decimal(amount, "additional charge")
    return total


def meter_amount(
    reading: MeterReading,
    policy: UsagePolicy = UsagePolicy.REJECT,
    meter: str = "meter",
) -> Decimal:
    usage = compute_usage(reading.previous, reading.current, policy, meter)
    return compute_utility_amount(usage, reading.rate_per_unit)


def build_billing_record(
    unit: RentalUnit,
    billing_month: str,
    electricity: MeterReading,
    water: MeterReading,
    additional_charges: Optional[list[AdditionalCharge]] = None,
    recorded_on: Optional[date] = None,
    policy: UsagePolicy = UsagePolicy.REJECT,
) -> RentalBillingRecord:
    """
    Assemble a billing record for one unit and month.

    The unit's current base rent is copied into the record. Nothing is
    persisted here; RentalService owns that step.
    """
    additional_charges = list(additional_charges or [])

    total = compute_total(
        unit.base_rent,
        meter_amount(electricity, policy, "electricity"),
        meter_amount(water, policy, "water"),
        additional_charges,
    )

    return RentalBillingRecord(
        unit_id=unit.id,
        billing_month=billing_month,
        recorded_on=recorded_on or date.today(),
        base_rent=unit.base_rent,
        currency=unit.currency,
        electricity_reading=electricity,
        water_reading=water,
        additional_charges=additional_charges,
        total_amount=total,
    )
