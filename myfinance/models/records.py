"""
Core Data Models for MyFinance

These models define the canonical in-memory shape of every record the
ledger, savings and rental modules work with.

DESIGN DECISION: There is exactly ONE internal representation per entity.
Storage backends use their own column names (snake_case sheets, legacy
"income"/"expense" labels, "is_personal" flags); that translation lives in
the store adapters and never leaks into aggregation or billing code.

All money is Decimal. Rounding happens only when a value is formatted for
display (see myfinance.ledger.currency).
"""

import re
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


BILLING_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Currency(str, Enum):
    """
    Supported currencies.

    Both use two minor-unit digits. Amounts in different currencies are
    never converted into each other by the core.
    """
    NPR = "NPR"
    USD = "USD"


class FlowKind(str, Enum):
    """Direction of money for a financial record."""
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class RecordScope(str, Enum):
    """Whether a record belongs to one person or to the household."""
    PERSONAL = "personal"
    SHARED = "shared"


class OccupancyStatus(str, Enum):
    OCCUPIED = "occupied"
    VACANT = "vacant"


class PaymentStatus(str, Enum):
    """Payment status for a billing cycle."""
    PENDING = "pending"
    PAID = "paid"


def _truncate_to_date(value):
    """Accept datetimes and ISO timestamps, keeping only the calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10 and value[10] in "T ":
        return value[:10]
    return value


# =============================================================================
# LEDGER MODELS
# =============================================================================

class FinancialRecord(BaseModel):
    """
    A single income or expense entry in the ledger.

    Records are only changed through an explicit update; the id is the
    identity. Nothing expires automatically.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique record ID"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Amount in the record's currency"
    )
    currency: Currency
    kind: FlowKind
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category (e.g. Food, Salary)"
    )
    sub_category: Optional[str] = Field(default=None, max_length=100)
    note: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Free-text description"
    )
    occurred_on: date = Field(
        ...,
        description="Calendar day of the transaction (no time component)"
    )
    scope: RecordScope = RecordScope.PERSONAL

    @field_validator("occurred_on", mode="before")
    @classmethod
    def drop_time_component(cls, v):
        return _truncate_to_date(v)

    @property
    def day_key(self) -> str:
        return self.occurred_on.isoformat()


class LedgerTotals(BaseModel):
    """Inflow and outflow sums for one currency."""

    inflow: Decimal = Decimal("0")
    outflow: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.inflow - self.outflow


# =============================================================================
# SAVINGS MODELS
# =============================================================================

class SavingsGoal(BaseModel):
    """
    A savings target with a deadline.

    current_amount may exceed target_amount; the model does not enforce a
    ceiling. Progress helpers clamp for display.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal = Field(..., gt=0, decimal_places=2)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    currency: Currency
    deadline: date

    @property
    def progress_ratio(self) -> Decimal:
        """Saved fraction of the target, capped at 1 for progress bars."""
        return min(self.current_amount / self.target_amount, Decimal("1"))

    @property
    def remaining_amount(self) -> Decimal:
        return max(self.target_amount - self.current_amount, Decimal("0"))

    def days_left(self, today: date) -> int:
        """Days until the deadline; negative once it has passed."""
        return (self.deadline - today).days


# =============================================================================
# RENTAL MODELS
# =============================================================================

class RentalUnit(BaseModel):
    """A rentable room or flat."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    unit_label: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Room number or label"
    )
    tenant_name: str = Field(default="", max_length=200)
    base_rent: Decimal = Field(..., ge=0, decimal_places=2)
    currency: Currency = Currency.NPR
    start_date: date
    occupancy_status: OccupancyStatus = OccupancyStatus.OCCUPIED


class MeterReading(BaseModel):
    """
    Two successive readings of a utility meter and the tariff.

    current >= previous is NOT enforced here. Reversed readings are a
    billing policy decision (see myfinance.billing.calculator).
    """

    previous: Decimal = Field(..., ge=0)
    current: Decimal = Field(..., ge=0)
    rate_per_unit: Decimal = Field(..., ge=0)

    @property
    def usage(self) -> Decimal:
        return self.current - self.previous

    @property
    def amount(self) -> Decimal:
        return self.usage * self.rate_per_unit


class AdditionalCharge(BaseModel):
    """A flat charge added to a billing cycle (maintenance, garbage, ...)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0, decimal_places=2)


class RentalBillingRecord(BaseModel):
    """
    One month's bill for a rental unit.

    base_rent is copied from the unit when the bill is created so later
    rent changes do not rewrite history. unit_id is a weak reference.
    """

    id: UUID = Field(default_factory=uuid4)
    unit_id: UUID
    billing_month: str = Field(
        ...,
        description="Billing month as YYYY-MM"
    )
    recorded_on: date = Field(default_factory=date.today)
    base_rent: Decimal = Field(..., ge=0)
    currency: Currency = Currency.NPR
    electricity_reading: MeterReading
    water_reading: MeterReading
    additional_charges: list[AdditionalCharge] = Field(default_factory=list)
    total_amount: Optional[Decimal] = Field(
        default=None,
        description="Derived total; filled from the readings when omitted"
    )
    payment_status: PaymentStatus = PaymentStatus.PENDING
    paid_on: Optional[date] = None

    @field_validator("billing_month")
    @classmethod
    def validate_billing_month(cls, v: str) -> str:
        if not BILLING_MONTH_PATTERN.match(v):
            raise ValueError(f"Billing month must be YYYY-MM, got {v!r}")
        return v

    @field_validator("recorded_on", "paid_on", mode="before")
    @classmethod
    def drop_time_component(cls, v):
        return _truncate_to_date(v)

    @model_validator(mode="after")
    def fill_total(self) -> "RentalBillingRecord":
        if self.total_amount is None:
            for meter, reading in (
                ("electricity", self.electricity_reading),
                ("water", self.water_reading),
            ):
                if reading.usage < 0:
                    raise ValueError(
                        f"Cannot derive total: {meter} reading went backwards "
                        f"({reading.previous} -> {reading.current})"
                    )
            self.total_amount = (
                self.base_rent
                + self.electricity_reading.amount
                + self.water_reading.amount
                + self.additional_total
            )
        if self.paid_on and self.paid_on < self.recorded_on:
            raise ValueError("Paid date cannot be before the billing date")
        return self

    @property
    def additional_total(self) -> Decimal:
        return sum((c.amount for c in self.additional_charges), Decimal("0"))

    @property
    def utilities_total(self) -> Decimal:
        """Electricity plus water, taken from the stored total."""
        return self.total_amount - self.base_rent - self.additional_total
