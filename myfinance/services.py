"""
Application Services

Thin async collaborators that sit between a caller and the record stores.
They run validation, persist through a RecordStore, and audit every change.

DESIGN DECISION: Store failures are never swallowed here. Each one is
written to the audit log and then re-raised unchanged, so the caller
decides what the user sees.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Awaitable, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

from myfinance.audit import AuditLogger, create_correlation_id
from myfinance.billing import (
    ArithmeticAnomaly,
    RentalSummary,
    UsagePolicy,
    bills_for_unit,
    build_billing_record,
    monthly_rental_summary,
)
from myfinance.config.settings import UserPreferences
from myfinance.ledger import (
    InvalidAmountError,
    filter_by_range,
    group_by_day,
    sort_day_keys,
    to_decimal,
    totals,
)
from myfinance.models.records import (
    AdditionalCharge,
    Currency,
    FinancialRecord,
    LedgerTotals,
    MeterReading,
    PaymentStatus,
    RentalBillingRecord,
    RentalUnit,
    SavingsGoal,
)
from myfinance.models.validation import ValidationResult
from myfinance.store.interface import NotFoundError, RecordStore, StoreError
from myfinance.validation import BillingValidator, RecordValidator


T = TypeVar("T")


class RecordRejectedError(ValueError):
    """Validation found errors, so nothing was stored."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(i.message for i in result.issues if i.severity == "error")
        super().__init__(f"Record rejected: {messages}")


class DayGroup(BaseModel):
    """One day of the ledger with its records and totals."""

    day: str
    records: list[FinancialRecord] = Field(default_factory=list)
    totals: LedgerTotals


class _AuditedService:
    """Shared plumbing for audited store access."""

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        preferences: Optional[UserPreferences] = None,
    ):
        self._audit = audit_logger or AuditLogger()
        self._preferences = preferences or UserPreferences()

    @property
    def preferences(self) -> UserPreferences:
        return self._preferences

    async def _guarded(
        self,
        store: RecordStore,
        operation: str,
        call: Awaitable[T],
        correlation_id: Optional[UUID] = None,
    ) -> T:
        try:
            return await call
        except StoreError as e:
            await self._audit.log_store_failed(
                operation=operation,
                entity_type=store.entity_type,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

    async def _create(self, store: RecordStore, record, correlation_id=None):
        created = await self._guarded(store, "create", store.create(record), correlation_id)
        await self._audit.log_record_created(store.entity_type, created.id, correlation_id)
        return created

    async def _update(self, store: RecordStore, record_id: UUID, changes: dict[str, Any], correlation_id=None):
        updated = await self._guarded(
            store, "update", store.update(record_id, changes), correlation_id
        )
        await self._audit.log_record_updated(
            store.entity_type, record_id, sorted(changes), correlation_id
        )
        return updated

    async def _delete(self, store: RecordStore, record_id: UUID, correlation_id=None) -> None:
        await self._guarded(store, "delete", store.delete(record_id), correlation_id)
        await self._audit.log_record_deleted(store.entity_type, record_id, correlation_id)

    async def _get_or_raise(self, store: RecordStore, record_id: UUID, correlation_id=None):
        record = await self._guarded(store, "get", store.get(record_id), correlation_id)
        if record is None:
            raise NotFoundError(f"{store.entity_type} not found: {record_id}")
        return record

    async def _all(self, store: RecordStore, correlation_id=None) -> list:
        return await self._guarded(store, "list", store.list(), correlation_id)


# =============================================================================
# LEDGER
# =============================================================================

class LedgerService(_AuditedService):
    """Income and expense records."""

    def __init__(
        self,
        store: RecordStore[FinancialRecord],
        audit_logger: Optional[AuditLogger] = None,
        preferences: Optional[UserPreferences] = None,
        validator: Optional[RecordValidator] = None,
    ):
        super().__init__(audit_logger, preferences)
        self._store = store
        self._validator = validator or RecordValidator()

    async def add(
        self,
        record: FinancialRecord,
        today: Optional[date] = None,
    ) -> tuple[FinancialRecord, ValidationResult]:
        """
        Validate and store a new record.

        Warnings are returned with the stored record. Errors raise
        RecordRejectedError and nothing is written.
        """
        result = self._validator.validate(record, today)
        if result.has_errors:
            raise RecordRejectedError(result)
        return await self._create(self._store, record), result

    async def update(
        self,
        record_id: UUID,
        changes: dict[str, Any],
        today: Optional[date] = None,
    ) -> tuple[FinancialRecord, ValidationResult]:
        """
        Validate the record as it would look after the changes, then store.

        Same contract as add: errors raise RecordRejectedError and the
        stored record is left untouched.
        """
        current = await self._get_or_raise(self._store, record_id)
        merged = {**current.model_dump(), **changes, "id": record_id}
        record, result = self._validator.parse(merged, today)
        if record is None or result.has_errors:
            raise RecordRejectedError(result)
        return await self._update(self._store, record_id, changes), result

    async def delete(self, record_id: UUID) -> None:
        await self._delete(self._store, record_id)

    async def get(self, record_id: UUID) -> Optional[FinancialRecord]:
        return await self._guarded(self._store, "get", self._store.get(record_id))

    async def list_records(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[FinancialRecord]:
        records = await self._all(self._store)
        if start is not None and end is not None:
            records = filter_by_range(records, start, end)
        return records

    async def daily_view(
        self,
        currency: Optional[Currency] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[DayGroup]:
        """
        Records grouped by day, most recent day first.

        Only records in the given currency (default: the preferred one)
        are shown, so every per-day total is in a single currency.
        """
        currency = Currency(currency or self._preferences.default_currency)
        records = [
            r for r in await self.list_records(start, end)
            if r.currency == currency
        ]
        groups = group_by_day(records)
        return [
            DayGroup(day=key, records=groups[key], totals=totals(groups[key], currency))
            for key in sort_day_keys(groups)
        ]

    async def summary(
        self,
        currency: Optional[Currency] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> LedgerTotals:
        currency = currency or self._preferences.default_currency
        return totals(await self.list_records(start, end), currency)


# =============================================================================
# SAVINGS
# =============================================================================

class SavingsService(_AuditedService):
    """Savings goals and contributions towards them."""

    def __init__(
        self,
        store: RecordStore[SavingsGoal],
        audit_logger: Optional[AuditLogger] = None,
        preferences: Optional[UserPreferences] = None,
    ):
        super().__init__(audit_logger, preferences)
        self._store = store

    async def add(self, goal: SavingsGoal) -> SavingsGoal:
        return await self._create(self._store, goal)

    async def update(self, goal_id: UUID, changes: dict[str, Any]) -> SavingsGoal:
        return await self._update(self._store, goal_id, changes)

    async def delete(self, goal_id: UUID) -> None:
        await self._delete(self._store, goal_id)

    async def list_goals(self) -> list[SavingsGoal]:
        return await self._all(self._store)

    async def contribute(self, goal_id: UUID, amount) -> SavingsGoal:
        """
        Add money to a goal.

        The saved amount may go past the target.
        """
        amount = to_decimal(amount, "contribution")
        if amount <= 0:
            raise InvalidAmountError(f"contribution must be positive, got {amount}")

        goal = await self._get_or_raise(self._store, goal_id)
        return await self._update(
            self._store, goal_id, {"current_amount": goal.current_amount + amount}
        )


# =============================================================================
# RENTAL
# =============================================================================

class RentalService(_AuditedService):
    """
    Rental units and their monthly bills.

    Deleting a unit also deletes its bills; bills only hold a weak
    reference to their unit.
    """

    def __init__(
        self,
        unit_store: RecordStore[RentalUnit],
        bill_store: RecordStore[RentalBillingRecord],
        audit_logger: Optional[AuditLogger] = None,
        preferences: Optional[UserPreferences] = None,
        validator: Optional[BillingValidator] = None,
    ):
        super().__init__(audit_logger, preferences)
        self._units = unit_store
        self._bills = bill_store
        self._validator = validator or BillingValidator()

    # ---- units ------------------------------------------------------------

    async def add_unit(self, unit: RentalUnit) -> RentalUnit:
        return await self._create(self._units, unit)

    async def update_unit(self, unit_id: UUID, changes: dict[str, Any]) -> RentalUnit:
        return await self._update(self._units, unit_id, changes)

    async def delete_unit(self, unit_id: UUID) -> int:
        """
        Delete a unit and every bill recorded for it.

        Returns the number of bills removed.
        """
        correlation_id = create_correlation_id()
        await self._get_or_raise(self._units, unit_id, correlation_id)

        bills = bills_for_unit(await self._all(self._bills, correlation_id), unit_id)
        for bill in bills:
            await self._delete(self._bills, bill.id, correlation_id)
        await self._delete(self._units, unit_id, correlation_id)
        return len(bills)

    async def list_units(self) -> list[RentalUnit]:
        return await self._all(self._units)

    # ---- bills ------------------------------------------------------------

    def meter_reading(self, previous, current, meter: str = "electricity") -> MeterReading:
        """Build a reading priced at the preferred tariff for this meter."""
        rate = (
            self._preferences.water_rate if meter == "water"
            else self._preferences.electricity_rate
        )
        return MeterReading(
            previous=to_decimal(previous, "previous reading"),
            current=to_decimal(current, "current reading"),
            rate_per_unit=rate,
        )

    async def latest_readings(self, unit_id: UUID) -> Optional[tuple[Decimal, Decimal]]:
        """
        The (electricity, water) current readings of the unit's newest bill.

        Used to pre-fill the next month's previous readings.
        """
        bills = bills_for_unit(await self._all(self._bills), unit_id)
        if not bills:
            return None
        latest = max(bills, key=lambda b: (b.billing_month, b.recorded_on))
        return latest.electricity_reading.current, latest.water_reading.current

    async def record_bill(
        self,
        unit_id: UUID,
        billing_month: str,
        electricity: MeterReading,
        water: MeterReading,
        additional_charges: Optional[list[AdditionalCharge]] = None,
        recorded_on: Optional[date] = None,
    ) -> tuple[RentalBillingRecord, ValidationResult]:
        """
        Validate, build and store one month's bill.

        Raises:
            NotFoundError: If the unit does not exist
            ArithmeticAnomaly: If a reading went backwards under the
                reject policy
            StoreError: If the write fails
        """
        correlation_id = create_correlation_id()
        unit = await self._get_or_raise(self._units, unit_id, correlation_id)
        existing = await self._all(self._bills, correlation_id)

        result = self._validator.validate(unit, billing_month, electricity, water, existing)
        for meter, reading in (("electricity", electricity), ("water", water)):
            if reading.current < reading.previous:
                await self._audit.log_usage_anomaly(
                    unit_id=unit_id,
                    meter=meter,
                    previous=str(reading.previous),
                    current=str(reading.current),
                    correlation_id=correlation_id,
                )

        policy = UsagePolicy(self._preferences.negative_usage_policy)
        try:
            bill = build_billing_record(
                unit,
                billing_month,
                electricity,
                water,
                additional_charges,
                recorded_on,
                policy,
            )
        except ArithmeticAnomaly as e:
            await self._audit.log_error(
                error_type="ArithmeticAnomaly",
                error_message=str(e),
                details={"unit_id": str(unit_id), "billing_month": billing_month},
                correlation_id=correlation_id,
            )
            raise

        stored = await self._guarded(
            self._bills, "create", self._bills.create(bill), correlation_id
        )
        await self._audit.log_bill_recorded(
            bill_id=stored.id,
            unit_id=unit_id,
            billing_month=billing_month,
            total=str(stored.total_amount),
            correlation_id=correlation_id,
        )
        return stored, result

    async def mark_paid(self, bill_id: UUID, paid_on: Optional[date] = None) -> RentalBillingRecord:
        bill = await self._guarded(
            self._bills,
            "update",
            self._bills.update(bill_id, {
                "payment_status": PaymentStatus.PAID,
                "paid_on": paid_on or date.today(),
            }),
        )
        await self._audit.log_payment_marked(bill_id, PaymentStatus.PAID.value)
        return bill

    async def mark_pending(self, bill_id: UUID) -> RentalBillingRecord:
        bill = await self._guarded(
            self._bills,
            "update",
            self._bills.update(bill_id, {
                "payment_status": PaymentStatus.PENDING,
                "paid_on": None,
            }),
        )
        await self._audit.log_payment_marked(bill_id, PaymentStatus.PENDING.value)
        return bill

    async def delete_bill(self, bill_id: UUID) -> None:
        await self._delete(self._bills, bill_id)

    async def list_bills(self, unit_id: Optional[UUID] = None) -> list[RentalBillingRecord]:
        bills = await self._all(self._bills)
        if unit_id is not None:
            bills = bills_for_unit(bills, unit_id)
        return sorted(bills, key=lambda b: (b.billing_month, b.recorded_on), reverse=True)

    async def summary(self, month: str) -> RentalSummary:
        return monthly_rental_summary(
            await self._all(self._units),
            await self._all(self._bills),
            month,
        )
