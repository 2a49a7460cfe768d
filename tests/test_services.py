"""
Tests for the application services and their composition.

Services run against in-memory stores with an in-memory audit log, so
each test can check both the stored state and the audit trail.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from myfinance.audit import AuditLogger
from myfinance.billing import ArithmeticAnomaly
from myfinance.config.settings import (
    AppSettings,
    Settings,
    UserPreferences,
    get_settings,
    validate_all_settings,
)
from myfinance.ledger import InvalidAmountError
from myfinance.models.audit import AuditEventType
from myfinance.models.records import (
    AdditionalCharge,
    Currency,
    FinancialRecord,
    FlowKind,
    MeterReading,
    OccupancyStatus,
    PaymentStatus,
    RentalBillingRecord,
    RentalUnit,
    SavingsGoal,
)
from myfinance.orchestrator import AppComponents, create_app_components
from myfinance.services import (
    LedgerService,
    RecordRejectedError,
    RentalService,
    SavingsService,
)
from myfinance.store import (
    GoogleSheetsRecordStore,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    NotFoundError,
    StoreConnectionError,
    StoreError,
)


TODAY = date(2024, 3, 15)


class FailingStore(InMemoryRecordStore):
    """In-memory store whose writes and listings fail."""

    def __init__(self, model, entity_type, error: StoreError):
        super().__init__(model, entity_type)
        self.error = error

    async def create(self, record):
        raise self.error

    async def list(self):
        raise self.error


def make_record(amount, kind=FlowKind.OUTFLOW, currency=Currency.NPR, occurred_on=TODAY, category="Food"):
    return FinancialRecord(
        amount=Decimal(amount),
        currency=currency,
        kind=kind,
        category=category,
        occurred_on=occurred_on,
    )


def reading(previous, current, rate) -> MeterReading:
    return MeterReading(
        previous=Decimal(str(previous)),
        current=Decimal(str(current)),
        rate_per_unit=Decimal(str(rate)),
    )


async def event_types(storage: InMemoryAuditStorage) -> list[AuditEventType]:
    return [e.event_type for e in await storage.get_recent_events(limit=1000)]


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def ledger(audit_logger) -> LedgerService:
    return LedgerService(
        InMemoryRecordStore(FinancialRecord, "financial_record"),
        audit_logger=audit_logger,
    )


@pytest.fixture
def savings(audit_logger) -> SavingsService:
    return SavingsService(
        InMemoryRecordStore(SavingsGoal, "savings_goal"),
        audit_logger=audit_logger,
    )


def make_rental(audit_logger, policy="reject") -> RentalService:
    return RentalService(
        InMemoryRecordStore(RentalUnit, "rental_unit"),
        InMemoryRecordStore(RentalBillingRecord, "rental_bill"),
        audit_logger=audit_logger,
        preferences=UserPreferences(negative_usage_policy=policy),
    )


@pytest.fixture
def rental(audit_logger) -> RentalService:
    return make_rental(audit_logger)


@pytest.fixture
def unit() -> RentalUnit:
    return RentalUnit(
        unit_label="101",
        tenant_name="Sita",
        base_rent=Decimal("5000"),
        start_date=date(2024, 1, 1),
    )


class TestLedgerService:
    """Tests for recording and viewing ledger entries."""

    @pytest.mark.asyncio
    async def test_add_stores_and_audits(self, ledger, audit_storage):
        """Test that a valid record is stored and audited."""
        record, result = await ledger.add(make_record("300"), today=TODAY)

        assert result.is_valid
        assert await ledger.get(record.id) == record
        assert AuditEventType.RECORD_CREATED in await event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_add_rejects_errors(self, ledger):
        """Test that a zero amount is rejected and nothing is stored."""
        with pytest.raises(RecordRejectedError) as exc_info:
            await ledger.add(make_record("0"), today=TODAY)
        assert exc_info.value.result.has_errors
        assert await ledger.list_records() == []

    @pytest.mark.asyncio
    async def test_add_keeps_warnings(self, ledger):
        """Test that warnings do not block saving."""
        future = make_record("300", occurred_on=TODAY + timedelta(days=30))
        record, result = await ledger.add(future, today=TODAY)
        assert result.is_valid
        assert len(result.issues_of_type("future_date")) == 1
        assert await ledger.get(record.id) is not None

    @pytest.mark.asyncio
    async def test_summary_scenario(self, ledger):
        """Test 1500 in, 300 out, net 1200, USD ignored."""
        for record in (
            make_record("1000", FlowKind.INFLOW, category="Salary"),
            make_record("500", FlowKind.INFLOW, category="Freelance"),
            make_record("300"),
            make_record("75", currency=Currency.USD),
        ):
            await ledger.add(record, today=TODAY)

        summary = await ledger.summary(Currency.NPR)
        assert summary.inflow == Decimal("1500")
        assert summary.outflow == Decimal("300")
        assert summary.net == Decimal("1200")

    @pytest.mark.asyncio
    async def test_summary_defaults_to_preferred_currency(self, ledger):
        """Test that an empty ledger sums to zero in the default currency."""
        summary = await ledger.summary()
        assert summary.inflow == Decimal("0")
        assert summary.outflow == Decimal("0")

    @pytest.mark.asyncio
    async def test_daily_view(self, ledger):
        """Test day groups newest first with per-day totals."""
        yesterday = TODAY - timedelta(days=1)
        await ledger.add(make_record("200", occurred_on=yesterday), today=TODAY)
        await ledger.add(make_record("1000", FlowKind.INFLOW, category="Salary"), today=TODAY)
        await ledger.add(make_record("50"), today=TODAY)
        await ledger.add(make_record("9", currency=Currency.USD), today=TODAY)

        view = await ledger.daily_view(Currency.NPR)
        assert [group.day for group in view] == ["2024-03-15", "2024-03-14"]
        assert view[0].totals.net == Decimal("950")
        assert len(view[0].records) == 2
        assert view[1].totals.outflow == Decimal("200")

        usd_view = await ledger.daily_view(Currency.USD)
        assert [group.day for group in usd_view] == ["2024-03-15"]

    @pytest.mark.asyncio
    async def test_range_filter(self, ledger):
        """Test listing within a date range."""
        await ledger.add(make_record("1", occurred_on=date(2024, 3, 1)), today=TODAY)
        await ledger.add(make_record("2", occurred_on=date(2024, 3, 10)), today=TODAY)

        records = await ledger.list_records(date(2024, 3, 5), date(2024, 3, 15))
        assert [r.amount for r in records] == [Decimal("2")]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, ledger, audit_storage):
        """Test that updates and deletes are audited."""
        record, _ = await ledger.add(make_record("300"), today=TODAY)
        updated, result = await ledger.update(record.id, {"category": "Housing"}, today=TODAY)
        assert updated.category == "Housing"
        assert result.is_valid

        await ledger.delete(record.id)
        assert await ledger.get(record.id) is None

        types = await event_types(audit_storage)
        assert AuditEventType.RECORD_UPDATED in types
        assert AuditEventType.RECORD_DELETED in types

    @pytest.mark.asyncio
    async def test_update_rejects_invalid_result(self, ledger, audit_storage):
        """Test that an update producing a zero amount is refused."""
        record, _ = await ledger.add(make_record("300"), today=TODAY)

        with pytest.raises(RecordRejectedError) as exc_info:
            await ledger.update(
                record.id,
                {"amount": 0, "occurred_on": date(2099, 1, 1)},
                today=TODAY,
            )
        assert exc_info.value.result.has_errors
        stored = await ledger.get(record.id)
        assert stored.amount == Decimal("300")
        assert stored.occurred_on == record.occurred_on
        assert AuditEventType.RECORD_UPDATED not in await event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_update_returns_warnings(self, ledger):
        """Test that a far-future date is stored with a warning."""
        record, _ = await ledger.add(make_record("300"), today=TODAY)
        updated, result = await ledger.update(
            record.id, {"occurred_on": TODAY + timedelta(days=30)}, today=TODAY
        )
        assert updated.occurred_on == TODAY + timedelta(days=30)
        assert len(result.issues_of_type("future_date")) == 1

    @pytest.mark.asyncio
    async def test_update_unknown_record(self, ledger):
        """Test that updating a missing record raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await ledger.update(uuid4(), {"category": "Housing"}, today=TODAY)

    @pytest.mark.asyncio
    async def test_store_error_is_audited_and_reraised(self, audit_logger, audit_storage):
        """Test that store failures reach the caller unchanged."""
        error = StoreConnectionError("network down")
        service = LedgerService(
            FailingStore(FinancialRecord, "financial_record", error),
            audit_logger=audit_logger,
        )

        with pytest.raises(StoreConnectionError) as exc_info:
            await service.add(make_record("300"), today=TODAY)
        assert exc_info.value is error

        with pytest.raises(StoreConnectionError):
            await service.daily_view()

        events = await audit_storage.get_recent_events()
        failures = [e for e in events if e.event_type == AuditEventType.STORE_FAILED]
        assert len(failures) == 2
        assert {e.details["operation"] for e in failures} == {"create", "list"}
        assert all(e.entity_type == "financial_record" for e in failures)


class TestSavingsService:
    """Tests for savings goals."""

    @pytest.fixture
    def goal(self) -> SavingsGoal:
        return SavingsGoal(
            name="Laptop",
            target_amount=Decimal("1000"),
            currency=Currency.USD,
            deadline=date(2024, 12, 31),
        )

    @pytest.mark.asyncio
    async def test_contribute(self, savings, goal):
        """Test that contributions add up, even past the target."""
        await savings.add(goal)
        await savings.contribute(goal.id, "600")
        updated = await savings.contribute(goal.id, Decimal("600"))

        assert updated.current_amount == Decimal("1200")
        assert updated.progress_ratio == Decimal("1")

    @pytest.mark.asyncio
    async def test_contribute_rejects_bad_amounts(self, savings, goal):
        """Test that zero, negative and malformed contributions fail."""
        await savings.add(goal)
        for amount in ("0", "-5", "abc"):
            with pytest.raises(InvalidAmountError):
                await savings.contribute(goal.id, amount)

    @pytest.mark.asyncio
    async def test_contribute_to_missing_goal(self, savings):
        """Test contributing to an unknown goal."""
        with pytest.raises(NotFoundError):
            await savings.contribute(uuid4(), "10")

    @pytest.mark.asyncio
    async def test_goal_crud(self, savings, goal):
        """Test update, list and delete."""
        await savings.add(goal)
        await savings.update(goal.id, {"name": "New laptop"})
        assert [g.name for g in await savings.list_goals()] == ["New laptop"]

        await savings.delete(goal.id)
        assert await savings.list_goals() == []


class TestRentalService:
    """Tests for rental units and billing."""

    @pytest.mark.asyncio
    async def test_record_reference_bill(self, rental, unit, audit_storage):
        """Test that the reference readings produce a 6075 bill."""
        await rental.add_unit(unit)
        bill, result = await rental.record_bill(
            unit.id,
            "2024-05",
            reading(100, 150, 13),
            reading(20, 35, 15),
            [AdditionalCharge(description="Maintenance", amount=Decimal("200"))],
            recorded_on=date(2024, 5, 31),
        )

        assert bill.total_amount == Decimal("6075")
        assert result.is_valid
        assert await rental.list_bills(unit.id) == [bill]
        assert AuditEventType.BILL_RECORDED in await event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_reversed_reading_rejected(self, rental, unit, audit_storage):
        """Test that the reject policy stores nothing and audits the anomaly."""
        await rental.add_unit(unit)
        with pytest.raises(ArithmeticAnomaly):
            await rental.record_bill(unit.id, "2024-05", reading(900, 10, 13), reading(20, 35, 15))

        assert await rental.list_bills() == []
        types = await event_types(audit_storage)
        assert AuditEventType.USAGE_ANOMALY in types
        assert AuditEventType.SYSTEM_ERROR in types

    @pytest.mark.asyncio
    async def test_reversed_reading_clamped_with_warning(self, audit_logger, unit):
        """Test that the clamp policy stores a bill and reports a warning."""
        rental = make_rental(audit_logger, policy="clamp")
        await rental.add_unit(unit)
        bill, result = await rental.record_bill(
            unit.id, "2024-05", reading(900, 10, 13), reading(20, 35, 15)
        )

        assert bill.total_amount == Decimal("5225")
        assert result.is_valid
        assert len(result.issues_of_type("reversed_reading")) == 1

    @pytest.mark.asyncio
    async def test_duplicate_month_warning(self, rental, unit):
        """Test that a second bill for the same month is flagged."""
        await rental.add_unit(unit)
        await rental.record_bill(unit.id, "2024-05", reading(100, 150, 13), reading(20, 35, 15))
        _, result = await rental.record_bill(
            unit.id, "2024-05", reading(150, 160, 13), reading(35, 40, 15)
        )
        assert len(result.issues_of_type("duplicate_billing_month")) == 1

    @pytest.mark.asyncio
    async def test_record_bill_for_missing_unit(self, rental):
        """Test billing an unknown unit."""
        with pytest.raises(NotFoundError):
            await rental.record_bill(uuid4(), "2024-05", reading(0, 1, 13), reading(0, 1, 15))

    @pytest.mark.asyncio
    async def test_mark_paid_and_pending(self, rental, unit, audit_storage):
        """Test toggling payment status."""
        await rental.add_unit(unit)
        bill, _ = await rental.record_bill(
            unit.id, "2024-05", reading(100, 150, 13), reading(20, 35, 15),
            recorded_on=date(2024, 5, 31),
        )

        paid = await rental.mark_paid(bill.id, date(2024, 6, 2))
        assert paid.payment_status == PaymentStatus.PAID
        assert paid.paid_on == date(2024, 6, 2)
        assert paid.total_amount == bill.total_amount

        pending = await rental.mark_pending(bill.id)
        assert pending.payment_status == PaymentStatus.PENDING
        assert pending.paid_on is None
        assert AuditEventType.PAYMENT_MARKED in await event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_paid_before_billing_rejected(self, rental, unit):
        """Test that a paid date before the bill date is refused."""
        await rental.add_unit(unit)
        bill, _ = await rental.record_bill(
            unit.id, "2024-05", reading(100, 150, 13), reading(20, 35, 15),
            recorded_on=date(2024, 5, 31),
        )
        with pytest.raises(StoreError):
            await rental.mark_paid(bill.id, date(2024, 5, 1))

    @pytest.mark.asyncio
    async def test_delete_unit_cascades(self, rental, unit):
        """Test that deleting a unit removes only its bills."""
        other = RentalUnit(unit_label="102", base_rent=Decimal("4000"), start_date=date(2024, 1, 1))
        await rental.add_unit(unit)
        await rental.add_unit(other)
        await rental.record_bill(unit.id, "2024-04", reading(0, 50, 13), reading(0, 5, 15))
        await rental.record_bill(unit.id, "2024-05", reading(50, 90, 13), reading(5, 9, 15))
        kept, _ = await rental.record_bill(other.id, "2024-05", reading(0, 10, 13), reading(0, 1, 15))

        removed = await rental.delete_unit(unit.id)

        assert removed == 2
        assert [u.id for u in await rental.list_units()] == [other.id]
        assert [b.id for b in await rental.list_bills()] == [kept.id]

    @pytest.mark.asyncio
    async def test_delete_missing_unit(self, rental):
        """Test deleting an unknown unit."""
        with pytest.raises(NotFoundError):
            await rental.delete_unit(uuid4())

    @pytest.mark.asyncio
    async def test_latest_readings_and_meter_reading(self, rental, unit):
        """Test pre-filling readings from the newest bill."""
        await rental.add_unit(unit)
        assert await rental.latest_readings(unit.id) is None

        await rental.record_bill(unit.id, "2024-04", reading(0, 50, 13), reading(0, 5, 15))
        await rental.record_bill(unit.id, "2024-05", reading(50, 90, 13), reading(5, 9, 15))
        assert await rental.latest_readings(unit.id) == (Decimal("90"), Decimal("9"))

        electricity = rental.meter_reading("90", "120")
        water = rental.meter_reading(9, 12, meter="water")
        assert electricity.rate_per_unit == Decimal("13")
        assert water.rate_per_unit == Decimal("15")
        assert water.amount == Decimal("45")

    @pytest.mark.asyncio
    async def test_summary(self, rental, unit):
        """Test the month summary through the service."""
        vacant = RentalUnit(
            unit_label="102",
            base_rent=Decimal("4000"),
            start_date=date(2024, 1, 1),
            occupancy_status=OccupancyStatus.VACANT,
        )
        await rental.add_unit(unit)
        await rental.add_unit(vacant)
        await rental.record_bill(
            unit.id,
            "2024-05",
            reading(100, 150, 13),
            reading(20, 35, 15),
            [AdditionalCharge(description="Maintenance", amount=Decimal("200"))],
        )

        summary = await rental.summary("2024-05")
        assert summary.total_units == 2
        assert summary.occupied_units == 1
        assert summary.total_income == Decimal("6075")
        assert summary.pending_payments == 1


class TestComposition:
    """Tests for building the application from settings."""

    def test_memory_backend(self, monkeypatch):
        """Test the default in-memory wiring."""
        monkeypatch.setenv("STORE_BACKEND", "memory")
        monkeypatch.setenv("DEFAULT_CURRENCY", "USD")
        monkeypatch.setenv("WATER_RATE", "20")

        components = create_app_components(Settings())

        assert isinstance(components, AppComponents)
        assert components.sheets_client is None
        assert components.preferences.default_currency == Currency.USD
        assert components.rental.meter_reading(0, 1, meter="water").rate_per_unit == Decimal("20")

    def test_google_sheets_backend(self, monkeypatch, tmp_path):
        """Test the Sheets wiring without connecting."""
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        monkeypatch.setenv("STORE_BACKEND", "google_sheets")
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-id")

        components = create_app_components(Settings())

        assert components.sheets_client is not None
        assert components.sheets_client.settings.spreadsheet_id == "sheet-id"
        assert isinstance(components.ledger._store, GoogleSheetsRecordStore)

    def test_regional_dates_preference_reaches_converter(self, monkeypatch):
        """Test that switching regional dates off affects date display."""
        monkeypatch.setenv("STORE_BACKEND", "memory")
        monkeypatch.setenv("SHOW_REGIONAL_DATES", "false")

        components = create_app_components(Settings())

        assert components.converter.show_regional is False
        assert components.converter.describe(TODAY, TODAY).regional is None

    def test_debug_mode_logs_at_debug(self, monkeypatch):
        """Test that debug mode overrides the configured log level."""
        monkeypatch.setenv("STORE_BACKEND", "memory")
        monkeypatch.setenv("DEBUG_MODE", "true")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        levels = []
        monkeypatch.setattr(
            "myfinance.orchestrator.configure_logging", lambda level: levels.append(level)
        )

        create_app_components(Settings())

        assert levels == ["DEBUG"]

    @pytest.mark.asyncio
    async def test_components_are_independent(self, monkeypatch):
        """Test that two compositions do not share state."""
        monkeypatch.setenv("STORE_BACKEND", "memory")
        first = create_app_components(Settings())
        second = create_app_components(Settings())

        await first.ledger.add(make_record("10"))
        assert await second.ledger.list_records() == []


class TestSettings:
    """Tests for settings and preferences."""

    def test_preferences_from_settings(self, monkeypatch):
        """Test that preferences mirror the configured defaults."""
        monkeypatch.setenv("NEGATIVE_USAGE_POLICY", "clamp")
        monkeypatch.setenv("SHOW_REGIONAL_DATES", "false")
        preferences = UserPreferences.from_settings(AppSettings())

        assert preferences.negative_usage_policy == "clamp"
        assert preferences.show_regional_dates is False
        assert preferences.electricity_rate == Decimal("13")

    def test_invalid_backend_rejected(self, monkeypatch):
        """Test that an unknown backend name fails at startup."""
        monkeypatch.setenv("STORE_BACKEND", "postgres")
        with pytest.raises(ValueError):
            AppSettings()

    def test_validate_all_settings(self, monkeypatch):
        """Test the startup check for the memory backend."""
        monkeypatch.setenv("STORE_BACKEND", "memory")
        get_settings.cache_clear()
        try:
            assert validate_all_settings() == {"app": True}
        finally:
            get_settings.cache_clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
