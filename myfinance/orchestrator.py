"""
Application Composition

Builds every collaborator the application needs from settings and hands
them back as one bundle. Nothing here is a global; a caller that wants a
second, independent instance just calls create_app_components() again.

DESIGN DECISION: Exactly one storage backend is active per deployment.
When Google Sheets is selected but cannot be reached, startup fails
loudly instead of quietly falling back to memory.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from myfinance.audit import AuditLogger, configure_logging
from myfinance.calendar import CalendarConverter
from myfinance.config.settings import Settings, UserPreferences, get_settings
from myfinance.models.records import (
    FinancialRecord,
    RentalBillingRecord,
    RentalUnit,
    SavingsGoal,
)
from myfinance.services import LedgerService, RentalService, SavingsService
from myfinance.store import (
    FinancialRecordCodec,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    RecordStore,
    RentalBillingCodec,
    RentalUnitCodec,
    SavingsGoalCodec,
)
from myfinance.store.interface import AuditStorageInterface
from myfinance.validation import BillingValidator, RecordValidator


logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a front end needs to drive the application."""

    preferences: UserPreferences
    audit_logger: AuditLogger
    converter: CalendarConverter
    ledger: LedgerService
    savings: SavingsService
    rental: RentalService
    sheets_client: Optional[GoogleSheetsClient] = None


def _memory_stores() -> tuple[RecordStore, RecordStore, RecordStore, RecordStore, AuditStorageInterface]:
    return (
        InMemoryRecordStore(FinancialRecord, "financial_record"),
        InMemoryRecordStore(SavingsGoal, "savings_goal"),
        InMemoryRecordStore(RentalUnit, "rental_unit"),
        InMemoryRecordStore(RentalBillingRecord, "rental_bill"),
        InMemoryAuditStorage(),
    )


def _sheets_stores(
    client: GoogleSheetsClient,
) -> tuple[RecordStore, RecordStore, RecordStore, RecordStore, AuditStorageInterface]:
    sheets = client.settings
    return (
        GoogleSheetsRecordStore(
            FinancialRecordCodec(), sheets.records_sheet_name, "financial_record", client
        ),
        GoogleSheetsRecordStore(
            SavingsGoalCodec(), sheets.goals_sheet_name, "savings_goal", client
        ),
        GoogleSheetsRecordStore(
            RentalUnitCodec(), sheets.units_sheet_name, "rental_unit", client
        ),
        GoogleSheetsRecordStore(
            RentalBillingCodec(), sheets.bills_sheet_name, "rental_bill", client
        ),
        GoogleSheetsAuditStorage(client),
    )


def create_app_components(settings: Optional[Settings] = None) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to build from. Defaults to get_settings().

    Returns:
        AppComponents with the services wired to the configured backend
    """
    settings = settings or get_settings()
    app = settings.app
    configure_logging("DEBUG" if app.debug_mode else app.log_level)

    sheets_client = None
    if app.store_backend == "google_sheets":
        sheets_client = GoogleSheetsClient(settings.google_sheets)
        record_store, goal_store, unit_store, bill_store, audit_storage = _sheets_stores(
            sheets_client
        )
    else:
        record_store, goal_store, unit_store, bill_store, audit_storage = _memory_stores()

    preferences = UserPreferences.from_settings(app)
    audit_logger = AuditLogger(audit_storage)

    logger.info(
        "app_components_created",
        environment=app.app_environment,
        store_backend=app.store_backend,
        default_currency=preferences.default_currency.value,
    )

    return AppComponents(
        preferences=preferences,
        audit_logger=audit_logger,
        converter=CalendarConverter(show_regional=preferences.show_regional_dates),
        ledger=LedgerService(
            record_store,
            audit_logger=audit_logger,
            preferences=preferences,
            validator=RecordValidator(app),
        ),
        savings=SavingsService(
            goal_store,
            audit_logger=audit_logger,
            preferences=preferences,
        ),
        rental=RentalService(
            unit_store,
            bill_store,
            audit_logger=audit_logger,
            preferences=preferences,
            validator=BillingValidator(),
        ),
        sheets_client=sheets_client,
    )
