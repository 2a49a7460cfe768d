"""
Google Sheets Record Store

DESIGN DECISION: Google Sheets is the hosted backend because:
1. The household can open the spreadsheet and read their own data
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (a family ledger is hundreds of rows)
- No transactions (one row per record, written in a single call)
- No server-side queries (we filter in Python)

Each collection lives in its own worksheet. A SheetCodec per entity maps
between the canonical model and the sheet's snake_case columns, including
the legacy "income"/"expense" labels and "is_personal" flags. That
mapping happens here and nowhere else.
"""

import json
from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Generic, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from myfinance.config import get_settings
from myfinance.config.settings import GoogleSheetsSettings
from myfinance.models.audit import AuditEvent, AuditEventType, AuditSeverity
from myfinance.models.records import (
    AdditionalCharge,
    Currency,
    FinancialRecord,
    FlowKind,
    MeterReading,
    OccupancyStatus,
    PaymentStatus,
    RecordScope,
    RentalBillingRecord,
    RentalUnit,
    SavingsGoal,
)
from myfinance.store.interface import (
    AuditStorageInterface,
    DuplicateError,
    ModelT,
    NotFoundError,
    RecordStore,
    StoreConnectionError,
    StoreError,
)


logger = structlog.get_logger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Transient API failures (quota, 5xx) are retried; everything else is not.
sheet_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    reraise=True,
)

TRUE_VALUES = {"true", "1", "yes"}

# decimal.InvalidOperation is an ArithmeticError, not a ValueError
MALFORMED_ROW_ERRORS = (ValidationError, ValueError, KeyError, ArithmeticError)


def _optional_date(value: str) -> Optional[date]:
    return date.fromisoformat(value[:10]) if value else None


# =============================================================================
# ROW CODECS
# =============================================================================

class SheetCodec(ABC, Generic[ModelT]):
    """Maps one model type to and from a worksheet row."""

    model: type[ModelT]
    columns: list[str]

    @abstractmethod
    def to_row(self, record: ModelT) -> list[str]:
        pass

    @abstractmethod
    def from_row(self, row: dict[str, str]) -> ModelT:
        pass


class FinancialRecordCodec(SheetCodec[FinancialRecord]):
    model = FinancialRecord
    columns = [
        "id",
        "amount",
        "currency",
        "type",
        "category",
        "sub_category",
        "description",
        "date",
        "is_personal",
    ]

    def to_row(self, record: FinancialRecord) -> list[str]:
        return [
            str(record.id),
            str(record.amount),
            record.currency.value,
            "income" if record.kind == FlowKind.INFLOW else "expense",
            record.category,
            record.sub_category or "",
            record.note or "",
            record.occurred_on.isoformat(),
            str(record.scope == RecordScope.PERSONAL).upper(),
        ]

    def from_row(self, row: dict[str, str]) -> FinancialRecord:
        kind = row["type"].strip().lower()
        # Rows written before the flag existed default to personal
        is_personal = row.get("is_personal", "").strip().lower()
        return FinancialRecord(
            id=UUID(row["id"]),
            amount=Decimal(row["amount"]),
            currency=Currency(row["currency"]),
            kind=FlowKind.INFLOW if kind in ("income", "inflow") else FlowKind.OUTFLOW,
            category=row["category"],
            sub_category=row.get("sub_category") or None,
            note=row.get("description") or None,
            occurred_on=row["date"],
            scope=(
                RecordScope.PERSONAL
                if not is_personal or is_personal in TRUE_VALUES
                else RecordScope.SHARED
            ),
        )


class SavingsGoalCodec(SheetCodec[SavingsGoal]):
    model = SavingsGoal
    columns = [
        "id",
        "name",
        "target_amount",
        "current_amount",
        "currency",
        "deadline",
    ]

    def to_row(self, goal: SavingsGoal) -> list[str]:
        return [
            str(goal.id),
            goal.name,
            str(goal.target_amount),
            str(goal.current_amount),
            goal.currency.value,
            goal.deadline.isoformat(),
        ]

    def from_row(self, row: dict[str, str]) -> SavingsGoal:
        return SavingsGoal(
            id=UUID(row["id"]),
            name=row["name"],
            target_amount=Decimal(row["target_amount"]),
            current_amount=Decimal(row["current_amount"] or "0"),
            currency=Currency(row["currency"]),
            deadline=date.fromisoformat(row["deadline"][:10]),
        )


class RentalUnitCodec(SheetCodec[RentalUnit]):
    model = RentalUnit
    columns = [
        "id",
        "room_number",
        "tenant_name",
        "rent_amount",
        "currency",
        "start_date",
        "status",
    ]

    def to_row(self, unit: RentalUnit) -> list[str]:
        return [
            str(unit.id),
            unit.unit_label,
            unit.tenant_name,
            str(unit.base_rent),
            unit.currency.value,
            unit.start_date.isoformat(),
            unit.occupancy_status.value,
        ]

    def from_row(self, row: dict[str, str]) -> RentalUnit:
        return RentalUnit(
            id=UUID(row["id"]),
            unit_label=row["room_number"],
            tenant_name=row.get("tenant_name", ""),
            base_rent=Decimal(row["rent_amount"]),
            currency=Currency(row["currency"]),
            start_date=date.fromisoformat(row["start_date"][:10]),
            occupancy_status=OccupancyStatus(row["status"]),
        )


class RentalBillingCodec(SheetCodec[RentalBillingRecord]):
    model = RentalBillingRecord
    columns = [
        "id",
        "rental_id",
        "date",
        "month",
        "rent_amount",
        "currency",
        "electricity_previous",
        "electricity_current",
        "electricity_rate",
        "water_previous",
        "water_current",
        "water_rate",
        "additional_charges_json",
        "total_amount",
        "status",
        "paid_date",
    ]

    def to_row(self, bill: RentalBillingRecord) -> list[str]:
        return [
            str(bill.id),
            str(bill.unit_id),
            bill.recorded_on.isoformat(),
            bill.billing_month,
            str(bill.base_rent),
            bill.currency.value,
            str(bill.electricity_reading.previous),
            str(bill.electricity_reading.current),
            str(bill.electricity_reading.rate_per_unit),
            str(bill.water_reading.previous),
            str(bill.water_reading.current),
            str(bill.water_reading.rate_per_unit),
            json.dumps(
                [c.model_dump(mode="json") for c in bill.additional_charges]
            ),
            str(bill.total_amount),
            bill.payment_status.value,
            bill.paid_on.isoformat() if bill.paid_on else "",
        ]

    def from_row(self, row: dict[str, str]) -> RentalBillingRecord:
        charges_json = row.get("additional_charges_json") or "[]"
        return RentalBillingRecord(
            id=UUID(row["id"]),
            unit_id=UUID(row["rental_id"]),
            recorded_on=row["date"],
            billing_month=row["month"],
            base_rent=Decimal(row["rent_amount"]),
            currency=Currency(row.get("currency") or "NPR"),
            electricity_reading=MeterReading(
                previous=Decimal(row["electricity_previous"]),
                current=Decimal(row["electricity_current"]),
                rate_per_unit=Decimal(row["electricity_rate"]),
            ),
            water_reading=MeterReading(
                previous=Decimal(row["water_previous"]),
                current=Decimal(row["water_current"]),
                rate_per_unit=Decimal(row["water_rate"]),
            ),
            additional_charges=[
                AdditionalCharge(**item) for item in json.loads(charges_json)
            ],
            total_amount=Decimal(row["total_amount"]) if row.get("total_amount") else None,
            payment_status=PaymentStatus(row.get("status") or "pending"),
            paid_on=_optional_date(row.get("paid_date", "")),
        )


# =============================================================================
# CLIENT
# =============================================================================

class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and creates worksheets on first use.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(StoreConnectionError),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """Authenticate with the service account credentials."""
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
            return sheet


# =============================================================================
# RECORD STORE
# =============================================================================

class GoogleSheetsRecordStore(RecordStore[ModelT]):
    """
    One worksheet per collection, one record per row.

    Rows are matched by header name, so reordering columns in the sheet
    does not break reads.
    """

    def __init__(
        self,
        codec: SheetCodec[ModelT],
        worksheet_title: str,
        entity_type: str = "record",
        client: Optional[GoogleSheetsClient] = None,
    ):
        self._codec = codec
        self._title = worksheet_title
        self.entity_type = entity_type
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._title, self._codec.columns)

    @sheet_retry
    def _read_rows(self) -> list[tuple[int, dict[str, str]]]:
        """Non-blank rows paired with their 1-based sheet row number."""
        values = self._sheet().get_all_values()
        if not values:
            return []
        header = values[0]
        return [
            (idx, dict(zip(header, row + [""] * (len(header) - len(row)))))
            for idx, row in enumerate(values[1:], start=2)
            if row and row[0]
        ]

    @sheet_retry
    def _append(self, row: list[str]) -> None:
        self._sheet().append_row(row, value_input_option="RAW")

    @sheet_retry
    def _rewrite(self, sheet_row: int, row: list[str]) -> None:
        self._sheet().update(
            range_name=f"A{sheet_row}",
            values=[row],
            value_input_option="RAW",
        )

    @sheet_retry
    def _remove(self, sheet_row: int) -> None:
        self._sheet().delete_rows(sheet_row)

    def _locate(self, record_id: UUID) -> tuple[int, dict[str, str]]:
        """1-based sheet row number (header is row 1) and the row values."""
        for sheet_row, row in self._read_rows():
            if row.get("id") == str(record_id):
                return sheet_row, row
        raise NotFoundError(f"{self.entity_type} not found: {record_id}")

    async def get(self, record_id: UUID) -> Optional[ModelT]:
        try:
            _, row = self._locate(record_id)
            return self._codec.from_row(row)
        except NotFoundError:
            return None
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to get {self.entity_type}: {e}")

    async def create(self, record: ModelT) -> ModelT:
        try:
            existing = {row.get("id") for _, row in self._read_rows()}
            if str(record.id) in existing:
                raise DuplicateError(f"{self.entity_type} already exists: {record.id}")
            self._append(self._codec.to_row(record))
            return record
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to save {self.entity_type}: {e}")

    async def update(self, record_id: UUID, changes: dict[str, Any]) -> ModelT:
        try:
            sheet_row, row = self._locate(record_id)
            data = self._codec.from_row(row).model_dump()
            data.update(changes)
            data["id"] = record_id
            updated = self._codec.model.model_validate(data)
            self._rewrite(sheet_row, self._codec.to_row(updated))
            return updated
        except StoreError:
            raise
        except ValidationError as e:
            raise StoreError(f"Invalid update for {self.entity_type} {record_id}: {e}")
        except Exception as e:
            raise StoreError(f"Failed to update {self.entity_type}: {e}")

    async def delete(self, record_id: UUID) -> None:
        try:
            sheet_row, _ = self._locate(record_id)
            self._remove(sheet_row)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to delete {self.entity_type}: {e}")

    async def list(self) -> list[ModelT]:
        try:
            rows = [row for _, row in self._read_rows()]
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to list {self.entity_type}: {e}")

        records = []
        for row in rows:
            try:
                records.append(self._codec.from_row(row))
            except MALFORMED_ROW_ERRORS as e:
                logger.warning(
                    "malformed_row_skipped",
                    worksheet=self._title,
                    row_id=row.get("id"),
                    error=str(e),
                )
        return records


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name, AUDIT_COLUMNS
        )

    def _row_to_event(self, row: list) -> AuditEvent:
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    @sheet_retry
    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except gspread.exceptions.APIError:
            raise
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            all_rows = self._sheet().get_all_values()[1:]
        except Exception as e:
            raise StoreError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except MALFORMED_ROW_ERRORS as e:
                    logger.warning("malformed_audit_row_skipped", error=str(e))

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
