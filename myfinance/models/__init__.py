"""
Data Models Package

This package contains all Pydantic models used in MyFinance.
Every record handled by the ledger, savings and rental modules
conforms to these schemas.
"""

from myfinance.models.records import (
    AdditionalCharge,
    Currency,
    FinancialRecord,
    FlowKind,
    LedgerTotals,
    MeterReading,
    OccupancyStatus,
    PaymentStatus,
    RecordScope,
    RentalBillingRecord,
    RentalUnit,
    SavingsGoal,
)
from myfinance.models.validation import ValidationIssue, ValidationResult
from myfinance.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "AdditionalCharge",
    "Currency",
    "FinancialRecord",
    "FlowKind",
    "LedgerTotals",
    "MeterReading",
    "OccupancyStatus",
    "PaymentStatus",
    "RecordScope",
    "RentalBillingRecord",
    "RentalUnit",
    "SavingsGoal",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
