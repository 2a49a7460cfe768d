"""
Record Store Package

Provides the abstract store contract and its concrete backends.
Exactly one backend is chosen per deployment (see AppSettings.store_backend).
"""

from myfinance.store.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RecordStore,
    StoreConnectionError,
    StoreError,
)
from myfinance.store.memory import InMemoryAuditStorage, InMemoryRecordStore
from myfinance.store.google_sheets import (
    FinancialRecordCodec,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    RentalBillingCodec,
    RentalUnitCodec,
    SavingsGoalCodec,
    SheetCodec,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordStore",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StoreConnectionError",
    "StoreError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    # Google Sheets implementation
    "FinancialRecordCodec",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "RentalBillingCodec",
    "RentalUnitCodec",
    "SavingsGoalCodec",
    "SheetCodec",
]
