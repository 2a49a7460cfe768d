"""
Abstract Record Store Interface

DESIGN DECISION: Persistence is ONE pluggable collaborator behind a
small create/read/update/delete contract. Which backend is used is a
deployment choice made in configuration, not something business logic
knows about:
1. In-memory storage for tests and single-session use
2. Google Sheets for a household that wants to see its data directly

Backends translate their own field naming at this boundary. Everything
above it sees the canonical models from myfinance.models.

Errors raised here are propagated unchanged by every caller.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel

from myfinance.models.audit import AuditEvent


ModelT = TypeVar("ModelT", bound=BaseModel)


class RecordStore(ABC, Generic[ModelT]):
    """
    Abstract interface for one collection of records.

    Every operation may suspend and may fail with StoreError.

    NOTE: list() is declared last in implementations so the method name
    does not shadow the builtin in annotations further down the class.
    """

    entity_type: str = "record"

    @abstractmethod
    async def get(self, record_id: UUID) -> Optional[ModelT]:
        """Return one record, or None if it does not exist."""
        pass

    @abstractmethod
    async def create(self, record: ModelT) -> ModelT:
        """
        Store a new record.

        Returns:
            The record as stored

        Raises:
            DuplicateError: If the id is already taken
            StoreError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, record_id: UUID, changes: dict[str, Any]) -> ModelT:
        """
        Apply a partial update.

        Returns:
            The updated record

        Raises:
            NotFoundError: If no record has this id
            StoreError: If the write fails or the result is invalid
        """
        pass

    @abstractmethod
    async def delete(self, record_id: UUID) -> None:
        """
        Remove a record.

        Raises:
            NotFoundError: If no record has this id
        """
        pass

    @abstractmethod
    async def list(self) -> list[ModelT]:
        """
        Return every stored record.

        Raises:
            StoreError: If the backend cannot be read
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Returns True if it was written."""
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class StoreError(Exception):
    """Base exception for record store operations."""
    pass


class NotFoundError(StoreError):
    """Record not found in storage."""
    pass


class DuplicateError(StoreError):
    """Attempted to insert a record whose id already exists."""
    pass


class StoreConnectionError(StoreError):
    """Could not connect to the storage backend."""
    pass
