"""
In-Memory Record Store

Keeps records in a dict for the lifetime of the process. Used in tests
and for the "memory" backend, the counterpart of keeping everything in
the browser's local storage.

Records handed out are copies, so callers cannot change stored state
without going through update().
"""

from typing import Any, Optional
from uuid import UUID

from pydantic import ValidationError

from myfinance.models.audit import AuditEvent
from myfinance.store.interface import (
    AuditStorageInterface,
    DuplicateError,
    ModelT,
    NotFoundError,
    RecordStore,
    StoreError,
)


class InMemoryRecordStore(RecordStore[ModelT]):
    """Dict-backed store for one model type."""

    def __init__(self, model: type[ModelT], entity_type: str = "record"):
        self._model = model
        self.entity_type = entity_type
        self._records: dict[UUID, ModelT] = {}

    async def get(self, record_id: UUID) -> Optional[ModelT]:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record else None

    async def create(self, record: ModelT) -> ModelT:
        if record.id in self._records:
            raise DuplicateError(f"{self.entity_type} already exists: {record.id}")
        self._records[record.id] = record.model_copy(deep=True)
        return record.model_copy(deep=True)

    async def update(self, record_id: UUID, changes: dict[str, Any]) -> ModelT:
        existing = self._records.get(record_id)
        if existing is None:
            raise NotFoundError(f"{self.entity_type} not found: {record_id}")

        data = existing.model_dump()
        data.update(changes)
        data["id"] = record_id
        try:
            updated = self._model.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Invalid update for {self.entity_type} {record_id}: {e}")

        self._records[record_id] = updated
        return updated.model_copy(deep=True)

    async def delete(self, record_id: UUID) -> None:
        if self._records.pop(record_id, None) is None:
            raise NotFoundError(f"{self.entity_type} not found: {record_id}")

    async def list(self) -> list[ModelT]:
        return [r.model_copy(deep=True) for r in self._records.values()]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
