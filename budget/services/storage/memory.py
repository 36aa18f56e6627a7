"""
In-Memory Storage Implementation

Used by tests and by callers that do not want anything on disk.
`fail_saves` simulates a broken backend.
"""

from typing import Optional

from budget.models.audit import AuditEvent
from budget.services.storage.interface import (
    AuditSinkInterface,
    StateStorageInterface,
    StorageWriteError,
)


class InMemoryStateStorage(StateStorageInterface):
    """Holds the blob in a plain attribute."""

    def __init__(self, blob: Optional[str] = None):
        self.blob = blob
        self.fail_saves = False
        self.save_count = 0

    def load(self) -> Optional[str]:
        return self.blob

    def save(self, blob: str) -> bool:
        if self.fail_saves:
            raise StorageWriteError("In-memory storage is set to fail")
        self.blob = blob
        self.save_count += 1
        return True


class InMemoryAuditSink(AuditSinkInterface):
    """Keeps audit events in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events[-limit:]))
