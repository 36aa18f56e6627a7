"""Services package."""

from budget.services.confirmation import (
    CallbackConfirmation,
    ConfirmationProvider,
    StaticConfirmation,
)
from budget.services.storage import (
    AuditSinkInterface,
    InMemoryAuditSink,
    InMemoryStateStorage,
    JsonFileStateStorage,
    JsonLinesAuditSink,
    StateStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

__all__ = [
    # Confirmation
    "CallbackConfirmation",
    "ConfirmationProvider",
    "StaticConfirmation",
    # Storage services
    "AuditSinkInterface",
    "InMemoryAuditSink",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    "JsonLinesAuditSink",
    "StateStorageInterface",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]
