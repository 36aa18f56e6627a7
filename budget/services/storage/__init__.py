"""
Storage Services Package

Provides abstract interfaces and concrete implementations for persisting
the state blob and the audit trail. The JSON file backend is the default;
the in-memory backend is used in tests.
"""

from budget.services.storage.interface import (
    AuditSinkInterface,
    StateStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from budget.services.storage.json_file import JsonFileStateStorage, JsonLinesAuditSink
from budget.services.storage.memory import InMemoryAuditSink, InMemoryStateStorage

__all__ = [
    # Interfaces
    "AuditSinkInterface",
    "StateStorageInterface",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "InMemoryAuditSink",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    "JsonLinesAuditSink",
]
