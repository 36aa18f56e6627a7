"""
Abstract Storage Interface

DESIGN DECISION: The ledger only needs "load a state blob" and "save a
state blob". Defining that as an interface allows us to:
1. Swap the JSON file for another backend later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The blob is opaque text here; parsing it is the controller's job.
"""

from abc import ABC, abstractmethod
from typing import Optional

from budget.models.audit import AuditEvent


class StateStorageInterface(ABC):
    """
    Abstract interface for state blob persistence.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def load(self) -> Optional[str]:
        """
        Read the stored state blob.

        Returns:
            The blob text exactly as saved, or None if nothing is stored

        Raises:
            StorageReadError: If the backend exists but cannot be read
        """
        pass

    @abstractmethod
    def save(self, blob: str) -> bool:
        """
        Replace the stored state blob.

        Args:
            blob: Serialized state

        Returns:
            True if saved successfully

        Raises:
            StorageWriteError: If the write fails
        """
        pass


class AuditSinkInterface(ABC):
    """
    Abstract interface for audit event persistence.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """Stored data exists but could not be read."""
    pass


class StorageWriteError(StorageError):
    """Data could not be written."""
    pass
