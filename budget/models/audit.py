"""
Audit Models for Dead Simple Budget

Every mutation of the ledger is logged for audit purposes.
This provides:
1. Traceability of balance changes, including silent adjustments
   that never appear in transaction history
2. Debugging information when things go wrong
3. A record of persistence failures (unsaved state)

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every mutating ledger operation has its own event type.
    """
    # Transactions
    TRANSACTION_RECORDED = "transaction_recorded"
    SILENT_ADJUSTMENT_APPLIED = "silent_adjustment_applied"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTIONS_PRUNED = "transactions_pruned"

    # Envelopes
    ENVELOPE_CREATED = "envelope_created"
    ENVELOPE_UPDATED = "envelope_updated"
    ENVELOPE_DEACTIVATED = "envelope_deactivated"
    ENVELOPES_PURGED = "envelopes_purged"
    CORE_ENVELOPES_REPAIRED = "core_envelopes_repaired"

    # Allocation
    AUTO_ALLOCATION_COMPLETED = "auto_allocation_completed"

    # Bank reference
    BANK_BALANCE_UPDATED = "bank_balance_updated"

    # User decisions
    USER_CANCELLED = "user_cancelled"
    OPERATION_REJECTED = "operation_rejected"

    # Persistence
    STATE_LOADED = "state_loaded"
    STATE_RESET = "state_reset"
    STATE_IMPORTED = "state_imported"
    IMPORT_REJECTED = "import_rejected"
    SAVE_FAILED = "save_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'envelope', 'transaction', 'state')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_json_line(self) -> str:
        """One JSON object per line, for append-only audit files."""
        return json.dumps(self.to_log_dict(), sort_keys=True)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_recorded(tx_id, 1000, None, "env_income")
        event = AuditEventBuilder.save_failed("disk full")
    """

    @staticmethod
    def transaction_recorded(
        transaction_id: str,
        amount_cents: int,
        from_envelope_id: Optional[str],
        to_envelope_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction recorded: {amount_cents} cents",
            details={
                "amount_cents": amount_cents,
                "from_envelope_id": from_envelope_id,
                "to_envelope_id": to_envelope_id,
            },
        )

    @staticmethod
    def silent_adjustment_applied(
        transaction_id: str,
        amount_cents: int,
        from_envelope_id: Optional[str],
        to_envelope_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SILENT_ADJUSTMENT_APPLIED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Silent adjustment applied: {amount_cents} cents",
            details={
                "amount_cents": amount_cents,
                "from_envelope_id": from_envelope_id,
                "to_envelope_id": to_envelope_id,
            },
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        old_amount_cents: int,
        new_amount_cents: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction updated",
            details={
                "old_amount_cents": old_amount_cents,
                "new_amount_cents": new_amount_cents,
            },
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        amount_cents: int,
        reactivated: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction deleted and rolled back: {amount_cents} cents",
            details={
                "amount_cents": amount_cents,
                "reactivated_envelope_ids": reactivated,
            },
        )

    @staticmethod
    def transactions_pruned(removed: int, retention_days: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_PRUNED,
            entity_type="state",
            description=f"Pruned {removed} transactions older than {retention_days} days",
            details={
                "removed": removed,
                "retention_days": retention_days,
            },
        )

    @staticmethod
    def envelope_created(
        envelope_id: str,
        name: str,
        target_cents: int,
        is_credit_card: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENVELOPE_CREATED,
            entity_type="envelope",
            entity_id=envelope_id,
            description=f"Envelope created: {name}",
            details={
                "name": name,
                "target_cents": target_cents,
                "is_credit_card": is_credit_card,
            },
        )

    @staticmethod
    def envelope_updated(envelope_id: str, changes: dict[str, Any]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENVELOPE_UPDATED,
            entity_type="envelope",
            entity_id=envelope_id,
            description="Envelope updated",
            details={"changes": changes},
        )

    @staticmethod
    def envelope_deactivated(
        envelope_id: str,
        name: str,
        merge_transaction_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENVELOPE_DEACTIVATED,
            entity_type="envelope",
            entity_id=envelope_id,
            description=f"Envelope deleted: {name}",
            details={
                "name": name,
                "merge_transaction_id": merge_transaction_id,
            },
        )

    @staticmethod
    def envelopes_purged(envelope_ids: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENVELOPES_PURGED,
            entity_type="state",
            description=f"Permanently removed {len(envelope_ids)} unused envelopes",
            details={"envelope_ids": envelope_ids},
        )

    @staticmethod
    def core_envelopes_repaired(envelope_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CORE_ENVELOPES_REPAIRED,
            severity=AuditSeverity.WARNING,
            entity_type="state",
            description="Core envelope invariants restored",
            details={"envelope_count": envelope_count},
        )

    @staticmethod
    def auto_allocation_completed(
        total_cents: int,
        allocations: dict[str, int],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTO_ALLOCATION_COMPLETED,
            entity_type="state",
            description=f"Auto-allocated {total_cents} cents from Income",
            details={
                "total_cents": total_cents,
                "allocations": allocations,
            },
        )

    @staticmethod
    def bank_balance_updated(old_cents: int, new_cents: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BANK_BALANCE_UPDATED,
            entity_type="state",
            description="Bank reference balance updated",
            details={
                "old_cents": old_cents,
                "new_cents": new_cents,
            },
        )

    @staticmethod
    def user_cancelled(action: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CANCELLED,
            description=f"User cancelled: {action}",
            details={"action": action},
        )

    @staticmethod
    def operation_rejected(action: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            description=f"Rejected: {action}",
            error_message=reason,
            details={"action": action},
        )

    @staticmethod
    def state_loaded(envelopes: int, transactions: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOADED,
            entity_type="state",
            description="State loaded from storage",
            details={
                "envelopes": envelopes,
                "transactions": transactions,
            },
        )

    @staticmethod
    def state_reset(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="state",
            description="Starting from a fresh state",
            details={"reason": reason},
        )

    @staticmethod
    def state_imported(envelopes: int, transactions: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_IMPORTED,
            entity_type="state",
            description="Backup imported, previous state overwritten",
            details={
                "envelopes": envelopes,
                "transactions": transactions,
            },
        )

    @staticmethod
    def import_rejected(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="state",
            description="Backup import rejected",
            error_message=reason,
        )

    @staticmethod
    def save_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="state",
            description="Failed to persist state; changes are held in memory only",
            error_message=error_message,
        )
