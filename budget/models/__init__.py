"""
Data Models Package

This package contains all Pydantic models used in Dead Simple Budget.
All data flowing through the ledger and into storage conforms to these schemas.
"""

from budget.models.ledger import (
    BudgetSettings,
    BudgetState,
    Envelope,
    EnvelopePatch,
    EnvelopeState,
    Transaction,
    TransactionPatch,
    format_timestamp,
    normalize_timestamp,
    utc_now,
)
from budget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "BudgetSettings",
    "BudgetState",
    "Envelope",
    "EnvelopePatch",
    "EnvelopeState",
    "Transaction",
    "TransactionPatch",
    "format_timestamp",
    "normalize_timestamp",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
