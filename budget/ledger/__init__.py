"""
Ledger engine package.

Balance application, transaction lifecycle, envelope registry and the
maintenance passes (allocation, retention, cleanup) that run over one
owned BudgetState.
"""

from budget.ledger.allocator import ALLOCATION_NOTE, AllocationPlan, AutoAllocator
from budget.ledger.balances import APPLY, ROLLBACK, apply_balance_delta
from budget.ledger.cleanup import cleanup_unused_envelopes, referenced_envelope_ids
from budget.ledger.errors import (
    CardBalanceNotZeroError,
    CoreEnvelopeError,
    EnvelopeNameRequiredError,
    ImportRejectedError,
    IncomeEnvelopeMissingError,
    InvalidAmountError,
    LedgerError,
    LifecycleError,
    MissingEndpointError,
    NoAllocationTargetsError,
)
from budget.ledger.lifecycle import EnvelopeEvent, apply_transition, can_purge, transition
from budget.ledger.registry import (
    INCOME_ENVELOPE_ID,
    OVERFLOW_ENVELOPE_ID,
    EnvelopeRegistry,
    is_core_envelope,
    restore_core_invariants,
)
from budget.ledger.retention import prune_old_transactions, retention_cutoff
from budget.ledger.transactions import TransactionLedger, TransactionRemoval

__all__ = [
    # Engine
    "APPLY",
    "ROLLBACK",
    "apply_balance_delta",
    "TransactionLedger",
    "TransactionRemoval",
    # Registry
    "INCOME_ENVELOPE_ID",
    "OVERFLOW_ENVELOPE_ID",
    "EnvelopeRegistry",
    "is_core_envelope",
    "restore_core_invariants",
    # Lifecycle
    "EnvelopeEvent",
    "apply_transition",
    "can_purge",
    "transition",
    # Maintenance
    "ALLOCATION_NOTE",
    "AllocationPlan",
    "AutoAllocator",
    "cleanup_unused_envelopes",
    "referenced_envelope_ids",
    "prune_old_transactions",
    "retention_cutoff",
    # Errors
    "CardBalanceNotZeroError",
    "CoreEnvelopeError",
    "EnvelopeNameRequiredError",
    "ImportRejectedError",
    "IncomeEnvelopeMissingError",
    "InvalidAmountError",
    "LedgerError",
    "LifecycleError",
    "MissingEndpointError",
    "NoAllocationTargetsError",
]
