"""Read-side query package."""

from budget.queries.summary import (
    EXTERNAL_DESTINATION,
    EXTERNAL_SOURCE,
    UNKNOWN_ENVELOPE,
    BudgetSummary,
    EnvelopeChoice,
    HistoryEntry,
    LedgerQueries,
)

__all__ = [
    "EXTERNAL_DESTINATION",
    "EXTERNAL_SOURCE",
    "UNKNOWN_ENVELOPE",
    "BudgetSummary",
    "EnvelopeChoice",
    "HistoryEntry",
    "LedgerQueries",
]
