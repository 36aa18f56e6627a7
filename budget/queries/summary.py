"""
Read-side Queries

Everything a presentation layer needs to draw the ledger, computed
from the state without mutating it:

- the summary panel (envelope totals vs the bank reference balance)
- the history list, newest first, with envelope names resolved
- the envelope choices for a transaction form

Transactions whose envelope has since been purged still render: the
missing name falls back to a placeholder.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from budget.ledger.registry import EnvelopeRegistry
from budget.models.ledger import BudgetState, Transaction
from budget.money import to_display

UNKNOWN_ENVELOPE = "(unknown)"
EXTERNAL_SOURCE = "Add to"
EXTERNAL_DESTINATION = "Spent"


class BudgetSummary(BaseModel):
    """Totals shown in the summary panel, all in cents."""

    envelopes_cents: int = Field(description="Sum of all active envelope balances")
    non_card_cents: int = Field(description="Active envelopes excluding credit cards")
    cards_cents: int = Field(description="Sum of active credit card balances")
    bank_cents: int = Field(description="Bank reference balance")
    net_after_cards_cents: int = Field(description="Envelopes minus cards")
    difference_cents: int = Field(description="Bank minus envelopes")
    allocations_cents: int = Field(description="Total per-period targets")
    income_cents: int = 0
    overflow_cents: int = 0

    def display(self) -> dict[str, str]:
        """The same figures formatted for display."""
        return {name: to_display(value) for name, value in self.model_dump().items()}


class HistoryEntry(BaseModel):
    """One row of the transaction history."""

    transaction_id: str
    timestamp: datetime
    from_name: str
    to_name: str
    amount_cents: int
    amount_display: str
    note: str


class EnvelopeChoice(BaseModel):
    """An option in a from/to envelope picker."""

    envelope_id: str
    label: str


class LedgerQueries:
    """
    Read-only views over a BudgetState.

    GUARANTEES:
    - Never mutates the state
    - Every figure comes straight from stored balances
    """

    def __init__(self, state: BudgetState):
        self._state = state
        self._registry = EnvelopeRegistry(state)

    def summary(self) -> BudgetSummary:
        envelopes = self._registry.total_active_balance_cents()
        cards = self._registry.total_credit_card_balance_cents()
        bank = self._state.bank_balance_cents
        income = self._registry.income()
        overflow = self._registry.overflow()

        return BudgetSummary(
            envelopes_cents=envelopes,
            non_card_cents=self._registry.total_non_card_balance_cents(),
            cards_cents=cards,
            bank_cents=bank,
            net_after_cards_cents=envelopes - cards,
            difference_cents=bank - envelopes,
            allocations_cents=self._registry.total_target_allocation_cents(),
            income_cents=income.balance_cents if income else 0,
            overflow_cents=overflow.balance_cents if overflow else 0,
        )

    def _name(self, envelope_id: Optional[str], external: str) -> str:
        if not envelope_id:
            return external
        envelope = self._registry.get(envelope_id)
        return envelope.name if envelope else UNKNOWN_ENVELOPE

    def history_entry(self, tx: Transaction) -> HistoryEntry:
        return HistoryEntry(
            transaction_id=tx.id,
            timestamp=tx.timestamp,
            from_name=self._name(tx.from_envelope_id, EXTERNAL_SOURCE),
            to_name=self._name(tx.to_envelope_id, EXTERNAL_DESTINATION),
            amount_cents=tx.amount_cents,
            amount_display=to_display(tx.amount_cents),
            note=tx.note,
        )

    def history(self, limit: Optional[int] = None) -> list[HistoryEntry]:
        """Recorded transactions, newest first."""
        ordered = sorted(self._state.transactions, key=lambda t: t.timestamp, reverse=True)
        if limit is not None:
            ordered = ordered[:limit]
        return [self.history_entry(tx) for tx in ordered]

    def envelope_choices(self) -> list[EnvelopeChoice]:
        """Active envelopes labelled with their balance."""
        return [
            EnvelopeChoice(
                envelope_id=e.id,
                label=f"{e.name} {to_display(e.balance_cents)}",
            )
            for e in self._registry.active_envelopes()
        ]
