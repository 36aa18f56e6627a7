"""
Transaction Ledger

Creates, edits and deletes transactions. Every balance change is
delegated to the Balance Application Engine; this module owns the
rules around it: amount validation, timestamps, history visibility and
envelope reactivation on delete.

Two ways to move money:

- record_transfer: balance effect AND a visible history entry.
- apply_silent_adjustment: balance effect only. Used for bulk internal
  transfers (auto-allocation). The transaction list is therefore not a
  complete derivation source for balances; balances are authoritative.

Edits are rollback-old + apply-new, never in-place field changes, so an
edit that changes nothing is an exact identity on balances.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, Field

from budget.ledger.balances import APPLY, ROLLBACK, apply_balance_delta
from budget.ledger.errors import InvalidAmountError, MissingEndpointError
from budget.ledger.lifecycle import EnvelopeEvent, apply_transition
from budget.models.ledger import (
    BudgetState,
    Transaction,
    TransactionPatch,
    normalize_timestamp,
    utc_now,
)
from budget.money import Amount, to_minor_units

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


class TransactionRemoval(BaseModel):
    """What delete_transaction undid."""

    transaction: Transaction
    reactivated_envelope_ids: list[str] = Field(default_factory=list)


class TransactionLedger:
    """
    Transaction lifecycle over one owned BudgetState.

    Timestamps are non-decreasing in creation order: if the clock steps
    backwards, the last issued timestamp is reused.
    """

    def __init__(self, state: BudgetState, clock: Optional[Clock] = None):
        self._state = state
        self._clock = clock or utc_now
        self._last_timestamp: Optional[datetime] = max(
            (t.timestamp for t in state.transactions),
            default=None,
        )

    @property
    def transactions(self) -> list[Transaction]:
        return self._state.transactions

    def find(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self._state.transactions if t.id == transaction_id), None)

    def _index_of(self, transaction_id: str) -> Optional[int]:
        for index, tx in enumerate(self._state.transactions):
            if tx.id == transaction_id:
                return index
        return None

    def _next_timestamp(self) -> datetime:
        now = normalize_timestamp(self._clock())
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    @staticmethod
    def _amount_to_cents(amount: Amount) -> int:
        cents = to_minor_units(amount)
        if cents <= 0:
            raise InvalidAmountError(amount)
        return cents

    def add_transaction(
        self,
        from_envelope_id: Optional[str],
        to_envelope_id: Optional[str],
        amount: Amount,
        note: str = "",
        record_in_history: bool = True,
    ) -> Transaction:
        """
        Create a transaction and apply it to balances.

        Prefer record_transfer / apply_silent_adjustment, which name the
        history policy explicitly.

        Args:
            from_envelope_id: Source envelope, None for money entering.
            to_envelope_id: Destination envelope, None for a spend.
            amount: Decimal amount, converted through the money codec.
            note: Free text.
            record_in_history: Append to the transaction list if True.

        Returns:
            The applied transaction.

        Raises:
            InvalidAmountError: If the amount rounds to zero cents or less.
            MissingEndpointError: If both envelope ids are absent.
        """
        amount_cents = self._amount_to_cents(amount)
        if not from_envelope_id and not to_envelope_id:
            raise MissingEndpointError()

        tx = Transaction(
            timestamp=self._next_timestamp(),
            from_envelope_id=from_envelope_id,
            to_envelope_id=to_envelope_id,
            amount_cents=amount_cents,
            note=note or "",
        )

        apply_balance_delta(self._state.envelopes, tx, APPLY)

        if record_in_history:
            self._state.transactions.append(tx)

        logger.debug(
            "transaction_applied",
            transaction_id=tx.id,
            amount_cents=amount_cents,
            recorded=record_in_history,
        )
        return tx

    def record_transfer(
        self,
        from_envelope_id: Optional[str],
        to_envelope_id: Optional[str],
        amount: Amount,
        note: str = "",
    ) -> Transaction:
        """Move money and add a visible history entry."""
        return self.add_transaction(
            from_envelope_id, to_envelope_id, amount, note, record_in_history=True
        )

    def apply_silent_adjustment(
        self,
        from_envelope_id: Optional[str],
        to_envelope_id: Optional[str],
        amount: Amount,
        note: str = "",
    ) -> Transaction:
        """Move money without a history entry."""
        return self.add_transaction(
            from_envelope_id, to_envelope_id, amount, note, record_in_history=False
        )

    def update_transaction(
        self,
        transaction_id: str,
        patch: TransactionPatch,
    ) -> Optional[Transaction]:
        """
        Replace a transaction, keeping its id and original timestamp.

        Only fields explicitly set on the patch change. The replacement is
        validated before the old effect is rolled back.

        Returns:
            The new transaction, or None if the id is unknown.

        Raises:
            InvalidAmountError: If a patched amount rounds to zero or less.
            MissingEndpointError: If the patch leaves no envelope on either side.
        """
        index = self._index_of(transaction_id)
        if index is None:
            return None

        old = self._state.transactions[index]
        fields = patch.model_fields_set

        from_id = patch.from_envelope_id if "from_envelope_id" in fields else old.from_envelope_id
        to_id = patch.to_envelope_id if "to_envelope_id" in fields else old.to_envelope_id
        note = patch.note if patch.note is not None else old.note
        amount_cents = (
            self._amount_to_cents(patch.amount)
            if patch.amount is not None
            else old.amount_cents
        )
        if not from_id and not to_id:
            raise MissingEndpointError()

        new = Transaction(
            id=old.id,
            timestamp=old.timestamp,
            from_envelope_id=from_id,
            to_envelope_id=to_id,
            amount_cents=amount_cents,
            note=note,
        )

        apply_balance_delta(self._state.envelopes, old, ROLLBACK)
        apply_balance_delta(self._state.envelopes, new, APPLY)
        self._state.transactions[index] = new

        return new

    def delete_transaction(self, transaction_id: str) -> Optional[TransactionRemoval]:
        """
        Delete a transaction and roll back its balance effect.

        Inactive envelopes it references are reactivated first. This is the
        undo path for merge-on-delete: removing the auto-merge transaction
        brings the deleted envelope back with its balance.

        Returns:
            What was removed, or None if the id is unknown.
        """
        index = self._index_of(transaction_id)
        if index is None:
            return None

        tx = self._state.transactions[index]

        reactivated = []
        for envelope_id in tx.envelope_ids():
            envelope = next(
                (e for e in self._state.envelopes if e.id == envelope_id), None
            )
            if envelope is not None and not envelope.is_active:
                apply_transition(envelope, EnvelopeEvent.REACTIVATE)
                reactivated.append(envelope.id)

        apply_balance_delta(self._state.envelopes, tx, ROLLBACK)
        del self._state.transactions[index]

        return TransactionRemoval(transaction=tx, reactivated_envelope_ids=reactivated)
