"""
Main Orchestrator for Dead Simple Budget

This module ties together the ledger engine, storage, confirmation and
audit logging, and defines the lifecycle of the one state aggregate:

    init = load -> repair core envelopes -> prune -> cleanup -> save

DESIGN DECISION: The controller is the only owner of the BudgetState.
Every mutation goes through one of its methods, under one lock, and
finishes with persist + notify. Nothing else can observe a half-applied
operation (e.g. an edit that has been rolled back but not re-applied).

DESIGN DECISION: A failed save does not undo the in-memory change.
The controller keeps running on the in-memory state and reports
save_status == UNSAVED until the next successful save.
"""

import json
import threading
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator, Optional, Union

from pydantic import ValidationError

from budget.audit import AuditLogger
from budget.config import get_settings
from budget.ledger import (
    AutoAllocator,
    CardBalanceNotZeroError,
    EnvelopeRegistry,
    ImportRejectedError,
    IncomeEnvelopeMissingError,
    LedgerError,
    TransactionLedger,
    TransactionRemoval,
    cleanup_unused_envelopes,
    prune_old_transactions,
)
from budget.models.audit import AuditEventBuilder
from budget.models.ledger import (
    BudgetState,
    Envelope,
    EnvelopePatch,
    Transaction,
    TransactionPatch,
)
from budget.money import Amount, to_display, to_minor_units
from budget.queries import LedgerQueries
from budget.services.confirmation import ConfirmationProvider, StaticConfirmation
from budget.services.storage import (
    InMemoryAuditSink,
    InMemoryStateStorage,
    JsonFileStateStorage,
    JsonLinesAuditSink,
    StateStorageInterface,
    StorageError,
    StorageReadError,
)

Listener = Callable[[BudgetState], None]
Clock = Callable[[], datetime]


class SaveStatus(str, Enum):
    """Whether the in-memory state matches what is stored."""
    SAVED = "saved"
    UNSAVED = "unsaved"


class BudgetController:
    """
    Owns one BudgetState and exposes every ledger operation on it.

    Validation failures raise LedgerError subclasses with the state
    untouched. A declined confirmation returns False/None, also with the
    state untouched.
    """

    def __init__(
        self,
        storage: Optional[StateStorageInterface] = None,
        confirmation: Optional[ConfirmationProvider] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
    ):
        self._storage = storage or JsonFileStateStorage()
        # Consequential actions need an explicit yes; without a provider, decline.
        self._confirmation = confirmation or StaticConfirmation(answer=False)
        self._audit = audit_logger or AuditLogger()
        self._clock = clock
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []

        self.save_status = SaveStatus.SAVED
        self.last_save_error: Optional[str] = None

        self._bind(BudgetState())

    def _bind(self, state: BudgetState) -> None:
        self._state = state
        self.registry = EnvelopeRegistry(state)
        self.ledger = TransactionLedger(state, clock=self._clock)
        self.allocator = AutoAllocator(self.registry, self.ledger)
        self.queries = LedgerQueries(state)

    @property
    def state(self) -> BudgetState:
        return self._state

    @property
    def has_unsaved_changes(self) -> bool:
        return self.save_status is SaveStatus.UNSAVED

    def set_confirmation(self, confirmation: ConfirmationProvider) -> None:
        self._confirmation = confirmation

    def _now(self) -> Optional[datetime]:
        return self._clock() if self._clock else None

    # -------------------------------------------------------------------------
    # Subscribers
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback run after every mutation.

        Returns:
            A function that removes the subscription.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)

    # -------------------------------------------------------------------------
    # Persistence lifecycle
    # -------------------------------------------------------------------------

    def load(self) -> BudgetState:
        """
        Load the stored state, falling back to a fresh one.

        Never raises: a missing, unreadable or corrupt blob is logged and
        replaced by a default state.
        """
        with self._lock:
            state = None
            blob = None
            try:
                blob = self._storage.load()
            except StorageError as e:
                self._audit.log(AuditEventBuilder.state_reset(reason=str(e)))
            else:
                if blob is None:
                    self._audit.log(AuditEventBuilder.state_reset(reason="no saved state"))

            if blob is not None:
                try:
                    state = BudgetState.from_blob(blob)
                except ValidationError as e:
                    self._audit.log(AuditEventBuilder.state_reset(reason=str(e)))

            if state is None:
                state = BudgetState()
            else:
                self._audit.log(AuditEventBuilder.state_loaded(
                    envelopes=len(state.envelopes),
                    transactions=len(state.transactions),
                ))

            self._bind(state)
            return state

    def save(self) -> bool:
        """
        Persist the current state.

        Returns:
            True on success. On failure the state stays in memory and
            save_status becomes UNSAVED.
        """
        with self._lock:
            try:
                self._storage.save(self._state.to_blob())
            except StorageError as e:
                self.save_status = SaveStatus.UNSAVED
                self.last_save_error = str(e)
                self._audit.log_save_failed(str(e))
                return False

            self.save_status = SaveStatus.SAVED
            self.last_save_error = None
            return True

    def _commit(self) -> None:
        self.save()
        self._notify()

    def init(self) -> BudgetState:
        """Load, repair, prune and clean up, then save once."""
        with self._lock:
            self.load()

            if self.registry.ensure_core_envelopes():
                self._audit.log(AuditEventBuilder.core_envelopes_repaired(
                    envelope_count=len(self._state.envelopes),
                ))

            self._prune()
            self._cleanup()
            self._commit()
            return self._state

    @contextmanager
    def _operation(self, action: str) -> Iterator[None]:
        """Serialize a mutation and audit any rejection."""
        with self._lock:
            try:
                yield
            except LedgerError as e:
                self._audit.log_rejected(action, e.detail)
                raise

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def add_transaction(
        self,
        from_envelope_id: Optional[str],
        to_envelope_id: Optional[str],
        amount: Amount,
        note: str = "",
    ) -> Transaction:
        """Record a visible transaction."""
        with self._operation("add_transaction"):
            tx = self.ledger.record_transfer(from_envelope_id, to_envelope_id, amount, note)
            self._audit.log_transaction(tx, recorded=True)
            self._commit()
            return tx

    def add_income(self, amount: Amount, note: str = "Income") -> Transaction:
        """Money entering the system, straight into Income."""
        with self._operation("add_income"):
            income = self.registry.income()
            if income is None:
                raise IncomeEnvelopeMissingError()
            tx = self.ledger.record_transfer(None, income.id, amount, note or "Income")
            self._audit.log_transaction(tx, recorded=True)
            self._commit()
            return tx

    def update_transaction(
        self,
        transaction_id: str,
        patch: TransactionPatch,
    ) -> Optional[Transaction]:
        with self._operation("update_transaction"):
            old = self.ledger.find(transaction_id)
            new = self.ledger.update_transaction(transaction_id, patch)
            if new is None:
                return None
            self._audit.log(AuditEventBuilder.transaction_updated(
                transaction_id=new.id,
                old_amount_cents=old.amount_cents,
                new_amount_cents=new.amount_cents,
            ))
            self._commit()
            return new

    def delete_transaction(self, transaction_id: str) -> Optional[TransactionRemoval]:
        with self._operation("delete_transaction"):
            removal = self.ledger.delete_transaction(transaction_id)
            if removal is None:
                return None
            self._audit.log(AuditEventBuilder.transaction_deleted(
                transaction_id=removal.transaction.id,
                amount_cents=removal.transaction.amount_cents,
                reactivated=removal.reactivated_envelope_ids,
            ))
            self._commit()
            return removal

    # -------------------------------------------------------------------------
    # Envelopes
    # -------------------------------------------------------------------------

    def create_envelope(self, name: str, target: Amount = 0) -> Envelope:
        with self._operation("create_envelope"):
            envelope = self.registry.create_envelope(name, target)
            self._audit.log(AuditEventBuilder.envelope_created(
                envelope_id=envelope.id,
                name=envelope.name,
                target_cents=envelope.target_cents,
                is_credit_card=False,
            ))
            self._commit()
            return envelope

    def create_credit_card(self, name: str) -> Envelope:
        with self._operation("create_credit_card"):
            envelope = self.registry.create_credit_card(name)
            self._audit.log(AuditEventBuilder.envelope_created(
                envelope_id=envelope.id,
                name=envelope.name,
                target_cents=0,
                is_credit_card=True,
            ))
            self._commit()
            return envelope

    def update_envelope(self, envelope_id: str, patch: EnvelopePatch) -> Optional[Envelope]:
        with self._operation("update_envelope"):
            envelope = self.registry.update_envelope(envelope_id, patch)
            if envelope is None:
                return None
            self._audit.log(AuditEventBuilder.envelope_updated(
                envelope_id=envelope.id,
                changes=patch.model_dump(mode="json", exclude_none=True),
            ))
            self._commit()
            return envelope

    def delete_envelope(self, envelope_id: str) -> bool:
        """
        Soft-delete an envelope, merging its balance into Income.

        Returns:
            True if deleted; False for an unknown id or a declined merge.
        """
        with self._operation("delete_envelope"):
            return self._deactivate(envelope_id, "delete_envelope")

    def _deactivate(self, envelope_id: str, action: str) -> bool:
        """Registry delete plus audit and commit. Caller holds the lock."""
        before = len(self._state.transactions)
        deleted = self.registry.delete_envelope(
            envelope_id, self.ledger, self._confirmation
        )
        if not deleted:
            if self.registry.get(envelope_id) is not None:
                self._audit.log_cancelled(action)
            return False

        merge_tx = (
            self._state.transactions[-1]
            if len(self._state.transactions) > before
            else None
        )
        if merge_tx is not None:
            self._audit.log_transaction(merge_tx, recorded=True)

        envelope = self.registry.get(envelope_id)
        self._audit.log(AuditEventBuilder.envelope_deactivated(
            envelope_id=envelope_id,
            name=envelope.name if envelope else "",
            merge_transaction_id=merge_tx.id if merge_tx else None,
        ))
        self._commit()
        return True

    def delete_credit_card(self, envelope_id: str) -> bool:
        """
        Delete a credit card. Cards are never merged: they must be paid
        to exactly zero first.

        Raises:
            CardBalanceNotZeroError: If the card still has a balance.
        """
        with self._operation("delete_credit_card"):
            envelope = self.registry.get(envelope_id)
            if envelope is None:
                return False

            if envelope.balance_cents != 0:
                raise CardBalanceNotZeroError(envelope.id, envelope.balance_cents)

            if not self._confirmation(f'Delete credit card "{envelope.name}"?'):
                self._audit.log_cancelled("delete_credit_card")
                return False

            return self._deactivate(envelope_id, "delete_credit_card")

    # -------------------------------------------------------------------------
    # Allocation, bank, maintenance
    # -------------------------------------------------------------------------

    def auto_allocate(self) -> Optional[dict[str, int]]:
        """
        Fill every target envelope from Income.

        Returns:
            Cents moved per envelope id, or None if the user declined.
        """
        with self._operation("auto_allocate"):
            plan = self.allocator.plan()
            symbol = get_settings().ledger.currency_symbol

            ok = self._confirmation(
                f"This will move {symbol}{to_display(plan.total_cents)} "
                "from Income to your target envelopes.\n\n"
                "Income may go below zero. Continue?"
            )
            if not ok:
                self._audit.log_cancelled("auto_allocate")
                return None

            moved = self.allocator.execute(
                plan,
                on_adjustment=lambda tx: self._audit.log_transaction(tx, recorded=False),
            )
            self._audit.log(AuditEventBuilder.auto_allocation_completed(
                total_cents=plan.total_cents,
                allocations=moved,
            ))
            self._commit()
            return moved

    def set_bank_balance(self, amount: Amount) -> int:
        """Set the bank reference balance. Returns the stored cents."""
        with self._operation("set_bank_balance"):
            old = self._state.bank_balance_cents
            self._state.bank_balance_cents = to_minor_units(amount)
            self._audit.log(AuditEventBuilder.bank_balance_updated(
                old_cents=old,
                new_cents=self._state.bank_balance_cents,
            ))
            self._commit()
            return self._state.bank_balance_cents

    def _prune(self) -> int:
        removed = prune_old_transactions(self._state, now=self._now())
        if removed:
            self._audit.log(AuditEventBuilder.transactions_pruned(
                removed=removed,
                retention_days=self._state.settings.transaction_retention_days,
            ))
        return removed

    def _cleanup(self) -> list[Envelope]:
        purged = cleanup_unused_envelopes(self._state)
        if purged:
            self._audit.log(AuditEventBuilder.envelopes_purged(
                envelope_ids=[e.id for e in purged],
            ))
        return purged

    def prune_old_transactions(self) -> int:
        with self._operation("prune_old_transactions"):
            removed = self._prune()
            if removed:
                self._commit()
            return removed

    def cleanup_unused_envelopes(self) -> list[Envelope]:
        with self._operation("cleanup_unused_envelopes"):
            purged = self._cleanup()
            if purged:
                self._commit()
            return purged

    # -------------------------------------------------------------------------
    # Backup
    # -------------------------------------------------------------------------

    def export_state(self) -> str:
        """
        The stored blob, byte-identical to what the backend holds.

        Raises:
            StorageReadError: If nothing is stored.
        """
        with self._lock:
            self.save()
            blob = self._storage.load()
            if blob is None:
                raise StorageReadError("No data to export.")
            return blob

    def import_state(self, text: Union[str, bytes]) -> bool:
        """
        Overwrite the stored state with a backup, then re-initialize.

        Args:
            text: Backup JSON, as text or as the raw UTF-8 file contents.

        Returns:
            True if imported, False if the user declined the overwrite.

        Raises:
            ImportRejectedError: Bad JSON or wrong shape; nothing changes.
            StorageError: The backup could not be written; nothing changes.
        """
        with self._operation("import_state"):
            if isinstance(text, bytes):
                try:
                    text = text.decode("utf-8-sig")
                except UnicodeDecodeError:
                    return self._reject_import("Backup file is not UTF-8 text.")

            try:
                parsed = json.loads(text)
            except (TypeError, ValueError) as e:
                return self._reject_import(f"Invalid JSON: {e}")

            if not isinstance(parsed, dict):
                return self._reject_import("Invalid JSON structure.")
            if not isinstance(parsed.get("envelopes"), list) or not isinstance(
                parsed.get("transactions"), list
            ):
                return self._reject_import("Missing envelopes/transactions arrays.")

            try:
                imported = BudgetState.model_validate(parsed)
            except ValidationError as e:
                return self._reject_import(f"Invalid backup contents: {e.error_count()} errors")

            ok = self._confirmation(
                "Importing this backup will overwrite your current budget data.\n\n"
                "Continue?"
            )
            if not ok:
                self._audit.log_cancelled("import_state")
                return False

            self._storage.save(json.dumps(parsed, separators=(",", ":")))
            self._audit.log(AuditEventBuilder.state_imported(
                envelopes=len(imported.envelopes),
                transactions=len(imported.transactions),
            ))
            self.init()
            return True

    def _reject_import(self, reason: str) -> bool:
        self._audit.log(AuditEventBuilder.import_rejected(reason=reason))
        raise ImportRejectedError(reason)


def create_app_components(
    use_storage: bool = True,
    confirmation: Optional[ConfirmationProvider] = None,
) -> BudgetController:
    """
    Factory function to create and initialize a controller.

    Args:
        use_storage: Whether to persist to the configured data directory.
                     Set to False for a throwaway in-memory ledger.
        confirmation: Provider for yes/no prompts.

    Returns:
        An initialized BudgetController.
    """
    if use_storage:
        storage_settings = get_settings().storage
        storage = JsonFileStateStorage()
        audit_logger = AuditLogger(
            JsonLinesAuditSink(storage_settings.data_dir / "audit_log.jsonl")
        )
    else:
        storage = InMemoryStateStorage()
        audit_logger = AuditLogger(InMemoryAuditSink())

    controller = BudgetController(
        storage=storage,
        confirmation=confirmation,
        audit_logger=audit_logger,
    )
    controller.init()
    return controller
