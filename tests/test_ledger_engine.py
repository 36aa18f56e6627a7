"""Tests for balance application, envelope lifecycle and the transaction ledger."""

from decimal import Decimal

import pytest

from budget.ledger import (
    APPLY,
    ROLLBACK,
    CoreEnvelopeError,
    EnvelopeEvent,
    InvalidAmountError,
    LifecycleError,
    MissingEndpointError,
    apply_balance_delta,
    apply_transition,
    can_purge,
    transition,
)
from budget.models.ledger import Envelope, EnvelopeState, Transaction, TransactionPatch


def make_envelopes():
    return [
        Envelope(id="a", name="A", balance_cents=1000),
        Envelope(id="b", name="B", balance_cents=-250),
    ]


class TestBalanceApplication:
    """Tests for apply_balance_delta."""

    def test_apply_moves_money(self):
        """Test that applying debits the source and credits the destination."""
        envelopes = make_envelopes()
        tx = Transaction(from_envelope_id="a", to_envelope_id="b", amount_cents=300)
        apply_balance_delta(envelopes, tx, APPLY)
        assert [e.balance_cents for e in envelopes] == [700, 50]

    @pytest.mark.parametrize(
        "from_id,to_id,amount",
        [("a", "b", 1), ("a", None, 999999), (None, "b", 12345), ("b", "a", 250)],
    )
    def test_rollback_is_exact(self, from_id, to_id, amount):
        """Test apply then rollback restores every balance exactly."""
        envelopes = make_envelopes()
        before = [e.balance_cents for e in envelopes]
        tx = Transaction(from_envelope_id=from_id, to_envelope_id=to_id, amount_cents=amount)

        apply_balance_delta(envelopes, tx, APPLY)
        apply_balance_delta(envelopes, tx, ROLLBACK)

        assert [e.balance_cents for e in envelopes] == before

    def test_missing_envelope_is_skipped(self):
        """Test that an unresolved id is ignored, not an error."""
        envelopes = make_envelopes()
        tx = Transaction(from_envelope_id="gone", to_envelope_id="a", amount_cents=100)
        apply_balance_delta(envelopes, tx, APPLY)
        assert envelopes[0].balance_cents == 1100

    def test_bad_direction(self):
        """Test that only +1 and -1 are accepted."""
        tx = Transaction(to_envelope_id="a", amount_cents=1)
        with pytest.raises(ValueError):
            apply_balance_delta(make_envelopes(), tx, 2)


class TestLifecycle:
    """Tests for the envelope state machine."""

    def test_delete_then_reactivate(self):
        """Test ACTIVE -> INACTIVE -> ACTIVE."""
        envelope = Envelope(id="a", name="A")
        assert apply_transition(envelope, EnvelopeEvent.DELETE) is EnvelopeState.INACTIVE
        assert envelope.is_active is False
        assert apply_transition(envelope, EnvelopeEvent.REACTIVATE) is EnvelopeState.ACTIVE
        assert envelope.is_active is True

    def test_core_envelope_cannot_be_deleted(self):
        """Test DELETE on Income raises."""
        income = Envelope(id="env_income", name="Income", is_income=True)
        with pytest.raises(CoreEnvelopeError):
            transition(income, EnvelopeEvent.DELETE)

    def test_core_envelope_cannot_be_purged(self):
        """Test PURGE on Overflow raises even when inactive and empty."""
        overflow = Envelope(id="env_overflow", name="Overflow", is_overflow=True, is_active=False)
        assert can_purge(overflow, set()) is False
        with pytest.raises(LifecycleError):
            transition(overflow, EnvelopeEvent.PURGE)

    def test_purge_guard(self):
        """Test PURGE needs inactive, zero balance and no references."""
        envelope = Envelope(id="a", name="A", is_active=False)
        assert transition(envelope, EnvelopeEvent.PURGE, set()) is EnvelopeState.PURGED

        with pytest.raises(LifecycleError):
            transition(envelope, EnvelopeEvent.PURGE, {"a"})

        envelope.balance_cents = 1
        with pytest.raises(LifecycleError):
            transition(envelope, EnvelopeEvent.PURGE, set())

    def test_active_envelope_is_not_purgeable(self):
        """Test an active envelope never purges."""
        assert can_purge(Envelope(id="a", name="A"), set()) is False

    def test_purge_does_not_touch_flag(self):
        """Test apply_transition leaves is_active alone for PURGED."""
        envelope = Envelope(id="a", name="A", is_active=False)
        assert apply_transition(envelope, EnvelopeEvent.PURGE) is EnvelopeState.PURGED
        assert envelope.is_active is False


class TestTransactionLedger:
    """Tests for TransactionLedger."""

    def test_add_income(self, registry, ledger, state):
        """Test money entering lands in Income and is recorded."""
        income = registry.income()
        tx = ledger.record_transfer(None, income.id, Decimal("100.00"), "Pay")

        assert income.balance_cents == 10000
        assert state.transactions == [tx]
        assert tx.from_envelope_id is None
        assert tx.amount_cents == 10000

    def test_silent_adjustment_not_recorded(self, registry, ledger, state):
        """Test that a silent adjustment changes balances only."""
        income = registry.income()
        overflow = registry.overflow()
        ledger.apply_silent_adjustment(income.id, overflow.id, "5")

        assert income.balance_cents == -500
        assert overflow.balance_cents == 500
        assert state.transactions == []

    @pytest.mark.parametrize("amount", [0, "0.004", "-5", "abc", None])
    def test_invalid_amount_changes_nothing(self, registry, ledger, state, amount):
        """Test that a non-positive amount aborts before any change."""
        income = registry.income()
        with pytest.raises(InvalidAmountError):
            ledger.record_transfer(None, income.id, amount)
        assert income.balance_cents == 0
        assert state.transactions == []

    def test_no_endpoints(self, ledger, state):
        """Test that a transaction needs at least one side."""
        with pytest.raises(MissingEndpointError):
            ledger.record_transfer(None, None, 10)
        assert state.transactions == []

    def test_timestamps_never_go_backwards(self, registry, ledger, clock):
        """Test monotonic timestamps when the clock steps back."""
        income = registry.income()
        first = ledger.record_transfer(None, income.id, 1)
        clock.advance(minutes=-5)
        second = ledger.record_transfer(None, income.id, 1)
        assert second.timestamp >= first.timestamp

    def test_update_with_empty_patch_is_identity(self, registry, ledger, state):
        """Test update with no fields leaves balances and the entry unchanged."""
        income = registry.income()
        overflow = registry.overflow()
        tx = ledger.record_transfer(income.id, overflow.id, "12.34", "move")
        balances = [e.balance_cents for e in state.envelopes]
        stored = tx.model_dump_json()

        updated = ledger.update_transaction(tx.id, TransactionPatch())

        assert [e.balance_cents for e in state.envelopes] == balances
        assert updated.model_dump_json() == stored

    def test_update_amount_and_destination(self, registry, ledger, state):
        """Test rollback-then-apply on edit."""
        groceries = registry.create_envelope("Groceries")
        income = registry.income()
        tx = ledger.record_transfer(None, income.id, "100")

        updated = ledger.update_transaction(
            tx.id, TransactionPatch(to_envelope_id=groceries.id, amount=Decimal("40"))
        )

        assert income.balance_cents == 0
        assert groceries.balance_cents == 4000
        assert updated.id == tx.id
        assert updated.timestamp == tx.timestamp
        assert state.transactions == [updated]

    def test_update_to_spend(self, registry, ledger):
        """Test that an explicit None destination turns a transfer into a spend."""
        income = registry.income()
        overflow = registry.overflow()
        tx = ledger.record_transfer(income.id, overflow.id, "10")

        ledger.update_transaction(tx.id, TransactionPatch(to_envelope_id=None))

        assert income.balance_cents == -1000
        assert overflow.balance_cents == 0

    def test_invalid_update_changes_nothing(self, registry, ledger, state):
        """Test that a rejected edit leaves balances untouched."""
        income = registry.income()
        tx = ledger.record_transfer(None, income.id, "10")

        with pytest.raises(InvalidAmountError):
            ledger.update_transaction(tx.id, TransactionPatch(amount=Decimal("0")))
        with pytest.raises(MissingEndpointError):
            ledger.update_transaction(tx.id, TransactionPatch(to_envelope_id=None))

        assert income.balance_cents == 1000
        assert state.transactions == [tx]

    def test_unknown_ids(self, ledger):
        """Test unknown ids are a no-op."""
        assert ledger.update_transaction("nope", TransactionPatch(note="x")) is None
        assert ledger.delete_transaction("nope") is None

    def test_delete_reverses_add(self, registry, ledger, state):
        """Test delete exactly undoes the balance effect."""
        income = registry.income()
        overflow = registry.overflow()
        balances = [e.balance_cents for e in state.envelopes]
        tx = ledger.record_transfer(income.id, overflow.id, "33.33")

        removal = ledger.delete_transaction(tx.id)

        assert removal.transaction.id == tx.id
        assert [e.balance_cents for e in state.envelopes] == balances
        assert state.transactions == []

    def test_delete_reactivates_inactive_envelope(self, registry, ledger):
        """Test deleting a transaction brings back an inactive envelope it names."""
        rent = registry.create_envelope("Rent")
        tx = ledger.record_transfer(None, rent.id, "10")
        apply_transition(rent, EnvelopeEvent.DELETE)

        removal = ledger.delete_transaction(tx.id)

        assert rent.is_active is True
        assert removal.reactivated_envelope_ids == [rent.id]
        assert rent.balance_cents == 0
