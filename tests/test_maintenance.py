"""Tests for auto-allocation, retention pruning and envelope cleanup."""

from datetime import timedelta

import pytest

from budget.ledger import (
    ALLOCATION_NOTE,
    AutoAllocator,
    IncomeEnvelopeMissingError,
    NoAllocationTargetsError,
    cleanup_unused_envelopes,
    prune_old_transactions,
    referenced_envelope_ids,
    retention_cutoff,
)
from budget.models.ledger import Envelope, Transaction


class TestAutoAllocator:
    """Tests for AutoAllocator."""

    def test_allocation_moves_targets_silently(self, registry, ledger, state):
        """Test each target leaves Income with no history entry."""
        ledger.record_transfer(None, registry.income().id, "100")
        groceries = registry.create_envelope("Groceries", "50")
        rent = registry.create_envelope("Rent", "30.25")
        history_before = list(state.transactions)

        allocator = AutoAllocator(registry, ledger)
        plan = allocator.plan()
        moved = allocator.execute(plan)

        assert plan.total_cents == 8025
        assert moved == {groceries.id: 5000, rent.id: 3025}
        assert registry.income().balance_cents == 1975
        assert groceries.balance_cents == 5000
        assert rent.balance_cents == 3025
        assert state.transactions == history_before

    def test_income_may_go_negative(self, registry, ledger):
        """Test allocation is not capped by the Income balance."""
        registry.create_envelope("Big", "500")
        allocator = AutoAllocator(registry, ledger)
        allocator.execute(allocator.plan())
        assert registry.income().balance_cents == -50000

    def test_skips_cards_inactive_and_zero_targets(self, registry, ledger):
        """Test only active, non-core, non-card envelopes with a target qualify."""
        keep = registry.create_envelope("Keep", "1")
        registry.create_envelope("NoTarget", "0")
        registry.create_credit_card("Visa")
        gone = registry.create_envelope("Gone", "5")
        gone.is_active = False

        plan = AutoAllocator(registry, ledger).plan()
        assert [e.id for e in plan.targets] == [keep.id]

    def test_no_targets(self, registry, ledger):
        """Test allocation with nothing to fill is rejected."""
        with pytest.raises(NoAllocationTargetsError):
            AutoAllocator(registry, ledger).plan()

    def test_missing_income(self, registry, ledger, state):
        """Test allocation without Income is rejected."""
        registry.create_envelope("Groceries", "5")
        state.envelopes[:] = [e for e in state.envelopes if not e.is_income]
        with pytest.raises(IncomeEnvelopeMissingError):
            AutoAllocator(registry, ledger).plan()

    def test_allocation_note(self, registry, ledger, state, monkeypatch):
        """Test the silent adjustments carry the allocation note."""
        registry.create_envelope("Groceries", "5")
        notes = []
        original = ledger.apply_silent_adjustment

        def spy(from_id, to_id, amount, note=""):
            notes.append(note)
            return original(from_id, to_id, amount, note)

        monkeypatch.setattr(ledger, "apply_silent_adjustment", spy)
        allocator = AutoAllocator(registry, ledger)
        allocator.execute(allocator.plan())
        assert notes == [ALLOCATION_NOTE]

    def test_each_adjustment_is_reported(self, registry, ledger):
        """Test the callback sees every silent adjustment in plan order."""
        groceries = registry.create_envelope("Groceries", "5")
        rent = registry.create_envelope("Rent", "7")
        seen = []

        allocator = AutoAllocator(registry, ledger)
        allocator.execute(allocator.plan(), on_adjustment=seen.append)

        assert [tx.to_envelope_id for tx in seen] == [groceries.id, rent.id]
        assert [tx.amount_cents for tx in seen] == [500, 700]
        assert all(tx.from_envelope_id == registry.income().id for tx in seen)


class TestRetention:
    """Tests for prune_old_transactions."""

    def test_old_transactions_removed_balances_kept(self, registry, ledger, state, clock, now):
        """Test a 40 day old entry is pruned with a 30 day window."""
        income = registry.income()
        clock.advance(days=-40)
        old = ledger.record_transfer(None, income.id, "10")
        clock.advance(days=40)
        recent = ledger.record_transfer(None, income.id, "5")
        balances = [e.balance_cents for e in state.envelopes]

        removed = prune_old_transactions(state, retention_days=30, now=now)

        assert removed == 1
        assert state.transactions == [recent]
        assert old not in state.transactions
        assert [e.balance_cents for e in state.envelopes] == balances

    def test_cutoff_boundary_is_kept(self, state, now):
        """Test a transaction exactly at the cutoff survives."""
        cutoff = retention_cutoff(30, now)
        state.transactions.append(
            Transaction(timestamp=cutoff, to_envelope_id="env_income", amount_cents=1)
        )
        state.transactions.append(
            Transaction(
                timestamp=cutoff - timedelta(milliseconds=1),
                to_envelope_id="env_income",
                amount_cents=1,
            )
        )
        assert prune_old_transactions(state, retention_days=30, now=now) == 1
        assert state.transactions[0].timestamp == cutoff

    def test_uses_state_setting(self, state, now):
        """Test the window defaults to the state's setting."""
        state.settings.transaction_retention_days = 5
        state.transactions.append(Transaction(
            timestamp=now - timedelta(days=6),
            to_envelope_id="env_income",
            amount_cents=1,
        ))
        assert prune_old_transactions(state, now=now) == 1

    def test_explicit_window_overrides_setting(self, state, now):
        """Test an explicit window is used even when the setting is wider."""
        state.settings.transaction_retention_days = 30
        state.transactions.append(Transaction(
            timestamp=now - timedelta(days=2),
            to_envelope_id="env_income",
            amount_cents=1,
        ))
        assert prune_old_transactions(state, retention_days=1, now=now) == 1

    @pytest.mark.parametrize("days", [0, -5])
    def test_window_below_one_day_rejected(self, state, now, days):
        """Test a zero or negative window is refused rather than replaced."""
        state.transactions.append(Transaction(
            timestamp=now - timedelta(days=1),
            to_envelope_id="env_income",
            amount_cents=1,
        ))
        with pytest.raises(ValueError):
            prune_old_transactions(state, retention_days=days, now=now)
        assert len(state.transactions) == 1

    def test_nothing_to_prune(self, state, now):
        """Test an empty history."""
        assert prune_old_transactions(state, now=now) == 0


class TestCleanup:
    """Tests for cleanup_unused_envelopes."""

    def test_purges_only_unused(self, registry, state):
        """Test which envelopes the collector removes."""
        purgeable = registry.create_envelope("Purge me")
        purgeable.is_active = False

        active = registry.create_envelope("Active")

        holding = registry.create_envelope("Holding")
        holding.is_active = False
        holding.balance_cents = 100

        referenced = registry.create_envelope("Referenced")
        referenced.is_active = False
        state.transactions.append(Transaction(
            from_envelope_id=referenced.id, amount_cents=1,
        ))

        purged = cleanup_unused_envelopes(state)

        assert [e.id for e in purged] == [purgeable.id]
        remaining = {e.id for e in state.envelopes}
        assert purgeable.id not in remaining
        assert {active.id, holding.id, referenced.id} <= remaining
        assert registry.income() is not None
        assert registry.overflow() is not None

    def test_never_removes_core(self, state):
        """Test core envelopes survive even when inactive and empty."""
        for envelope in state.envelopes:
            envelope.is_active = False
        assert cleanup_unused_envelopes(state) == []
        assert len(state.envelopes) == 2

    def test_prune_then_cleanup(self, registry, ledger, state, clock, now):
        """Test pruning the last reference lets the envelope be purged."""
        trip = registry.create_envelope("Trip")
        clock.advance(days=-60)
        tx = ledger.record_transfer(None, trip.id, "1")
        ledger.record_transfer(trip.id, None, "1")
        clock.advance(days=60)
        trip.is_active = False

        assert cleanup_unused_envelopes(state) == []
        assert trip.id in referenced_envelope_ids(state)

        prune_old_transactions(state, retention_days=30, now=now)
        purged = cleanup_unused_envelopes(state)

        assert [e.id for e in purged] == [trip.id]
        assert tx not in state.transactions

    def test_envelope_model_untouched_when_kept(self, state):
        """Test kept envelopes are the same objects."""
        extra = Envelope(id="x", name="X")
        state.envelopes.append(extra)
        cleanup_unused_envelopes(state)
        assert state.envelopes[-1] is extra
