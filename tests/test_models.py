"""
Tests for Dead Simple Budget

Test strategy:
1. Unit tests for individual components (models, codec, engine)
2. Integration tests for the controller (with in-memory storage)
3. No disk access outside tmp_path
"""

import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from budget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
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
)


class TestEnvelopeModel:
    """Tests for the Envelope model."""

    def test_envelope_defaults(self):
        """Test a bare envelope is active with zero balance and target."""
        envelope = Envelope(id="env_1", name="Groceries")
        assert envelope.is_active is True
        assert envelope.balance_cents == 0
        assert envelope.target_cents == 0
        assert envelope.lifecycle == EnvelopeState.ACTIVE
        assert envelope.is_core is False

    def test_envelope_reads_camel_case(self):
        """Test the stored camelCase keys are accepted."""
        envelope = Envelope.model_validate({
            "id": "card_1",
            "name": "Visa",
            "targetCents": 0,
            "balanceCents": -2500,
            "isCreditCard": True,
        })
        assert envelope.is_credit_card is True
        assert envelope.balance_cents == -2500

    def test_envelope_nulls_become_defaults(self):
        """Test that null fields in a stored blob fall back to defaults."""
        envelope = Envelope.model_validate({
            "id": "env_1",
            "name": None,
            "targetCents": None,
            "balanceCents": None,
            "isIncome": None,
            "isActive": None,
        })
        assert envelope.name == ""
        assert envelope.target_cents == 0
        assert envelope.is_income is False
        assert envelope.is_active is True

    def test_envelope_rejects_negative_target(self):
        """Test that targets are never negative."""
        with pytest.raises(ValidationError):
            Envelope(id="env_1", name="X", target_cents=-1)

    def test_envelope_requires_id(self):
        """Test that an empty id is rejected."""
        with pytest.raises(ValidationError):
            Envelope(id="", name="X")

    def test_inactive_envelope_lifecycle(self):
        """Test lifecycle mirrors the is_active flag."""
        envelope = Envelope(id="env_1", name="X", is_active=False)
        assert envelope.lifecycle == EnvelopeState.INACTIVE


class TestTransactionModel:
    """Tests for the Transaction model."""

    def test_transaction_gets_id_and_timestamp(self):
        """Test generated id and timestamp."""
        tx = Transaction(to_envelope_id="env_income", amount_cents=100)
        assert tx.id
        assert tx.timestamp.tzinfo is not None
        assert tx.from_envelope_id is None

    def test_transaction_amount_must_be_positive(self):
        """Test zero and negative amounts are rejected."""
        with pytest.raises(ValidationError):
            Transaction(to_envelope_id="env_income", amount_cents=0)
        with pytest.raises(ValidationError):
            Transaction(to_envelope_id="env_income", amount_cents=-5)

    def test_empty_reference_is_none(self):
        """Test that an empty envelope id means no envelope."""
        tx = Transaction(from_envelope_id="", to_envelope_id="env_a", amount_cents=1)
        assert tx.from_envelope_id is None
        assert tx.envelope_ids() == ["env_a"]

    def test_timestamp_serialized_in_fixed_format(self):
        """Test the wire format of timestamps."""
        tx = Transaction(
            timestamp=datetime(2024, 1, 2, 3, 4, 5, 678999, tzinfo=timezone.utc),
            to_envelope_id="env_income",
            amount_cents=100,
        )
        dumped = tx.model_dump(mode="json", by_alias=True)
        assert dumped["timestamp"] == "2024-01-02T03:04:05.678Z"
        assert dumped["amountCents"] == 100
        assert dumped["toEnvelopeId"] == "env_income"

    def test_timestamp_parsed_from_stored_string(self):
        """Test a stored Z timestamp is read back as a UTC instant."""
        tx = Transaction.model_validate({
            "id": "t1",
            "timestamp": "2024-01-02T03:04:05.678Z",
            "toEnvelopeId": "env_income",
            "amountCents": 1,
        })
        assert tx.timestamp == datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)

    def test_offset_timestamps_compare_as_instants(self):
        """Test that ordering is by instant, not by text."""
        utc = Transaction.model_validate({
            "timestamp": "2024-01-02T10:00:00.000Z", "toEnvelopeId": "a", "amountCents": 1,
        })
        shifted = Transaction.model_validate({
            "timestamp": "2024-01-02T11:30:00.000+02:00", "toEnvelopeId": "a", "amountCents": 1,
        })
        assert shifted.timestamp < utc.timestamp
        assert format_timestamp(shifted.timestamp) == "2024-01-02T09:30:00.000Z"

    def test_naive_timestamp_is_treated_as_utc(self):
        """Test that a naive datetime is assumed to be UTC."""
        value = normalize_timestamp(datetime(2024, 1, 1, 0, 0, 0, 123456))
        assert value.tzinfo == timezone.utc
        assert value.microsecond == 123000


class TestBudgetState:
    """Tests for the persisted state aggregate."""

    def test_fresh_state(self):
        """Test a fresh state is empty with default settings."""
        state = BudgetState()
        assert state.envelopes == []
        assert state.transactions == []
        assert state.bank_balance_cents == 0
        assert state.settings.transaction_retention_days == 30

    def test_blob_round_trip(self):
        """Test to_blob/from_blob preserves everything."""
        state = BudgetState(
            envelopes=[Envelope(id="env_income", name="Income", is_income=True, balance_cents=500)],
            transactions=[Transaction(
                id="t1",
                timestamp=datetime(2024, 3, 1, tzinfo=timezone.utc),
                to_envelope_id="env_income",
                amount_cents=500,
                note="pay",
            )],
            bank_balance_cents=1234,
        )
        restored = BudgetState.from_blob(state.to_blob())
        assert restored.model_dump() == state.model_dump()

    def test_blob_uses_camel_case_keys(self):
        """Test the stored key names."""
        data = json.loads(BudgetState(bank_balance_cents=1).to_blob())
        assert set(data) == {"envelopes", "transactions", "bankBalanceCents", "settings"}
        assert "transactionRetentionDays" in data["settings"]

    def test_nulls_in_blob(self):
        """Test that null collections load as empty."""
        state = BudgetState.from_blob(
            '{"envelopes": null, "transactions": null, "bankBalanceCents": null, "settings": null}'
        )
        assert state.envelopes == []
        assert state.bank_balance_cents == 0
        assert state.settings.transaction_retention_days == 45

    def test_corrupt_blob_raises(self):
        """Test that garbage is a validation error."""
        with pytest.raises(ValidationError):
            BudgetState.from_blob("{not json")

    @pytest.mark.parametrize("value", [0, -3, "abc", None])
    def test_unusable_retention_falls_back(self, value):
        """Test missing or non-positive retention falls back to 45 days."""
        settings = BudgetSettings.model_validate({"transactionRetentionDays": value})
        assert settings.transaction_retention_days == 45

    def test_explicit_retention_is_kept(self):
        """Test a valid retention is not overridden."""
        settings = BudgetSettings.model_validate({"transactionRetentionDays": 7})
        assert settings.transaction_retention_days == 7


class TestPatches:
    """Tests for EnvelopePatch and TransactionPatch."""

    def test_transaction_patch_tracks_explicit_none(self):
        """Test that passing None differs from not passing the field."""
        assert "to_envelope_id" in TransactionPatch(to_envelope_id=None).model_fields_set
        assert "to_envelope_id" not in TransactionPatch().model_fields_set

    def test_envelope_patch_rejects_negative_target(self):
        """Test patch validation."""
        with pytest.raises(ValidationError):
            EnvelopePatch(target="-1")

    @pytest.mark.parametrize("name", ["", "   "])
    def test_envelope_patch_rejects_blank_name(self, name):
        """Test a cleared name fails validation instead of renaming to empty."""
        with pytest.raises(ValidationError):
            EnvelopePatch(name=name)

    def test_envelope_patch_strips_name(self):
        """Test that whitespace is stripped from names."""
        assert EnvelopePatch(name="  Rent  ").name == "Rent"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ENVELOPE_CREATED,
            description="Envelope created",
        )
        assert event.event_type == AuditEventType.ENVELOPE_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.BANK_BALANCE_UPDATED,
            description="Bank balance updated",
            details={"old_cents": 0, "new_cents": 100},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "bank_balance_updated"
        assert log_dict["details"]["new_cents"] == 100

    def test_audit_event_json_line_round_trip(self):
        """Test a JSON line can be read back."""
        event = AuditEventBuilder.save_failed("disk full")
        restored = AuditEvent.model_validate_json(event.to_json_line())
        assert restored.event_id == event.event_id
        assert restored.severity == AuditSeverity.ERROR
        assert restored.error_message == "disk full"

    def test_builder_transaction_recorded(self):
        """Test AuditEventBuilder.transaction_recorded."""
        event = AuditEventBuilder.transaction_recorded(
            transaction_id="t1",
            amount_cents=500,
            from_envelope_id=None,
            to_envelope_id="env_income",
        )
        assert event.event_type == AuditEventType.TRANSACTION_RECORDED
        assert event.entity_type == "transaction"
        assert event.entity_id == "t1"

    def test_builder_core_repair_is_warning(self):
        """Test that repairs are flagged."""
        event = AuditEventBuilder.core_envelopes_repaired(envelope_count=2)
        assert event.severity == AuditSeverity.WARNING

    def test_builder_audit_timestamp_is_recent(self):
        """Test audit timestamps are UTC and current."""
        event = AuditEventBuilder.user_cancelled("auto_allocate")
        assert datetime.now(timezone.utc) - event.timestamp < timedelta(minutes=1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
