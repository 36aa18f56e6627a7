"""
Shared fixtures.

Everything runs against in-memory storage and a fixed clock, so no test
touches the disk (except the file storage tests, which use tmp_path) or
depends on the wall clock.
"""

from datetime import datetime, timedelta, timezone

import pytest

from budget.audit import AuditLogger
from budget.ledger import EnvelopeRegistry, TransactionLedger
from budget.models.ledger import BudgetState
from budget.orchestrator import BudgetController
from budget.services.confirmation import StaticConfirmation
from budget.services.storage import InMemoryAuditSink, InMemoryStateStorage

FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state():
    """A fresh state with Income and Overflow in place."""
    fresh = BudgetState()
    EnvelopeRegistry(fresh).ensure_core_envelopes()
    return fresh


@pytest.fixture
def registry(state):
    return EnvelopeRegistry(state)


@pytest.fixture
def ledger(state, clock):
    return TransactionLedger(state, clock=clock)


@pytest.fixture
def storage():
    return InMemoryStateStorage()


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def confirmation():
    return StaticConfirmation(answer=True)


@pytest.fixture
def controller(storage, confirmation, audit_sink, clock):
    """An initialized controller that says yes to every prompt."""
    budget = BudgetController(
        storage=storage,
        confirmation=confirmation,
        audit_logger=AuditLogger(audit_sink),
        clock=clock,
    )
    budget.init()
    return budget
