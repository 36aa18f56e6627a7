"""
Domain exceptions for the ledger engine.

Every one of these is raised BEFORE any balance is touched, so catching
one means the state is exactly as it was before the call.

Exception hierarchy:
    LedgerError (base)
    ├── CoreEnvelopeError           - deleting Income or Overflow
    ├── IncomeEnvelopeMissingError  - operation needs Income and it is gone
    ├── InvalidAmountError          - amount rounds to zero or below
    ├── MissingEndpointError        - transaction with neither from nor to
    ├── CardBalanceNotZeroError     - deleting a card that is not paid off
    ├── NoAllocationTargetsError    - auto-allocate with nothing to fill
    ├── EnvelopeNameRequiredError   - creating an envelope without a name
    ├── ImportRejectedError         - backup blob has the wrong shape
    └── LifecycleError              - illegal envelope state transition
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for all ledger domain errors."""

    def __init__(self, detail: str = "Ledger operation failed"):
        self.detail = detail
        super().__init__(self.detail)


class CoreEnvelopeError(LedgerError):
    """Raised when an operation would remove or deactivate a core envelope."""

    def __init__(self, envelope_id: str):
        self.envelope_id = envelope_id
        super().__init__("Income and Overflow envelopes cannot be deleted.")


class IncomeEnvelopeMissingError(LedgerError):
    """Raised when the Income envelope cannot be located."""

    def __init__(self):
        super().__init__("Income envelope not found.")


class InvalidAmountError(LedgerError):
    """
    Raised when an amount is zero, negative or unparsable.

    Attributes:
        amount: The raw amount that was supplied.
    """

    def __init__(self, amount: object):
        self.amount = amount
        super().__init__(f"Enter a positive amount (got {amount!r}).")


class MissingEndpointError(LedgerError):
    """Raised when a transaction has neither a source nor a destination."""

    def __init__(self):
        super().__init__("Select at least one envelope (from or to).")


class CardBalanceNotZeroError(LedgerError):
    """Raised when deleting a credit card that still carries a balance."""

    def __init__(self, envelope_id: str, balance_cents: int):
        self.envelope_id = envelope_id
        self.balance_cents = balance_cents
        super().__init__("You must pay this card to 0.00 before deleting it.")


class NoAllocationTargetsError(LedgerError):
    """Raised when no envelope has a positive target to allocate to."""

    def __init__(self):
        super().__init__("No envelopes with a positive target to allocate to.")


class EnvelopeNameRequiredError(LedgerError):
    """Raised when creating an envelope with an empty name."""

    def __init__(self):
        super().__init__("Envelope name is required.")


class ImportRejectedError(LedgerError):
    """Raised when an imported backup fails the shape check."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to import backup: {reason}")


class LifecycleError(LedgerError):
    """Raised when an envelope state transition is not allowed."""

    def __init__(self, envelope_id: str, detail: Optional[str] = None):
        self.envelope_id = envelope_id
        super().__init__(detail or f"Illegal lifecycle transition for envelope {envelope_id}")
