"""
Envelope Registry

Owns the envelope collection of a BudgetState and enforces the core
envelope rules:

- exactly one envelope has is_income and exactly one has is_overflow;
- both are active with a zero target;
- neither is ever deleted, and their name/target are fixed.

DESIGN DECISION: Repair of those invariants is a pure function
(restore_core_invariants) that returns a corrected copy. The registry
applies it once at load time and again after any flag edit, instead of
burying the fix inside initialization.

Duplicate flags are demoted in collection order: the first envelope
found keeps the flag. This is deterministic but arbitrary; it does not
try to guess which envelope the user meant.
"""

from typing import TYPE_CHECKING, Callable, Optional
from uuid import uuid4

import structlog

from budget.ledger.errors import (
    CoreEnvelopeError,
    EnvelopeNameRequiredError,
    IncomeEnvelopeMissingError,
)
from budget.ledger.lifecycle import EnvelopeEvent, apply_transition
from budget.models.ledger import BudgetState, Envelope, EnvelopePatch
from budget.money import from_minor_units, to_display, to_minor_units

if TYPE_CHECKING:
    from budget.ledger.transactions import TransactionLedger

logger = structlog.get_logger(__name__)

INCOME_ENVELOPE_ID = "env_income"
OVERFLOW_ENVELOPE_ID = "env_overflow"

Confirm = Callable[[str], bool]


def is_core_envelope(envelope: Envelope) -> bool:
    return envelope.is_income or envelope.is_overflow


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex}"


def _core_id(preferred: str, taken: set[str]) -> str:
    """The fixed core id, unless a demoted envelope already uses it."""
    return preferred if preferred not in taken else _new_id(preferred)


def restore_core_invariants(envelopes: list[Envelope]) -> list[Envelope]:
    """
    Return a corrected copy of the envelope list.

    1. Extra is_income flags after the first are cleared. An envelope
       carrying both flags keeps is_income and loses is_overflow.
    2. Extra is_overflow flags after the first are cleared.
    3. A missing Income or Overflow envelope is appended.
    4. Surviving core envelopes get target 0 and are made active.

    Running it on its own output changes nothing.
    """
    repaired = [e.model_copy() for e in envelopes]

    income: Optional[Envelope] = None
    for envelope in repaired:
        if not envelope.is_income:
            continue
        if income is None:
            income = envelope
            envelope.is_overflow = False
        else:
            envelope.is_income = False

    overflow: Optional[Envelope] = None
    for envelope in repaired:
        if not envelope.is_overflow:
            continue
        if overflow is None:
            overflow = envelope
        else:
            envelope.is_overflow = False

    taken = {e.id for e in repaired}

    if income is None:
        income = Envelope(
            id=_core_id(INCOME_ENVELOPE_ID, taken),
            name="Income",
            is_income=True,
        )
        repaired.append(income)
        taken.add(income.id)

    if overflow is None:
        overflow = Envelope(
            id=_core_id(OVERFLOW_ENVELOPE_ID, taken),
            name="Overflow",
            is_overflow=True,
        )
        repaired.append(overflow)

    for core in (income, overflow):
        core.target_cents = 0
        core.is_active = True

    return repaired


class EnvelopeRegistry:
    """
    Envelope operations over one owned BudgetState.

    Aggregate queries are pure and never mutate the state.
    """

    def __init__(self, state: BudgetState):
        self._state = state

    @property
    def envelopes(self) -> list[Envelope]:
        return self._state.envelopes

    def get(self, envelope_id: Optional[str]) -> Optional[Envelope]:
        if not envelope_id:
            return None
        return next((e for e in self._state.envelopes if e.id == envelope_id), None)

    def income(self) -> Optional[Envelope]:
        return next((e for e in self._state.envelopes if e.is_income), None)

    def overflow(self) -> Optional[Envelope]:
        return next((e for e in self._state.envelopes if e.is_overflow), None)

    def active_envelopes(self) -> list[Envelope]:
        return [e for e in self._state.envelopes if e.is_active]

    # -------------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------------

    def ensure_core_envelopes(self) -> bool:
        """
        Repair the core envelope invariants in place.

        Returns:
            True if anything had to change.
        """
        repaired = restore_core_invariants(self._state.envelopes)
        if repaired == self._state.envelopes:
            return False
        self._state.envelopes[:] = repaired
        logger.warning("core_envelopes_repaired", envelope_count=len(repaired))
        return True

    # -------------------------------------------------------------------------
    # Creation and edits
    # -------------------------------------------------------------------------

    def create_envelope(self, name: str, target: object = 0) -> Envelope:
        """
        Create an active spending envelope.

        Raises:
            EnvelopeNameRequiredError: If the name is empty.
        """
        name = (name or "").strip()
        if not name:
            raise EnvelopeNameRequiredError()

        envelope = Envelope(
            id=_new_id("env"),
            name=name,
            target_cents=max(0, to_minor_units(target)),
        )
        self._state.envelopes.append(envelope)
        return envelope

    def create_credit_card(self, name: str) -> Envelope:
        """
        Create a credit-card envelope. Cards never carry a target.

        Raises:
            EnvelopeNameRequiredError: If the name is empty.
        """
        name = (name or "").strip()
        if not name:
            raise EnvelopeNameRequiredError()

        envelope = Envelope(id=_new_id("card"), name=name, is_credit_card=True)
        self._state.envelopes.append(envelope)
        return envelope

    def update_envelope(self, envelope_id: str, patch: EnvelopePatch) -> Optional[Envelope]:
        """
        Apply a patch to an envelope.

        Core envelopes only accept flag changes, and is_active is never
        changed on them. Non-core envelopes also accept name and target.
        Setting is_income / is_overflow takes the flag away from whichever
        envelope held it; any flag change re-runs the core invariant repair.

        Returns:
            The updated envelope, or None if the id is unknown.
        """
        envelope = self.get(envelope_id)
        if envelope is None:
            return None

        core = is_core_envelope(envelope)

        if not core:
            if patch.name is not None:
                envelope.name = patch.name
            if patch.target is not None:
                envelope.target_cents = max(0, to_minor_units(patch.target))
            if patch.is_active is not None:
                envelope.is_active = patch.is_active

        if patch.is_credit_card is not None:
            envelope.is_credit_card = patch.is_credit_card

        if patch.is_income is not None or patch.is_overflow is not None:
            # Granting a core flag moves it: the edited envelope wins the repair.
            for other in self._state.envelopes:
                if other is envelope:
                    continue
                if patch.is_income:
                    other.is_income = False
                if patch.is_overflow:
                    other.is_overflow = False
            if patch.is_income is not None:
                envelope.is_income = patch.is_income
            if patch.is_overflow is not None:
                envelope.is_overflow = patch.is_overflow
            self.ensure_core_envelopes()

        return self.get(envelope_id)

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    def delete_envelope(
        self,
        envelope_id: str,
        ledger: "TransactionLedger",
        confirm: Confirm,
    ) -> bool:
        """
        Soft-delete an envelope, merging any balance back into Income.

        A nonzero balance needs confirmation; the merge is a visible
        transaction so it can be undone by deleting it. A positive balance
        moves envelope -> Income, a negative one Income -> envelope, so the
        envelope always ends at exactly zero.

        Returns:
            True if the envelope was deactivated, False if the id is
            unknown or the user declined the merge.

        Raises:
            CoreEnvelopeError: For Income or Overflow.
            IncomeEnvelopeMissingError: If there is no Income to merge into.
        """
        envelope = self.get(envelope_id)
        if envelope is None:
            return False

        if is_core_envelope(envelope):
            raise CoreEnvelopeError(envelope.id)

        income = self.income()
        if income is None:
            raise IncomeEnvelopeMissingError()

        balance = envelope.balance_cents
        if balance != 0:
            ok = confirm(
                f"This envelope has a balance of {to_display(balance)}.\n"
                "If you delete it, that balance will be moved back to Income.\n\n"
                "Continue?"
            )
            if not ok:
                return False

            note = f'Auto-merge from deleted envelope "{envelope.name}"'
            amount = from_minor_units(abs(balance))
            if balance > 0:
                ledger.record_transfer(envelope.id, income.id, amount, note)
            else:
                ledger.record_transfer(income.id, envelope.id, amount, note)

        apply_transition(envelope, EnvelopeEvent.DELETE)
        return True

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    def total_active_balance_cents(self) -> int:
        return sum(e.balance_cents for e in self._state.envelopes if e.is_active)

    def total_non_card_balance_cents(self) -> int:
        return sum(
            e.balance_cents
            for e in self._state.envelopes
            if e.is_active and not e.is_credit_card
        )

    def total_credit_card_balance_cents(self) -> int:
        return sum(
            e.balance_cents
            for e in self._state.envelopes
            if e.is_active and e.is_credit_card
        )

    def allocation_targets(self) -> list[Envelope]:
        """Active, non-core, non-card envelopes with a positive target, in order."""
        return [
            e for e in self._state.envelopes
            if e.is_active
            and not is_core_envelope(e)
            and not e.is_credit_card
            and e.target_cents > 0
        ]

    def total_target_allocation_cents(self) -> int:
        return sum(e.target_cents for e in self.allocation_targets())
