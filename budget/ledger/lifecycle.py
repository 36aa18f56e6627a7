"""
Envelope lifecycle state machine.

    ACTIVE --DELETE--> INACTIVE --PURGE--> PURGED
       ^                   |
       +----REACTIVATE-----+

Core envelopes (Income, Overflow) never leave ACTIVE.
PURGE is only allowed for an inactive envelope with an exactly-zero
balance that no surviving transaction references.

`transition` is pure; `apply_transition` writes the result back onto the
envelope's is_active flag. Removing a PURGED envelope from the collection
is the caller's job.
"""

from enum import Enum
from typing import AbstractSet

from budget.ledger.errors import CoreEnvelopeError, LifecycleError
from budget.models.ledger import Envelope, EnvelopeState


class EnvelopeEvent(str, Enum):
    DELETE = "delete"
    REACTIVATE = "reactivate"
    PURGE = "purge"


def can_purge(envelope: Envelope, referenced_ids: AbstractSet[str]) -> bool:
    """True if the garbage collector may permanently remove the envelope."""
    return (
        not envelope.is_core
        and not envelope.is_active
        and envelope.balance_cents == 0
        and envelope.id not in referenced_ids
    )


def transition(
    envelope: Envelope,
    event: EnvelopeEvent,
    referenced_ids: AbstractSet[str] = frozenset(),
) -> EnvelopeState:
    """
    Compute the next lifecycle state without mutating anything.

    DELETE and REACTIVATE are idempotent on an envelope already in the
    target state.

    Raises:
        CoreEnvelopeError: DELETE on a core envelope.
        LifecycleError: PURGE whose guard does not hold.
    """
    if event is EnvelopeEvent.REACTIVATE:
        return EnvelopeState.ACTIVE

    if envelope.is_core:
        if event is EnvelopeEvent.DELETE:
            raise CoreEnvelopeError(envelope.id)
        raise LifecycleError(envelope.id, "Core envelopes are never purged")

    if event is EnvelopeEvent.DELETE:
        return EnvelopeState.INACTIVE

    if can_purge(envelope, referenced_ids):
        return EnvelopeState.PURGED

    raise LifecycleError(
        envelope.id,
        f"Envelope {envelope.id} cannot be purged: it is active, "
        "holds a balance or is still referenced",
    )


def apply_transition(
    envelope: Envelope,
    event: EnvelopeEvent,
    referenced_ids: AbstractSet[str] = frozenset(),
) -> EnvelopeState:
    """Run `transition` and store the resulting active flag."""
    new_state = transition(envelope, event, referenced_ids)
    if new_state is not EnvelopeState.PURGED:
        envelope.is_active = new_state is EnvelopeState.ACTIVE
    return new_state
