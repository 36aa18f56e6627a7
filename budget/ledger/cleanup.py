"""
Envelope Garbage Collector

Permanently removes envelopes that are inactive, hold exactly zero and
are referenced by no surviving transaction. Run it after pruning: the
pruner can drop the last transaction that kept an envelope's name
needed for history.
"""

import structlog

from budget.ledger.lifecycle import EnvelopeEvent, can_purge, transition
from budget.models.ledger import BudgetState, Envelope, EnvelopeState

logger = structlog.get_logger(__name__)


def referenced_envelope_ids(state: BudgetState) -> set[str]:
    """Every envelope id named by a transaction still in history."""
    used: set[str] = set()
    for tx in state.transactions:
        used.update(tx.envelope_ids())
    return used


def cleanup_unused_envelopes(state: BudgetState) -> list[Envelope]:
    """
    Purge unused envelopes from the state in place.

    Kept: core, active, nonzero balance, or still referenced.

    Returns:
        The envelopes that were removed.
    """
    used = referenced_envelope_ids(state)

    kept: list[Envelope] = []
    purged: list[Envelope] = []
    for envelope in state.envelopes:
        if can_purge(envelope, used) and (
            transition(envelope, EnvelopeEvent.PURGE, used) is EnvelopeState.PURGED
        ):
            purged.append(envelope)
        else:
            kept.append(envelope)

    if purged:
        state.envelopes[:] = kept
        logger.info("envelopes_purged", envelope_ids=[e.id for e in purged])
    return purged
