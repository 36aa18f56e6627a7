"""
Balance Application Engine

The one primitive every balance change goes through. Applying a
transaction with direction=+1 and then -1 restores every touched
balance to its exact prior value: all arithmetic is on ints.
"""

from typing import Iterable, Optional

from budget.models.ledger import Envelope, Transaction

APPLY = 1
ROLLBACK = -1


def _find(envelopes: Iterable[Envelope], envelope_id: Optional[str]) -> Optional[Envelope]:
    if not envelope_id:
        return None
    return next((e for e in envelopes if e.id == envelope_id), None)


def apply_balance_delta(
    envelopes: list[Envelope],
    tx: Transaction,
    direction: int,
) -> None:
    """
    Apply (+1) or roll back (-1) a transaction's effect on balances.

    Envelope ids that no longer resolve are skipped; this never raises
    for a missing envelope.

    Raises:
        ValueError: If direction is not +1 or -1.
    """
    if direction not in (APPLY, ROLLBACK):
        raise ValueError(f"direction must be +1 or -1, got {direction}")

    delta = direction * tx.amount_cents

    source = _find(envelopes, tx.from_envelope_id)
    if source is not None:
        source.balance_cents -= delta

    destination = _find(envelopes, tx.to_envelope_id)
    if destination is not None:
        destination.balance_cents += delta
