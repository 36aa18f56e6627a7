"""
Retention Pruner

Drops history entries older than the retention window. Balances are
NOT touched: the effect of a pruned transaction stays baked into the
envelopes it moved money between.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog

from budget.models.ledger import BudgetState, normalize_timestamp, utc_now

logger = structlog.get_logger(__name__)


def retention_cutoff(retention_days: int, now: Optional[datetime] = None) -> datetime:
    """Oldest instant a transaction may carry and still be kept."""
    now = normalize_timestamp(now) if now is not None else utc_now()
    return now - timedelta(days=retention_days)


def prune_old_transactions(
    state: BudgetState,
    retention_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Remove transactions strictly older than now - retention_days.

    Args:
        state: The state to prune in place.
        retention_days: Window in days; defaults to the state's setting.
        now: Reference instant; defaults to the current UTC time.

    Returns:
        Number of transactions removed.

    Raises:
        ValueError: If the window is shorter than one day.
    """
    days = (
        retention_days
        if retention_days is not None
        else state.settings.transaction_retention_days
    )
    if days < 1:
        raise ValueError(f"retention_days must be at least 1, got {days}")
    cutoff = retention_cutoff(days, now)

    before = len(state.transactions)
    state.transactions[:] = [tx for tx in state.transactions if tx.timestamp >= cutoff]
    removed = before - len(state.transactions)

    if removed:
        logger.info("transactions_pruned", removed=removed, retention_days=days)
    return removed
