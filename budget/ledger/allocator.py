"""
Auto-Allocator

Moves each target envelope's per-period target out of Income in one
go. Planning and execution are split so the caller can show the total
and ask for confirmation in between.

Transfers are silent adjustments: balances change, history does not.
Income is allowed to go negative.
"""

from typing import Callable, Optional

from pydantic import BaseModel, Field

from budget.ledger.errors import IncomeEnvelopeMissingError, NoAllocationTargetsError
from budget.ledger.registry import EnvelopeRegistry
from budget.ledger.transactions import TransactionLedger
from budget.models.ledger import Envelope, Transaction
from budget.money import from_minor_units

ALLOCATION_NOTE = "Auto allocation"


class AllocationPlan(BaseModel):
    """Targets in registry order and the total that will leave Income."""

    income_envelope_id: str
    targets: list[Envelope] = Field(default_factory=list)
    total_cents: int = Field(default=0, ge=0)

    def amounts(self) -> dict[str, int]:
        return {e.id: e.target_cents for e in self.targets}


class AutoAllocator:
    """Income -> target envelope bulk transfers."""

    def __init__(self, registry: EnvelopeRegistry, ledger: TransactionLedger):
        self._registry = registry
        self._ledger = ledger

    def plan(self) -> AllocationPlan:
        """
        Work out what an allocation would do, without doing it.

        Raises:
            IncomeEnvelopeMissingError: If there is no Income envelope.
            NoAllocationTargetsError: If no envelope qualifies.
        """
        income = self._registry.income()
        if income is None:
            raise IncomeEnvelopeMissingError()

        targets = self._registry.allocation_targets()
        if not targets:
            raise NoAllocationTargetsError()

        return AllocationPlan(
            income_envelope_id=income.id,
            targets=targets,
            total_cents=sum(e.target_cents for e in targets),
        )

    def execute(
        self,
        plan: AllocationPlan,
        on_adjustment: Optional[Callable[[Transaction], None]] = None,
    ) -> dict[str, int]:
        """
        Apply a plan, one silent adjustment per target, in plan order.

        Args:
            plan: Output of plan().
            on_adjustment: Called with each adjustment as it is applied.

        Returns:
            Mapping of envelope id to cents moved into it.
        """
        moved: dict[str, int] = {}
        for target in plan.targets:
            tx = self._ledger.apply_silent_adjustment(
                plan.income_envelope_id,
                target.id,
                from_minor_units(target.target_cents),
                ALLOCATION_NOTE,
            )
            if on_adjustment is not None:
                on_adjustment(tx)
            moved[target.id] = target.target_cents
        return moved
