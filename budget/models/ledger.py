"""
Core Data Models for Dead Simple Budget

These models define the shapes of everything the ledger stores:
envelopes, transactions, settings and the state aggregate that is
persisted as one JSON blob.

DESIGN DECISION: The wire format uses camelCase keys (targetCents,
fromEnvelopeId, ...) so existing backups stay readable. Python code uses
snake_case; pydantic aliases bridge the two.

DESIGN DECISION: Timestamps are timezone-aware UTC instants in memory and
one fixed-width string on the wire (YYYY-MM-DDTHH:MM:SS.mmmZ). Ordering is
always done on the instants, never on the strings.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

from budget.config import get_settings


# =============================================================================
# TIMESTAMPS
# =============================================================================

def normalize_timestamp(value: datetime) -> datetime:
    """Convert to UTC and truncate to whole milliseconds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def format_timestamp(value: datetime) -> str:
    """Render an instant in the single stored format."""
    value = normalize_timestamp(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"


def utc_now() -> datetime:
    return normalize_timestamp(datetime.now(timezone.utc))


# =============================================================================
# ENUMS
# =============================================================================

class EnvelopeState(str, Enum):
    """
    Envelope lifecycle states.

    PURGED is never stored: it means the record has been removed from
    the collection by the garbage collector.
    """
    ACTIVE = "active"
    INACTIVE = "inactive"
    PURGED = "purged"


# =============================================================================
# ENTITIES
# =============================================================================

class Envelope(BaseModel):
    """
    A named bucket holding a balance and an optional per-period target.

    Balances may go negative (Income after an allocation, credit cards).
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Stable identifier, never reassigned"
    )
    name: str = Field(
        default="",
        description="Display label"
    )
    target_cents: int = Field(
        default=0,
        ge=0,
        description="Amount allocated into this envelope per period"
    )
    balance_cents: int = Field(
        default=0,
        description="Current holdings in cents"
    )
    is_income: bool = False
    is_overflow: bool = False
    is_credit_card: bool = False
    is_active: bool = True

    @field_validator('name', mode='before')
    @classmethod
    def name_from_null(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator('target_cents', 'balance_cents', mode='before')
    @classmethod
    def cents_from_null(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator('is_income', 'is_overflow', 'is_credit_card', mode='before')
    @classmethod
    def flag_from_null(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator('is_active', mode='before')
    @classmethod
    def active_unless_false(cls, v: Any) -> Any:
        return True if v is None else v

    @property
    def is_core(self) -> bool:
        """Income and Overflow are the core envelopes."""
        return self.is_income or self.is_overflow

    @property
    def lifecycle(self) -> EnvelopeState:
        return EnvelopeState.ACTIVE if self.is_active else EnvelopeState.INACTIVE


class Transaction(BaseModel):
    """
    A movement of money.

    An absent from_envelope_id means money entering from outside (income);
    an absent to_envelope_id means money leaving (a spend). Envelope ids are
    weak references: the envelope may no longer exist.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Unique transaction ID"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="Creation instant (UTC)"
    )
    from_envelope_id: Optional[str] = None
    to_envelope_id: Optional[str] = None
    amount_cents: int = Field(
        ...,
        gt=0,
        description="Amount moved, always positive"
    )
    note: str = ""

    @field_validator('from_envelope_id', 'to_envelope_id', mode='before')
    @classmethod
    def empty_reference_is_none(cls, v: Any) -> Any:
        return v or None

    @field_validator('note', mode='before')
    @classmethod
    def note_from_null(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator('timestamp')
    @classmethod
    def timestamp_to_utc(cls, v: datetime) -> datetime:
        return normalize_timestamp(v)

    @field_serializer('timestamp')
    def serialize_timestamp(self, v: datetime) -> str:
        return format_timestamp(v)

    def envelope_ids(self) -> list[str]:
        """Envelope ids this transaction references, from first."""
        return [i for i in (self.from_envelope_id, self.to_envelope_id) if i]


class BudgetSettings(BaseModel):
    """User-adjustable settings stored with the state."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    transaction_retention_days: int = Field(
        default_factory=lambda: get_settings().ledger.default_retention_days,
        ge=1,
        description="Transactions older than this many days are pruned"
    )

    @field_validator('transaction_retention_days', mode='before')
    @classmethod
    def fallback_when_unusable(cls, v: Any) -> Any:
        """Missing, zero or garbage retention falls back to the configured default."""
        fallback = get_settings().ledger.fallback_retention_days
        if isinstance(v, bool):
            return fallback
        try:
            days = int(v)
        except (TypeError, ValueError):
            return fallback
        return days if days > 0 else fallback


class BudgetState(BaseModel):
    """
    The whole ledger: the unit of persistence.

    Balances are running state. They are NOT derivable from the
    transaction list (pruning and silent adjustments both break that),
    so they are persisted as-is.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    envelopes: list[Envelope] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    bank_balance_cents: int = Field(
        default=0,
        description="Bank account reference balance, informational only"
    )
    settings: BudgetSettings = Field(default_factory=BudgetSettings)

    @field_validator('envelopes', 'transactions', mode='before')
    @classmethod
    def list_from_null(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator('bank_balance_cents', mode='before')
    @classmethod
    def bank_from_null(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator('settings', mode='before')
    @classmethod
    def settings_from_null(cls, v: Any) -> Any:
        return {} if v is None else v

    def to_blob(self) -> str:
        """Serialize to the persisted JSON blob."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_blob(cls, blob: str) -> "BudgetState":
        """
        Parse a persisted blob.

        A blob without a retention setting gets the fallback window, not
        the default for fresh states.

        Raises:
            pydantic.ValidationError: If the blob is not valid JSON or does
                not match the state schema.
        """
        state = cls.model_validate_json(blob)
        if "transaction_retention_days" not in state.settings.model_fields_set:
            state.settings.transaction_retention_days = (
                get_settings().ledger.fallback_retention_days
            )
        return state


# =============================================================================
# PATCHES
# =============================================================================

class EnvelopePatch(BaseModel):
    """
    Requested changes to an envelope.

    Fields left as None are not changed.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    target: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Per-period target as a decimal amount"
    )
    is_income: Optional[bool] = None
    is_overflow: Optional[bool] = None
    is_credit_card: Optional[bool] = None
    is_active: Optional[bool] = None


class TransactionPatch(BaseModel):
    """
    Requested changes to a transaction.

    Only fields that were explicitly passed are applied, so
    TransactionPatch(to_envelope_id=None) turns a transfer into a spend
    while TransactionPatch() changes nothing.
    """

    from_envelope_id: Optional[str] = None
    to_envelope_id: Optional[str] = None
    amount: Optional[Decimal] = Field(
        default=None,
        description="New amount as a decimal; None keeps the current amount"
    )
    note: Optional[str] = None

    @field_validator('from_envelope_id', 'to_envelope_id', mode='before')
    @classmethod
    def empty_reference_is_none(cls, v: Any) -> Any:
        return v or None
