"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, Optional, Tuple


class SplitMethod(str, Enum):
    """Allocation strategy governing the participant shares"""

    EQUAL = "equal"
    PERCENTAGE = "percentage"
    CUSTOM = "custom"
    ITEMIZED = "itemized"


class SettlementStatus(str, Enum):
    """Per-participant payment state"""

    PENDING = "pending"
    PAID = "paid"


class AggregateStatus(str, Enum):
    """Split-level status derived from participant rows, never stored"""

    ALL_SETTLED = "all_settled"
    SETTLED_BY_ME = "settled_by_me"
    PENDING = "pending"


class ReconciliationState(str, Enum):
    """Receipt items total vs transaction total"""

    EXACT_MATCH = "exact_match"
    UNDER = "under"  # items don't cover the transaction yet (tax/tip missing)
    OVER = "over"  # items exceed the transaction


@dataclass(frozen=True)
class Transaction:
    """Money that moved; read-only input to allocation"""

    transaction_id: str
    owner_id: str
    amount: Decimal
    merchant: str
    date: date
    category: str = "Other"
    description: str = ""
    source_account_id: Optional[str] = None


@dataclass(frozen=True)
class Participant:
    """Opaque identity plus presentation metadata (irrelevant to the math)"""

    participant_id: str
    display_name: str = ""
    color: Optional[str] = None


@dataclass(frozen=True)
class ReceiptItem:
    """Receipt line item; unit_price may be negative for a discount"""

    item_id: str
    name: str
    quantity: int
    unit_price: Decimal
    assigned_to: Tuple[str, ...] = ()

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def is_assigned(self) -> bool:
        return len(self.assigned_to) > 0


@dataclass(frozen=True)
class ParticipantShare:
    """One participant's slice of the allocation"""

    participant_id: str
    amount: Decimal
    percentage: Decimal
    status: SettlementStatus = SettlementStatus.PENDING
    item_ids: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ItemReconciliation:
    """Items total compared against the transaction total"""

    items_total: Decimal
    difference: Decimal  # transaction_total - items_total
    state: ReconciliationState
    all_items_assigned: bool


@dataclass(frozen=True)
class Split:
    """
    Saved allocation of one transaction's cost among participants.

    The allocation (method, shares' amounts/percentages, items) is immutable;
    only per-participant settlement status may change, via
    with_participant_status which returns a new Split.
    """

    owner_id: str
    transaction_id: str
    method: SplitMethod
    shares: Tuple[ParticipantShare, ...]
    items: Tuple[ReceiptItem, ...] = ()
    created_at: Optional[datetime] = None
    split_id: Optional[str] = None

    @property
    def participant_ids(self) -> Tuple[str, ...]:
        return tuple(s.participant_id for s in self.shares)

    @property
    def total_amount(self) -> Decimal:
        return sum((s.amount for s in self.shares), Decimal("0"))

    @property
    def settled_count(self) -> int:
        return sum(1 for s in self.shares if s.status == SettlementStatus.PAID)

    @property
    def total_participants(self) -> int:
        return len(self.shares)

    def share_for(self, participant_id: str) -> Optional[ParticipantShare]:
        for share in self.shares:
            if share.participant_id == participant_id:
                return share
        return None

    def with_participant_status(self, participant_id: str, status: SettlementStatus) -> "Split":
        shares = tuple(
            replace(s, status=status) if s.participant_id == participant_id else s
            for s in self.shares
        )
        return replace(self, shares=shares)
