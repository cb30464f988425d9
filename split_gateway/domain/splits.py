"""Split and transaction construction - the last gate before persistence"""

import uuid
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from split_gateway.domain.exceptions import (
    DuplicateParticipantError,
    InvalidTransactionDataError,
    UnknownParticipantError,
    ZeroParticipantsError,
)
from split_gateway.domain.models import (
    Participant,
    ParticipantShare,
    ReceiptItem,
    SettlementStatus,
    Split,
    SplitMethod,
    Transaction,
)
from split_gateway.domain.validation import validate_allocation
from split_gateway.utils.money import TOLERANCE, round_currency, to_decimal


def create_manual_transaction(
    owner_id: str,
    merchant: str,
    amount,
    on_date: Optional[date] = None,
    category: Optional[str] = None,
    description: str = "",
    transaction_id: Optional[str] = None,
) -> Transaction:
    """
    Build a manually entered transaction.

    Raises:
        InvalidTransactionDataError: blank merchant or non-positive amount
    """
    if not merchant or not merchant.strip():
        raise InvalidTransactionDataError("Merchant must not be blank")

    value = round_currency(amount)
    if value <= 0:
        raise InvalidTransactionDataError(f"Transaction amount must be positive, got {amount}")

    return Transaction(
        transaction_id=transaction_id or str(uuid.uuid4()),
        owner_id=owner_id,
        amount=value,
        merchant=merchant.strip(),
        date=on_date or date.today(),
        category=category or "Other",
        description=description,
    )


def with_self(participants: Sequence[Participant], owner: Participant) -> list:
    """Prepend the owner to the participant set unless already present"""
    if any(p.participant_id == owner.participant_id for p in participants):
        return list(participants)
    return [owner, *participants]


def build_split(
    owner_id: str,
    transaction: Transaction,
    method: SplitMethod,
    shares: Sequence[ParticipantShare],
    items: Sequence[ReceiptItem] = (),
    created_at: Optional[datetime] = None,
    tolerance=TOLERANCE,
    require_exact_match: bool = False,
) -> Split:
    """
    Re-validate an allocation and freeze it into a Split.

    Every participant starts pending. Items are kept only for itemized splits
    (as a snapshot).

    Raises:
        ZeroParticipantsError, DuplicateParticipantError,
        IncompleteAllocationError, UnassignedItemError, UnknownParticipantError
    """
    method = SplitMethod(method)
    if not shares:
        raise ZeroParticipantsError("A split needs at least one participant share")

    ids = [s.participant_id for s in shares]
    if len(set(ids)) != len(ids):
        raise DuplicateParticipantError("Participant shares must have unique participant ids")

    items = tuple(items) if method == SplitMethod.ITEMIZED else ()
    for item in items:
        outsiders = [pid for pid in item.assigned_to if pid not in ids]
        if outsiders:
            raise UnknownParticipantError(
                f"Item '{item.name}' is assigned to non-participants: {', '.join(outsiders)}"
            )

    validate_allocation(
        method,
        shares,
        to_decimal(transaction.amount),
        items,
        tolerance=tolerance,
        require_exact_match=require_exact_match,
    )

    frozen_shares = tuple(
        ParticipantShare(
            participant_id=s.participant_id,
            amount=round_currency(s.amount),
            percentage=round_currency(s.percentage),
            status=SettlementStatus.PENDING,
            item_ids=frozenset(s.item_ids),
        )
        for s in shares
    )

    return Split(
        owner_id=owner_id,
        transaction_id=transaction.transaction_id,
        method=method,
        shares=frozen_shares,
        items=items,
        created_at=created_at or datetime.now(timezone.utc),
    )
