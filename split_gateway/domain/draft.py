"""
Split draft - configuration state for a split before it is saved.

The draft is an immutable value; every action is a pure function returning a
new draft. Callers hold the current draft and pass it to whatever needs it.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional, Tuple

from split_gateway.domain import itemization
from split_gateway.domain.allocation import equal_split, itemized_split
from split_gateway.domain.exceptions import UnknownParticipantError
from split_gateway.domain.itemization import reconcile
from split_gateway.domain.models import (
    ItemReconciliation,
    Participant,
    ParticipantShare,
    ReceiptItem,
    Split,
    SplitMethod,
    Transaction,
)
from split_gateway.domain.splits import build_split, with_self
from split_gateway.domain.validation import is_allocation_valid
from split_gateway.utils.money import HUNDRED, TOLERANCE, percentage_of, round_currency, to_decimal


@dataclass(frozen=True)
class SplitDraft:
    """Everything the configure/summary steps need"""

    owner_id: str
    transaction: Transaction
    participants: Tuple[Participant, ...] = ()
    method: SplitMethod = SplitMethod.EQUAL
    shares: Tuple[ParticipantShare, ...] = ()
    items: Tuple[ReceiptItem, ...] = ()

    @property
    def total(self):
        return to_decimal(self.transaction.amount)

    @property
    def include_self(self) -> bool:
        """Whether the owner is in the participant set"""
        return any(p.participant_id == self.owner_id for p in self.participants)


def start_draft(owner_id: str, transaction: Transaction) -> SplitDraft:
    return SplitDraft(owner_id=owner_id, transaction=transaction)


def _blank_shares(participants: Iterable[Participant]) -> Tuple[ParticipantShare, ...]:
    zero = round_currency(0)
    return tuple(ParticipantShare(participant_id=p.participant_id, amount=zero, percentage=zero) for p in participants)


def set_participants(draft: SplitDraft, participants: Iterable[Participant]) -> SplitDraft:
    """Replace the participant set; per-participant inputs reset and leavers are unassigned from items"""
    participants = tuple(participants)
    kept = {p.participant_id for p in participants}

    items = list(draft.items)
    for pid in {p.participant_id for p in draft.participants} - kept:
        items = itemization.drop_participant(items, pid)

    return recalculate(
        replace(draft, participants=participants, shares=_blank_shares(participants), items=tuple(items))
    )


def toggle_participant(draft: SplitDraft, participant: Participant) -> SplitDraft:
    selected = any(p.participant_id == participant.participant_id for p in draft.participants)
    if selected:
        participants = [p for p in draft.participants if p.participant_id != participant.participant_id]
    else:
        participants = [*draft.participants, participant]
    return set_participants(draft, participants)


def set_include_self(draft: SplitDraft, include: bool, owner: Participant) -> SplitDraft:
    """Add the owner at the front of the set, or remove them"""
    if include:
        participants = with_self(draft.participants, owner)
    else:
        participants = [p for p in draft.participants if p.participant_id != owner.participant_id]
    return set_participants(draft, participants)


def set_method(draft: SplitDraft, method: SplitMethod) -> SplitDraft:
    return recalculate(replace(draft, method=SplitMethod(method)))


def _replace_share(draft: SplitDraft, participant_id: str, **changes) -> SplitDraft:
    if not any(s.participant_id == participant_id for s in draft.shares):
        raise UnknownParticipantError(f"Participant {participant_id} is not part of this split")
    shares = tuple(replace(s, **changes) if s.participant_id == participant_id else s for s in draft.shares)
    return replace(draft, shares=shares)


def set_participant_amount(draft: SplitDraft, participant_id: str, amount) -> SplitDraft:
    """Custom method input, kept as entered; the percentage shown alongside is derived"""
    value = to_decimal(amount)
    return _replace_share(draft, participant_id, amount=value, percentage=percentage_of(value, draft.total))


def set_participant_percentage(draft: SplitDraft, participant_id: str, percentage) -> SplitDraft:
    """Percentage method input, kept as entered; the amount follows from the transaction total"""
    pct = to_decimal(percentage)
    return _replace_share(draft, participant_id, percentage=pct, amount=round_currency(pct / HUNDRED * draft.total))


def _with_items(draft: SplitDraft, items) -> SplitDraft:
    return recalculate(replace(draft, items=tuple(items)))


def add_item(draft: SplitDraft, item: ReceiptItem) -> SplitDraft:
    return _with_items(draft, itemization.add_item(draft.items, item))


def add_candidates(draft: SplitDraft, candidates) -> SplitDraft:
    return _with_items(draft, itemization.add_candidates(draft.items, candidates))


def update_item(draft: SplitDraft, item_id: str, **changes) -> SplitDraft:
    return _with_items(draft, itemization.update_item(draft.items, item_id, **changes))


def remove_item(draft: SplitDraft, item_id: str) -> SplitDraft:
    return _with_items(draft, itemization.remove_item(draft.items, item_id))


def assign_item(draft: SplitDraft, item_id: str, participant_id: str) -> SplitDraft:
    if participant_id not in {p.participant_id for p in draft.participants}:
        raise UnknownParticipantError(f"Participant {participant_id} is not part of this split")
    return _with_items(draft, itemization.assign_item(draft.items, item_id, participant_id))


def unassign_item(draft: SplitDraft, item_id: str, participant_id: str) -> SplitDraft:
    return _with_items(draft, itemization.unassign_item(draft.items, item_id, participant_id))


def recalculate(draft: SplitDraft) -> SplitDraft:
    """
    Recompute shares for computed methods.

    Equal is recomputed whenever there are participants. Itemized is recomputed
    only while every item is assigned; until then the previous shares stay and
    can_advance reports False. Percentage and custom shares are user input and
    are left alone.
    """
    if not draft.participants:
        return replace(draft, shares=())

    if draft.method == SplitMethod.EQUAL:
        return replace(draft, shares=tuple(equal_split(draft.total, draft.participants)))

    if draft.method == SplitMethod.ITEMIZED and draft.items and itemization.all_items_assigned(draft.items):
        return replace(draft, shares=tuple(itemized_split(draft.total, draft.participants, draft.items)))

    return draft


def reconciliation(draft: SplitDraft) -> ItemReconciliation:
    return reconcile(draft.items, draft.total)


def can_advance(draft: SplitDraft, require_exact_match: bool = False) -> bool:
    """Whether the configure step may move on to save"""
    if not draft.participants:
        return False
    return is_allocation_valid(
        draft.method,
        draft.shares,
        draft.total,
        draft.items,
        require_exact_match=require_exact_match,
    )


def finalize(
    draft: SplitDraft,
    created_at: Optional[datetime] = None,
    tolerance=TOLERANCE,
    require_exact_match: bool = False,
) -> Split:
    """
    Produce the Split value to persist.

    Computed methods are recomputed from scratch so stale shares never leak
    into a saved split; everything is re-validated by build_split.
    """
    shares = draft.shares
    if draft.method == SplitMethod.EQUAL:
        shares = tuple(equal_split(draft.total, draft.participants))
    elif draft.method == SplitMethod.ITEMIZED:
        shares = tuple(itemized_split(draft.total, draft.participants, draft.items))

    return build_split(
        owner_id=draft.owner_id,
        transaction=draft.transaction,
        method=draft.method,
        shares=shares,
        items=draft.items,
        created_at=created_at,
        tolerance=tolerance,
        require_exact_match=require_exact_match,
    )
