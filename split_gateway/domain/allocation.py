"""Allocation strategies - divide a transaction total among participants"""

from decimal import Decimal
from typing import List, Mapping, Optional, Sequence

from split_gateway.domain.exceptions import (
    DuplicateParticipantError,
    UnknownParticipantError,
    ZeroParticipantsError,
)
from split_gateway.domain.itemization import items_for_participant, participant_item_totals
from split_gateway.domain.models import Participant, ParticipantShare, ReceiptItem, SplitMethod
from split_gateway.utils.money import (
    HUNDRED,
    distribute_cents,
    from_cents,
    percentage_of,
    round_currency,
    to_cents,
    to_decimal,
)


def participant_ids_of(participants: Sequence[Participant]) -> List[str]:
    """
    Validate the participant set and return its ids in order.

    Raises:
        ZeroParticipantsError: empty set (a caller bug, not an empty allocation)
        DuplicateParticipantError: an id appears more than once
    """
    if not participants:
        raise ZeroParticipantsError("At least one participant is required to allocate a split")

    ids = [p.participant_id for p in participants]
    seen = set()
    for pid in ids:
        if pid in seen:
            raise DuplicateParticipantError(f"Participant {pid} appears more than once")
        seen.add(pid)
    return ids


def _check_inputs_known(values: Mapping[str, object], ids: Sequence[str]) -> None:
    unknown = [pid for pid in values if pid not in ids]
    if unknown:
        raise UnknownParticipantError(f"Values given for non-participants: {', '.join(unknown)}")


def equal_split(total, participants: Sequence[Participant]) -> List[ParticipantShare]:
    """
    Divide the total evenly.

    Naive per-person rounding drifts (10.00 / 3 -> 3.33 x 3 = 9.99), so cents
    and hundredths of a percent are distributed by largest remainder:
    10.00 / 3 -> [3.34, 3.33, 3.33] and [33.34, 33.33, 33.33]. The first
    participants in selection order receive the extra units.
    """
    ids = participant_ids_of(participants)
    amounts = distribute_cents(to_cents(total), len(ids))
    percentages = distribute_cents(10_000, len(ids))  # hundredths of a percent

    return [
        ParticipantShare(
            participant_id=pid,
            amount=from_cents(amount),
            percentage=from_cents(pct),
        )
        for pid, amount, pct in zip(ids, amounts, percentages)
    ]


def percentage_split(
    total,
    participants: Sequence[Participant],
    percentages: Mapping[str, object],
) -> List[ParticipantShare]:
    """
    amount_i = round(percentage_i / 100 * total).

    Percentages are user input and are kept as given; only the derived amount
    is rounded. Participants without one get 0. Range and sum are checked by
    validation, not here.
    """
    ids = participant_ids_of(participants)
    _check_inputs_known(percentages, ids)
    total = to_decimal(total)

    shares = []
    for pid in ids:
        pct = to_decimal(percentages.get(pid, 0))
        shares.append(
            ParticipantShare(
                participant_id=pid,
                amount=round_currency(pct / HUNDRED * total),
                percentage=pct,
            )
        )
    return shares


def custom_split(
    total,
    participants: Sequence[Participant],
    amounts: Mapping[str, object],
) -> List[ParticipantShare]:
    """Fixed amounts per participant, kept as given; percentage is informational (amount / total * 100)"""
    ids = participant_ids_of(participants)
    _check_inputs_known(amounts, ids)

    shares = []
    for pid in ids:
        amount = to_decimal(amounts.get(pid, 0))
        shares.append(
            ParticipantShare(
                participant_id=pid,
                amount=amount,
                percentage=percentage_of(amount, total),
            )
        )
    return shares


def itemized_split(
    total,
    participants: Sequence[Participant],
    items: Sequence[ReceiptItem],
) -> List[ParticipantShare]:
    """
    Sum of each participant's assigned line totals, shared evenly per item.

    Raises:
        UnassignedItemError: some item has no assignee
        UnknownParticipantError: an item is assigned outside the participant set
    """
    ids = participant_ids_of(participants)
    totals = participant_item_totals(items, ids)

    return [
        ParticipantShare(
            participant_id=pid,
            amount=round_currency(totals[pid]),
            percentage=percentage_of(totals[pid], total),
            item_ids=frozenset(items_for_participant(items, pid)),
        )
        for pid in ids
    ]


def allocate(
    method: SplitMethod,
    total,
    participants: Sequence[Participant],
    percentages: Optional[Mapping[str, object]] = None,
    amounts: Optional[Mapping[str, object]] = None,
    items: Optional[Sequence[ReceiptItem]] = None,
) -> List[ParticipantShare]:
    """Main entry point: run the strategy selected by `method`"""
    method = SplitMethod(method)

    if method == SplitMethod.EQUAL:
        return equal_split(total, participants)
    elif method == SplitMethod.PERCENTAGE:
        return percentage_split(total, participants, percentages or {})
    elif method == SplitMethod.CUSTOM:
        return custom_split(total, participants, amounts or {})
    else:
        return itemized_split(total, participants, items or [])


def shares_total(shares: Sequence[ParticipantShare]) -> Decimal:
    return sum((s.amount for s in shares), Decimal("0"))
