"""Receipt itemization - line items, assignment, and reconciliation against the transaction total"""

import uuid
from dataclasses import replace
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from split_gateway.domain.exceptions import (
    InvalidReceiptItemError,
    ReceiptItemNotFoundError,
    UnassignedItemError,
    UnknownParticipantError,
)
from split_gateway.domain.models import ItemReconciliation, ReceiptItem, ReconciliationState
from split_gateway.utils.money import TOLERANCE, has_cent_precision, to_decimal


def make_item(
    name: str,
    quantity: int,
    unit_price,
    assigned_to: Iterable[str] = (),
    item_id: Optional[str] = None,
) -> ReceiptItem:
    """Build a validated ReceiptItem, generating an id when none is given"""
    if not name or not name.strip():
        raise InvalidReceiptItemError("Item name must not be blank")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidReceiptItemError(f"Item quantity must be a positive integer, got {quantity!r}")
    if not has_cent_precision(unit_price):
        raise InvalidReceiptItemError(f"Item unit price must be in whole cents, got {unit_price}")

    return ReceiptItem(
        item_id=item_id or f"item-{uuid.uuid4().hex[:12]}",
        name=name.strip(),
        quantity=quantity,
        unit_price=to_decimal(unit_price),
        assigned_to=tuple(dict.fromkeys(assigned_to)),
    )


def _index_of(items: Sequence[ReceiptItem], item_id: str) -> int:
    for i, item in enumerate(items):
        if item.item_id == item_id:
            return i
    raise ReceiptItemNotFoundError(f"Receipt item {item_id} not found")


def add_item(items: Sequence[ReceiptItem], item: ReceiptItem) -> List[ReceiptItem]:
    """Append an item (insertion order is kept for display)"""
    return [*items, item]


def add_candidates(items: Sequence[ReceiptItem], candidates: Iterable[Mapping]) -> List[ReceiptItem]:
    """
    Feed recognizer/manual candidates ({name, quantity, price}) into the list.

    Each candidate is added one at a time with nobody assigned; quantity
    defaults to 1 when missing.
    """
    result = list(items)
    for candidate in candidates:
        result = add_item(
            result,
            make_item(
                name=candidate["name"],
                quantity=candidate.get("quantity", 1),
                unit_price=candidate["price"],
            ),
        )
    return result


def update_item(
    items: Sequence[ReceiptItem],
    item_id: str,
    name: Optional[str] = None,
    quantity: Optional[int] = None,
    unit_price=None,
    assigned_to: Optional[Iterable[str]] = None,
) -> List[ReceiptItem]:
    """Replace selected fields of one item; omitted fields are kept"""
    idx = _index_of(items, item_id)
    current = items[idx]
    updated = make_item(
        name=current.name if name is None else name,
        quantity=current.quantity if quantity is None else quantity,
        unit_price=current.unit_price if unit_price is None else unit_price,
        assigned_to=current.assigned_to if assigned_to is None else assigned_to,
        item_id=current.item_id,
    )
    result = list(items)
    result[idx] = updated
    return result


def remove_item(items: Sequence[ReceiptItem], item_id: str) -> List[ReceiptItem]:
    _index_of(items, item_id)
    return [item for item in items if item.item_id != item_id]


def assign_item(items: Sequence[ReceiptItem], item_id: str, participant_id: str) -> List[ReceiptItem]:
    """Add a participant to an item's assignee set (no-op if already assigned)"""
    idx = _index_of(items, item_id)
    item = items[idx]
    if participant_id in item.assigned_to:
        return list(items)

    result = list(items)
    result[idx] = replace(item, assigned_to=item.assigned_to + (participant_id,))
    return result


def unassign_item(items: Sequence[ReceiptItem], item_id: str, participant_id: str) -> List[ReceiptItem]:
    idx = _index_of(items, item_id)
    item = items[idx]
    result = list(items)
    result[idx] = replace(item, assigned_to=tuple(p for p in item.assigned_to if p != participant_id))
    return result


def drop_participant(items: Sequence[ReceiptItem], participant_id: str) -> List[ReceiptItem]:
    """Unassign a participant from every item (used when they leave the split)"""
    return [
        replace(item, assigned_to=tuple(p for p in item.assigned_to if p != participant_id))
        for item in items
    ]


def items_total(items: Iterable[ReceiptItem]) -> Decimal:
    return sum((item.line_total for item in items), Decimal("0"))


def all_items_assigned(items: Iterable[ReceiptItem]) -> bool:
    return all(item.is_assigned for item in items)


def reconcile(items: Sequence[ReceiptItem], transaction_total) -> ItemReconciliation:
    """
    Compare the items total against the transaction total.

    difference = transaction_total - items_total
    - |difference| < 0.01 -> exact_match
    - difference > 0      -> under (more items needed, e.g. tax/tip)
    - difference < 0      -> over (items exceed the transaction)
    """
    total = items_total(items)
    difference = to_decimal(transaction_total) - total

    if abs(difference) < TOLERANCE:
        state = ReconciliationState.EXACT_MATCH
    elif difference > 0:
        state = ReconciliationState.UNDER
    else:
        state = ReconciliationState.OVER

    return ItemReconciliation(
        items_total=total,
        difference=difference,
        state=state,
        all_items_assigned=all_items_assigned(items),
    )


def participant_item_totals(
    items: Sequence[ReceiptItem],
    participant_ids: Sequence[str],
) -> Dict[str, Decimal]:
    """
    Unrounded item-derived total per participant.

    Each item's line total is divided evenly among its assignees (not
    weighted); discounts divide the same way. Raises UnassignedItemError if any
    item has no assignee and UnknownParticipantError if an assignee is not in
    the participant set.
    """
    unassigned = [item.name for item in items if not item.is_assigned]
    if unassigned:
        raise UnassignedItemError(f"Items not assigned to anyone: {', '.join(unassigned)}")

    totals: Dict[str, Decimal] = {pid: Decimal("0") for pid in participant_ids}
    for item in items:
        unknown = [pid for pid in item.assigned_to if pid not in totals]
        if unknown:
            raise UnknownParticipantError(
                f"Item '{item.name}' is assigned to non-participants: {', '.join(unknown)}"
            )

        per_person = item.line_total / len(item.assigned_to)
        for pid in item.assigned_to:
            totals[pid] += per_person

    return totals


def items_for_participant(items: Iterable[ReceiptItem], participant_id: str) -> List[str]:
    return [item.item_id for item in items if participant_id in item.assigned_to]
