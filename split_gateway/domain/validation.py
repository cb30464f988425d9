"""Allocation validity checks gating progression to save"""

from decimal import Decimal
from typing import Sequence

from split_gateway.domain.exceptions import (
    IncompleteAllocationError,
    InvalidAllocationInputError,
    UnassignedItemError,
)
from split_gateway.domain.itemization import all_items_assigned, reconcile
from split_gateway.domain.models import ParticipantShare, ReceiptItem, ReconciliationState, SplitMethod
from split_gateway.utils.money import HUNDRED, TOLERANCE, has_cent_precision, within_tolerance


def is_amount_allocation_valid(shares: Sequence[ParticipantShare], total, tolerance=TOLERANCE) -> bool:
    """abs(sum(amount) - total) < tolerance"""
    allocated = sum((s.amount for s in shares), Decimal("0"))
    return within_tolerance(allocated, total, tolerance)


def is_percentage_allocation_valid(shares: Sequence[ParticipantShare], tolerance=TOLERANCE) -> bool:
    """abs(sum(percentage) - 100) < tolerance"""
    allocated = sum((s.percentage for s in shares), Decimal("0"))
    return within_tolerance(allocated, HUNDRED, tolerance)


def is_allocation_valid(
    method: SplitMethod,
    shares: Sequence[ParticipantShare],
    total,
    items: Sequence[ReceiptItem] = (),
    tolerance=TOLERANCE,
    require_exact_match: bool = False,
) -> bool:
    """Non-raising form of validate_allocation for UI polling"""
    try:
        validate_allocation(method, shares, total, items, tolerance, require_exact_match)
    except (IncompleteAllocationError, InvalidAllocationInputError, UnassignedItemError):
        return False
    return True


def check_share_inputs(method: SplitMethod, shares: Sequence[ParticipantShare]) -> None:
    """
    Per-share bounds for user-entered values.

    Percentages must lie in [0, 100]; custom amounts must be non-negative whole
    cents. Itemized shares may be negative (a discount-only assignment) and
    equal shares are computed, so neither is checked here.

    Raises:
        InvalidAllocationInputError
    """
    method = SplitMethod(method)

    if method == SplitMethod.PERCENTAGE:
        for s in shares:
            if not 0 <= s.percentage <= HUNDRED:
                raise InvalidAllocationInputError(
                    f"Percentage for {s.participant_id} must be between 0 and 100, got {s.percentage}"
                )

    if method == SplitMethod.CUSTOM:
        for s in shares:
            if s.amount < 0:
                raise InvalidAllocationInputError(f"Amount for {s.participant_id} must not be negative, got {s.amount}")
            if not has_cent_precision(s.amount):
                raise InvalidAllocationInputError(f"Amount for {s.participant_id} has sub-cent precision: {s.amount}")


def validate_allocation(
    method: SplitMethod,
    shares: Sequence[ParticipantShare],
    total,
    items: Sequence[ReceiptItem] = (),
    tolerance=TOLERANCE,
    require_exact_match: bool = False,
) -> None:
    """
    Fail closed before a split is saved.

    - equal: computed, always valid
    - percentage: percentages must sum to 100
    - custom: amounts must sum to the transaction total
    - itemized: every item assigned; with require_exact_match the items must
      also reconcile against the total

    Per-share bounds are checked first (see check_share_inputs).

    Raises:
        InvalidAllocationInputError, IncompleteAllocationError, UnassignedItemError
    """
    method = SplitMethod(method)
    check_share_inputs(method, shares)

    if method == SplitMethod.PERCENTAGE and not is_percentage_allocation_valid(shares, tolerance):
        allocated = sum((s.percentage for s in shares), Decimal("0"))
        raise IncompleteAllocationError(f"Percentages sum to {allocated}, expected 100")

    if method == SplitMethod.CUSTOM and not is_amount_allocation_valid(shares, total, tolerance):
        allocated = sum((s.amount for s in shares), Decimal("0"))
        raise IncompleteAllocationError(f"Amounts sum to {allocated}, expected {total}")

    if method == SplitMethod.ITEMIZED:
        if not items:
            raise IncompleteAllocationError("Itemized split requires at least one receipt item")
        if not all_items_assigned(items):
            raise UnassignedItemError("Every receipt item must be assigned before saving")
        if require_exact_match:
            reconciliation = reconcile(items, total)
            if reconciliation.state != ReconciliationState.EXACT_MATCH:
                raise IncompleteAllocationError(
                    f"Receipt items are {reconciliation.state.value} the total by {abs(reconciliation.difference)}"
                )
