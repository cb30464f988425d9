"""POST /v1/allocations/preview - compute shares without saving"""

from typing import List, Sequence

from fastapi import APIRouter

from split_gateway.api.v1.errors import to_http_exception
from split_gateway.api.v1.schemas import (
    AllocationInput,
    AllocationPreviewRequest,
    AllocationPreviewResponse,
    ReceiptItemSchema,
    ReconciliationSchema,
    ShareSchema,
)
from split_gateway.config import settings
from split_gateway.domain import draft as d
from split_gateway.domain.allocation import allocate, shares_total
from split_gateway.domain.draft import SplitDraft
from split_gateway.domain.exceptions import DomainException, TooManyParticipantsError, UnassignedItemError
from split_gateway.domain.itemization import make_item, reconcile
from split_gateway.domain.models import Participant, ParticipantShare, ReceiptItem, SplitMethod, Transaction
from split_gateway.domain.validation import is_allocation_valid

router = APIRouter()


def to_participants(body: AllocationInput) -> List[Participant]:
    if len(body.participants) > settings.max_participants:
        raise TooManyParticipantsError(f"A split supports at most {settings.max_participants} participants")
    return [
        Participant(participant_id=p.participant_id, display_name=p.display_name, color=p.color)
        for p in body.participants
    ]


def to_items(body: AllocationInput) -> List[ReceiptItem]:
    return [
        make_item(
            name=i.name,
            quantity=i.quantity,
            unit_price=i.unit_price,
            assigned_to=i.assigned_to,
            item_id=i.item_id,
        )
        for i in body.items
    ]


def draft_from(body: AllocationInput, transaction: Transaction, owner_id: str) -> SplitDraft:
    """Replay request inputs through the draft reducers, in the order the configure flow applies them"""
    draft = d.start_draft(owner_id, transaction)
    draft = d.set_participants(draft, to_participants(body))
    draft = d.set_method(draft, body.method)

    if body.method == SplitMethod.PERCENTAGE:
        for pid, pct in body.percentages.items():
            draft = d.set_participant_percentage(draft, pid, pct)
    elif body.method == SplitMethod.CUSTOM:
        for pid, amount in body.amounts.items():
            draft = d.set_participant_amount(draft, pid, amount)
    elif body.method == SplitMethod.ITEMIZED:
        for item in to_items(body):
            draft = d.add_item(draft, item)

    return draft


def share_schemas(shares: Sequence[ParticipantShare]) -> List[ShareSchema]:
    return [
        ShareSchema(
            participant_id=s.participant_id,
            amount=s.amount,
            percentage=s.percentage,
            status=s.status,
            item_ids=sorted(s.item_ids),
        )
        for s in shares
    ]


def item_schemas(items: Sequence[ReceiptItem]) -> List[ReceiptItemSchema]:
    return [
        ReceiptItemSchema(
            item_id=i.item_id,
            name=i.name,
            quantity=i.quantity,
            unit_price=i.unit_price,
            assigned_to=list(i.assigned_to),
        )
        for i in items
    ]


@router.post("/allocations/preview", response_model=AllocationPreviewResponse)
def preview_allocation(request_body: AllocationPreviewRequest):
    """
    Compute an allocation for the configure step.

    Percentage/custom inputs that don't add up come back with valid=false
    rather than an error. Itemized previews always include the reconciliation
    state; while items are unassigned the shares list is empty.
    """
    items = []
    try:
        if request_body.method == SplitMethod.ITEMIZED:
            items = to_items(request_body)
        shares = allocate(
            request_body.method,
            request_body.total,
            to_participants(request_body),
            percentages=request_body.percentages,
            amounts=request_body.amounts,
            items=items,
        )
    except UnassignedItemError:
        shares = []
    except DomainException as e:
        raise to_http_exception(e)

    reconciliation = None
    if request_body.method == SplitMethod.ITEMIZED:
        r = reconcile(items, request_body.total)
        reconciliation = ReconciliationSchema(
            items_total=r.items_total,
            difference=r.difference,
            state=r.state,
            all_items_assigned=r.all_items_assigned,
        )

    valid = bool(shares) and is_allocation_valid(
        request_body.method,
        shares,
        request_body.total,
        items,
        tolerance=settings.money_tolerance,
        require_exact_match=settings.itemized_requires_exact_match,
    )

    return AllocationPreviewResponse(
        method=request_body.method,
        shares=share_schemas(shares),
        valid=valid,
        allocated_total=shares_total(shares),
        reconciliation=reconciliation,
    )
