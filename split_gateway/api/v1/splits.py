"""/v1/splits - save, read, delete splits and change settlement status"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from split_gateway.api.dependencies import get_current_user_id, get_request_id
from split_gateway.api.v1.allocations import draft_from, item_schemas, share_schemas
from split_gateway.api.v1.errors import rejection_reason, to_http_exception
from split_gateway.api.v1.schemas import (
    AllocationInput,
    ManualSplitCreateRequest,
    PendingPaymentItem,
    PendingPaymentsResponse,
    SettlementResponse,
    SettlementStatusRequest,
    SplitCreateRequest,
    SplitCreateResponse,
    SplitDetailResponse,
    SplitListResponse,
    SplitSummary,
)
from split_gateway.config import settings
from split_gateway.domain.draft import finalize
from split_gateway.domain.exceptions import DomainException, SplitNotFoundError
from split_gateway.domain.models import Split, Transaction
from split_gateway.domain.settlement import (
    ACTOR_OWNER,
    ACTOR_SELF,
    derive_aggregate_status,
    ensure_can_view,
    ensure_owner,
    set_settlement_as_owner,
    toggle_own_settlement,
)
from split_gateway.domain.splits import create_manual_transaction
from split_gateway.infrastructure.database.repositories import SplitRepository, TransactionRepository
from split_gateway.infrastructure.database.session import get_db
from split_gateway.infrastructure.observability.logging import (
    log_allocation_rejected,
    log_settlement_change,
    log_split_created,
    log_split_deleted,
)
from split_gateway.infrastructure.observability.metrics import (
    record_allocation_rejected,
    record_settlement_change,
    record_split_created,
    split_deleted_counter,
)

router = APIRouter()


def split_summary(split: Split, caller_id: str) -> SplitSummary:
    return SplitSummary(
        split_id=split.split_id,
        owner_id=split.owner_id,
        transaction_id=split.transaction_id,
        method=split.method,
        status=derive_aggregate_status(split.shares, caller_id),
        settled_count=split.settled_count,
        total_participants=split.total_participants,
        created_at=split.created_at.isoformat() if split.created_at else None,
    )


def _save_split(db: Session, body: AllocationInput, transaction: Transaction, owner_id: str) -> Split:
    """Replay the inputs into a draft, finalize it (fail closed) and persist; returns the split with its id"""
    split = finalize(
        draft_from(body, transaction, owner_id),
        tolerance=settings.money_tolerance,
        require_exact_match=settings.itemized_requires_exact_match,
    )
    split_id = SplitRepository(db).create_split(split)
    return SplitRepository(db).get_split(split_id)


def _reject(db: Session, e: DomainException, request_id: str, user_id: str, method: str) -> HTTPException:
    db.rollback()
    reason = rejection_reason(e)
    if reason:
        record_allocation_rejected(reason)
        log_allocation_rejected(request_id, user_id, method, reason, str(e))
    else:
        logging.warning(f"Split request failed: {e}", extra={"request_id": request_id})
    return to_http_exception(e)


def _created(split: Split, request_id: str, start_time: float) -> SplitCreateResponse:
    duration_ms = (time.time() - start_time) * 1000
    record_split_created(split.method.value, split.total_participants)
    log_split_created(
        request_id, split.owner_id, split.split_id, split.method.value, split.total_participants, duration_ms
    )
    return SplitCreateResponse(
        split_id=split.split_id,
        transaction_id=split.transaction_id,
        shares=share_schemas(split.shares),
    )


@router.post("/splits", response_model=SplitCreateResponse, status_code=201)
def create_split(
    request_body: SplitCreateRequest,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Save a split of a transaction the caller owns.

    Flow:
    1. Load the transaction (must belong to the caller)
    2. Compute shares with the requested method
    3. Re-validate and freeze into a Split (rejects incomplete allocations)
    4. Persist split + participants + receipt item snapshot in one commit
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        transaction = TransactionRepository(db).get_owned_transaction(request_body.transaction_id, user_id)
        split = _save_split(db, request_body, transaction, user_id)
        db.commit()

    except DomainException as e:
        raise _reject(db, e, request_id, user_id, request_body.method.value)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return _created(split, request_id, start_time)


@router.post("/splits/manual", response_model=SplitCreateResponse, status_code=201)
def create_manual_split(
    request_body: ManualSplitCreateRequest,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Enter a transaction by hand and split it; both are saved or neither is"""
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        entry = request_body.transaction
        transaction = TransactionRepository(db).create_transaction(
            create_manual_transaction(
                owner_id=user_id,
                merchant=entry.merchant,
                amount=entry.amount,
                on_date=entry.date,
                category=entry.category,
                description=entry.description,
            )
        )
        split = _save_split(db, request_body, transaction, user_id)
        db.commit()

    except DomainException as e:
        raise _reject(db, e, request_id, user_id, request_body.method.value)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return _created(split, request_id, start_time)


@router.get("/splits", response_model=SplitListResponse)
def list_splits(
    limit: int = Query(20, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Splits the caller created, newest first, with derived status"""
    splits = SplitRepository(db).list_by_owner(user_id, limit=limit)
    return SplitListResponse(user_id=user_id, splits=[split_summary(s, user_id) for s in splits])


@router.get("/splits/participating", response_model=SplitListResponse)
def list_participating(
    limit: int = Query(20, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Splits the caller has a share in"""
    splits = SplitRepository(db).list_participating_in(user_id, limit=limit)
    return SplitListResponse(user_id=user_id, splits=[split_summary(s, user_id) for s in splits])


@router.get("/splits/pending-payments", response_model=PendingPaymentsResponse)
def list_pending_payments(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """The caller's own shares still marked pending"""
    pending = SplitRepository(db).list_pending_payments(user_id)
    return PendingPaymentsResponse(
        user_id=user_id,
        payments=[
            PendingPaymentItem(
                split_id=split.split_id,
                owner_id=split.owner_id,
                transaction_id=split.transaction_id,
                amount=share.amount,
                percentage=share.percentage,
            )
            for split, share in pending
        ],
    )


@router.get("/splits/{split_id}", response_model=SplitDetailResponse)
def get_split(
    split_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Split with shares, receipt items and the caller's view of its status"""
    split = SplitRepository(db).get_split(split_id)
    if split is None:
        raise HTTPException(status_code=404, detail="Split not found")

    try:
        ensure_can_view(split, user_id)
    except DomainException as e:
        raise to_http_exception(e)

    summary = split_summary(split, user_id)
    return SplitDetailResponse(
        **summary.model_dump(),
        shares=share_schemas(split.shares),
        receipt_items=item_schemas(split.items),
    )


@router.delete("/splits/{split_id}", status_code=204)
def delete_split(
    split_id: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Owner-only; removes participants and receipt items with the split, whatever their settlement state"""
    request_id = get_request_id(request)
    repo = SplitRepository(db)

    try:
        split = repo.get_split(split_id, for_update=True)
        if split is None:
            raise SplitNotFoundError(f"Split {split_id} not found")
        ensure_owner(split, user_id)
        repo.delete_split(split_id)
        db.commit()
    except DomainException as e:
        db.rollback()
        raise to_http_exception(e)

    split_deleted_counter.inc()
    log_split_deleted(request_id, user_id, split_id)
    return Response(status_code=204)


def _settlement_response(split: Split, participant_id: str, caller_id: str) -> SettlementResponse:
    return SettlementResponse(
        split_id=split.split_id,
        participant_id=participant_id,
        participant_status=split.share_for(participant_id).status,
        split_status=derive_aggregate_status(split.shares, caller_id),
    )


@router.post(
    "/splits/{split_id}/participants/{participant_id}/toggle",
    response_model=SettlementResponse,
)
def toggle_settlement(
    split_id: str,
    participant_id: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Participant flips their own share between pending and paid"""
    request_id = get_request_id(request)
    repo = SplitRepository(db)

    try:
        split = repo.get_split(split_id, for_update=True)
        if split is None:
            raise SplitNotFoundError(f"Split {split_id} not found")
        updated, new_status = toggle_own_settlement(split, user_id, participant_id)
        repo.update_participant_status(split_id, participant_id, new_status)
        db.commit()
    except DomainException as e:
        db.rollback()
        logging.warning(f"Settlement change refused: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)

    record_settlement_change(new_status.value, ACTOR_SELF)
    log_settlement_change(request_id, user_id, split_id, participant_id, new_status.value, ACTOR_SELF)
    return _settlement_response(updated, participant_id, user_id)


@router.put(
    "/splits/{split_id}/participants/{participant_id}/status",
    response_model=SettlementResponse,
)
def set_settlement_status(
    split_id: str,
    participant_id: str,
    request_body: SettlementStatusRequest,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Owner correction path: set any participant's status on a split the caller owns"""
    request_id = get_request_id(request)
    repo = SplitRepository(db)

    try:
        split = repo.get_split(split_id, for_update=True)
        if split is None:
            raise SplitNotFoundError(f"Split {split_id} not found")
        updated = set_settlement_as_owner(split, user_id, participant_id, request_body.status)
        repo.update_participant_status(split_id, participant_id, request_body.status)
        db.commit()
    except DomainException as e:
        db.rollback()
        logging.warning(f"Settlement change refused: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)

    record_settlement_change(request_body.status.value, ACTOR_OWNER)
    log_settlement_change(request_id, user_id, split_id, participant_id, request_body.status.value, ACTOR_OWNER)
    return _settlement_response(updated, participant_id, user_id)
