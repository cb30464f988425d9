"""/v1/transactions - manual transaction entry, listing and deletion"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from split_gateway.api.dependencies import get_current_user_id, get_request_id
from split_gateway.api.v1.errors import to_http_exception
from split_gateway.api.v1.schemas import SplitListResponse, TransactionCreateRequest, TransactionResponse
from split_gateway.api.v1.splits import split_summary
from split_gateway.domain.exceptions import DomainException
from split_gateway.domain.models import Transaction
from split_gateway.domain.splits import create_manual_transaction
from split_gateway.infrastructure.database.repositories import SplitRepository, TransactionRepository
from split_gateway.infrastructure.database.session import get_db
from split_gateway.infrastructure.observability.logging import log_transaction_deleted
from split_gateway.infrastructure.observability.metrics import split_deleted_counter

router = APIRouter()


def transaction_response(transaction: Transaction) -> TransactionResponse:
    return TransactionResponse(
        transaction_id=transaction.transaction_id,
        merchant=transaction.merchant,
        amount=transaction.amount,
        date=transaction.date,
        category=transaction.category,
        description=transaction.description,
    )


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def create_transaction(
    request_body: TransactionCreateRequest,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Record a manually entered transaction for the caller"""
    request_id = get_request_id(request)
    try:
        transaction = create_manual_transaction(
            owner_id=user_id,
            merchant=request_body.merchant,
            amount=request_body.amount,
            on_date=request_body.date,
            category=request_body.category,
            description=request_body.description,
        )
        saved = TransactionRepository(db).create_transaction(transaction)
        db.commit()
    except DomainException as e:
        db.rollback()
        logging.warning(f"Transaction rejected: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)

    return transaction_response(saved)


@router.get("/transactions", response_model=list[TransactionResponse])
def list_transactions(
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Most recent transactions owned by the caller"""
    return [transaction_response(t) for t in TransactionRepository(db).list_by_owner(user_id, limit=limit)]


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    transaction = TransactionRepository(db).get_transaction(transaction_id)
    if transaction is None or transaction.owner_id != user_id:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction_response(transaction)


@router.get("/transactions/{transaction_id}/splits", response_model=SplitListResponse)
def list_transaction_splits(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Every split of a transaction the caller owns, newest first"""
    try:
        TransactionRepository(db).get_owned_transaction(transaction_id, user_id)
    except DomainException as e:
        raise to_http_exception(e)

    splits = SplitRepository(db).list_by_transaction(transaction_id)
    return SplitListResponse(user_id=user_id, splits=[split_summary(s, user_id) for s in splits])


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Owner-only; the transaction's splits, their participants and receipt items go in the same commit"""
    request_id = get_request_id(request)

    try:
        split_count = TransactionRepository(db).delete_transaction(transaction_id, user_id)
        db.commit()
    except DomainException as e:
        db.rollback()
        logging.warning(f"Transaction delete refused: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)

    if split_count:
        split_deleted_counter.inc(split_count)
    log_transaction_deleted(request_id, user_id, transaction_id, split_count)
    return Response(status_code=204)
