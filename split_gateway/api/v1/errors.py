"""Domain exception -> HTTP status mapping shared by the v1 routers"""

from fastapi import HTTPException

from split_gateway.domain.exceptions import (
    DomainException,
    DuplicateParticipantError,
    IncompleteAllocationError,
    InvalidAllocationInputError,
    InvalidReceiptItemError,
    InvalidTransactionDataError,
    ParticipantNotFoundError,
    ReceiptItemNotFoundError,
    SplitImmutableError,
    SplitNotFoundError,
    TooManyParticipantsError,
    TransactionNotFoundError,
    UnassignedItemError,
    UnauthorizedSettlementChangeError,
    UnauthorizedSplitAccessError,
    UnknownParticipantError,
    ZeroParticipantsError,
)

# Allocation failures that reject a save; value is the metrics/log reason label
REJECTION_REASONS = {
    IncompleteAllocationError: "incomplete_allocation",
    InvalidAllocationInputError: "invalid_allocation_input",
    UnassignedItemError: "unassigned_item",
    ZeroParticipantsError: "zero_participants",
    DuplicateParticipantError: "duplicate_participant",
    UnknownParticipantError: "unknown_participant",
    InvalidReceiptItemError: "invalid_receipt_item",
    TooManyParticipantsError: "too_many_participants",
}

_STATUS_CODES = {
    InvalidTransactionDataError: 422,
    ReceiptItemNotFoundError: 422,
    UnauthorizedSettlementChangeError: 403,
    UnauthorizedSplitAccessError: 403,
    SplitNotFoundError: 404,
    TransactionNotFoundError: 404,
    ParticipantNotFoundError: 404,
    SplitImmutableError: 409,
}


def rejection_reason(exc: DomainException) -> str | None:
    return REJECTION_REASONS.get(type(exc))


def to_http_exception(exc: DomainException) -> HTTPException:
    if type(exc) in REJECTION_REASONS:
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=_STATUS_CODES.get(type(exc), 400), detail=str(exc))
