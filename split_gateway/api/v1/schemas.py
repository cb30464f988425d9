"""Pydantic schemas for API request/response validation"""

import datetime
from decimal import Decimal
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, Field

from split_gateway.domain.models import (
    AggregateStatus,
    ReconciliationState,
    SettlementStatus,
    SplitMethod,
)


class TransactionCreateRequest(BaseModel):
    """Request body for POST /v1/transactions (manual entry)"""

    merchant: str = Field(..., min_length=1, description="Merchant name")
    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Transaction total in currency units")
    date: Optional[datetime.date] = None
    category: Optional[str] = None
    description: str = ""


class TransactionResponse(BaseModel):
    transaction_id: str
    merchant: str
    amount: Decimal
    date: datetime.date
    category: str
    description: str


class ParticipantSchema(BaseModel):
    """Participant reference; display fields are carried but not used in the math"""

    participant_id: str = Field(..., min_length=1)
    display_name: str = ""
    color: Optional[str] = None


class ReceiptItemSchema(BaseModel):
    """Receipt line item; negative unit_price is a discount"""

    item_id: Optional[str] = None
    name: str = Field(..., min_length=1)
    quantity: int = Field(1, gt=0)
    unit_price: Decimal = Field(..., decimal_places=2)
    assigned_to: List[str] = Field(default_factory=list)


# Per-participant inputs for the percentage and custom methods
Percentage = Annotated[Decimal, Field(ge=0, le=100)]
ShareAmount = Annotated[Decimal, Field(ge=0, decimal_places=2)]


class AllocationInput(BaseModel):
    """Method plus the inputs the method needs"""

    method: SplitMethod
    participants: List[ParticipantSchema] = Field(default_factory=list)
    percentages: Dict[str, Percentage] = Field(default_factory=dict, description="percentage method")
    amounts: Dict[str, ShareAmount] = Field(default_factory=dict, description="custom method")
    items: List[ReceiptItemSchema] = Field(default_factory=list, description="itemized method")


class AllocationPreviewRequest(AllocationInput):
    """Request body for POST /v1/allocations/preview"""

    total: Decimal = Field(..., gt=0)


class SplitCreateRequest(AllocationInput):
    """Request body for POST /v1/splits"""

    transaction_id: str = Field(..., min_length=1)


class ManualSplitCreateRequest(AllocationInput):
    """Request body for POST /v1/splits/manual"""

    transaction: TransactionCreateRequest


class ShareSchema(BaseModel):
    participant_id: str
    amount: Decimal
    percentage: Decimal
    status: SettlementStatus = SettlementStatus.PENDING
    item_ids: List[str] = Field(default_factory=list)


class ReconciliationSchema(BaseModel):
    items_total: Decimal
    difference: Decimal
    state: ReconciliationState
    all_items_assigned: bool


class AllocationPreviewResponse(BaseModel):
    """Response for POST /v1/allocations/preview"""

    method: SplitMethod
    shares: List[ShareSchema]
    valid: bool
    allocated_total: Decimal
    reconciliation: Optional[ReconciliationSchema] = None


class SplitSummary(BaseModel):
    """Split with its derived status for the caller"""

    split_id: str
    owner_id: str
    transaction_id: str
    method: SplitMethod
    status: AggregateStatus
    settled_count: int
    total_participants: int
    created_at: Optional[str] = None


class SplitDetailResponse(SplitSummary):
    """Response for GET /v1/splits/{split_id}"""

    shares: List[ShareSchema]
    receipt_items: List[ReceiptItemSchema]


class SplitCreateResponse(BaseModel):
    split_id: str
    transaction_id: str
    shares: List[ShareSchema]


class SplitListResponse(BaseModel):
    user_id: str
    splits: List[SplitSummary]


class PendingPaymentItem(BaseModel):
    split_id: str
    owner_id: str
    transaction_id: str
    amount: Decimal
    percentage: Decimal


class PendingPaymentsResponse(BaseModel):
    user_id: str
    payments: List[PendingPaymentItem]


class SettlementStatusRequest(BaseModel):
    """Request body for owner status corrections"""

    status: SettlementStatus


class SettlementResponse(BaseModel):
    split_id: str
    participant_id: str
    participant_status: SettlementStatus
    split_status: AggregateStatus
