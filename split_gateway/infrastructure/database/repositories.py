"""Data access layer for transactions and splits"""

import uuid
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from split_gateway.infrastructure.database.models import (
    ReceiptItemRecord,
    SplitParticipantRecord,
    SplitRecord,
    TransactionRecord,
)
from split_gateway.domain.exceptions import (
    ParticipantNotFoundError,
    SplitNotFoundError,
    TransactionNotFoundError,
    UnauthorizedSplitAccessError,
)
from split_gateway.domain.models import (
    ParticipantShare,
    ReceiptItem,
    SettlementStatus,
    Split,
    SplitMethod,
    Transaction,
)
from split_gateway.utils.money import from_cents, to_cents


def _as_uuid(value) -> Optional[uuid.UUID]:
    """Parse an id; malformed ids simply match nothing"""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _to_transaction(record: TransactionRecord) -> Transaction:
    return Transaction(
        transaction_id=str(record.id),
        owner_id=record.owner_id,
        amount=from_cents(record.amount_cents),
        merchant=record.merchant,
        date=record.date,
        category=record.category,
        description=record.description,
        source_account_id=record.source_account_id,
    )


def _to_split(record: SplitRecord) -> Split:
    return Split(
        split_id=str(record.id),
        owner_id=record.owner_id,
        transaction_id=str(record.transaction_id),
        method=SplitMethod(record.method),
        shares=tuple(
            ParticipantShare(
                participant_id=p.participant_id,
                amount=from_cents(p.amount_cents),
                percentage=from_cents(p.percentage_bps),
                status=SettlementStatus(p.status),
                item_ids=frozenset(p.item_ids or []),
            )
            for p in record.participants
        ),
        items=tuple(
            ReceiptItem(
                item_id=i.item_key,
                name=i.name,
                quantity=i.quantity,
                unit_price=from_cents(i.unit_price_cents),
                assigned_to=tuple(i.assigned_to or []),
            )
            for i in record.receipt_items
        ),
        created_at=record.created_at,
    )


class TransactionRepository:
    """Repository for transactions (manual entry; bank import lands here too)"""

    def __init__(self, db: Session):
        self.db = db

    def create_transaction(self, transaction: Transaction) -> Transaction:
        """Persist a transaction and return it with its database id"""
        record = TransactionRecord(
            id=_as_uuid(transaction.transaction_id) or uuid.uuid4(),
            owner_id=transaction.owner_id,
            amount_cents=to_cents(transaction.amount),
            merchant=transaction.merchant,
            date=transaction.date,
            category=transaction.category,
            description=transaction.description,
            source_account_id=transaction.source_account_id,
        )
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return _to_transaction(record)

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        tid = _as_uuid(transaction_id)
        if tid is None:
            return None
        record = self.db.get(TransactionRecord, tid)
        return _to_transaction(record) if record else None

    def get_owned_transaction(self, transaction_id: str, owner_id: str) -> Transaction:
        """
        Fetch a transaction the caller owns.

        Raises:
            TransactionNotFoundError, UnauthorizedSplitAccessError
        """
        transaction = self.get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
        if transaction.owner_id != owner_id:
            raise UnauthorizedSplitAccessError(f"Transaction {transaction_id} belongs to another user")
        return transaction

    def delete_transaction(self, transaction_id: str, owner_id: str) -> int:
        """
        Delete a transaction the caller owns together with every split of it.

        Returns the number of splits removed with it.

        Raises:
            TransactionNotFoundError, UnauthorizedSplitAccessError
        """
        tid = _as_uuid(transaction_id)
        record = None
        if tid is not None:
            record = self.db.query(TransactionRecord).filter(TransactionRecord.id == tid).with_for_update().first()
        if record is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
        if record.owner_id != owner_id:
            raise UnauthorizedSplitAccessError(f"Transaction {transaction_id} belongs to another user")

        split_count = len(record.splits)
        self.db.delete(record)
        self.db.flush()
        return split_count

    def list_by_owner(self, owner_id: str, limit: int = 50) -> List[Transaction]:
        records = (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.owner_id == owner_id)
            .order_by(TransactionRecord.date.desc(), TransactionRecord.created_at.desc())
            .limit(limit)
            .all()
        )
        return [_to_transaction(r) for r in records]


class SplitRepository:
    """Repository for splits with their participant shares and receipt item snapshot"""

    def __init__(self, db: Session):
        self.db = db

    def create_split(self, split: Split) -> str:
        """Persist the whole aggregate in one flush and return the new split id"""
        record = SplitRecord(
            owner_id=split.owner_id,
            transaction_id=_as_uuid(split.transaction_id),
            method=split.method.value,
        )
        if split.created_at is not None:
            record.created_at = split.created_at

        record.participants = [
            SplitParticipantRecord(
                participant_id=share.participant_id,
                position=pos,
                amount_cents=to_cents(share.amount),
                percentage_bps=to_cents(share.percentage),
                item_ids=sorted(share.item_ids),
                status=share.status.value,
            )
            for pos, share in enumerate(split.shares)
        ]
        record.receipt_items = [
            ReceiptItemRecord(
                item_key=item.item_id,
                position=pos,
                name=item.name,
                quantity=item.quantity,
                unit_price_cents=to_cents(item.unit_price),
                assigned_to=list(item.assigned_to),
            )
            for pos, item in enumerate(split.items)
        ]

        self.db.add(record)
        self.db.flush()
        return str(record.id)

    def _load(self, split_id: str, for_update: bool = False) -> Optional[SplitRecord]:
        sid = _as_uuid(split_id)
        if sid is None:
            return None
        query = self.db.query(SplitRecord).filter(SplitRecord.id == sid)
        if for_update:
            # Serializes settlement writes against deletion of the same split
            query = query.with_for_update()
        return query.first()

    def get_split(self, split_id: str, for_update: bool = False) -> Optional[Split]:
        record = self._load(split_id, for_update=for_update)
        return _to_split(record) if record else None

    def delete_split(self, split_id: str) -> None:
        """
        Delete a split with its participants and receipt items.

        Raises:
            SplitNotFoundError: already deleted or never existed
        """
        record = self._load(split_id, for_update=True)
        if record is None:
            raise SplitNotFoundError(f"Split {split_id} not found")
        self.db.delete(record)
        self.db.flush()

    def update_participant_status(self, split_id: str, participant_id: str, status: SettlementStatus) -> None:
        """
        Write one participant row's status (last write wins per row).

        Raises:
            SplitNotFoundError: the split is gone (e.g. deleted mid-toggle)
            ParticipantNotFoundError: no share for this participant
        """
        record = self._load(split_id, for_update=True)
        if record is None:
            raise SplitNotFoundError(f"Split {split_id} not found")

        row = next((p for p in record.participants if p.participant_id == participant_id), None)
        if row is None:
            raise ParticipantNotFoundError(f"Participant {participant_id} has no share in split {split_id}")

        row.status = SettlementStatus(status).value
        self.db.flush()

    def list_by_owner(self, owner_id: str, limit: int = 50) -> List[Split]:
        records = (
            self.db.query(SplitRecord)
            .filter(SplitRecord.owner_id == owner_id)
            .order_by(SplitRecord.created_at.desc())
            .limit(limit)
            .all()
        )
        return [_to_split(r) for r in records]

    def list_participating_in(self, participant_id: str, limit: int = 50) -> List[Split]:
        records = (
            self.db.query(SplitRecord)
            .join(SplitParticipantRecord, SplitParticipantRecord.split_id == SplitRecord.id)
            .filter(SplitParticipantRecord.participant_id == participant_id)
            .order_by(SplitRecord.created_at.desc())
            .limit(limit)
            .all()
        )
        return [_to_split(r) for r in records]

    def list_by_transaction(self, transaction_id: str) -> List[Split]:
        tid = _as_uuid(transaction_id)
        if tid is None:
            return []
        records = (
            self.db.query(SplitRecord)
            .filter(SplitRecord.transaction_id == tid)
            .order_by(SplitRecord.created_at.desc())
            .all()
        )
        return [_to_split(r) for r in records]

    def list_pending_payments(self, participant_id: str) -> List[Tuple[Split, ParticipantShare]]:
        """The participant's own pending shares, with the split each belongs to, newest first"""
        records = (
            self.db.query(SplitRecord)
            .join(SplitParticipantRecord, SplitParticipantRecord.split_id == SplitRecord.id)
            .filter(
                SplitParticipantRecord.participant_id == participant_id,
                SplitParticipantRecord.status == SettlementStatus.PENDING.value,
            )
            .order_by(SplitRecord.created_at.desc())
            .all()
        )
        pending = []
        for record in records:
            split = _to_split(record)
            pending.append((split, split.share_for(participant_id)))
        return pending
