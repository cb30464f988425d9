"""SQLAlchemy ORM models for transactions, splits, participant shares and receipt items"""

import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Date,
    DateTime,
    Integer,
    ForeignKey,
    Text,
    JSON,
    Uuid,
    UniqueConstraint,
    event,
    inspect,
)
from sqlalchemy.orm import Session, declarative_base, relationship
from sqlalchemy.sql import func

from split_gateway.domain.exceptions import SplitImmutableError

Base = declarative_base()


class TransactionRecord(Base):
    """Imported or manually entered transaction"""

    __tablename__ = "split_transaction"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    merchant = Column(Text, nullable=False)
    date = Column(Date, nullable=False)
    category = Column(Text, nullable=False, default="Other")
    description = Column(Text, nullable=False, default="")
    source_account_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    splits = relationship("SplitRecord", back_populates="transaction", cascade="all, delete-orphan")


class SplitRecord(Base):
    """Saved split; the aggregate status is derived from participants, never stored"""

    __tablename__ = "split"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    transaction_id = Column(Uuid, ForeignKey("split_transaction.id", ondelete="CASCADE"), nullable=False, index=True)
    method = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    transaction = relationship("TransactionRecord", back_populates="splits")
    participants = relationship(
        "SplitParticipantRecord",
        back_populates="split",
        cascade="all, delete-orphan",
        order_by="SplitParticipantRecord.position",
    )
    receipt_items = relationship(
        "ReceiptItemRecord",
        back_populates="split",
        cascade="all, delete-orphan",
        order_by="ReceiptItemRecord.position",
    )


class SplitParticipantRecord(Base):
    """One participant's share and settlement status"""

    __tablename__ = "split_participant"
    __table_args__ = (UniqueConstraint("split_id", "participant_id", name="uq_split_participant"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    split_id = Column(Uuid, ForeignKey("split.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Text, nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    amount_cents = Column(BigInteger, nullable=False)
    percentage_bps = Column(Integer, nullable=False)  # hundredths of a percent
    item_ids = Column(JSON, nullable=False, default=list)
    status = Column(String(16), nullable=False, default="pending")
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    split = relationship("SplitRecord", back_populates="participants")


class ReceiptItemRecord(Base):
    """Snapshot of a receipt line item for itemized splits"""

    __tablename__ = "split_receipt_item"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    split_id = Column(Uuid, ForeignKey("split.id", ondelete="CASCADE"), nullable=False, index=True)
    item_key = Column(Text, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    name = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(BigInteger, nullable=False)
    assigned_to = Column(JSON, nullable=False, default=list)

    split = relationship("SplitRecord", back_populates="receipt_items")


# Allocation columns frozen once a split is saved; only status may change
_FROZEN_COLUMNS = {
    SplitParticipantRecord: ("participant_id", "amount_cents", "percentage_bps", "item_ids", "split_id"),
    ReceiptItemRecord: ("item_key", "name", "quantity", "unit_price_cents", "assigned_to", "split_id"),
    SplitRecord: ("method", "transaction_id", "owner_id"),
}


@event.listens_for(Session, "before_flush")
def _reject_allocation_changes(session, flush_context, instances):
    """Saved splits are immutable in their allocation; re-splitting means a new split"""
    for obj in session.dirty:
        columns = _FROZEN_COLUMNS.get(type(obj))
        if not columns:
            continue
        state = inspect(obj)
        changed = [name for name in columns if state.attrs[name].history.has_changes()]
        if changed:
            raise SplitImmutableError(
                f"Cannot modify {', '.join(changed)} on a saved split; create a new split instead"
            )

    for obj in session.new:
        if isinstance(obj, (SplitParticipantRecord, ReceiptItemRecord)) and obj.split is not None:
            if inspect(obj.split).persistent:
                raise SplitImmutableError("Cannot add participants or items to a saved split")
