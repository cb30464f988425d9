"""Settlement state machine - per-participant payment state and derived split status"""

from typing import Sequence, Tuple

from split_gateway.domain.exceptions import (
    ParticipantNotFoundError,
    UnauthorizedSettlementChangeError,
    UnauthorizedSplitAccessError,
)
from split_gateway.domain.models import (
    AggregateStatus,
    ParticipantShare,
    SettlementStatus,
    Split,
)

ACTOR_SELF = "self"
ACTOR_OWNER = "owner"


def toggle_status(status: SettlementStatus) -> SettlementStatus:
    """pending -> paid -> pending; there is no terminal state"""
    if status == SettlementStatus.PAID:
        return SettlementStatus.PENDING
    return SettlementStatus.PAID


def derive_aggregate_status(shares: Sequence[ParticipantShare], caller_id: str) -> AggregateStatus:
    """
    Roll up participant rows for the caller; recomputed on every read.

    all_settled if every participant paid, settled_by_me if only the caller's
    own share is paid, otherwise pending.
    """
    all_settled = len(shares) > 0 and all(s.status == SettlementStatus.PAID for s in shares)
    if all_settled:
        return AggregateStatus.ALL_SETTLED

    own = next((s for s in shares if s.participant_id == caller_id), None)
    if own is not None and own.status == SettlementStatus.PAID:
        return AggregateStatus.SETTLED_BY_ME

    return AggregateStatus.PENDING


def _require_share(split: Split, participant_id: str) -> ParticipantShare:
    share = split.share_for(participant_id)
    if share is None:
        raise ParticipantNotFoundError(f"Participant {participant_id} has no share in this split")
    return share


def toggle_own_settlement(split: Split, caller_id: str, participant_id: str) -> Tuple[Split, SettlementStatus]:
    """
    Self-service toggle: only the participant whose share it is may flip it.

    Returns the updated split and the new status.
    """
    share = _require_share(split, participant_id)
    if participant_id != caller_id:
        raise UnauthorizedSettlementChangeError(
            f"User {caller_id} cannot settle the share of participant {participant_id}"
        )

    new_status = toggle_status(share.status)
    return split.with_participant_status(participant_id, new_status), new_status


def set_settlement_as_owner(
    split: Split,
    caller_id: str,
    participant_id: str,
    status: SettlementStatus,
) -> Split:
    """Owner correction path: the split's owner may set any participant's status"""
    _require_share(split, participant_id)
    if split.owner_id != caller_id:
        raise UnauthorizedSettlementChangeError(
            f"User {caller_id} does not own split {split.split_id}"
        )
    return split.with_participant_status(participant_id, SettlementStatus(status))


def ensure_owner(split: Split, caller_id: str) -> None:
    if split.owner_id != caller_id:
        raise UnauthorizedSplitAccessError(f"User {caller_id} does not own split {split.split_id}")


def ensure_can_view(split: Split, caller_id: str) -> None:
    """Owner and participants may read a split"""
    if split.owner_id != caller_id and caller_id not in split.participant_ids:
        raise UnauthorizedSplitAccessError(f"User {caller_id} has no access to split {split.split_id}")
