"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class IncompleteAllocationError(DomainException):
    """Percentage or custom allocation does not sum to the expected total"""

    pass


class InvalidAllocationInputError(DomainException):
    """Percentage outside 0-100, negative custom amount, or an amount finer than a cent"""

    pass


class UnassignedItemError(DomainException):
    """Itemized split has receipt items nobody is assigned to"""

    pass


class ZeroParticipantsError(DomainException):
    """Allocation attempted with an empty participant list"""

    pass


class DuplicateParticipantError(DomainException):
    """Participant ids must be unique within a split"""

    pass


class UnknownParticipantError(DomainException):
    """Referenced participant is not part of the participant set"""

    pass


class InvalidReceiptItemError(DomainException):
    """Receipt item fields are malformed"""

    pass


class ReceiptItemNotFoundError(DomainException):
    """Receipt item id does not exist in the item list"""

    pass


class InvalidTransactionDataError(DomainException):
    """Transaction data is malformed or invalid"""

    pass


class TransactionNotFoundError(DomainException):
    """Transaction id does not exist"""

    pass


class SplitNotFoundError(DomainException):
    """Split was deleted or never existed"""

    pass


class ParticipantNotFoundError(DomainException):
    """Participant has no share in the split"""

    pass


class UnauthorizedSettlementChangeError(DomainException):
    """Caller is neither the participant nor the split owner"""

    pass


class UnauthorizedSplitAccessError(DomainException):
    """Caller does not own the split or transaction"""

    pass


class SplitImmutableError(DomainException):
    """A saved split's allocation cannot be changed; create a new split instead"""

    pass


class TooManyParticipantsError(DomainException):
    """Participant set exceeds the configured maximum"""

    pass
