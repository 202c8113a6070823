"""
Bookkeeping-specific exceptions.

Every error raised by the bookkeeping services inherits from
BookkeepingError and from the matching generic class in core.exceptions,
so callers can catch either the domain error or the generic category.
Raising any of them inside a service aborts the enclosing atomic block.

Exception Hierarchy:
    BookkeepingError (base)
    ├── NotFound - Entity absent or owned by another organization (404)
    ├── InvalidAmount - Non-positive, non-finite or over-precise amount (400)
    ├── InvalidAccount - Missing, foreign or inactive bank account (400)
    ├── InvalidRequest - Business rule rejects an otherwise valid call (400)
    │   └── RecordHasPayments - Deleting a sale/expense with payments (400)
    ├── InsufficientFunds - Transfer exceeds the source balance (400)
    ├── ScheduleMismatch - Installments don't add up to outstanding (400)
    └── ConsistencyViolation - Stored data contradicts an invariant (500)

Usage:
    from bookkeeping.exceptions import BookkeepingError, InsufficientFunds

    try:
        transfers.transfer(org_id, source.id, target.id, "75.00", today)
    except BookkeepingError as e:
        return JsonResponse(e.to_dict(), status=e.http_status)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal
    from typing import Any


class BookkeepingError(BaseApplicationError):
    """
    Base exception for all bookkeeping operations.

    Example:
        try:
            ledger.delete_entry(entry_id, organization_id)
        except BookkeepingError as e:
            logger.error(f"Bookkeeping operation failed: {e}")
            return JsonResponse(e.to_dict(), status=e.http_status)
    """

    default_error_code: str = "BOOKKEEPING_ERROR"


class NotFound(BookkeepingError, NotFoundError):
    """
    Raised when an entity does not exist in the caller's organization.

    The message is identical whether the row is missing or belongs to a
    different tenant.
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404

    @classmethod
    def for_entity(cls, entity: str, entity_id: Any) -> NotFound:
        """Build the standard not-found error for an entity and id."""
        return cls(
            f"{entity} {entity_id} not found",
            details={"entity": entity, "id": str(entity_id)},
        )


class InvalidAmount(BookkeepingError, ValidationError):
    """
    Raised for amounts that are not positive, not finite, or carry more
    than two decimal places.
    """

    default_error_code: str = "INVALID_AMOUNT"
    http_status: int = 400


class InvalidAccount(BookkeepingError, ValidationError):
    """
    Raised when a bank account reference can't be used.

    Covers accounts that don't exist, belong to another organization,
    or were deactivated.
    """

    default_error_code: str = "INVALID_ACCOUNT"
    http_status: int = 400


class InvalidRequest(BookkeepingError, ValidationError):
    """
    Raised when a well-formed request violates a business rule.

    Example:
        if from_account_id == to_account_id:
            raise InvalidRequest("Cannot transfer to the same account")
    """

    default_error_code: str = "INVALID_REQUEST"
    http_status: int = 400


class RecordHasPayments(InvalidRequest):
    """Raised when deleting a sale or expense that already has payments."""

    default_error_code: str = "RECORD_HAS_PAYMENTS"


class InsufficientFunds(BookkeepingError, ValidationError):
    """
    Raised when a transfer exceeds the source account's balance.

    Attributes:
        account_id: The UUID of the source account
        required: The amount that was requested
        available: The balance at the time of the check
    """

    default_error_code: str = "INSUFFICIENT_FUNDS"
    http_status: int = 400

    def __init__(
        self,
        account_id: uuid.UUID,
        required: Decimal,
        available: Decimal,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize with account details and amounts.

        Args:
            account_id: UUID of the account with insufficient funds
            required: Amount requested
            available: Balance available
            error_code: Optional custom error code
            details: Optional additional error context
        """
        self.account_id = account_id
        self.required = required
        self.available = available

        message = (
            f"Account {account_id} has insufficient funds: "
            f"required {required}, available {available}"
        )

        full_details = {
            "account_id": str(account_id),
            "required": str(required),
            "available": str(available),
        }
        if details:
            full_details.update(details)

        super().__init__(message=message, error_code=error_code, details=full_details)


class ScheduleMismatch(BookkeepingError, ValidationError):
    """
    Raised when installment amounts don't sum to the outstanding balance.

    Attributes:
        outstanding: Outstanding balance of the sale/expense
        scheduled: Sum of the proposed installments
    """

    default_error_code: str = "SCHEDULE_MISMATCH"
    http_status: int = 400

    def __init__(
        self,
        outstanding: Decimal,
        scheduled: Decimal,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.outstanding = outstanding
        self.scheduled = scheduled

        full_details = {
            "outstanding": str(outstanding),
            "scheduled": str(scheduled),
            "difference": str(scheduled - outstanding),
        }
        if details:
            full_details.update(details)

        super().__init__(
            message=(
                f"Installments sum to {scheduled} but the outstanding "
                f"balance is {outstanding}"
            ),
            error_code=error_code,
            details=full_details,
        )


class ConsistencyViolation(BookkeepingError, ConflictError):
    """
    Raised when stored data contradicts a bookkeeping invariant.

    This signals prior corruption (a transfer leg without its partner, a
    link to a vanished record), never bad user input. Services log these
    at ERROR before raising.
    """

    default_error_code: str = "CONSISTENCY_VIOLATION"
    http_status: int = 500
