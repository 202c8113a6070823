"""
Base exception classes for application-wide error handling.

This module provides the exception hierarchy shared by every domain app:
- Consistent, machine-readable error codes for callers
- A suggested HTTP status so an outer API layer can map errors generically
- Structured details for debugging and client display

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input or business-rule validation failures
    ├── NotFoundError - Resource absent (or owned by another organization)
    └── ConflictError - State conflicts (invalid transitions, lost races)

Usage:
    from core.exceptions import NotFoundError, ValidationError

    # Raise with message only
    raise ValidationError("Amount must be positive")

    # Raise with error code and details
    raise NotFoundError(
        f"BankAccount {account_id} not found",
        error_code="ACCOUNT_NOT_FOUND",
        details={"account_id": str(account_id)},
    )

    # Convert to dict for an API response
    try:
        ...
    except BaseApplicationError as e:
        return JsonResponse(e.to_dict(), status=e.http_status)

Note:
    These exceptions are for domain/business logic errors. Unexpected
    database or programming errors propagate unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (amounts, ids, field errors)
        http_status: Suggested HTTP status for an API layer

    Example:
        try:
            ledger.delete_entry(entry_id, organization_id)
        except BaseApplicationError as e:
            logger.warning(f"Delete rejected: {e.error_code}")
            return JsonResponse(e.to_dict(), status=e.http_status)
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and (when present) details keys

        Example:
            {
                "error": "LedgerEntry 5f0c... not found",
                "error_code": "NOT_FOUND",
                "details": {"entry_id": "5f0c..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation or a business rule fails.

    Use for:
    - Malformed amounts, dates, or identifiers
    - Business rule violations (same-account transfer, over-payment)
    - Requests that are well-formed but not allowed in the current state

    Example:
        raise ValidationError(
            "Amount must be positive",
            error_code="INVALID_AMOUNT",
            details={"amount": str(amount)},
        )
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    In a multi-tenant store, a record that exists but belongs to another
    organization is reported exactly like a missing record, so callers
    cannot probe for other tenants' identifiers.

    Example:
        account = BankAccount.objects.for_organization(org_id).filter(id=pk).first()
        if account is None:
            raise NotFoundError(f"BankAccount {pk} not found")
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current resource state.

    Use for:
    - Invalid state transitions
    - Stored data that contradicts an invariant the operation relies on

    Note:
        HTTP 409 Conflict is the default mapping; subclasses that signal
        data corruption override it with a 5xx status.
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409
