"""
Data types and money rules for bookkeeping operations.

Money is handled as ``decimal.Decimal`` with exactly two decimal places.
Amounts are validated, never rounded: a value with more precision than the
store keeps is rejected with InvalidAmount.

Types:
    CreateEntryParams: Parameters for recording a ledger entry
    InstallmentSpec: One installment of a payment schedule
    TransferResult: Both legs of an internal transfer
    BalanceCheck: Stored vs. recomputed account balance
    EntrySummary: Credit/debit totals for a set of entries
    OutstandingItem / OutstandingReport: Overdue and upcoming records

Usage:
    from bookkeeping.types import CreateEntryParams, to_amount

    params = CreateEntryParams(
        account_id=account.id,
        direction="credit",
        amount="50.00",
        date=date.today(),
        sale_id=sale.id,
    )
    params.amount  # Decimal("50.00")
"""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from .exceptions import InvalidAmount, InvalidRequest, NotFound

if TYPE_CHECKING:
    from .models import LedgerEntry


CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# DecimalField(max_digits=14, decimal_places=2) holds at most 12 integer digits
AMOUNT_LIMIT = Decimal("1000000000000")

DIRECTIONS = ("credit", "debit")


# =============================================================================
# Money helpers
# =============================================================================


def to_decimal(value: Any, field_name: str = "amount") -> Decimal:
    """
    Parse a monetary value into a two-place Decimal.

    Accepts Decimal, int, str and float (floats go through ``str()`` so
    ``0.1`` parses as ``Decimal("0.1")``). Booleans are rejected.

    Raises:
        InvalidAmount: If the value is not a finite number or has more
            than two decimal places
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmount(
            f"{field_name} must be a number",
            details={"field": field_name, "value": repr(value)},
        )
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(
            f"{field_name} must be a number",
            details={"field": field_name, "value": repr(value)},
        )
    if not number.is_finite():
        raise InvalidAmount(
            f"{field_name} must be finite",
            details={"field": field_name, "value": str(number)},
        )
    if abs(number) >= AMOUNT_LIMIT:
        raise InvalidAmount(
            f"{field_name} exceeds the supported range",
            details={"field": field_name, "value": str(number)},
        )
    if number != number.quantize(CENT):
        raise InvalidAmount(
            f"{field_name} has more than two decimal places",
            details={"field": field_name, "value": str(number)},
        )
    return number.quantize(CENT)


def to_amount(value: Any, field_name: str = "amount") -> Decimal:
    """
    Parse a strictly positive monetary amount.

    Raises:
        InvalidAmount: If the value is not a positive, finite, two-place number
    """
    number = to_decimal(value, field_name)
    if number <= ZERO:
        raise InvalidAmount(
            f"{field_name} must be positive",
            details={"field": field_name, "value": str(number)},
        )
    return number


def signed_delta(direction: str, amount: Decimal) -> Decimal:
    """Return +amount for credits and -amount for debits."""
    return amount if direction == "credit" else -amount


def lookup_id(value: Any, entity: str) -> uuid.UUID:
    """
    Parse an identifier for a lookup.

    A malformed id can't match any row, so it is reported as NotFound.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFound.for_entity(entity, value)


# =============================================================================
# Parameter types
# =============================================================================


@dataclass
class CreateEntryParams:
    """
    Parameters for recording a single ledger entry.

    Required Attributes:
        account_id: UUID of the bank account the money moves through
        direction: "credit" (money in) or "debit" (money out)
        amount: Positive amount that hits the bank account
        date: Date of the movement

    Optional Attributes:
        gross_amount: Gross proceeds credited to a linked sale when the bank
            received a commission-reduced amount (must be >= amount)
        sale_id / expense_id: Link to at most one receivable or payable
        contact_id, category, description, reference, payment_method, notes:
            Descriptive fields with no balance effect
        created_by: Identifier of the user or service creating the entry

    Example:
        params = CreateEntryParams(
            account_id=account.id,
            direction="credit",
            amount="970.00",
            gross_amount="1000.00",
            date=date(2024, 3, 1),
            sale_id=sale.id,
        )
    """

    # Required fields
    account_id: uuid.UUID
    direction: str
    amount: Decimal
    date: datetime.date

    # Optional fields
    gross_amount: Decimal | None = None
    sale_id: uuid.UUID | None = None
    expense_id: uuid.UUID | None = None
    contact_id: uuid.UUID | None = None
    category: str = ""
    description: str = ""
    reference: str = ""
    payment_method: str = ""
    notes: str = ""
    created_by: str | None = None

    def __post_init__(self) -> None:
        """Validate and normalize params after initialization."""
        if self.direction not in DIRECTIONS:
            raise InvalidRequest(
                f"direction must be one of {', '.join(DIRECTIONS)}",
                details={"direction": str(self.direction)},
            )
        self.amount = to_amount(self.amount)
        if self.gross_amount is not None:
            self.gross_amount = to_amount(self.gross_amount, "gross_amount")
            if self.gross_amount < self.amount:
                raise InvalidAmount(
                    "gross_amount cannot be less than amount",
                    details={
                        "amount": str(self.amount),
                        "gross_amount": str(self.gross_amount),
                    },
                )
        if self.sale_id and self.expense_id:
            raise InvalidRequest(
                "An entry can be linked to a sale or an expense, not both",
                details={
                    "sale_id": str(self.sale_id),
                    "expense_id": str(self.expense_id),
                },
            )
        if not isinstance(self.date, datetime.date):
            raise InvalidRequest(
                "date must be a date",
                details={"date": repr(self.date)},
            )

    @property
    def signed_amount(self) -> Decimal:
        """Balance delta this entry applies to its account."""
        return signed_delta(self.direction, self.amount)


@dataclass
class InstallmentSpec:
    """
    One installment of a payment schedule.

    Attributes:
        amount: Scheduled amount (positive)
        due_date: Date the installment falls due
        notes: Free-form notes
    """

    amount: Decimal
    due_date: datetime.date
    notes: str = ""

    def __post_init__(self) -> None:
        self.amount = to_amount(self.amount)

    @classmethod
    def coerce(cls, value: InstallmentSpec | dict[str, Any]) -> InstallmentSpec:
        """Accept either an InstallmentSpec or a plain dict."""
        if isinstance(value, cls):
            return value
        try:
            return cls(**value)
        except TypeError as e:
            raise InvalidRequest(
                f"Invalid installment: {e}",
                details={"installment": repr(value)},
            )


# =============================================================================
# Result types
# =============================================================================


@dataclass
class TransferResult:
    """
    Both legs of an internal transfer.

    Attributes:
        transfer_pair_id: Correlation id shared by both legs
        debit_entry: Entry on the source account
        credit_entry: Entry on the destination account
    """

    transfer_pair_id: uuid.UUID
    debit_entry: LedgerEntry
    credit_entry: LedgerEntry

    @property
    def debit_entry_id(self) -> uuid.UUID:
        return self.debit_entry.id

    @property
    def credit_entry_id(self) -> uuid.UUID:
        return self.credit_entry.id


@dataclass(frozen=True)
class BalanceCheck:
    """
    Result of comparing an account's stored balance with its entries.

    Attributes:
        account_id: UUID of the checked account
        stored: current_balance as persisted
        computed: initial_balance + credits - debits
        difference: stored - computed
    """

    account_id: uuid.UUID
    stored: Decimal
    computed: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored - self.computed

    @property
    def is_consistent(self) -> bool:
        return self.difference == ZERO


@dataclass(frozen=True)
class EntrySummary:
    """Credit and debit totals for a filtered set of entries."""

    credits: Decimal
    debits: Decimal
    count: int

    @property
    def net(self) -> Decimal:
        return self.credits - self.debits


@dataclass
class OutstandingItem:
    """A pending or partially settled sale/expense with its open balance."""

    record_type: str
    record: Any
    outstanding: Decimal


@dataclass
class OutstandingReport:
    """
    Open receivables/payables split by due date.

    Attributes:
        overdue: Items whose due date is before ``as_of``
        upcoming: Items due within the window or with no due date
        as_of: Reference date of the report
    """

    as_of: datetime.date
    overdue: list[OutstandingItem] = field(default_factory=list)
    upcoming: list[OutstandingItem] = field(default_factory=list)

    @property
    def overdue_total(self) -> Decimal:
        return sum((item.outstanding for item in self.overdue), ZERO)

    @property
    def upcoming_total(self) -> Decimal:
        return sum((item.outstanding for item in self.upcoming), ZERO)

    @property
    def overdue_count(self) -> int:
        return len(self.overdue)

    @property
    def upcoming_count(self) -> int:
        return len(self.upcoming)
