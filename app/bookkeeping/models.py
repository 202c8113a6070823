"""
Bookkeeping models for small-business cash tracking.

This module defines the persistent state kept consistent by the services:
- BankAccount: Holds the current balance of one real bank account
- LedgerEntry: One movement of money into or out of a bank account
- Sale / Expense: Receivables and payables with a derived payment status
- PaymentScheduleInstallment: Planned partial payments of a sale/expense
- Payment: A payment recorded against a sale/expense

Balances and settled amounts are denormalized totals. They are written only
by the service layer (bookkeeping.services) inside a transaction that also
writes the rows they summarize.

Usage:
    from bookkeeping.models import BankAccount, Direction, LedgerEntry

    account = BankAccount.objects.for_organization(org_id).get(id=account_id)
    account.current_balance  # Decimal("150.00")

    LedgerEntry.objects.for_organization(org_id).filter(direction=Direction.CREDIT)
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Case, F, Q, Sum, Value, When
from django.db.models.functions import Coalesce

from core.model_mixins import OrganizationScopedMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel

MONEY = {"max_digits": 14, "decimal_places": 2}


def default_currency() -> str:
    """Currency assigned to new bank accounts when none is given."""
    return getattr(settings, "BOOKKEEPING_DEFAULT_CURRENCY", "MXN")


class Direction(models.TextChoices):
    """
    Direction of a ledger entry.

    Values:
        CREDIT: Money into the account (increases balance)
        DEBIT: Money out of the account (decreases balance)
    """

    CREDIT = "credit", "Credit"
    DEBIT = "debit", "Debit"


class PaymentStatus(models.TextChoices):
    """Settlement status of a sale, expense or installment."""

    PENDING = "pending", "Pending"
    PARTIAL = "partial", "Partial"
    PAID = "paid", "Paid"


class TransferStatus(models.TextChoices):
    """
    Advisory status of an internal transfer.

    Pure metadata: it never affects balances.
    """

    RECEIVED = "received", "Received"
    IN_TRANSIT = "in_transit", "In Transit"
    IN_ACCOUNT = "in_account", "In Account"


class RecordType(models.TextChoices):
    """Kinds of records money can be settled against."""

    SALE = "sale", "Sale"
    EXPENSE = "expense", "Expense"


class BankAccount(UUIDPrimaryKeyMixin, OrganizationScopedMixin, BaseModel):
    """
    A bank account owned by an organization.

    current_balance always equals initial_balance plus the signed sum of
    the account's existing ledger entries. It is written only through
    AccountStore.apply_delta while the row is locked.

    Fields:
        id: UUID primary key (from UUIDPrimaryKeyMixin)
        organization_id: Owning organization (from OrganizationScopedMixin)
        name: Display name (e.g., "Operating account")
        bank_name: Name of the bank
        account_number: Account number or CLABE, free text
        currency: ISO 4217 currency code
        initial_balance: Balance when the account was opened (immutable)
        current_balance: Running balance
        is_active: Soft delete flag; inactive accounts reject ledger writes
        notes: Free-form notes
        created_by: Identifier of the user who opened the account

    Example:
        account = AccountStore.open_account(org_id, "Operating", initial_balance="100.00")
        account.computed_balance()  # Decimal("100.00")
    """

    name = models.CharField(
        max_length=255,
        help_text="Display name of this account",
    )
    bank_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Name of the bank holding this account",
    )
    account_number = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Account number or CLABE",
    )
    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code",
    )
    initial_balance = models.DecimalField(
        **MONEY,
        default=Decimal("0.00"),
        help_text="Balance when the account was opened",
    )
    current_balance = models.DecimalField(
        **MONEY,
        default=Decimal("0.00"),
        help_text="Running balance (initial balance plus signed entries)",
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether this account accepts ledger operations",
    )
    notes = models.TextField(blank=True, default="")
    created_by = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Identifier of the user who opened this account",
    )

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["organization_id", "is_active"], name="bk_account_org_active_idx"),
        ]

    def __str__(self) -> str:
        """Return string representation."""
        return f"{self.name} ({self.currency})"

    def computed_balance(self) -> Decimal:
        """
        Recompute the balance from the initial balance and existing entries.

        Returns:
            initial_balance + credits - debits

        Note:
            This performs an aggregate query. The stored current_balance is
            the value services rely on; this exists for verification.
        """
        money = models.DecimalField(**MONEY)
        result = self.entries.aggregate(
            credits=Coalesce(
                Sum(
                    Case(
                        When(direction=Direction.CREDIT, then="amount"),
                        default=Value(Decimal("0.00")),
                        output_field=money,
                    )
                ),
                Value(Decimal("0.00")),
                output_field=money,
            ),
            debits=Coalesce(
                Sum(
                    Case(
                        When(direction=Direction.DEBIT, then="amount"),
                        default=Value(Decimal("0.00")),
                        output_field=money,
                    )
                ),
                Value(Decimal("0.00")),
                output_field=money,
            ),
        )
        total = self.initial_balance + result["credits"] - result["debits"]
        return Decimal(total).quantize(Decimal("0.01"))


class ReceivableBase(UUIDPrimaryKeyMixin, OrganizationScopedMixin, BaseModel):
    """
    Fields shared by sales (receivables) and expenses (payables).

    amount_settled is the amount collected (sales) or paid (expenses).
    payment_status is derived from total and amount_settled on every
    change and is never set on its own.

    Fields:
        number: Optional human folio (invoice number)
        contact_id: Customer or supplier in the external contact directory
        date: Date of the sale/expense
        due_date: Optional date payment is expected
        description: Free text
        total: Amount owed (>= 0)
        amount_settled: Amount collected/paid so far
        payment_status: pending / partial / paid
        primary_entry: Last ledger entry attached (legacy single link)
        created_by: Identifier of the creating user
    """

    number = models.CharField(max_length=64, blank=True, default="")
    contact_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="UUID of the customer or supplier",
    )
    date = models.DateField(help_text="Date of the record")
    due_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Date payment is expected",
    )
    description = models.TextField(blank=True, default="")
    total = models.DecimalField(**MONEY, help_text="Total amount owed")
    amount_settled = models.DecimalField(
        **MONEY,
        default=Decimal("0.00"),
        help_text="Amount collected or paid so far",
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )
    primary_entry = models.ForeignKey(
        "bookkeeping.LedgerEntry",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recently attached ledger entry",
    )
    created_by = models.CharField(max_length=255, null=True, blank=True)

    record_type: str = ""

    class Meta:
        abstract = True
        ordering = ["-date", "-created_at"]

    def __str__(self) -> str:
        """Return string representation."""
        label = self.number or str(self.pk)[:8]
        return f"{self.get_record_type_display()} {label}: {self.total}"

    def get_record_type_display(self) -> str:
        return RecordType(self.record_type).label

    @property
    def outstanding(self) -> Decimal:
        """Amount still to be settled, never below zero."""
        return max(self.total - self.amount_settled, Decimal("0.00"))


class Sale(ReceivableBase):
    """A receivable: money a contact owes the organization."""

    record_type = RecordType.SALE

    class Meta(ReceivableBase.Meta):
        constraints = [
            models.CheckConstraint(
                condition=Q(total__gte=0),
                name="sale_total_non_negative",
            )
        ]
        indexes = [
            models.Index(fields=["organization_id", "payment_status"], name="bk_sale_org_status_idx"),
        ]


class Expense(ReceivableBase):
    """A payable: money the organization owes a contact."""

    record_type = RecordType.EXPENSE

    category = models.CharField(max_length=100, blank=True, default="")

    class Meta(ReceivableBase.Meta):
        constraints = [
            models.CheckConstraint(
                condition=Q(total__gte=0),
                name="expense_total_non_negative",
            )
        ]
        indexes = [
            models.Index(fields=["organization_id", "payment_status"], name="bk_expense_org_status_idx"),
        ]


class LedgerEntry(UUIDPrimaryKeyMixin, OrganizationScopedMixin, BaseModel):
    """
    One recorded movement of money into or out of a bank account.

    Amount, direction and account are immutable once recorded; an entry is
    corrected by deleting it (which reverses its balance effect) and
    recording a new one.

    Fields:
        account: Bank account the money moved through
        direction: credit (in) or debit (out)
        amount: Amount that hit the account (always positive)
        gross_amount: Gross proceeds credited to a linked sale (>= amount)
        date: Date of the movement
        contact_id, category, description, reference, payment_method, notes:
            Descriptive fields
        sale / expense: Optional link to exactly one receivable or payable
        is_internal_transfer: Leg of a transfer between own accounts
        transfer_pair_id: Correlation id shared by both transfer legs
        transfer_status: Advisory transfer status (metadata only)
        is_adjustment: Recorded by a manual balance adjustment
        balance_after: Account balance right after this entry (snapshot)
        created_by: Identifier of the user/service that recorded it

    Constraints:
        - amount must be positive
        - gross_amount, when present, must be >= amount
        - sale and expense cannot both be set
    """

    account = models.ForeignKey(
        BankAccount,
        on_delete=models.PROTECT,
        related_name="entries",
        help_text="Bank account the money moved through",
    )
    direction = models.CharField(
        max_length=10,
        choices=Direction.choices,
        help_text="credit (money in) or debit (money out)",
    )
    amount = models.DecimalField(**MONEY, help_text="Amount (always positive)")
    gross_amount = models.DecimalField(
        **MONEY,
        null=True,
        blank=True,
        help_text="Gross amount credited to a linked sale before commissions",
    )
    date = models.DateField(db_index=True)

    contact_id = models.UUIDField(null=True, blank=True, db_index=True)
    category = models.CharField(max_length=100, blank=True, default="")
    description = models.TextField(blank=True, default="")
    reference = models.CharField(max_length=255, blank=True, default="")
    payment_method = models.CharField(max_length=50, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    sale = models.ForeignKey(
        Sale,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="entries",
    )
    expense = models.ForeignKey(
        Expense,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="entries",
    )

    is_internal_transfer = models.BooleanField(default=False)
    transfer_pair_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Shared by both legs of an internal transfer",
    )
    transfer_status = models.CharField(
        max_length=20,
        choices=TransferStatus.choices,
        default=TransferStatus.IN_ACCOUNT,
    )
    is_adjustment = models.BooleanField(default=False)

    balance_after = models.DecimalField(
        **MONEY,
        help_text="Account balance immediately after this entry was applied",
    )
    created_by = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        ordering = ["-date", "-created_at"]
        verbose_name_plural = "ledger entries"
        indexes = [
            models.Index(fields=["organization_id", "date"], name="bk_entry_org_date_idx"),
            models.Index(fields=["account", "date"], name="bk_entry_account_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="ledger_entry_amount_positive",
            ),
            models.CheckConstraint(
                condition=Q(gross_amount__isnull=True) | Q(gross_amount__gte=F("amount")),
                name="ledger_entry_gross_covers_amount",
            ),
            models.CheckConstraint(
                condition=Q(sale__isnull=True) | Q(expense__isnull=True),
                name="ledger_entry_single_link",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation."""
        return f"{self.get_direction_display()} {self.amount} on {self.date}"

    @property
    def signed_amount(self) -> Decimal:
        """Balance delta of this entry (+ for credits, - for debits)."""
        return self.amount if self.direction == Direction.CREDIT else -self.amount

    @property
    def linked_record(self) -> Sale | Expense | None:
        return self.sale or self.expense

    @property
    def linked_record_type(self) -> str | None:
        if self.sale_id:
            return RecordType.SALE
        if self.expense_id:
            return RecordType.EXPENSE
        return None

    def contribution_to(self, record_type: str) -> Decimal:
        """
        Amount this entry adds to a linked record's settled total.

        Sales count gross proceeds (falling back to amount); expenses count
        the amount that left the bank.
        """
        if record_type == RecordType.SALE:
            return self.gross_amount or self.amount
        return self.amount


class PaymentScheduleInstallment(UUIDPrimaryKeyMixin, OrganizationScopedMixin, BaseModel):
    """
    One planned partial payment of a sale or expense.

    Installments are numbered from 1 per parent. amount_paid and status are
    tracked independently of the parent's settled amount.
    """

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="installments",
    )
    expense = models.ForeignKey(
        Expense,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="installments",
    )
    number = models.PositiveIntegerField(help_text="Position in the schedule (1-based)")
    due_date = models.DateField()
    amount = models.DecimalField(**MONEY, help_text="Scheduled amount")
    amount_paid = models.DecimalField(**MONEY, default=Decimal("0.00"))
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["number"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="installment_amount_positive",
            ),
            models.CheckConstraint(
                condition=(
                    Q(sale__isnull=False, expense__isnull=True)
                    | Q(sale__isnull=True, expense__isnull=False)
                ),
                name="installment_single_parent",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation."""
        return f"Installment {self.number}: {self.amount} due {self.due_date}"

    @property
    def parent_id(self):
        return self.sale_id or self.expense_id


class Payment(UUIDPrimaryKeyMixin, OrganizationScopedMixin, BaseModel):
    """
    A payment recorded against a sale or expense.

    When the money went through a bank account the payment owns a linked
    ledger entry; otherwise it settles the record directly and is counted
    by ReceivableLinkage.reconcile.
    """

    sale = models.ForeignKey(
        Sale,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )
    expense = models.ForeignKey(
        Expense,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )
    installment = models.ForeignKey(
        PaymentScheduleInstallment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )
    entry = models.OneToOneField(
        LedgerEntry,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payment",
        help_text="Ledger entry created when the payment went through a bank account",
    )
    amount = models.DecimalField(**MONEY)
    date = models.DateField()
    payment_method = models.CharField(max_length=50, blank=True, default="")
    reference = models.CharField(max_length=255, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    created_by = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        ordering = ["-date", "-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=(
                    Q(sale__isnull=False, expense__isnull=True)
                    | Q(sale__isnull=True, expense__isnull=False)
                ),
                name="payment_single_record",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation."""
        return f"Payment {self.amount} on {self.date}"

    @property
    def record_type(self) -> str:
        return RecordType.SALE if self.sale_id else RecordType.EXPENSE

    @property
    def record_id(self):
        return self.sale_id or self.expense_id
