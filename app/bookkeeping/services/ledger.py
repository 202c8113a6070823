"""
Transaction ledger service.

Records, edits and reverses ledger entries. Every write keeps three things
consistent inside one transaction: the entry row, its account's balance,
and the settled total of the sale/expense it is linked to.

Lock order inside every operation: bank accounts (ascending id), then the
entry, then the linked sale/expense.

Usage:
    from bookkeeping.services import ledger
    from bookkeeping.types import CreateEntryParams

    entry = ledger.create_entry(org_id, CreateEntryParams(
        account_id=account.id,
        direction="credit",
        amount="50.00",
        date=date.today(),
    ))
    entry.balance_after  # Decimal("150.00")

    ledger.update_entry(entry.id, org_id, sale_id=sale.id)
    ledger.delete_entry(entry.id, org_id)
"""

from __future__ import annotations

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Any

from django.db.models import Q, QuerySet
from django.utils import timezone

from core.services import BaseService

from ..exceptions import InvalidRequest, NotFound
from ..models import Direction, Expense, LedgerEntry, RecordType, Sale
from ..types import ZERO, CreateEntryParams, lookup_id, signed_delta, to_decimal
from .accounts import AccountStore
from .linkage import ReceivableLinkage

logger = logging.getLogger(__name__)

# Fields update_entry may change without touching balances
DESCRIPTIVE_FIELDS = frozenset(
    {
        "date",
        "contact_id",
        "category",
        "description",
        "reference",
        "payment_method",
        "notes",
    }
)
LINK_FIELDS = frozenset({"sale_id", "expense_id"})
IMMUTABLE_FIELDS = frozenset(
    {"account_id", "direction", "amount", "gross_amount", "organization_id"}
)


class TransactionLedger(BaseService):
    """
    Service for ledger entries.

    All ledger writes go through this service so balances and receivable
    links stay in step with the entries. Each public mutation is one
    atomic unit: an error at any step rolls back every write before it.
    """

    # =========================================================================
    # Create
    # =========================================================================

    @classmethod
    def create_entry(cls, organization_id: uuid.UUID, params: CreateEntryParams) -> LedgerEntry:
        """
        Record a deposit or withdrawal and apply it to the account balance.

        If the entry links a sale or expense, the record's settled total
        grows by the entry's contribution (gross amount for sales).

        Args:
            organization_id: Caller's organization
            params: Validated entry parameters

        Returns:
            The created LedgerEntry with balance_after set

        Raises:
            InvalidAccount: If the account is absent, foreign or inactive
            NotFound: If the linked sale/expense is not in the organization
        """
        with cls.atomic():
            AccountStore.lock_accounts([params.account_id], organization_id)

            record_type, record = cls._resolve_link(
                organization_id, params.sale_id, params.expense_id
            )

            entry = cls.insert_movement(
                organization_id,
                account_id=params.account_id,
                direction=params.direction,
                amount=params.amount,
                date=params.date,
                gross_amount=params.gross_amount,
                sale=record if record_type == RecordType.SALE else None,
                expense=record if record_type == RecordType.EXPENSE else None,
                contact_id=params.contact_id,
                category=params.category,
                description=params.description,
                reference=params.reference,
                payment_method=params.payment_method,
                notes=params.notes,
                created_by=params.created_by,
            )

            if record is not None:
                ReceivableLinkage.attach(
                    record_type,
                    record.id,
                    organization_id,
                    entry.contribution_to(record_type),
                    entry=entry,
                )

        logger.info(
            f"Created {entry.direction} entry {entry.id} of {entry.amount} on account "
            f"{entry.account_id}, balance {entry.balance_after}"
        )
        return entry

    @classmethod
    def insert_movement(
        cls,
        organization_id: uuid.UUID,
        account_id: uuid.UUID,
        direction: str,
        amount: Decimal,
        date: datetime.date,
        **fields: Any,
    ) -> LedgerEntry:
        """
        Apply the balance delta and insert the row with its balance snapshot.

        Caller must hold the account lock inside a transaction.
        """
        balance_after = AccountStore.apply_delta(
            account_id, organization_id, signed_delta(direction, amount)
        )
        return LedgerEntry.objects.create(
            organization_id=organization_id,
            account_id=account_id,
            direction=direction,
            amount=amount,
            date=date,
            balance_after=balance_after,
            **fields,
        )

    @staticmethod
    def _resolve_link(
        organization_id: uuid.UUID,
        sale_id: uuid.UUID | None,
        expense_id: uuid.UUID | None,
    ) -> tuple[str | None, Sale | Expense | None]:
        """Look up the sale or expense an entry should link to."""
        if sale_id and expense_id:
            raise InvalidRequest(
                "An entry can be linked to a sale or an expense, not both",
                details={"sale_id": str(sale_id), "expense_id": str(expense_id)},
            )
        if sale_id:
            return RecordType.SALE, ReceivableLinkage.get_record(
                RecordType.SALE, sale_id, organization_id, for_update=True
            )
        if expense_id:
            return RecordType.EXPENSE, ReceivableLinkage.get_record(
                RecordType.EXPENSE, expense_id, organization_id, for_update=True
            )
        return None, None

    # =========================================================================
    # Update
    # =========================================================================

    @classmethod
    def update_entry(
        cls,
        entry_id: uuid.UUID,
        organization_id: uuid.UUID,
        **changes: Any,
    ) -> LedgerEntry:
        """
        Change descriptive fields and/or the sale/expense link of an entry.

        Amount, direction and account are immutable. Passing sale_id or
        expense_id replaces the link as a whole (the other side becomes
        None); pass both as None to unlink. A moved link is detached from
        the old record before it is attached to the new one.

        Raises:
            NotFound: If the entry or the new record is not in the organization
            InvalidRequest: For immutable/unknown fields, double links, or
                moving the link of a transfer leg or of a payment's entry
        """
        cls._check_update_fields(changes)

        with cls.atomic():
            entry = cls._get_entry(entry_id, organization_id, for_update=True)
            update_fields = []

            for name in DESCRIPTIVE_FIELDS & changes.keys():
                setattr(entry, name, changes[name])
                update_fields.append(name)

            if LINK_FIELDS & changes.keys():
                update_fields += cls._move_link(
                    entry,
                    organization_id,
                    new_sale_id=changes.get("sale_id"),
                    new_expense_id=changes.get("expense_id"),
                )

            if update_fields:
                entry.save(update_fields=[*update_fields, "updated_at"])

        logger.info(f"Updated entry {entry.id}: {', '.join(sorted(changes)) or 'no changes'}")
        return entry

    @staticmethod
    def _check_update_fields(changes: dict[str, Any]) -> None:
        immutable = IMMUTABLE_FIELDS & changes.keys()
        if immutable:
            raise InvalidRequest(
                "Amount, direction and account of an entry cannot change; "
                "delete the entry and record a new one",
                details={"fields": sorted(immutable)},
            )
        unknown = changes.keys() - DESCRIPTIVE_FIELDS - LINK_FIELDS
        if unknown:
            raise InvalidRequest(
                f"Unknown entry fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)},
            )
        if "date" in changes and not isinstance(changes["date"], datetime.date):
            raise InvalidRequest("date must be a date", details={"date": repr(changes["date"])})

    @classmethod
    def _move_link(
        cls,
        entry: LedgerEntry,
        organization_id: uuid.UUID,
        new_sale_id: uuid.UUID | None,
        new_expense_id: uuid.UUID | None,
    ) -> list[str]:
        """
        Detach from the old record, attach to the new one, then relink.

        Returns:
            Names of the entry fields that changed
        """
        new_sale_id = lookup_id(new_sale_id, "Sale") if new_sale_id else None
        new_expense_id = lookup_id(new_expense_id, "Expense") if new_expense_id else None

        if new_sale_id == entry.sale_id and new_expense_id == entry.expense_id:
            return []
        if cls._backs_payment(entry):
            raise InvalidRequest(
                f"Entry {entry.id} belongs to a recorded payment; cancel the payment instead",
                details={"entry_id": str(entry.id)},
            )
        if (new_sale_id or new_expense_id) and entry.is_internal_transfer:
            raise InvalidRequest(
                "Transfer entries cannot be linked to a sale or expense",
                details={"entry_id": str(entry.id)},
            )

        # Resolve the target first so an unknown record fails before any write
        new_type, new_record = cls._resolve_link(organization_id, new_sale_id, new_expense_id)

        old_type = entry.linked_record_type
        if old_type is not None:
            old_id = entry.sale_id or entry.expense_id
            ReceivableLinkage.detach(
                old_type,
                old_id,
                organization_id,
                entry.contribution_to(old_type),
                entry=entry,
            )

        if new_record is not None:
            ReceivableLinkage.attach(
                new_type,
                new_record.id,
                organization_id,
                entry.contribution_to(new_type),
                entry=entry,
            )

        entry.sale = new_record if new_type == RecordType.SALE else None
        entry.expense = new_record if new_type == RecordType.EXPENSE else None
        return ["sale", "expense"]

    # =========================================================================
    # Delete
    # =========================================================================

    @classmethod
    def delete_entry(cls, entry_id: uuid.UUID, organization_id: uuid.UUID) -> None:
        """
        Reverse an entry's balance effect, detach it, and remove it.

        Deleting a leg of an internal transfer reverses the whole pair.

        Raises:
            NotFound: If the entry is not in the organization
            InvalidAccount: If the entry's account was deactivated
            InvalidRequest: If the entry backs a recorded payment
        """
        entry = cls._get_entry(entry_id, organization_id)
        if entry.is_internal_transfer:
            from .transfers import TransferCoordinator

            TransferCoordinator.reverse_transfer(entry.id, organization_id)
            return

        with cls.atomic():
            AccountStore.lock_accounts([entry.account_id], organization_id)
            entry = cls._get_entry(entry.id, organization_id, for_update=True)

            if cls._backs_payment(entry):
                raise InvalidRequest(
                    f"Entry {entry.id} belongs to a recorded payment; cancel the payment instead",
                    details={"entry_id": str(entry.id)},
                )

            balance = AccountStore.apply_delta(
                entry.account_id, organization_id, -entry.signed_amount
            )

            record_type = entry.linked_record_type
            if record_type is not None:
                ReceivableLinkage.detach(
                    record_type,
                    entry.sale_id or entry.expense_id,
                    organization_id,
                    entry.contribution_to(record_type),
                    entry=entry,
                )

            entry.delete()

        logger.info(
            f"Deleted entry {entry_id} of {entry.amount} on account {entry.account_id}, "
            f"balance {balance}"
        )

    @staticmethod
    def _backs_payment(entry: LedgerEntry) -> bool:
        return LedgerEntry.objects.filter(id=entry.id, payment__isnull=False).exists()

    # =========================================================================
    # Adjustments and conversions
    # =========================================================================

    @classmethod
    def adjust_balance(
        cls,
        account_id: uuid.UUID,
        organization_id: uuid.UUID,
        new_balance: Any,
        reason: str = "",
        created_by: str | None = None,
    ) -> LedgerEntry | None:
        """
        Bring an account to a stated balance with one adjustment entry.

        A positive difference is recorded as a credit, a negative one as a
        debit. No entry is recorded when the balance already matches.

        Raises:
            InvalidAmount: If new_balance is not a two-place number
            InvalidAccount: If the account is absent, foreign or inactive
        """
        target = to_decimal(new_balance, "new_balance")

        with cls.atomic():
            locked = AccountStore.lock_accounts([account_id], organization_id)
            account = next(iter(locked.values()))
            difference = target - account.current_balance
            if difference == ZERO:
                return None

            direction = Direction.CREDIT if difference > ZERO else Direction.DEBIT
            entry = cls.insert_movement(
                organization_id,
                account_id=account.id,
                direction=direction,
                amount=abs(difference),
                date=timezone.localdate(),
                category="adjustment",
                description=reason or "Balance adjustment",
                is_adjustment=True,
                created_by=created_by,
            )

        logger.info(
            f"Adjusted account {account.id} by {difference} to {entry.balance_after} "
            f"(entry {entry.id})"
        )
        return entry

    @classmethod
    def convert_entry(
        cls,
        entry_id: uuid.UUID,
        organization_id: uuid.UUID,
        convert_to: str,
        created_by: str | None = None,
    ) -> Sale | Expense:
        """
        Turn an unlinked entry into a paid sale (credits) or expense (debits).

        The new record's total is the entry's contribution, and the entry
        is attached to it, so the record ends up paid.

        Raises:
            NotFound: If the entry is not in the organization
            InvalidRequest: If the entry is already linked, is a transfer
                leg, or its direction doesn't match convert_to
        """
        from .records import RecordService

        model = ReceivableLinkage.model_for(convert_to)
        expected = Direction.CREDIT if convert_to == RecordType.SALE else Direction.DEBIT

        with cls.atomic():
            entry = cls._get_entry(entry_id, organization_id, for_update=True)
            if entry.linked_record_type is not None:
                raise InvalidRequest(
                    f"Entry {entry.id} is already linked",
                    details={"entry_id": str(entry.id)},
                )
            if entry.is_internal_transfer:
                raise InvalidRequest(
                    "Transfer entries cannot be converted",
                    details={"entry_id": str(entry.id)},
                )
            if entry.direction != expected:
                raise InvalidRequest(
                    f"Only {expected} entries can become a {convert_to}",
                    details={"entry_id": str(entry.id), "direction": entry.direction},
                )

            extra = {"category": entry.category} if model is Expense else {}
            record = RecordService.create_record(
                organization_id,
                convert_to,
                total=entry.contribution_to(convert_to),
                date=entry.date,
                contact_id=entry.contact_id,
                description=entry.description,
                created_by=created_by,
                **extra,
            )
            link = {"sale_id": record.id} if convert_to == RecordType.SALE else {"expense_id": record.id}
            cls.update_entry(entry.id, organization_id, **link)
            record.refresh_from_db()

        logger.info(f"Converted entry {entry.id} into {convert_to} {record.id}")
        return record

    # =========================================================================
    # Queries
    # =========================================================================

    @staticmethod
    def _get_entry(
        entry_id: uuid.UUID,
        organization_id: uuid.UUID,
        for_update: bool = False,
    ) -> LedgerEntry:
        entry_id = lookup_id(entry_id, "LedgerEntry")
        queryset = LedgerEntry.objects.for_organization(organization_id).filter(id=entry_id)
        if for_update:
            queryset = queryset.select_for_update()
        entry = queryset.first()
        if entry is None:
            raise NotFound.for_entity("LedgerEntry", entry_id)
        return entry

    @classmethod
    def get_entry(cls, entry_id: uuid.UUID, organization_id: uuid.UUID) -> LedgerEntry:
        """
        Fetch one entry of the organization.

        Raises:
            NotFound: If the entry is not in the organization
        """
        return cls._get_entry(entry_id, organization_id)

    @staticmethod
    def list_entries(
        organization_id: uuid.UUID,
        account_id: uuid.UUID | None = None,
        direction: str | None = None,
        category: str | None = None,
        start: datetime.date | None = None,
        end: datetime.date | None = None,
        search: str | None = None,
        linked: bool | None = None,
    ) -> QuerySet[LedgerEntry]:
        """
        Entries of an organization, newest first, with optional filters.

        Args:
            account_id: Only entries of this bank account
            direction: "credit" or "debit"
            category: Exact category
            start / end: Inclusive date range
            search: Case-insensitive match on description, reference or notes
            linked: True for entries linked to a sale/expense, False for unlinked
        """
        entries = LedgerEntry.objects.for_organization(organization_id).select_related(
            "account"
        )
        if account_id:
            entries = entries.filter(account_id=account_id)
        if direction:
            entries = entries.filter(direction=direction)
        if category:
            entries = entries.filter(category=category)
        if start:
            entries = entries.filter(date__gte=start)
        if end:
            entries = entries.filter(date__lte=end)
        if search:
            entries = entries.filter(
                Q(description__icontains=search)
                | Q(reference__icontains=search)
                | Q(notes__icontains=search)
            )
        if linked is True:
            entries = entries.filter(Q(sale__isnull=False) | Q(expense__isnull=False))
        elif linked is False:
            entries = entries.filter(sale__isnull=True, expense__isnull=True)
        return entries.order_by("-date", "-created_at")


ledger = TransactionLedger()
