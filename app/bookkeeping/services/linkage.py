"""
Receivable/payable linkage.

Keeps a sale's or expense's settled amount and payment status in step with
the ledger entries and payments that reference it.

attach/detach are incremental and not idempotent: attaching the same
entry twice counts it twice. The ledger avoids this by detaching from the
old record before attaching to the new one whenever a link changes.
reconcile recomputes the settled amount from scratch.

Usage:
    from bookkeeping.services import linkage

    sale = linkage.attach("sale", sale_id, org_id, Decimal("200.00"), entry=entry)
    sale.payment_status  # "partial"

    linkage.detach("sale", sale_id, org_id, Decimal("200.00"), entry=entry)
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from django.db.models import Sum

from core.services import BaseService

from ..exceptions import InvalidRequest, NotFound
from ..models import Expense, LedgerEntry, Payment, PaymentStatus, RecordType, Sale
from ..types import ZERO, lookup_id

logger = logging.getLogger(__name__)

RECORD_MODELS: dict[str, type[Sale] | type[Expense]] = {
    RecordType.SALE: Sale,
    RecordType.EXPENSE: Expense,
}


def derive_status(total: Decimal, settled: Decimal) -> str:
    """
    Payment status for a settled amount against a total.

    Nothing settled is pending (even for a zero total); reaching or
    passing the total is paid; anything in between is partial.
    """
    if settled <= ZERO:
        return PaymentStatus.PENDING
    if settled >= total:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


class ReceivableLinkage(BaseService):
    """
    Service that owns amount_settled and payment_status on sales/expenses.

    All methods lock the record row; they are expected to run inside the
    caller's transaction after any account locks were taken.
    """

    derive_status = staticmethod(derive_status)

    @staticmethod
    def model_for(record_type: str) -> type[Sale] | type[Expense]:
        """
        Model class for a record type.

        Raises:
            InvalidRequest: If record_type is not "sale" or "expense"
        """
        try:
            return RECORD_MODELS[record_type]
        except KeyError:
            raise InvalidRequest(
                f"Unknown record type {record_type!r}",
                details={"record_type": str(record_type)},
            )

    @classmethod
    def get_record(
        cls,
        record_type: str,
        record_id: uuid.UUID,
        organization_id: uuid.UUID,
        for_update: bool = False,
    ) -> Sale | Expense:
        """
        Fetch a sale or expense of the organization.

        Raises:
            InvalidRequest: If record_type is unknown
            NotFound: If the record is absent or belongs to another organization
        """
        model = cls.model_for(record_type)
        record_id = lookup_id(record_id, model.__name__)
        queryset = model.objects.for_organization(organization_id).filter(id=record_id)
        if for_update:
            queryset = queryset.select_for_update()
        record = queryset.first()
        if record is None:
            raise NotFound.for_entity(model.__name__, record_id)
        return record

    @classmethod
    def attach(
        cls,
        record_type: str,
        record_id: uuid.UUID,
        organization_id: uuid.UUID,
        amount: Decimal,
        entry: LedgerEntry | None = None,
    ) -> Sale | Expense:
        """
        Add an amount to a record's settled total and re-derive its status.

        When entry is given it becomes the record's primary entry.

        Raises:
            NotFound: If the record is not in the organization
        """
        with cls.atomic():
            record = cls.get_record(record_type, record_id, organization_id, for_update=True)
            record.amount_settled = record.amount_settled + amount
            record.payment_status = derive_status(record.total, record.amount_settled)
            update_fields = ["amount_settled", "payment_status", "updated_at"]
            if entry is not None:
                record.primary_entry = entry
                update_fields.append("primary_entry")
            record.save(update_fields=update_fields)

        logger.info(
            f"Attached {amount} to {record_type} {record.id}: "
            f"settled {record.amount_settled}, status {record.payment_status}"
        )
        return record

    @classmethod
    def detach(
        cls,
        record_type: str,
        record_id: uuid.UUID,
        organization_id: uuid.UUID,
        amount: Decimal,
        entry: LedgerEntry | None = None,
    ) -> Sale | Expense:
        """
        Remove an amount from a record's settled total, floored at zero.

        Clears the primary entry when it points at the detached entry.

        Raises:
            NotFound: If the record is not in the organization
        """
        with cls.atomic():
            record = cls.get_record(record_type, record_id, organization_id, for_update=True)
            record.amount_settled = max(record.amount_settled - amount, ZERO)
            record.payment_status = derive_status(record.total, record.amount_settled)
            update_fields = ["amount_settled", "payment_status", "updated_at"]
            if entry is not None and record.primary_entry_id == entry.id:
                record.primary_entry = None
                update_fields.append("primary_entry")
            record.save(update_fields=update_fields)

        logger.info(
            f"Detached {amount} from {record_type} {record.id}: "
            f"settled {record.amount_settled}, status {record.payment_status}"
        )
        return record

    @classmethod
    def settled_from_sources(cls, record: Sale | Expense) -> Decimal:
        """
        Settled amount implied by linked entries and bank-less payments.

        Sales count each entry's gross amount when present.
        """
        entries = record.entries.all()
        if record.record_type == RecordType.SALE:
            from_entries = sum(
                (entry.contribution_to(RecordType.SALE) for entry in entries),
                ZERO,
            )
        else:
            from_entries = entries.aggregate(total=Sum("amount"))["total"] or ZERO

        direct = (
            Payment.objects.filter(**{record.record_type: record}, entry__isnull=True)
            .aggregate(total=Sum("amount"))["total"]
            or ZERO
        )
        return Decimal(from_entries + direct).quantize(Decimal("0.01"))

    @classmethod
    def reconcile(
        cls,
        record_type: str,
        record_id: uuid.UUID,
        organization_id: uuid.UUID,
    ) -> Sale | Expense:
        """
        Recompute settled amount and status from their sources.

        This is the only path besides attach/detach that writes
        amount_settled; there is no direct override.

        Raises:
            NotFound: If the record is not in the organization
        """
        with cls.atomic():
            record = cls.get_record(record_type, record_id, organization_id, for_update=True)
            settled = cls.settled_from_sources(record)
            status = derive_status(record.total, settled)
            if settled != record.amount_settled or status != record.payment_status:
                logger.warning(
                    f"Reconciled {record_type} {record.id}: settled "
                    f"{record.amount_settled} -> {settled}"
                )
                record.amount_settled = settled
                record.payment_status = status
                record.save(update_fields=["amount_settled", "payment_status", "updated_at"])
        return record


linkage = ReceivableLinkage()
