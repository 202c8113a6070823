"""
Payment service for settling sales and expenses.

A payment settles part of a sale or expense. When it went through a bank
account, the payment creates a linked ledger entry (a credit for sales, a
debit for expenses) and the ledger attaches it. Without a bank account the
record is settled directly. Either way, an optional installment of the
record's schedule is credited as well.

Usage:
    from bookkeeping.services import payments

    payment = payments.record_payment(
        org_id, "sale", sale.id, "250.00", date.today(),
        payment_method="transfer",
        bank_account_id=account.id,
        installment_id=installment.id,
    )

    payments.cancel_payment(payment.id, org_id)
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Any

from django.db.models import QuerySet

from core.services import BaseService

from ..exceptions import InvalidAmount, NotFound
from ..models import Direction, Payment, RecordType
from ..types import CreateEntryParams, lookup_id, to_amount
from .accounts import AccountStore
from .ledger import TransactionLedger
from .linkage import ReceivableLinkage
from .schedules import PaymentScheduleTracker, schedule_tolerance

logger = logging.getLogger(__name__)


class PaymentService(BaseService):
    """
    Service for recording and cancelling payments.

    Each call is one atomic unit covering the payment row, the bank
    entry and balance (if any), the record's settled total and the
    installment.
    """

    @classmethod
    def record_payment(
        cls,
        organization_id: uuid.UUID,
        record_type: str,
        record_id: uuid.UUID,
        amount: Any,
        date: datetime.date,
        payment_method: str = "",
        bank_account_id: uuid.UUID | None = None,
        installment_id: uuid.UUID | None = None,
        reference: str = "",
        notes: str = "",
        created_by: str | None = None,
    ) -> Payment:
        """
        Record a payment against a sale or expense.

        Args:
            organization_id: Caller's organization
            record_type: "sale" or "expense"
            record_id: UUID of the record being settled
            amount: Positive amount, at most the outstanding balance
            date: Date of the payment
            payment_method: Free-text method (cash, transfer, card...)
            bank_account_id: Account the money went through, if any
            installment_id: Installment of the record's schedule, if any

        Returns:
            The created Payment

        Raises:
            InvalidAmount: If amount is not positive or exceeds the
                outstanding balance by more than the tolerance
            InvalidAccount: If the bank account can't be used
            NotFound: If the record or installment is not in the organization
        """
        amount = to_amount(amount)
        model = ReceivableLinkage.model_for(record_type)

        with cls.atomic():
            if bank_account_id is not None:
                AccountStore.lock_accounts([bank_account_id], organization_id)

            record = ReceivableLinkage.get_record(
                record_type, record_id, organization_id, for_update=True
            )
            outstanding = record.outstanding
            if amount > outstanding + schedule_tolerance():
                raise InvalidAmount(
                    f"Payment of {amount} exceeds the outstanding balance of {outstanding}",
                    details={"amount": str(amount), "outstanding": str(outstanding)},
                )

            installment = None
            if installment_id is not None:
                installment = PaymentScheduleTracker.get_installment(
                    installment_id, organization_id, record_type, record.id
                )

            entry = None
            if bank_account_id is not None:
                entry = TransactionLedger.create_entry(
                    organization_id,
                    CreateEntryParams(
                        account_id=bank_account_id,
                        direction=(
                            Direction.CREDIT if record_type == RecordType.SALE else Direction.DEBIT
                        ),
                        amount=amount,
                        date=date,
                        contact_id=record.contact_id,
                        category=getattr(record, "category", ""),
                        description=f"Payment for {model.__name__.lower()} {record.number or record.id}",
                        reference=reference,
                        payment_method=payment_method,
                        created_by=created_by,
                        **{f"{record_type}_id": record.id},
                    ),
                )
            else:
                ReceivableLinkage.attach(record_type, record.id, organization_id, amount)

            if installment is not None:
                PaymentScheduleTracker.apply_payment(installment.id, organization_id, amount)

            payment = Payment.objects.create(
                organization_id=organization_id,
                installment=installment,
                entry=entry,
                amount=amount,
                date=date,
                payment_method=payment_method,
                reference=reference,
                notes=notes,
                created_by=created_by,
                **{record_type: record},
            )

        logger.info(
            f"Recorded payment {payment.id} of {amount} for {record_type} {record.id}"
            + (f" through entry {entry.id}" if entry is not None else "")
        )
        return payment

    @classmethod
    def cancel_payment(cls, payment_id: uuid.UUID, organization_id: uuid.UUID) -> None:
        """
        Undo everything record_payment did and remove the payment.

        Reverts the installment, deletes the bank entry (reversing the
        balance and detaching the record) or detaches the record directly.

        Raises:
            NotFound: If the payment is not in the organization
            InvalidAccount: If the payment's bank account was deactivated
        """
        payment_id = lookup_id(payment_id, "Payment")

        with cls.atomic():
            payment = (
                Payment.objects.for_organization(organization_id)
                .select_for_update()
                .filter(id=payment_id)
                .first()
            )
            if payment is None:
                raise NotFound.for_entity("Payment", payment_id)

            # Same order as record_payment: account, record, installment
            if payment.entry_id is not None:
                AccountStore.lock_accounts([payment.entry.account_id], organization_id)
            ReceivableLinkage.get_record(
                payment.record_type, payment.record_id, organization_id, for_update=True
            )

            if payment.installment_id is not None:
                PaymentScheduleTracker.revert_payment(
                    payment.installment_id, organization_id, payment.amount
                )

            entry_id = payment.entry_id
            payment.delete()

            if entry_id is not None:
                TransactionLedger.delete_entry(entry_id, organization_id)
            else:
                ReceivableLinkage.detach(
                    payment.record_type, payment.record_id, organization_id, payment.amount
                )

        logger.info(
            f"Cancelled payment {payment_id} of {payment.amount} for "
            f"{payment.record_type} {payment.record_id}"
        )

    @staticmethod
    def payments_for(
        record_type: str,
        record_id: uuid.UUID,
        organization_id: uuid.UUID,
    ) -> QuerySet[Payment]:
        """
        Payments recorded against a record, newest first.

        Raises:
            NotFound: If the record is not in the organization
        """
        record = ReceivableLinkage.get_record(record_type, record_id, organization_id)
        return Payment.objects.for_organization(organization_id).filter(**{record_type: record})


payments = PaymentService()
