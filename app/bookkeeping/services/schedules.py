"""
Payment schedule tracker.

Splits the outstanding balance of a sale or expense into numbered
installments and tracks how much of each installment has been paid.
Installment status uses the same derivation as records, but is tracked
separately: a payment recorded against the record without an installment
leaves every installment untouched.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from django.conf import settings
from django.db.models import QuerySet

from core.services import BaseService

from ..exceptions import NotFound, ScheduleMismatch
from ..models import PaymentScheduleInstallment, RecordType
from ..types import ZERO, InstallmentSpec, lookup_id, to_amount
from .linkage import ReceivableLinkage, derive_status

logger = logging.getLogger(__name__)


def schedule_tolerance() -> Decimal:
    """Largest accepted gap between installments and outstanding balance."""
    return Decimal(str(getattr(settings, "BOOKKEEPING_SCHEDULE_TOLERANCE", "0.01")))


class PaymentScheduleTracker(BaseService):
    """Service for payment schedules and installment settlement."""

    @classmethod
    def create_schedule(
        cls,
        record_type: str,
        record_id: uuid.UUID,
        organization_id: uuid.UUID,
        installments: Iterable[InstallmentSpec | dict[str, Any]],
    ) -> list[PaymentScheduleInstallment]:
        """
        Replace a record's schedule with the given installments.

        The installments must add up to the record's outstanding balance
        within the configured tolerance. The existing schedule is deleted
        and the new one inserted, numbered from 1 in the given order.

        Raises:
            InvalidAmount: If an installment amount is not positive
            NotFound: If the record is not in the organization
            ScheduleMismatch: If the sum differs from the outstanding balance
        """
        specs = [InstallmentSpec.coerce(item) for item in installments]
        scheduled = sum((spec.amount for spec in specs), ZERO)

        with cls.atomic():
            record = ReceivableLinkage.get_record(
                record_type, record_id, organization_id, for_update=True
            )
            outstanding = record.outstanding
            if abs(scheduled - outstanding) > schedule_tolerance():
                raise ScheduleMismatch(outstanding=outstanding, scheduled=scheduled)

            parent = {record_type: record}
            PaymentScheduleInstallment.objects.filter(**parent).delete()
            created = [
                PaymentScheduleInstallment.objects.create(
                    organization_id=organization_id,
                    number=number,
                    due_date=spec.due_date,
                    amount=spec.amount,
                    notes=spec.notes,
                    **parent,
                )
                for number, spec in enumerate(specs, start=1)
            ]

        logger.info(
            f"Replaced schedule of {record_type} {record.id} with {len(created)} "
            f"installments totalling {scheduled}"
        )
        return created

    @classmethod
    def apply_payment(
        cls,
        installment_id: uuid.UUID,
        organization_id: uuid.UUID,
        amount: Any,
    ) -> PaymentScheduleInstallment:
        """
        Add a payment to an installment and re-derive its status.

        Raises:
            InvalidAmount: If amount is not positive
            NotFound: If the installment is not in the organization
        """
        amount = to_amount(amount)
        with cls.atomic():
            installment = cls._get_installment(installment_id, organization_id)
            installment.amount_paid = installment.amount_paid + amount
            installment.status = derive_status(installment.amount, installment.amount_paid)
            installment.save(update_fields=["amount_paid", "status", "updated_at"])

        logger.info(
            f"Applied {amount} to installment {installment.id}: "
            f"paid {installment.amount_paid}, status {installment.status}"
        )
        return installment

    @classmethod
    def revert_payment(
        cls,
        installment_id: uuid.UUID,
        organization_id: uuid.UUID,
        amount: Any,
    ) -> PaymentScheduleInstallment:
        """
        Remove a payment from an installment, floored at zero.

        Raises:
            InvalidAmount: If amount is not positive
            NotFound: If the installment is not in the organization
        """
        amount = to_amount(amount)
        with cls.atomic():
            installment = cls._get_installment(installment_id, organization_id)
            installment.amount_paid = max(installment.amount_paid - amount, ZERO)
            installment.status = derive_status(installment.amount, installment.amount_paid)
            installment.save(update_fields=["amount_paid", "status", "updated_at"])

        logger.info(
            f"Reverted {amount} from installment {installment.id}: "
            f"paid {installment.amount_paid}, status {installment.status}"
        )
        return installment

    @staticmethod
    def schedule_for(
        record_type: str,
        record_id: uuid.UUID,
        organization_id: uuid.UUID,
    ) -> QuerySet[PaymentScheduleInstallment]:
        """
        Installments of a record in schedule order.

        Raises:
            NotFound: If the record is not in the organization
        """
        record = ReceivableLinkage.get_record(record_type, record_id, organization_id)
        return PaymentScheduleInstallment.objects.for_organization(organization_id).filter(
            **{record_type: record}
        ).order_by("number")

    @staticmethod
    def get_installment(
        installment_id: uuid.UUID,
        organization_id: uuid.UUID,
        record_type: str | None = None,
        record_id: uuid.UUID | None = None,
    ) -> PaymentScheduleInstallment:
        """
        Fetch an installment, optionally requiring it to belong to a record.

        Raises:
            NotFound: If the installment is not in the organization or
                belongs to a different record
        """
        installment_id = lookup_id(installment_id, "PaymentScheduleInstallment")
        queryset = PaymentScheduleInstallment.objects.for_organization(organization_id).filter(
            id=installment_id
        )
        if record_type is not None:
            field = "sale_id" if record_type == RecordType.SALE else "expense_id"
            queryset = queryset.filter(**{field: record_id})
        installment = queryset.first()
        if installment is None:
            raise NotFound.for_entity("PaymentScheduleInstallment", installment_id)
        return installment

    @staticmethod
    def _get_installment(
        installment_id: uuid.UUID,
        organization_id: uuid.UUID,
    ) -> PaymentScheduleInstallment:
        installment_id = lookup_id(installment_id, "PaymentScheduleInstallment")
        installment = (
            PaymentScheduleInstallment.objects.for_organization(organization_id)
            .select_for_update()
            .filter(id=installment_id)
            .first()
        )
        if installment is None:
            raise NotFound.for_entity("PaymentScheduleInstallment", installment_id)
        return installment


schedules = PaymentScheduleTracker()
