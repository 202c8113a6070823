"""
Record service for creating and deleting sales and expenses.

Records start pending with nothing settled. Their settled amount changes
only through ReceivableLinkage; this service never writes it.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Any

from core.services import BaseService

from ..exceptions import InvalidAmount, RecordHasPayments
from ..models import Expense, LedgerEntry, Payment, PaymentScheduleInstallment, Sale
from ..types import ZERO, to_decimal
from .linkage import ReceivableLinkage

logger = logging.getLogger(__name__)


class RecordService(BaseService):
    """Service for the lifecycle of sales and expenses."""

    @classmethod
    def create_record(
        cls,
        organization_id: uuid.UUID,
        record_type: str,
        total: Any,
        date: datetime.date,
        contact_id: uuid.UUID | None = None,
        due_date: datetime.date | None = None,
        number: str = "",
        description: str = "",
        category: str = "",
        created_by: str | None = None,
    ) -> Sale | Expense:
        """
        Create a pending sale or expense.

        Args:
            record_type: "sale" or "expense"
            total: Amount owed (>= 0)
            category: Only stored on expenses

        Raises:
            InvalidRequest: If record_type is unknown
            InvalidAmount: If total is negative or malformed
        """
        model = ReceivableLinkage.model_for(record_type)
        total = to_decimal(total, "total")
        if total < ZERO:
            raise InvalidAmount(
                "total cannot be negative",
                details={"total": str(total)},
            )

        fields: dict[str, Any] = {}
        if model is Expense:
            fields["category"] = category

        record = model.objects.create(
            organization_id=organization_id,
            contact_id=contact_id,
            date=date,
            due_date=due_date,
            number=number,
            description=description,
            total=total,
            created_by=created_by,
            **fields,
        )
        logger.info(f"Created {record_type} {record.id} for {total}")
        return record

    @classmethod
    def delete_record(
        cls,
        record_type: str,
        record_id: uuid.UUID,
        organization_id: uuid.UUID,
    ) -> None:
        """
        Delete a sale or expense that has nothing settled against it.

        Ledger entries still pointing at the record are unlinked (they keep
        their balance effect) and its installments are removed.

        Raises:
            NotFound: If the record is not in the organization
            RecordHasPayments: If anything was collected/paid or payments exist
        """
        with cls.atomic():
            record = ReceivableLinkage.get_record(
                record_type, record_id, organization_id, for_update=True
            )
            parent = {record_type: record}
            if record.amount_settled > ZERO or Payment.objects.filter(**parent).exists():
                raise RecordHasPayments(
                    f"{record.get_record_type_display()} {record.id} has payments; "
                    f"cancel them before deleting",
                    details={
                        "record_id": str(record.id),
                        "amount_settled": str(record.amount_settled),
                    },
                )

            unlinked = LedgerEntry.objects.filter(**parent).update(**{record_type: None})
            PaymentScheduleInstallment.objects.filter(**parent).delete()
            deleted_id = record.id
            record.delete()

        logger.info(
            f"Deleted {record_type} {deleted_id} (unlinked {unlinked} entries)"
        )


records = RecordService()
