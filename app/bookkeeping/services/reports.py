"""
Read-only summaries over entries, sales and expenses.

Nothing here writes or locks rows.
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from django.conf import settings
from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.services import BaseService

from ..models import MONEY, Direction, LedgerEntry, PaymentStatus, RecordType
from ..types import CENT, EntrySummary, OutstandingItem, OutstandingReport
from .linkage import ReceivableLinkage

OPEN_STATUSES = (PaymentStatus.PENDING, PaymentStatus.PARTIAL)


class ReportService(BaseService):
    """Service for aggregate views of the books."""

    @staticmethod
    def entry_summary(
        organization_id: uuid.UUID,
        account_id: uuid.UUID | None = None,
        start: datetime.date | None = None,
        end: datetime.date | None = None,
    ) -> EntrySummary:
        """
        Total credits, debits and net over an organization's entries.

        Args:
            account_id: Restrict to one bank account
            start / end: Inclusive date range
        """
        entries = LedgerEntry.objects.for_organization(organization_id)
        if account_id:
            entries = entries.filter(account_id=account_id)
        if start:
            entries = entries.filter(date__gte=start)
        if end:
            entries = entries.filter(date__lte=end)

        money = DecimalField(**MONEY)
        totals = entries.aggregate(
            credits=Coalesce(
                Sum("amount", filter=Q(direction=Direction.CREDIT)),
                Value(Decimal("0.00")),
                output_field=money,
            ),
            debits=Coalesce(
                Sum("amount", filter=Q(direction=Direction.DEBIT)),
                Value(Decimal("0.00")),
                output_field=money,
            ),
            count=Count("id"),
        )
        return EntrySummary(
            credits=Decimal(totals["credits"]).quantize(CENT),
            debits=Decimal(totals["debits"]).quantize(CENT),
            count=totals["count"],
        )

    @staticmethod
    def outstanding(
        organization_id: uuid.UUID,
        record_type: str | None = None,
        days: int | None = None,
        today: datetime.date | None = None,
    ) -> OutstandingReport:
        """
        Pending and partially settled records due soon, split by due date.

        Records are included when due within ``days`` of today or when they
        have no due date. Those due before today are overdue; the rest are
        upcoming. Each list is ordered by due date (undated last).

        Args:
            record_type: "sale", "expense" or None for both
            days: Look-ahead window (defaults to BOOKKEEPING_OUTSTANDING_WINDOW_DAYS)
            today: Reference date (defaults to the current local date)
        """
        today = today or timezone.localdate()
        if days is None:
            days = getattr(settings, "BOOKKEEPING_OUTSTANDING_WINDOW_DAYS", 30)
        horizon = today + datetime.timedelta(days=days)

        types = [record_type] if record_type else [RecordType.SALE, RecordType.EXPENSE]
        report = OutstandingReport(as_of=today)

        for kind in types:
            model = ReceivableLinkage.model_for(kind)
            open_records = (
                model.objects.for_organization(organization_id)
                .filter(payment_status__in=OPEN_STATUSES)
                .filter(Q(due_date__lte=horizon) | Q(due_date__isnull=True))
            )
            for record in open_records:
                item = OutstandingItem(
                    record_type=kind,
                    record=record,
                    outstanding=record.outstanding,
                )
                if record.due_date is not None and record.due_date < today:
                    report.overdue.append(item)
                else:
                    report.upcoming.append(item)

        def by_due_date(item: OutstandingItem) -> tuple[bool, datetime.date]:
            due = item.record.due_date
            return (due is None, due or datetime.date.max)

        report.overdue.sort(key=by_due_date)
        report.upcoming.sort(key=by_due_date)
        return report


reports = ReportService()
