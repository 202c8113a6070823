"""
Tests for PaymentScheduleTracker.
"""

import datetime
import uuid
from decimal import Decimal

import pytest

from bookkeeping.exceptions import InvalidAmount, InvalidRequest, NotFound, ScheduleMismatch
from bookkeeping.models import PaymentScheduleInstallment, PaymentStatus
from bookkeeping.services import PaymentScheduleTracker, ReceivableLinkage
from bookkeeping.types import InstallmentSpec


def three_installments(first="400.00", second="300.00", third="300.00"):
    return [
        InstallmentSpec(amount=first, due_date=datetime.date(2024, 4, 1)),
        InstallmentSpec(amount=second, due_date=datetime.date(2024, 5, 1)),
        InstallmentSpec(amount=third, due_date=datetime.date(2024, 6, 1), notes="Final"),
    ]


@pytest.fixture
def schedule(sale, org_id):
    return PaymentScheduleTracker.create_schedule("sale", sale.id, org_id, three_installments())


class TestCreateSchedule:
    """Tests for PaymentScheduleTracker.create_schedule()."""

    def test_numbers_installments_in_order(self, sale, org_id):
        created = PaymentScheduleTracker.create_schedule(
            "sale", sale.id, org_id, three_installments()
        )

        assert [i.number for i in created] == [1, 2, 3]
        assert [i.amount for i in created] == [
            Decimal("400.00"),
            Decimal("300.00"),
            Decimal("300.00"),
        ]
        assert created[2].notes == "Final"
        for installment in created:
            assert installment.sale_id == sale.id
            assert installment.status == PaymentStatus.PENDING
            assert installment.amount_paid == Decimal("0.00")

    def test_accepts_sum_within_tolerance(self, sale, org_id):
        created = PaymentScheduleTracker.create_schedule(
            "sale", sale.id, org_id, three_installments(third="299.99")
        )

        assert len(created) == 3

    @pytest.mark.parametrize("third", ["299.98", "300.02"])
    def test_rejects_sum_outside_tolerance(self, sale, org_id, third):
        with pytest.raises(ScheduleMismatch) as exc_info:
            PaymentScheduleTracker.create_schedule(
                "sale", sale.id, org_id, three_installments(third=third)
            )

        assert exc_info.value.outstanding == Decimal("1000.00")
        assert not PaymentScheduleInstallment.objects.exists()

    def test_tolerance_is_configurable(self, sale, org_id, settings):
        settings.BOOKKEEPING_SCHEDULE_TOLERANCE = Decimal("0.05")

        created = PaymentScheduleTracker.create_schedule(
            "sale", sale.id, org_id, three_installments(third="299.96")
        )

        assert len(created) == 3

    def test_replaces_existing_schedule(self, sale, org_id, schedule):
        replacement = PaymentScheduleTracker.create_schedule(
            "sale",
            sale.id,
            org_id,
            [InstallmentSpec(amount="1000.00", due_date=datetime.date(2024, 12, 31))],
        )

        remaining = PaymentScheduleInstallment.objects.filter(sale=sale)
        assert list(remaining) == replacement
        assert replacement[0].number == 1

    def test_failed_replacement_keeps_old_schedule(self, sale, org_id, schedule):
        with pytest.raises(ScheduleMismatch):
            PaymentScheduleTracker.create_schedule(
                "sale",
                sale.id,
                org_id,
                [InstallmentSpec(amount="10.00", due_date=datetime.date(2024, 12, 31))],
            )

        assert PaymentScheduleInstallment.objects.filter(sale=sale).count() == 3

    def test_matches_outstanding_not_total(self, sale, org_id):
        ReceivableLinkage.attach("sale", sale.id, org_id, Decimal("400.00"))

        created = PaymentScheduleTracker.create_schedule(
            "sale",
            sale.id,
            org_id,
            [
                {"amount": "300.00", "due_date": datetime.date(2024, 4, 1)},
                {"amount": "300.00", "due_date": datetime.date(2024, 5, 1)},
            ],
        )

        assert sum(i.amount for i in created) == Decimal("600.00")

    def test_malformed_dict_rejected(self, sale, org_id):
        with pytest.raises(InvalidRequest):
            PaymentScheduleTracker.create_schedule(
                "sale", sale.id, org_id, [{"amount": "1000.00", "when": "soon"}]
            )

    def test_non_positive_installment_rejected(self, sale, org_id):
        with pytest.raises(InvalidAmount):
            PaymentScheduleTracker.create_schedule(
                "sale",
                sale.id,
                org_id,
                [
                    {"amount": "1000.00", "due_date": datetime.date(2024, 4, 1)},
                    {"amount": "0", "due_date": datetime.date(2024, 5, 1)},
                ],
            )

    def test_foreign_record_not_found(self, foreign_sale, org_id):
        with pytest.raises(NotFound):
            PaymentScheduleTracker.create_schedule(
                "sale",
                foreign_sale.id,
                org_id,
                [InstallmentSpec(amount="300.00", due_date=datetime.date(2024, 4, 1))],
            )

    def test_expense_schedule(self, expense, org_id):
        created = PaymentScheduleTracker.create_schedule(
            "expense",
            expense.id,
            org_id,
            [InstallmentSpec(amount="500.00", due_date=datetime.date(2024, 4, 1))],
        )

        assert created[0].expense_id == expense.id
        assert created[0].sale_id is None


class TestInstallmentPayments:
    """Tests for apply_payment() and revert_payment()."""

    def test_apply_partial_then_full(self, org_id, schedule):
        first = schedule[0]

        partial = PaymentScheduleTracker.apply_payment(first.id, org_id, "150.00")
        assert partial.amount_paid == Decimal("150.00")
        assert partial.status == PaymentStatus.PARTIAL

        paid = PaymentScheduleTracker.apply_payment(first.id, org_id, "250.00")
        assert paid.amount_paid == Decimal("400.00")
        assert paid.status == PaymentStatus.PAID

    def test_revert_floors_at_zero(self, org_id, schedule):
        PaymentScheduleTracker.apply_payment(schedule[1].id, org_id, "100.00")

        reverted = PaymentScheduleTracker.revert_payment(schedule[1].id, org_id, "120.00")

        assert reverted.amount_paid == Decimal("0.00")
        assert reverted.status == PaymentStatus.PENDING

    def test_does_not_touch_the_record(self, sale, org_id, schedule):
        PaymentScheduleTracker.apply_payment(schedule[0].id, org_id, "400.00")

        sale.refresh_from_db()
        assert sale.amount_settled == Decimal("0.00")

    def test_record_settlement_leaves_installments_alone(self, sale, org_id, schedule):
        ReceivableLinkage.attach("sale", sale.id, org_id, Decimal("1000.00"))

        statuses = set(
            PaymentScheduleInstallment.objects.filter(sale=sale).values_list("status", flat=True)
        )
        assert statuses == {PaymentStatus.PENDING}

    def test_foreign_installment_not_found(self, other_org_id, schedule):
        with pytest.raises(NotFound):
            PaymentScheduleTracker.apply_payment(schedule[0].id, other_org_id, "10.00")


class TestScheduleQueries:
    """Tests for schedule_for() and get_installment()."""

    def test_schedule_for_orders_by_number(self, sale, org_id, schedule):
        installments = PaymentScheduleTracker.schedule_for("sale", sale.id, org_id)

        assert [i.number for i in installments] == [1, 2, 3]

    def test_schedule_for_foreign_record_not_found(self, sale, other_org_id, schedule):
        with pytest.raises(NotFound):
            PaymentScheduleTracker.schedule_for("sale", sale.id, other_org_id)

    def test_get_installment_checks_parent(self, sale, expense, org_id, schedule):
        found = PaymentScheduleTracker.get_installment(schedule[0].id, org_id, "sale", sale.id)
        assert found.id == schedule[0].id

        with pytest.raises(NotFound):
            PaymentScheduleTracker.get_installment(schedule[0].id, org_id, "expense", expense.id)

    def test_get_installment_missing(self, db, org_id):
        with pytest.raises(NotFound):
            PaymentScheduleTracker.get_installment(uuid.uuid4(), org_id)
