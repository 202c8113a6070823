"""
End-to-end bookkeeping flows.

Each test drives several services the way a caller would and checks the
properties that must hold across them: balances always match their
entries, transfers are zero-sum, and a failure part-way through leaves
nothing behind.
"""

import datetime
from decimal import Decimal
from unittest.mock import patch

import pytest

from bookkeeping.exceptions import InsufficientFunds, InvalidAmount, InvalidRequest
from bookkeeping.models import LedgerEntry, PaymentStatus
from bookkeeping.services import (
    AccountStore,
    PaymentScheduleTracker,
    PaymentService,
    ReceivableLinkage,
    RecordService,
    ReportService,
    TransactionLedger,
    TransferCoordinator,
)
from bookkeeping.types import InstallmentSpec


class TestScenarios:
    """Walkthroughs of the core flows."""

    def test_simple_deposit(self, db, org_id, make_entry):
        account = AccountStore.open_account(org_id, "Deposits", initial_balance="100.00")

        entry = make_entry(account, "credit", "50.00")

        assert AccountStore.get_balance(account.id, org_id) == Decimal("150.00")
        assert entry.balance_after == Decimal("150.00")

    def test_transfer_and_reversal(self, checking, savings, org_id):
        result = TransferCoordinator.transfer(org_id, checking.id, savings.id, "75.00")

        assert AccountStore.get_balance(checking.id, org_id) == Decimal("125.00")
        assert AccountStore.get_balance(savings.id, org_id) == Decimal("75.00")

        TransferCoordinator.reverse_transfer(result.credit_entry_id, org_id)

        assert AccountStore.get_balance(checking.id, org_id) == Decimal("200.00")
        assert AccountStore.get_balance(savings.id, org_id) == Decimal("0.00")
        assert not LedgerEntry.objects.exists()

    def test_sale_linkage(self, checking, sale, org_id, make_entry):
        entry = make_entry(checking, "credit", "1000.00", sale_id=sale.id)

        sale.refresh_from_db()
        assert sale.amount_settled == Decimal("1000.00")
        assert sale.payment_status == PaymentStatus.PAID

        TransactionLedger.update_entry(entry.id, org_id, sale_id=None)

        sale.refresh_from_db()
        assert sale.amount_settled == Decimal("0.00")
        assert sale.payment_status == PaymentStatus.PENDING
        assert AccountStore.get_balance(checking.id, org_id) == Decimal("1200.00")

    def test_partial_then_full_expense(self, checking, expense, org_id, make_entry):
        make_entry(checking, "debit", "200.00", expense_id=expense.id)
        expense.refresh_from_db()
        assert expense.amount_settled == Decimal("200.00")
        assert expense.payment_status == PaymentStatus.PARTIAL

        make_entry(checking, "debit", "300.00", expense_id=expense.id)
        expense.refresh_from_db()
        assert expense.amount_settled == Decimal("500.00")
        assert expense.payment_status == PaymentStatus.PAID

    def test_scheduled_sale_collected_in_installments(self, checking, sale, org_id, today):
        first, second = PaymentScheduleTracker.create_schedule(
            "sale",
            sale.id,
            org_id,
            [
                InstallmentSpec(amount="600.00", due_date=datetime.date(2024, 4, 1)),
                InstallmentSpec(amount="400.00", due_date=datetime.date(2024, 5, 1)),
            ],
        )

        PaymentService.record_payment(
            org_id, "sale", sale.id, "600.00", today,
            bank_account_id=checking.id, installment_id=first.id,
        )
        PaymentService.record_payment(
            org_id, "sale", sale.id, "400.00", today,
            bank_account_id=checking.id, installment_id=second.id,
        )

        sale.refresh_from_db()
        schedule = list(PaymentScheduleTracker.schedule_for("sale", sale.id, org_id))
        assert sale.payment_status == PaymentStatus.PAID
        assert [i.status for i in schedule] == [PaymentStatus.PAID, PaymentStatus.PAID]
        assert AccountStore.get_balance(checking.id, org_id) == Decimal("1200.00")
        assert ReportService.outstanding(org_id, record_type="sale", today=today).upcoming == []


class TestInvariants:
    """Properties that hold across arbitrary sequences of operations."""

    def test_balance_conservation(self, checking, savings, sale, expense, org_id, make_entry):
        deposit = make_entry(checking, "credit", "80.00")
        rent = make_entry(checking, "debit", "120.00", expense_id=expense.id)
        collected = make_entry(checking, "credit", "300.00", gross_amount="310.00")
        TransactionLedger.update_entry(collected.id, org_id, sale_id=sale.id)
        TransactionLedger.update_entry(rent.id, org_id, description="March rent")
        TransferCoordinator.transfer(org_id, checking.id, savings.id, "150.00")
        TransactionLedger.delete_entry(deposit.id, org_id)
        TransactionLedger.adjust_balance(savings.id, org_id, "140.00", reason="Bank fee")

        for account in (checking, savings):
            check = AccountStore.verify_balance(account.id, org_id)
            assert check.is_consistent, check

        assert AccountStore.get_balance(checking.id, org_id) == Decimal("230.00")
        assert AccountStore.get_balance(savings.id, org_id) == Decimal("140.00")

        sale.refresh_from_db()
        assert sale.amount_settled == Decimal("310.00")
        assert ReceivableLinkage.reconcile("sale", sale.id, org_id).amount_settled == Decimal(
            "310.00"
        )

    @pytest.mark.parametrize("amount", ["0.01", "37.45", "200.00"])
    def test_transfer_is_zero_sum(self, checking, savings, org_id, amount):
        before = checking.current_balance + savings.current_balance

        TransferCoordinator.transfer(org_id, checking.id, savings.id, amount)

        after = AccountStore.get_balance(checking.id, org_id) + AccountStore.get_balance(
            savings.id, org_id
        )
        assert after == before
        assert AccountStore.get_balance(savings.id, org_id) == Decimal(amount)

    @pytest.mark.parametrize(
        "to_account,amount,error",
        [
            ("checking", "10.00", InvalidRequest),
            ("savings", "0", InvalidAmount),
            ("savings", "999.00", InsufficientFunds),
        ],
    )
    def test_rejected_transfer_leaves_no_trace(
        self, checking, savings, org_id, to_account, amount, error
    ):
        target = {"checking": checking, "savings": savings}[to_account]

        with pytest.raises(error):
            TransferCoordinator.transfer(org_id, checking.id, target.id, amount)

        assert AccountStore.get_balance(checking.id, org_id) == Decimal("200.00")
        assert AccountStore.get_balance(savings.id, org_id) == Decimal("0.00")
        assert not LedgerEntry.objects.exists()


class TestAtomicity:
    """A failure inside a multi-row operation rolls the whole operation back."""

    def test_failed_link_rolls_back_entry_and_balance(self, checking, sale, org_id, make_entry):
        with patch.object(ReceivableLinkage, "attach", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                make_entry(checking, "credit", "100.00", sale_id=sale.id)

        sale.refresh_from_db()
        assert AccountStore.get_balance(checking.id, org_id) == Decimal("200.00")
        assert sale.amount_settled == Decimal("0.00")
        assert not LedgerEntry.objects.exists()

    def test_failed_second_leg_rolls_back_transfer(self, checking, savings, org_id):
        original = TransactionLedger.insert_movement
        calls = []

        def fail_second_leg(*args, **kwargs):
            calls.append(kwargs.get("direction"))
            if len(calls) == 2:
                raise RuntimeError("credit leg failed")
            return original(*args, **kwargs)

        with patch.object(TransactionLedger, "insert_movement", side_effect=fail_second_leg):
            with pytest.raises(RuntimeError):
                TransferCoordinator.transfer(org_id, checking.id, savings.id, "75.00")

        assert len(calls) == 2
        assert AccountStore.get_balance(checking.id, org_id) == Decimal("200.00")
        assert AccountStore.get_balance(savings.id, org_id) == Decimal("0.00")
        assert not LedgerEntry.objects.exists()

    def test_failed_installment_rolls_back_payment(self, checking, sale, org_id, today):
        (installment,) = PaymentScheduleTracker.create_schedule(
            "sale",
            sale.id,
            org_id,
            [InstallmentSpec(amount="1000.00", due_date=datetime.date(2024, 4, 1))],
        )

        with patch.object(
            PaymentScheduleTracker, "apply_payment", side_effect=RuntimeError("boom")
        ):
            with pytest.raises(RuntimeError):
                PaymentService.record_payment(
                    org_id, "sale", sale.id, "250.00", today,
                    bank_account_id=checking.id, installment_id=installment.id,
                )

        sale.refresh_from_db()
        assert AccountStore.get_balance(checking.id, org_id) == Decimal("200.00")
        assert sale.amount_settled == Decimal("0.00")
        assert not LedgerEntry.objects.exists()
        assert not sale.payments.exists()
