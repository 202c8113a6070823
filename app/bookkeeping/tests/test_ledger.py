"""
Tests for TransactionLedger.

Every test checks the three things the ledger keeps together: the entry
row, the account balance, and the settled total of a linked record.
"""

import datetime
import uuid
from decimal import Decimal

import pytest
from freezegun import freeze_time

from bookkeeping.exceptions import InvalidAccount, InvalidRequest, NotFound
from bookkeeping.models import Direction, Expense, LedgerEntry, PaymentStatus, Sale
from bookkeeping.services import (
    AccountStore,
    PaymentService,
    RecordService,
    TransactionLedger,
    TransferCoordinator,
)
from bookkeeping.types import CreateEntryParams


class TestCreateEntry:
    """Tests for TransactionLedger.create_entry()."""

    def test_credit_increases_balance(self, checking, org_id, today):
        """Simple deposit: 200.00 + 50.00."""
        entry = TransactionLedger.create_entry(
            org_id,
            CreateEntryParams(
                account_id=checking.id,
                direction="credit",
                amount="50.00",
                date=today,
                description="Cash deposit",
            ),
        )

        checking.refresh_from_db()
        assert checking.current_balance == Decimal("250.00")
        assert entry.balance_after == Decimal("250.00")
        assert entry.direction == Direction.CREDIT
        assert entry.organization_id == org_id
        assert entry.description == "Cash deposit"

    def test_debit_decreases_balance(self, checking, org_id, make_entry):
        entry = make_entry(checking, "debit", "80.00")

        checking.refresh_from_db()
        assert checking.current_balance == Decimal("120.00")
        assert entry.balance_after == Decimal("120.00")

    def test_debit_may_overdraw(self, checking, make_entry):
        """Only transfers guard against insufficient funds."""
        entry = make_entry(checking, "debit", "300.00")

        assert entry.balance_after == Decimal("-100.00")

    def test_balance_after_is_a_running_snapshot(self, savings, make_entry):
        first = make_entry(savings, "credit", "10.00")
        second = make_entry(savings, "credit", "5.00")
        third = make_entry(savings, "debit", "12.50")

        assert [first.balance_after, second.balance_after, third.balance_after] == [
            Decimal("10.00"),
            Decimal("15.00"),
            Decimal("2.50"),
        ]

    def test_inactive_account_rejected(self, inactive_account, make_entry):
        with pytest.raises(InvalidAccount):
            make_entry(inactive_account, "credit", "10.00")

        assert not LedgerEntry.objects.exists()

    def test_foreign_account_rejected(self, foreign_account, make_entry):
        """Another tenant's account is an invalid reference, not a target."""
        with pytest.raises(InvalidAccount):
            make_entry(foreign_account, "credit", "10.00")

        foreign_account.refresh_from_db()
        assert foreign_account.current_balance == Decimal("500.00")
        assert not LedgerEntry.objects.exists()

    def test_links_sale_and_marks_it_paid(self, checking, sale, make_entry):
        entry = make_entry(checking, "credit", "1000.00", sale_id=sale.id)

        sale.refresh_from_db()
        assert entry.sale_id == sale.id
        assert sale.amount_settled == Decimal("1000.00")
        assert sale.payment_status == PaymentStatus.PAID
        assert sale.primary_entry_id == entry.id

    def test_sale_counts_gross_amount(self, checking, sale, make_entry):
        """Bank receives net of commission; the sale is settled by the gross."""
        entry = make_entry(
            checking, "credit", "970.00", gross_amount="1000.00", sale_id=sale.id
        )

        checking.refresh_from_db()
        sale.refresh_from_db()
        assert checking.current_balance == Decimal("1170.00")
        assert entry.amount == Decimal("970.00")
        assert sale.amount_settled == Decimal("1000.00")
        assert sale.payment_status == PaymentStatus.PAID

    def test_expense_counts_ledger_amount(self, checking, expense, make_entry):
        make_entry(checking, "debit", "200.00", gross_amount="250.00", expense_id=expense.id)

        expense.refresh_from_db()
        assert expense.amount_settled == Decimal("200.00")
        assert expense.payment_status == PaymentStatus.PARTIAL

    def test_foreign_sale_rolls_back(self, checking, foreign_sale, make_entry):
        with pytest.raises(NotFound):
            make_entry(checking, "credit", "100.00", sale_id=foreign_sale.id)

        checking.refresh_from_db()
        foreign_sale.refresh_from_db()
        assert checking.current_balance == Decimal("200.00")
        assert foreign_sale.amount_settled == Decimal("0.00")
        assert not LedgerEntry.objects.exists()

    def test_missing_expense_rolls_back(self, checking, make_entry):
        with pytest.raises(NotFound):
            make_entry(checking, "debit", "10.00", expense_id=uuid.uuid4())

        checking.refresh_from_db()
        assert checking.current_balance == Decimal("200.00")


class TestUpdateEntry:
    """Tests for TransactionLedger.update_entry()."""

    def test_updates_descriptive_fields_only(self, checking, org_id, make_entry):
        entry = make_entry(checking, "credit", "40.00")
        new_date = datetime.date(2024, 2, 29)

        updated = TransactionLedger.update_entry(
            entry.id,
            org_id,
            description="Client deposit",
            category="income",
            reference="DEP-1",
            date=new_date,
        )

        checking.refresh_from_db()
        entry.refresh_from_db()
        assert updated.description == "Client deposit"
        assert entry.category == "income"
        assert entry.reference == "DEP-1"
        assert entry.date == new_date
        assert entry.amount == Decimal("40.00")
        assert checking.current_balance == Decimal("240.00")

    @pytest.mark.parametrize(
        "field,value",
        [
            ("amount", Decimal("1.00")),
            ("direction", "debit"),
            ("account_id", uuid.uuid4()),
            ("gross_amount", Decimal("50.00")),
        ],
    )
    def test_financial_fields_are_immutable(self, checking, org_id, make_entry, field, value):
        entry = make_entry(checking, "credit", "40.00")

        with pytest.raises(InvalidRequest):
            TransactionLedger.update_entry(entry.id, org_id, **{field: value})

        entry.refresh_from_db()
        assert entry.amount == Decimal("40.00")
        assert entry.direction == Direction.CREDIT

    def test_unknown_fields_rejected(self, checking, org_id, make_entry):
        entry = make_entry(checking)

        with pytest.raises(InvalidRequest):
            TransactionLedger.update_entry(entry.id, org_id, balance_after=Decimal("0.00"))

    def test_non_date_rejected(self, checking, org_id, make_entry):
        entry = make_entry(checking)

        with pytest.raises(InvalidRequest):
            TransactionLedger.update_entry(entry.id, org_id, date="yesterday")

    def test_linking_attaches_contribution(self, checking, org_id, sale, make_entry):
        entry = make_entry(checking, "credit", "400.00")

        TransactionLedger.update_entry(entry.id, org_id, sale_id=sale.id)

        sale.refresh_from_db()
        assert sale.amount_settled == Decimal("400.00")
        assert sale.payment_status == PaymentStatus.PARTIAL
        assert sale.primary_entry_id == entry.id

    def test_moving_link_detaches_old_record_first(self, checking, org_id, today, sale, make_entry):
        other = RecordService.create_record(org_id, "sale", "600.00", today)
        entry = make_entry(checking, "credit", "600.00", sale_id=sale.id)

        TransactionLedger.update_entry(entry.id, org_id, sale_id=other.id)

        sale.refresh_from_db()
        other.refresh_from_db()
        entry.refresh_from_db()
        assert entry.sale_id == other.id
        assert sale.amount_settled == Decimal("0.00")
        assert sale.payment_status == PaymentStatus.PENDING
        assert sale.primary_entry_id is None
        assert other.amount_settled == Decimal("600.00")
        assert other.payment_status == PaymentStatus.PAID

    def test_moving_link_from_sale_to_expense(self, checking, org_id, sale, expense, make_entry):
        entry = make_entry(checking, "credit", "100.00", sale_id=sale.id)

        TransactionLedger.update_entry(entry.id, org_id, sale_id=None, expense_id=expense.id)

        sale.refresh_from_db()
        expense.refresh_from_db()
        entry.refresh_from_db()
        assert entry.sale_id is None
        assert entry.expense_id == expense.id
        assert sale.amount_settled == Decimal("0.00")
        assert expense.amount_settled == Decimal("100.00")

    def test_same_link_does_not_double_count(self, checking, org_id, sale, make_entry):
        entry = make_entry(checking, "credit", "250.00", sale_id=sale.id)

        TransactionLedger.update_entry(entry.id, org_id, sale_id=str(sale.id))

        sale.refresh_from_db()
        assert sale.amount_settled == Decimal("250.00")

    def test_unlinking_detaches(self, checking, org_id, sale, make_entry):
        entry = make_entry(checking, "credit", "250.00", sale_id=sale.id)

        TransactionLedger.update_entry(entry.id, org_id, sale_id=None)

        sale.refresh_from_db()
        entry.refresh_from_db()
        assert entry.sale_id is None
        assert sale.amount_settled == Decimal("0.00")
        assert sale.payment_status == PaymentStatus.PENDING
        assert sale.primary_entry_id is None

    def test_failed_relink_keeps_old_link(self, checking, org_id, sale, foreign_sale, make_entry):
        entry = make_entry(checking, "credit", "250.00", sale_id=sale.id)

        with pytest.raises(NotFound):
            TransactionLedger.update_entry(entry.id, org_id, sale_id=foreign_sale.id)

        sale.refresh_from_db()
        entry.refresh_from_db()
        assert entry.sale_id == sale.id
        assert sale.amount_settled == Decimal("250.00")

    def test_transfer_leg_cannot_be_linked(self, checking, savings, org_id, sale):
        result = TransferCoordinator.transfer(org_id, checking.id, savings.id, "10.00")

        with pytest.raises(InvalidRequest):
            TransactionLedger.update_entry(result.credit_entry_id, org_id, sale_id=sale.id)

    @pytest.mark.parametrize("move_to", ["other_sale", "unlink"])
    def test_payment_entry_link_cannot_move(self, checking, org_id, sale, today, move_to):
        other = RecordService.create_record(org_id, "sale", "500.00", today)
        payment = PaymentService.record_payment(
            org_id, "sale", sale.id, "400.00", today, bank_account_id=checking.id
        )
        new_sale_id = other.id if move_to == "other_sale" else None

        with pytest.raises(InvalidRequest):
            TransactionLedger.update_entry(payment.entry_id, org_id, sale_id=new_sale_id)

        sale.refresh_from_db()
        other.refresh_from_db()
        entry = LedgerEntry.objects.get(id=payment.entry_id)
        assert entry.sale_id == sale.id
        assert sale.amount_settled == Decimal("400.00")
        assert other.amount_settled == Decimal("0.00")

    def test_payment_entry_descriptive_fields_can_change(self, checking, org_id, sale, today):
        payment = PaymentService.record_payment(
            org_id, "sale", sale.id, "400.00", today, bank_account_id=checking.id
        )

        entry = TransactionLedger.update_entry(payment.entry_id, org_id, notes="Deposit slip 17")

        assert entry.notes == "Deposit slip 17"
        assert entry.sale_id == sale.id

    def test_foreign_entry_not_found(self, checking, make_entry, other_org_id):
        entry = make_entry(checking)

        with pytest.raises(NotFound):
            TransactionLedger.update_entry(entry.id, other_org_id, description="x")


class TestDeleteEntry:
    """Tests for TransactionLedger.delete_entry()."""

    def test_reverses_balance_and_removes_row(self, checking, org_id, make_entry):
        entry = make_entry(checking, "debit", "75.00")

        TransactionLedger.delete_entry(entry.id, org_id)

        checking.refresh_from_db()
        assert checking.current_balance == Decimal("200.00")
        assert not LedgerEntry.objects.filter(id=entry.id).exists()

    def test_detaches_linked_record(self, checking, org_id, expense, make_entry):
        entry = make_entry(checking, "debit", "500.00", expense_id=expense.id)

        TransactionLedger.delete_entry(entry.id, org_id)

        expense.refresh_from_db()
        checking.refresh_from_db()
        assert expense.amount_settled == Decimal("0.00")
        assert expense.payment_status == PaymentStatus.PENDING
        assert expense.primary_entry_id is None
        assert checking.current_balance == Decimal("200.00")

    def test_missing_entry_not_found(self, db, org_id):
        with pytest.raises(NotFound):
            TransactionLedger.delete_entry(uuid.uuid4(), org_id)

    def test_foreign_entry_not_found(self, checking, make_entry, other_org_id):
        entry = make_entry(checking, "credit", "30.00")

        with pytest.raises(NotFound):
            TransactionLedger.delete_entry(entry.id, other_org_id)

        checking.refresh_from_db()
        assert checking.current_balance == Decimal("230.00")
        assert LedgerEntry.objects.filter(id=entry.id).exists()

    def test_inactive_account_rejected(self, checking, org_id, make_entry):
        entry = make_entry(checking, "credit", "30.00")
        AccountStore.deactivate_account(checking.id, org_id)

        with pytest.raises(InvalidAccount):
            TransactionLedger.delete_entry(entry.id, org_id)

        assert LedgerEntry.objects.filter(id=entry.id).exists()

    def test_payment_entry_must_be_cancelled_instead(self, checking, org_id, sale, today):
        payment = PaymentService.record_payment(
            org_id, "sale", sale.id, "100.00", today, bank_account_id=checking.id
        )

        with pytest.raises(InvalidRequest):
            TransactionLedger.delete_entry(payment.entry_id, org_id)

        checking.refresh_from_db()
        assert checking.current_balance == Decimal("300.00")

    def test_transfer_leg_reverses_whole_pair(self, checking, savings, org_id):
        result = TransferCoordinator.transfer(org_id, checking.id, savings.id, "50.00")

        TransactionLedger.delete_entry(result.debit_entry_id, org_id)

        checking.refresh_from_db()
        savings.refresh_from_db()
        assert checking.current_balance == Decimal("200.00")
        assert savings.current_balance == Decimal("0.00")
        assert not LedgerEntry.objects.filter(
            transfer_pair_id=result.transfer_pair_id
        ).exists()


class TestAdjustBalance:
    """Tests for TransactionLedger.adjust_balance()."""

    @freeze_time("2024-04-02 12:00:00")
    def test_positive_difference_records_credit(self, checking, org_id):
        entry = TransactionLedger.adjust_balance(
            checking.id, org_id, "350.00", reason="Bank statement", created_by="auditor"
        )

        checking.refresh_from_db()
        assert entry.direction == Direction.CREDIT
        assert entry.amount == Decimal("150.00")
        assert entry.is_adjustment is True
        assert entry.category == "adjustment"
        assert entry.description == "Bank statement"
        assert entry.date == datetime.date(2024, 4, 2)
        assert entry.balance_after == Decimal("350.00")
        assert checking.current_balance == Decimal("350.00")

    def test_negative_difference_records_debit(self, checking, org_id):
        entry = TransactionLedger.adjust_balance(checking.id, org_id, "50.00")

        assert entry.direction == Direction.DEBIT
        assert entry.amount == Decimal("150.00")
        assert entry.description == "Balance adjustment"
        assert AccountStore.get_balance(checking.id, org_id) == Decimal("50.00")

    def test_matching_balance_records_nothing(self, checking, org_id):
        assert TransactionLedger.adjust_balance(checking.id, org_id, "200") is None
        assert not LedgerEntry.objects.exists()

    def test_adjustment_keeps_balance_verifiable(self, checking, org_id):
        TransactionLedger.adjust_balance(checking.id, org_id, "-20.00")

        assert AccountStore.verify_balance(checking.id, org_id).is_consistent is True

    def test_inactive_account_rejected(self, inactive_account, org_id):
        with pytest.raises(InvalidAccount):
            TransactionLedger.adjust_balance(inactive_account.id, org_id, "0.00")


class TestConvertEntry:
    """Tests for TransactionLedger.convert_entry()."""

    def test_credit_becomes_paid_sale(self, checking, org_id, make_entry):
        contact = uuid.uuid4()
        entry = make_entry(
            checking, "credit", "970.00", gross_amount="1000.00", contact_id=contact
        )

        sale = TransactionLedger.convert_entry(entry.id, org_id, "sale", created_by="u1")

        entry.refresh_from_db()
        assert isinstance(sale, Sale)
        assert sale.total == Decimal("1000.00")
        assert sale.amount_settled == Decimal("1000.00")
        assert sale.payment_status == PaymentStatus.PAID
        assert sale.contact_id == contact
        assert entry.sale_id == sale.id

    def test_debit_becomes_paid_expense(self, checking, org_id, make_entry):
        entry = make_entry(checking, "debit", "45.00", category="utilities")

        expense = TransactionLedger.convert_entry(entry.id, org_id, "expense")

        assert isinstance(expense, Expense)
        assert expense.category == "utilities"
        assert expense.payment_status == PaymentStatus.PAID
        assert AccountStore.get_balance(checking.id, org_id) == Decimal("155.00")

    def test_direction_must_match(self, checking, org_id, make_entry):
        entry = make_entry(checking, "debit", "45.00")

        with pytest.raises(InvalidRequest):
            TransactionLedger.convert_entry(entry.id, org_id, "sale")

        assert not Sale.objects.exists()

    def test_linked_entry_rejected(self, checking, org_id, sale, make_entry):
        entry = make_entry(checking, "credit", "10.00", sale_id=sale.id)

        with pytest.raises(InvalidRequest):
            TransactionLedger.convert_entry(entry.id, org_id, "sale")

    def test_transfer_leg_rejected(self, checking, savings, org_id):
        result = TransferCoordinator.transfer(org_id, checking.id, savings.id, "10.00")

        with pytest.raises(InvalidRequest):
            TransactionLedger.convert_entry(result.credit_entry_id, org_id, "sale")

    def test_unknown_record_type_rejected(self, checking, org_id, make_entry):
        entry = make_entry(checking)

        with pytest.raises(InvalidRequest):
            TransactionLedger.convert_entry(entry.id, org_id, "invoice")


class TestQueries:
    """Tests for get_entry() and list_entries()."""

    def test_get_entry_scoped_to_organization(self, checking, org_id, other_org_id, make_entry):
        entry = make_entry(checking)

        assert TransactionLedger.get_entry(entry.id, org_id) == entry
        with pytest.raises(NotFound):
            TransactionLedger.get_entry(entry.id, other_org_id)

    def test_list_entries_newest_first(self, checking, org_id, make_entry):
        old = make_entry(checking, date=datetime.date(2024, 1, 5))
        new = make_entry(checking, date=datetime.date(2024, 3, 5))
        middle = make_entry(checking, date=datetime.date(2024, 2, 5))

        assert list(TransactionLedger.list_entries(org_id)) == [new, middle, old]

    def test_list_entries_filters(self, checking, savings, org_id, sale, make_entry):
        deposit = make_entry(checking, "credit", "10.00", description="Rent refund")
        payment = make_entry(checking, "credit", "20.00", sale_id=sale.id, reference="INV-9")
        withdrawal = make_entry(checking, "debit", "5.00", category="fees")
        other_account = make_entry(savings, "credit", "1.00", date=datetime.date(2024, 1, 1))

        def ids(**filters):
            return {e.id for e in TransactionLedger.list_entries(org_id, **filters)}

        assert ids(direction="debit") == {withdrawal.id}
        assert ids(account_id=savings.id) == {other_account.id}
        assert ids(category="fees") == {withdrawal.id}
        assert ids(search="refund") == {deposit.id}
        assert ids(search="inv-9") == {payment.id}
        assert ids(linked=True) == {payment.id}
        assert ids(linked=False) == {deposit.id, withdrawal.id, other_account.id}
        assert ids(end=datetime.date(2024, 2, 1)) == {other_account.id}
        assert ids(start=datetime.date(2024, 2, 1)) == {deposit.id, payment.id, withdrawal.id}

    def test_list_entries_hides_other_tenants(self, checking, foreign_account, other_org_id, make_entry, today):
        make_entry(checking)
        TransactionLedger.create_entry(
            other_org_id,
            CreateEntryParams(
                account_id=foreign_account.id, direction="credit", amount="1.00", date=today
            ),
        )

        assert TransactionLedger.list_entries(other_org_id).count() == 1
