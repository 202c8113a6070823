"""
Pytest fixtures for bookkeeping tests.

Accounts and records are created through the services so their balances
and settled amounts start out consistent.

Sections:
    - Organization Fixtures: Tenant ids
    - Account Fixtures: Opened bank accounts
    - Record Fixtures: Pending sales and expenses
    - Helpers: Entry creation shortcut
"""

import datetime
import uuid

import pytest

from bookkeeping.services import AccountStore, RecordService, TransactionLedger
from bookkeeping.types import CreateEntryParams


# ==========================================================================
# Organization Fixtures
# ==========================================================================


@pytest.fixture
def org_id():
    """The caller's organization."""
    return uuid.uuid4()


@pytest.fixture
def other_org_id():
    """A different tenant whose rows must stay invisible."""
    return uuid.uuid4()


@pytest.fixture
def today():
    return datetime.date(2024, 3, 15)


# ==========================================================================
# Account Fixtures
# ==========================================================================


@pytest.fixture
def checking(db, org_id):
    """Active account opened with 200.00."""
    return AccountStore.open_account(org_id, "Checking", initial_balance="200.00")


@pytest.fixture
def savings(db, org_id):
    """Active account opened empty."""
    return AccountStore.open_account(org_id, "Savings")


@pytest.fixture
def inactive_account(db, org_id):
    """Account opened with 50.00 and then deactivated."""
    account = AccountStore.open_account(org_id, "Closed", initial_balance="50.00")
    return AccountStore.deactivate_account(account.id, org_id)


@pytest.fixture
def foreign_account(db, other_org_id):
    """Account owned by another organization."""
    return AccountStore.open_account(other_org_id, "Foreign", initial_balance="500.00")


# ==========================================================================
# Record Fixtures
# ==========================================================================


@pytest.fixture
def sale(db, org_id, today):
    """Pending sale with total 1000.00."""
    return RecordService.create_record(
        org_id, "sale", "1000.00", today, number="S-001", due_date=today
    )


@pytest.fixture
def expense(db, org_id, today):
    """Pending expense with total 500.00."""
    return RecordService.create_record(
        org_id, "expense", "500.00", today, number="E-001", category="rent"
    )


@pytest.fixture
def foreign_sale(db, other_org_id, today):
    return RecordService.create_record(other_org_id, "sale", "300.00", today)


# ==========================================================================
# Helpers
# ==========================================================================


@pytest.fixture
def make_entry(org_id, today):
    """
    Record an entry through the ledger.

    Usage:
        entry = make_entry(checking, "debit", "25.00", sale_id=sale.id)
    """

    def _make(account, direction="credit", amount="100.00", **kwargs):
        kwargs.setdefault("date", today)
        return TransactionLedger.create_entry(
            org_id,
            CreateEntryParams(
                account_id=account.id,
                direction=direction,
                amount=amount,
                **kwargs,
            ),
        )

    return _make
