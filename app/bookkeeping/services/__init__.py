"""
Bookkeeping services.

This package provides:
- AccountStore: Bank-account balances (the only balance writer)
- TransactionLedger: Create, update, delete and convert ledger entries
- ReceivableLinkage: Settled amount and status of sales/expenses
- TransferCoordinator: Paired entries between an organization's accounts
- PaymentScheduleTracker: Installment schedules and their settlement
- PaymentService: Payments recorded against sales/expenses
- RecordService: Creation and deletion of sales/expenses
- ReportService: Read-only summaries

Each service also has a module-level singleton (``ledger``, ``transfers``...)
for callers that prefer an instance.

Usage:
    from bookkeeping.services import ledger, transfers
    from bookkeeping.types import CreateEntryParams

    entry = ledger.create_entry(org_id, CreateEntryParams(...))
    result = transfers.transfer(org_id, a.id, b.id, "75.00")
"""

from bookkeeping.services.accounts import AccountStore, accounts
from bookkeeping.services.ledger import TransactionLedger, ledger
from bookkeeping.services.linkage import ReceivableLinkage, derive_status, linkage
from bookkeeping.services.payments import PaymentService, payments
from bookkeeping.services.records import RecordService, records
from bookkeeping.services.reports import ReportService, reports
from bookkeeping.services.schedules import PaymentScheduleTracker, schedules
from bookkeeping.services.transfers import TransferCoordinator, transfers

__all__ = [
    "AccountStore",
    "PaymentScheduleTracker",
    "PaymentService",
    "ReceivableLinkage",
    "RecordService",
    "ReportService",
    "TransactionLedger",
    "TransferCoordinator",
    "accounts",
    "derive_status",
    "ledger",
    "linkage",
    "payments",
    "records",
    "reports",
    "schedules",
    "transfers",
]
