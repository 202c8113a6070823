"""
Bookkeeping - bank balances, receivables and payables kept mutually consistent.

Organizations track bank accounts, the ledger entries that move money in and
out of them, and the sales (receivables) and expenses (payables) those
entries settle. Every mutation runs in one database transaction so the
account balance, the entry rows and the settled amount of linked records
never disagree.

Public API:
    Models (bookkeeping.models):
        BankAccount - Account with a running balance
        LedgerEntry - One credit or debit against an account
        Sale / Expense - Receivables and payables with derived status
        PaymentScheduleInstallment - Planned partial payments
        Payment - Payment recorded against a sale/expense

    Services (bookkeeping.services):
        accounts, ledger, linkage, transfers, schedules,
        payments, records, reports - singletons of the service classes

    Types (bookkeeping.types):
        CreateEntryParams, InstallmentSpec, TransferResult, BalanceCheck,
        EntrySummary, OutstandingReport

    Exceptions (bookkeeping.exceptions):
        BookkeepingError, NotFound, InvalidAmount, InvalidAccount,
        InvalidRequest, RecordHasPayments, InsufficientFunds,
        ScheduleMismatch, ConsistencyViolation

Usage:
    from bookkeeping.services import accounts, ledger, transfers
    from bookkeeping.types import CreateEntryParams

    checking = accounts.open_account(org_id, "Checking", initial_balance="200.00")
    savings = accounts.open_account(org_id, "Savings")

    ledger.create_entry(org_id, CreateEntryParams(
        account_id=checking.id, direction="credit", amount="50.00", date=today,
    ))
    transfers.transfer(org_id, checking.id, savings.id, "75.00", today)
"""
