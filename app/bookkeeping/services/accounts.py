"""
Account store: the single writer of bank-account balances.

AccountStore holds no business rules beyond arithmetic. Callers pass a
pre-signed delta; direction strings are interpreted by the ledger.

Usage:
    from bookkeeping.services import accounts

    account = accounts.open_account(org_id, "Operating", initial_balance="100.00")
    accounts.get_balance(account.id, org_id)  # Decimal("100.00")

    with transaction.atomic():
        locked = accounts.lock_accounts([a.id, b.id], org_id)
        accounts.apply_delta(a.id, org_id, Decimal("-25.00"))
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from core.services import BaseService

from ..exceptions import InvalidAccount, InvalidAmount, NotFound
from ..models import BankAccount
from ..types import AMOUNT_LIMIT, BalanceCheck, lookup_id, to_decimal

logger = logging.getLogger(__name__)


class AccountStore(BaseService):
    """
    Service for bank-account balances.

    Every balance write happens while the account row is locked with
    SELECT ... FOR UPDATE inside the caller's transaction. Multiple accounts
    are always locked in ascending id order so two concurrent transfers in
    opposite directions cannot deadlock.
    """

    @classmethod
    def open_account(
        cls,
        organization_id: uuid.UUID,
        name: str,
        currency: str | None = None,
        initial_balance: Any = Decimal("0.00"),
        bank_name: str = "",
        account_number: str = "",
        notes: str = "",
        created_by: str | None = None,
    ) -> BankAccount:
        """
        Open an active account whose balance starts at initial_balance.

        Raises:
            InvalidAmount: If initial_balance is not a two-place number
        """
        opening = to_decimal(initial_balance, "initial_balance")
        fields: dict[str, Any] = {}
        if currency:
            fields["currency"] = currency.upper()

        account = BankAccount.objects.create(
            organization_id=organization_id,
            name=name,
            bank_name=bank_name,
            account_number=account_number,
            initial_balance=opening,
            current_balance=opening,
            notes=notes,
            created_by=created_by,
            **fields,
        )
        logger.info(
            f"Opened bank account {account.id} for organization {organization_id} "
            f"with balance {opening}"
        )
        return account

    @classmethod
    def deactivate_account(cls, account_id: uuid.UUID, organization_id: uuid.UUID) -> BankAccount:
        """
        Soft-delete an account. History is kept; ledger writes are refused.

        Raises:
            NotFound: If the account is not in the organization
        """
        account_id = lookup_id(account_id, "BankAccount")
        with cls.atomic():
            account = (
                BankAccount.objects.for_organization(organization_id)
                .select_for_update()
                .filter(id=account_id)
                .first()
            )
            if account is None:
                raise NotFound.for_entity("BankAccount", account_id)
            if account.is_active:
                account.is_active = False
                account.save(update_fields=["is_active", "updated_at"])
                logger.info(f"Deactivated bank account {account.id}")
        return account

    @staticmethod
    def get_balance(account_id: uuid.UUID, organization_id: uuid.UUID) -> Decimal:
        """
        Current balance of an active account.

        Raises:
            NotFound: If the account is absent, foreign or inactive
        """
        account_id = lookup_id(account_id, "BankAccount")
        balance = (
            BankAccount.objects.for_organization(organization_id)
            .filter(id=account_id, is_active=True)
            .values_list("current_balance", flat=True)
            .first()
        )
        if balance is None:
            raise NotFound.for_entity("BankAccount", account_id)
        return balance

    @classmethod
    def lock_accounts(
        cls,
        account_ids: Iterable[uuid.UUID],
        organization_id: uuid.UUID,
    ) -> dict[uuid.UUID, BankAccount]:
        """
        Lock active accounts of one organization in ascending id order.

        Must be called inside a transaction.

        Returns:
            Mapping of account id to the locked BankAccount

        Raises:
            InvalidAccount: If any account is absent, foreign or inactive
        """
        wanted = {cls.parse_id(account_id) for account_id in account_ids}

        # ORDER BY id gives every transaction the same lock order
        accounts = {
            account.id: account
            for account in BankAccount.objects.for_organization(organization_id)
            .filter(id__in=wanted)
            .select_for_update()
            .order_by("id")
        }

        for account_id in sorted(wanted, key=str):
            account = accounts.get(account_id)
            if account is None:
                raise InvalidAccount(
                    f"Bank account {account_id} is not available",
                    details={"account_id": str(account_id)},
                )
            if not account.is_active:
                raise InvalidAccount(
                    f"Bank account {account_id} is inactive",
                    details={"account_id": str(account_id)},
                )
        return accounts

    @classmethod
    def apply_delta(
        cls,
        account_id: uuid.UUID,
        organization_id: uuid.UUID,
        signed_amount: Decimal,
    ) -> Decimal:
        """
        Add a signed amount to an account's balance and return the new value.

        Positive deltas are credits, negative deltas debits. The row is
        locked for the rest of the enclosing transaction.

        Raises:
            InvalidAccount: If the account is absent, foreign or inactive
            InvalidAmount: If the new balance would not fit the balance column
        """
        with cls.atomic():
            locked = cls.lock_accounts([account_id], organization_id)
            account = next(iter(locked.values()))
            new_balance = account.current_balance + Decimal(signed_amount)
            if abs(new_balance) >= AMOUNT_LIMIT:
                raise InvalidAmount(
                    f"Balance of account {account.id} would exceed the supported range",
                    details={
                        "account_id": str(account.id),
                        "balance": str(account.current_balance),
                        "delta": str(signed_amount),
                    },
                )
            account.current_balance = new_balance
            account.save(update_fields=["current_balance", "updated_at"])
        return account.current_balance

    @staticmethod
    def verify_balance(account_id: uuid.UUID, organization_id: uuid.UUID) -> BalanceCheck:
        """
        Compare the stored balance with one recomputed from entries.

        Read-only; never repairs the stored value.

        Raises:
            NotFound: If the account is not in the organization
        """
        account_id = lookup_id(account_id, "BankAccount")
        account = BankAccount.objects.for_organization(organization_id).filter(id=account_id).first()
        if account is None:
            raise NotFound.for_entity("BankAccount", account_id)

        check = BalanceCheck(
            account_id=account.id,
            stored=account.current_balance,
            computed=account.computed_balance(),
        )
        if not check.is_consistent:
            logger.warning(
                f"Bank account {account.id} balance drift: stored {check.stored}, "
                f"computed {check.computed}"
            )
        return check

    @staticmethod
    def parse_id(value: uuid.UUID | str) -> uuid.UUID:
        if isinstance(value, uuid.UUID):
            return value
        try:
            return uuid.UUID(str(value))
        except ValueError:
            raise InvalidAccount(
                f"Bank account {value} is not available",
                details={"account_id": str(value)},
            )


accounts = AccountStore()
