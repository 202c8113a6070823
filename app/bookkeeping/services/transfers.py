"""
Transfer coordinator for moves between an organization's own accounts.

A transfer is a pair of ledger entries (a debit on the source account and
a credit on the destination) sharing a transfer_pair_id. Pairs are created
and destroyed as one unit; after any successful call both legs exist or
neither does.

Usage:
    from bookkeeping.services import transfers

    result = transfers.transfer(org_id, checking.id, savings.id, "75.00", today)
    result.debit_entry.balance_after   # source balance after the move

    transfers.set_transfer_status(result.credit_entry_id, org_id, "in_transit")
    transfers.reverse_transfer(result.debit_entry_id, org_id)
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Any

from django.utils import timezone

from core.services import BaseService

from ..exceptions import (
    ConsistencyViolation,
    InsufficientFunds,
    InvalidRequest,
    NotFound,
)
from ..models import Direction, LedgerEntry, TransferStatus
from ..types import TransferResult, lookup_id, to_amount
from .accounts import AccountStore
from .ledger import TransactionLedger

logger = logging.getLogger(__name__)


class TransferCoordinator(BaseService):
    """
    Service for paired ledger entries between two accounts.

    Both accounts are locked in ascending id order regardless of which one
    is the source, so concurrent opposite-direction transfers can't deadlock.
    """

    @classmethod
    def transfer(
        cls,
        organization_id: uuid.UUID,
        from_account_id: uuid.UUID,
        to_account_id: uuid.UUID,
        amount: Any,
        date: datetime.date | None = None,
        description: str = "",
        transfer_status: str = TransferStatus.IN_ACCOUNT,
        created_by: str | None = None,
    ) -> TransferResult:
        """
        Move money from one account to another.

        Args:
            organization_id: Caller's organization (owns both accounts)
            from_account_id: Account to debit
            to_account_id: Account to credit
            amount: Positive amount, at most the source balance
            date: Date of both legs (defaults to today)
            description: Shared description
            transfer_status: Advisory status stored on both legs

        Returns:
            TransferResult with both entries and the pair id

        Raises:
            InvalidRequest: If both accounts are the same or the status is unknown
            InvalidAmount: If amount is not a positive two-place number
            InvalidAccount: If either account is absent, foreign or inactive
            InsufficientFunds: If amount exceeds the source balance
        """
        if str(from_account_id) == str(to_account_id):
            raise InvalidRequest(
                "Cannot transfer to the same account",
                details={"account_id": str(from_account_id)},
            )
        amount = to_amount(amount)
        cls._check_status(transfer_status)
        date = date or timezone.localdate()

        with cls.atomic():
            locked = AccountStore.lock_accounts([from_account_id, to_account_id], organization_id)
            source = locked[AccountStore.parse_id(from_account_id)]
            target = locked[AccountStore.parse_id(to_account_id)]

            if amount > source.current_balance:
                raise InsufficientFunds(
                    source.id,
                    required=amount,
                    available=source.current_balance,
                )

            pair_id = uuid.uuid4()
            shared = {
                "date": date,
                "is_internal_transfer": True,
                "transfer_pair_id": pair_id,
                "transfer_status": transfer_status,
                "category": "transfer",
                "created_by": created_by,
            }
            debit = TransactionLedger.insert_movement(
                organization_id,
                account_id=source.id,
                direction=Direction.DEBIT,
                amount=amount,
                description=description or f"Transfer to {target.name}",
                **shared,
            )
            credit = TransactionLedger.insert_movement(
                organization_id,
                account_id=target.id,
                direction=Direction.CREDIT,
                amount=amount,
                description=description or f"Transfer from {source.name}",
                **shared,
            )

        logger.info(
            f"Transferred {amount} from account {source.id} to {target.id} (pair {pair_id})"
        )
        return TransferResult(transfer_pair_id=pair_id, debit_entry=debit, credit_entry=credit)

    @classmethod
    def reverse_transfer(cls, entry_id: uuid.UUID, organization_id: uuid.UUID) -> uuid.UUID:
        """
        Undo a transfer given either of its legs.

        Reverses both balance deltas and deletes both entries.

        Returns:
            The transfer_pair_id of the removed pair

        Raises:
            NotFound: If the entry is absent, foreign or not a transfer leg
            ConsistencyViolation: If the partner leg is missing or duplicated
            InvalidAccount: If either account was deactivated
        """
        with cls.atomic():
            entry, partner = cls._get_pair(entry_id, organization_id)

            AccountStore.lock_accounts([entry.account_id, partner.account_id], organization_id)
            legs = list(
                LedgerEntry.objects.for_organization(organization_id)
                .select_for_update()
                .filter(id__in=[entry.id, partner.id])
                .order_by("id")
            )

            for leg in legs:
                AccountStore.apply_delta(leg.account_id, organization_id, -leg.signed_amount)
            LedgerEntry.objects.filter(id__in=[leg.id for leg in legs]).delete()

        logger.info(
            f"Reversed transfer {entry.transfer_pair_id} of {entry.amount} between "
            f"accounts {entry.account_id} and {partner.account_id}"
        )
        return entry.transfer_pair_id

    @classmethod
    def set_transfer_status(
        cls,
        entry_id: uuid.UUID,
        organization_id: uuid.UUID,
        status: str,
    ) -> int:
        """
        Update the advisory status on both legs of a transfer.

        Balances are never touched.

        Returns:
            Number of legs updated (2)

        Raises:
            InvalidRequest: If the status is unknown
            NotFound: If the entry is absent, foreign or not a transfer leg
            ConsistencyViolation: If the partner leg is missing or duplicated
        """
        cls._check_status(status)

        with cls.atomic():
            entry, partner = cls._get_pair(entry_id, organization_id)
            updated = LedgerEntry.objects.filter(id__in=[entry.id, partner.id]).update(
                transfer_status=status,
                updated_at=timezone.now(),
            )

        logger.info(f"Transfer {entry.transfer_pair_id} status set to {status}")
        return updated

    @staticmethod
    def _check_status(status: str) -> None:
        if status not in TransferStatus.values:
            raise InvalidRequest(
                f"Unknown transfer status {status!r}",
                details={"status": str(status), "allowed": list(TransferStatus.values)},
            )

    @staticmethod
    def _get_pair(
        entry_id: uuid.UUID,
        organization_id: uuid.UUID,
    ) -> tuple[LedgerEntry, LedgerEntry]:
        """Fetch a transfer leg and its partner."""
        entry_id = lookup_id(entry_id, "LedgerEntry")
        entry = (
            LedgerEntry.objects.for_organization(organization_id)
            .filter(id=entry_id, is_internal_transfer=True)
            .first()
        )
        if entry is None:
            raise NotFound.for_entity("LedgerEntry", entry_id)

        partners = []
        if entry.transfer_pair_id is not None:
            partners = list(
                LedgerEntry.objects.for_organization(organization_id)
                .filter(transfer_pair_id=entry.transfer_pair_id)
                .exclude(id=entry.id)
            )
        if len(partners) != 1:
            logger.error(
                f"Transfer leg {entry.id} has {len(partners)} partner entries "
                f"for pair {entry.transfer_pair_id}"
            )
            raise ConsistencyViolation(
                f"Transfer leg {entry.id} has no matching partner",
                details={
                    "entry_id": str(entry.id),
                    "transfer_pair_id": str(entry.transfer_pair_id),
                    "partners": len(partners),
                },
            )
        return entry, partners[0]


transfers = TransferCoordinator()
