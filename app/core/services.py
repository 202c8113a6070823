"""
Base service layer patterns for business logic encapsulation.

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.

    Failures are raised as core.exceptions.BaseApplicationError subclasses;
    raising inside ``atomic()`` rolls back every write of the operation.

Usage:
    import logging

    from core.services import BaseService

    logger = logging.getLogger(__name__)

    class InvoiceService(BaseService):
        @classmethod
        def issue(cls, invoice_id):
            with cls.atomic():
                invoice = Invoice.objects.select_for_update().get(id=invoice_id)
                invoice.status = "issued"
                invoice.save(update_fields=["status"])

            logger.info(f"Issued invoice {invoice.id}")
            return invoice

Related:
    - core.exceptions: Error hierarchy raised by services
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Database transaction management

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Raise exceptions for failures; the enclosing atomic block rolls back
    """

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Nested calls create savepoints, so a service may call another
        service's atomic method and still be rolled back as a unit by
        the outermost block.

        Example:
            with cls.atomic():
                account = lock(account_id)
                entry = LedgerEntry.objects.create(...)
                # If entry creation fails, nothing is written
        """
        with transaction.atomic():
            yield
