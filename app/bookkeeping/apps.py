"""
Bookkeeping app configuration.

This app provides the ledger consistency core:
- Bank-account balances
- Ledger entries and internal transfers
- Sales/expenses settlement, payments and installment schedules
"""

from django.apps import AppConfig


class BookkeepingConfig(AppConfig):
    """Configuration for the bookkeeping application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "bookkeeping"
    verbose_name = "Bookkeeping"
