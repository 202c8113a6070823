"""
Django admin configuration for bookkeeping models.

Balances, settled amounts and entries are maintained by the service layer,
so the admin shows them read-only. Money movements are never created,
edited or deleted from the admin; use the services so balances and links
stay consistent.
"""

from django.contrib import admin

from .models import (
    BankAccount,
    Expense,
    LedgerEntry,
    Payment,
    PaymentScheduleInstallment,
    Sale,
)


class ReadOnlyAdminMixin:
    """Disable add, change and delete for service-managed models."""

    def has_add_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(BankAccount)
class BankAccountAdmin(admin.ModelAdmin):
    """
    Admin configuration for BankAccount.

    Descriptive fields are editable; balances are not.
    """

    list_display = [
        "name",
        "bank_name",
        "organization_id",
        "currency",
        "current_balance",
        "is_active",
        "created_at",
    ]
    list_filter = ["currency", "is_active"]
    search_fields = ["id", "name", "bank_name", "account_number", "organization_id"]
    readonly_fields = [
        "id",
        "organization_id",
        "initial_balance",
        "current_balance",
        "created_at",
        "updated_at",
    ]
    ordering = ["name"]

    fieldsets = (
        (None, {"fields": ("id", "organization_id", "name", "currency", "is_active")}),
        ("Bank", {"fields": ("bank_name", "account_number", "notes")}),
        ("Balance", {"fields": ("initial_balance", "current_balance")}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    def has_add_permission(self, request) -> bool:
        """Accounts are opened through AccountStore.open_account."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Accounts are deactivated, never deleted."""
        return False


@admin.register(LedgerEntry)
class LedgerEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for LedgerEntry.

    Entries change balances, so they are read-only here.
    """

    list_display = [
        "date",
        "account",
        "direction",
        "amount",
        "balance_after",
        "sale",
        "expense",
        "is_internal_transfer",
        "transfer_status",
    ]
    list_filter = ["direction", "is_internal_transfer", "transfer_status", "is_adjustment"]
    search_fields = ["id", "description", "reference", "transfer_pair_id"]
    list_select_related = ["account", "sale", "expense"]
    date_hierarchy = "date"
    ordering = ["-date", "-created_at"]


class InstallmentInline(admin.TabularInline):
    model = PaymentScheduleInstallment
    fields = ["number", "due_date", "amount", "amount_paid", "status"]
    readonly_fields = fields
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None) -> bool:
        return False


class SaleInstallmentInline(InstallmentInline):
    fk_name = "sale"


class ExpenseInstallmentInline(InstallmentInline):
    fk_name = "expense"


class RecordAdmin(admin.ModelAdmin):
    """Shared configuration for sales and expenses."""

    list_display = [
        "number",
        "date",
        "due_date",
        "total",
        "amount_settled",
        "payment_status",
        "organization_id",
    ]
    list_filter = ["payment_status"]
    search_fields = ["id", "number", "description", "contact_id"]
    readonly_fields = [
        "id",
        "organization_id",
        "total",
        "amount_settled",
        "payment_status",
        "primary_entry",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "date"

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Deletion goes through RecordService.delete_record."""
        return False


@admin.register(Sale)
class SaleAdmin(RecordAdmin):
    inlines = [SaleInstallmentInline]


@admin.register(Expense)
class ExpenseAdmin(RecordAdmin):
    list_display = [*RecordAdmin.list_display, "category"]
    inlines = [ExpenseInstallmentInline]


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Payments are recorded and cancelled through PaymentService."""

    list_display = ["date", "amount", "sale", "expense", "installment", "entry", "payment_method"]
    search_fields = ["id", "reference"]
    list_select_related = ["sale", "expense", "installment", "entry"]
    ordering = ["-date"]
