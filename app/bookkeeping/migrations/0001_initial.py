import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models

import bookkeeping.models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="BankAccount",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "organization_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="UUID of the organization that owns this record",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(help_text="Display name of this account", max_length=255)),
                (
                    "bank_name",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Name of the bank holding this account",
                        max_length=255,
                    ),
                ),
                (
                    "account_number",
                    models.CharField(
                        blank=True, default="", help_text="Account number or CLABE", max_length=64
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default=bookkeeping.models.default_currency,
                        help_text="ISO 4217 currency code",
                        max_length=3,
                    ),
                ),
                (
                    "initial_balance",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Balance when the account was opened",
                        max_digits=14,
                    ),
                ),
                (
                    "current_balance",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Running balance (initial balance plus signed entries)",
                        max_digits=14,
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        db_index=True,
                        default=True,
                        help_text="Whether this account accepts ledger operations",
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "created_by",
                    models.CharField(
                        blank=True,
                        help_text="Identifier of the user who opened this account",
                        max_length=255,
                        null=True,
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(
                        fields=["organization_id", "is_active"],
                        name="bk_account_org_active_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Expense",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "organization_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="UUID of the organization that owns this record",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("number", models.CharField(blank=True, default="", max_length=64)),
                (
                    "contact_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="UUID of the customer or supplier",
                        null=True,
                    ),
                ),
                ("date", models.DateField(help_text="Date of the record")),
                (
                    "due_date",
                    models.DateField(
                        blank=True,
                        db_index=True,
                        help_text="Date payment is expected",
                        null=True,
                    ),
                ),
                ("description", models.TextField(blank=True, default="")),
                (
                    "total",
                    models.DecimalField(
                        decimal_places=2, help_text="Total amount owed", max_digits=14
                    ),
                ),
                (
                    "amount_settled",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Amount collected or paid so far",
                        max_digits=14,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("partial", "Partial"),
                            ("paid", "Paid"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("created_by", models.CharField(blank=True, max_length=255, null=True)),
                ("category", models.CharField(blank=True, default="", max_length=100)),
            ],
            options={
                "ordering": ["-date", "-created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["organization_id", "payment_status"],
                        name="bk_expense_org_status_idx",
                    )
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("total__gte", 0)),
                        name="expense_total_non_negative",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "organization_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="UUID of the organization that owns this record",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("number", models.CharField(blank=True, default="", max_length=64)),
                (
                    "contact_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="UUID of the customer or supplier",
                        null=True,
                    ),
                ),
                ("date", models.DateField(help_text="Date of the record")),
                (
                    "due_date",
                    models.DateField(
                        blank=True,
                        db_index=True,
                        help_text="Date payment is expected",
                        null=True,
                    ),
                ),
                ("description", models.TextField(blank=True, default="")),
                (
                    "total",
                    models.DecimalField(
                        decimal_places=2, help_text="Total amount owed", max_digits=14
                    ),
                ),
                (
                    "amount_settled",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Amount collected or paid so far",
                        max_digits=14,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("partial", "Partial"),
                            ("paid", "Paid"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("created_by", models.CharField(blank=True, max_length=255, null=True)),
            ],
            options={
                "ordering": ["-date", "-created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["organization_id", "payment_status"],
                        name="bk_sale_org_status_idx",
                    )
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("total__gte", 0)),
                        name="sale_total_non_negative",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "organization_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="UUID of the organization that owns this record",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "direction",
                    models.CharField(
                        choices=[("credit", "Credit"), ("debit", "Debit")],
                        help_text="credit (money in) or debit (money out)",
                        max_length=10,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2, help_text="Amount (always positive)", max_digits=14
                    ),
                ),
                (
                    "gross_amount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Gross amount credited to a linked sale before commissions",
                        max_digits=14,
                        null=True,
                    ),
                ),
                ("date", models.DateField(db_index=True)),
                ("contact_id", models.UUIDField(blank=True, db_index=True, null=True)),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                ("description", models.TextField(blank=True, default="")),
                ("reference", models.CharField(blank=True, default="", max_length=255)),
                ("payment_method", models.CharField(blank=True, default="", max_length=50)),
                ("notes", models.TextField(blank=True, default="")),
                ("is_internal_transfer", models.BooleanField(default=False)),
                (
                    "transfer_pair_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="Shared by both legs of an internal transfer",
                        null=True,
                    ),
                ),
                (
                    "transfer_status",
                    models.CharField(
                        choices=[
                            ("received", "Received"),
                            ("in_transit", "In Transit"),
                            ("in_account", "In Account"),
                        ],
                        default="in_account",
                        max_length=20,
                    ),
                ),
                ("is_adjustment", models.BooleanField(default=False)),
                (
                    "balance_after",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Account balance immediately after this entry was applied",
                        max_digits=14,
                    ),
                ),
                ("created_by", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "account",
                    models.ForeignKey(
                        help_text="Bank account the money moved through",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="entries",
                        to="bookkeeping.bankaccount",
                    ),
                ),
                (
                    "expense",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="entries",
                        to="bookkeeping.expense",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="entries",
                        to="bookkeeping.sale",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "ledger entries",
                "ordering": ["-date", "-created_at"],
                "indexes": [
                    models.Index(
                        fields=["organization_id", "date"],
                        name="bk_entry_org_date_idx",
                    ),
                    models.Index(
                        fields=["account", "date"],
                        name="bk_entry_account_date_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="ledger_entry_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("gross_amount__isnull", True),
                            ("gross_amount__gte", models.F("amount")),
                            _connector="OR",
                        ),
                        name="ledger_entry_gross_covers_amount",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("sale__isnull", True),
                            ("expense__isnull", True),
                            _connector="OR",
                        ),
                        name="ledger_entry_single_link",
                    ),
                ],
            },
        ),
        migrations.AddField(
            model_name="expense",
            name="primary_entry",
            field=models.ForeignKey(
                blank=True,
                help_text="Most recently attached ledger entry",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="bookkeeping.ledgerentry",
            ),
        ),
        migrations.AddField(
            model_name="sale",
            name="primary_entry",
            field=models.ForeignKey(
                blank=True,
                help_text="Most recently attached ledger entry",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="bookkeeping.ledgerentry",
            ),
        ),
        migrations.CreateModel(
            name="PaymentScheduleInstallment",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "organization_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="UUID of the organization that owns this record",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "number",
                    models.PositiveIntegerField(help_text="Position in the schedule (1-based)"),
                ),
                ("due_date", models.DateField()),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2, help_text="Scheduled amount", max_digits=14
                    ),
                ),
                (
                    "amount_paid",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("partial", "Partial"),
                            ("paid", "Paid"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "expense",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="installments",
                        to="bookkeeping.expense",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="installments",
                        to="bookkeeping.sale",
                    ),
                ),
            ],
            options={
                "ordering": ["number"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="installment_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("expense__isnull", True), ("sale__isnull", False)),
                            models.Q(("expense__isnull", False), ("sale__isnull", True)),
                            _connector="OR",
                        ),
                        name="installment_single_parent",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "organization_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="UUID of the organization that owns this record",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("date", models.DateField()),
                ("payment_method", models.CharField(blank=True, default="", max_length=50)),
                ("reference", models.CharField(blank=True, default="", max_length=255)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_by", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "entry",
                    models.OneToOneField(
                        blank=True,
                        help_text="Ledger entry created when the payment went through a bank account",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment",
                        to="bookkeeping.ledgerentry",
                    ),
                ),
                (
                    "expense",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="bookkeeping.expense",
                    ),
                ),
                (
                    "installment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payments",
                        to="bookkeeping.paymentscheduleinstallment",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="bookkeeping.sale",
                    ),
                ),
            ],
            options={
                "ordering": ["-date", "-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="payment_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("expense__isnull", True), ("sale__isnull", False)),
                            models.Q(("expense__isnull", False), ("sale__isnull", True)),
                            _connector="OR",
                        ),
                        name="payment_single_record",
                    ),
                ],
            },
        ),
    ]
