from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


INVOICE_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("sent", "Sent"),
    ("overdue", "Overdue"),
    ("paid", "Paid"),
    ("void", "Void"),
]
BILL_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("open", "Open"),
    ("approved", "Approved"),
    ("paid", "Paid"),
    ("void", "Void"),
]


def _money(default="0.00"):
    return models.DecimalField(decimal_places=2, default=Decimal(default), max_digits=18)


def _tenant_fields():
    return [
        ("is_deleted", models.BooleanField(default=False)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("company", models.ForeignKey(
            on_delete=django.db.models.deletion.CASCADE, to="billing_core.company")),
    ]


def _party_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        *_tenant_fields(),
        ("name", models.CharField(max_length=200)),
        ("code", models.CharField(blank=True, max_length=64, null=True)),
        ("email", models.EmailField(blank=True, max_length=254, null=True)),
        ("phone", models.CharField(blank=True, max_length=32, null=True)),
        ("address", models.CharField(blank=True, max_length=300, null=True)),
        ("city", models.CharField(blank=True, max_length=100, null=True)),
        ("gstin", models.CharField(blank=True, max_length=32, null=True)),
        ("payment_terms_days", models.IntegerField(default=30)),
        ("notes", models.TextField(blank=True, null=True)),
    ]


def _document_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        *_tenant_fields(),
        ("number", models.CharField(max_length=64)),
        ("date", models.DateField()),
        ("due_date", models.DateField(blank=True, null=True)),
        ("subtotal", _money()),
        ("tax", _money()),
        ("total", _money()),
        ("notes", models.TextField(blank=True, null=True)),
        ("created_by", models.ForeignKey(
            blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
            related_name="+", to=settings.AUTH_USER_MODEL)),
        ("updated_by", models.ForeignKey(
            blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
            related_name="+", to=settings.AUTH_USER_MODEL)),
    ]


def _line_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("position", models.PositiveIntegerField(default=0)),
        ("description", models.TextField(blank=True, default="")),
        ("quantity", models.DecimalField(decimal_places=4, default=Decimal("1"), max_digits=14)),
        ("unit_price", models.DecimalField(decimal_places=4, default=Decimal("0.00"), max_digits=18)),
        ("tax_pct", models.DecimalField(decimal_places=3, default=Decimal("0.00"), max_digits=7)),
        ("net_amount", _money()),
        ("tax_amount", _money()),
        ("line_total", _money()),
        ("company", models.ForeignKey(
            on_delete=django.db.models.deletion.CASCADE, to="billing_core.company")),
        ("product", models.ForeignKey(
            blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
            related_name="+", to="billing_core.product")),
    ]


def _non_negative_line(name):
    return models.CheckConstraint(
        condition=models.Q(quantity__gte=0)
        & models.Q(unit_price__gte=0)
        & models.Q(tax_pct__gte=0),
        name=name,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("currency_code", models.CharField(default="INR", max_length=10)),
                ("is_deleted", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"verbose_name_plural": "companies"},
        ),
        migrations.CreateModel(
            name="EntityMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(
                    choices=[("owner", "Owner"), ("admin", "Admin"),
                             ("accountant", "Accountant"), ("viewer", "Viewer")],
                    default="viewer", max_length=20)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="memberships", to="billing_core.company")),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="memberships", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["company", "user"], name="membership_company_user_idx")],
                "constraints": [models.UniqueConstraint(
                    fields=("user", "company"), name="uq_user_company_membership")],
            },
        ),
        migrations.CreateModel(
            name="Counter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=40)),
                ("seq", models.PositiveIntegerField(default=0)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, to="billing_core.company")),
            ],
            options={
                "constraints": [models.UniqueConstraint(
                    fields=("company", "key"), name="uq_counter_company_key")],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    to="billing_core.company")),
                ("user", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "user"], name="audit_company_user_idx"),
                    models.Index(fields=["company", "created_at"], name="audit_company_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=_party_fields(),
            options={
                "indexes": [
                    models.Index(fields=["company", "name"], name="customer_company_name_idx"),
                    models.Index(fields=["company", "code"], name="customer_company_code_idx"),
                ],
                "constraints": [models.UniqueConstraint(
                    condition=models.Q(is_deleted=False),
                    fields=("company", "name"), name="uq_company_customer_name")],
            },
        ),
        migrations.CreateModel(
            name="Vendor",
            fields=_party_fields(),
            options={
                "indexes": [
                    models.Index(fields=["company", "name"], name="vendor_company_name_idx"),
                    models.Index(fields=["company", "code"], name="vendor_company_code_idx"),
                ],
                "constraints": [models.UniqueConstraint(
                    condition=models.Q(is_deleted=False),
                    fields=("company", "name"), name="uq_company_vendor_name")],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *_tenant_fields(),
                ("code", models.CharField(max_length=64)),
                ("name", models.CharField(max_length=200)),
                ("sku", models.CharField(blank=True, max_length=80, null=True)),
                ("unit", models.CharField(default="unit", max_length=20)),
                ("unit_price", models.DecimalField(decimal_places=4, default=Decimal("0.00"), max_digits=18)),
                ("tax_pct", models.DecimalField(decimal_places=3, default=Decimal("0.00"), max_digits=7)),
                ("description", models.TextField(blank=True, default="")),
                ("active", models.BooleanField(default=True)),
            ],
            options={
                "indexes": [models.Index(fields=["company", "name"], name="product_company_name_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "code"), name="uq_company_product_code"),
                    models.CheckConstraint(
                        condition=models.Q(unit_price__gte=0) & models.Q(tax_pct__gte=0),
                        name="product_non_negative_amounts"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                *_document_fields(),
                ("customer_name", models.CharField(blank=True, default="", max_length=200)),
                ("status", models.CharField(
                    choices=INVOICE_STATUS_CHOICES, default="sent", max_length=10)),
                ("amount_paid", _money()),
                ("outstanding_amount", _money()),
                ("customer", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="invoices", to="billing_core.customer")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "number"], name="invoice_company_number_idx"),
                    models.Index(fields=["company", "customer"], name="invoice_company_customer_idx"),
                    models.Index(fields=["company", "status"], name="invoice_company_status_idx"),
                    models.Index(fields=["company", "due_date"], name="invoice_company_due_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "number"), name="uq_invoice_company_number"),
                    models.CheckConstraint(
                        condition=models.Q(total__gte=0), name="inv_non_negative_total"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceLine",
            fields=[
                *_line_fields(),
                ("invoice", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="lines", to="billing_core.invoice")),
            ],
            options={
                "ordering": ["position", "id"],
                "abstract": False,
                "indexes": [models.Index(fields=["company", "invoice"], name="invline_company_invoice_idx")],
                "constraints": [_non_negative_line("invl_non_negative_amounts")],
            },
        ),
        migrations.CreateModel(
            name="Bill",
            fields=[
                *_document_fields(),
                ("vendor_name", models.CharField(blank=True, default="", max_length=200)),
                ("status", models.CharField(
                    choices=BILL_STATUS_CHOICES, default="open", max_length=20)),
                ("vendor", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="bills", to="billing_core.vendor")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "number"], name="bill_company_number_idx"),
                    models.Index(fields=["company", "vendor"], name="bill_company_vendor_idx"),
                    models.Index(fields=["company", "due_date"], name="bill_company_due_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "number"), name="uq_bill_company_number"),
                    models.CheckConstraint(
                        condition=models.Q(total__gte=0), name="bill_non_negative_total"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BillLine",
            fields=[
                *_line_fields(),
                ("bill", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="lines", to="billing_core.bill")),
            ],
            options={
                "ordering": ["position", "id"],
                "abstract": False,
                "indexes": [models.Index(fields=["company", "bill"], name="billline_company_bill_idx")],
                "constraints": [_non_negative_line("bl_non_negative_amounts")],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *_tenant_fields(),
                ("reference", models.CharField(max_length=64)),
                ("customer_name", models.CharField(blank=True, default="", max_length=200)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("date", models.DateField()),
                ("method", models.CharField(blank=True, default="UPI", max_length=40)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL)),
                ("invoice", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="payments", to="billing_core.invoice")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "invoice"], name="payment_company_invoice_idx"),
                    models.Index(fields=["company", "date"], name="payment_company_date_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "reference"), name="uq_payment_company_reference"),
                    models.CheckConstraint(
                        condition=models.Q(amount__gt=0), name="payment_positive_amount"),
                ],
            },
        ),
    ]
