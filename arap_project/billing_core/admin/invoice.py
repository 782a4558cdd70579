from django.contrib import admin
from django.db.models import Q, Sum
from django.utils import timezone

from billing_core.models import Customer, Invoice, Payment

from ..services.invoices import delete_invoice
from ..services.normalize import days_between
from ..services.payments import recompute_invoice_status
from .actions import mark_inv_as_sent, mark_inv_as_void, refresh_overdue_flags
from .inlines import InvoiceLineInline, PaymentInline
from .mixins import DocumentAdminMixin, TenantAdminMixin

OPEN_STATUSES = ("sent", "overdue")


@admin.register(Invoice)
class InvoiceAdmin(DocumentAdminMixin, admin.ModelAdmin):
    list_display = (
        "number",
        "company",
        "customer_name",
        "date",
        "due_date",
        "status",
        "total",
        "outstanding_amount",
        "days_past_due",
    )
    list_filter = ("company", "status", "due_date")
    list_select_related = ("company", "customer")
    actions = [mark_inv_as_sent, mark_inv_as_void, refresh_overdue_flags]
    search_fields = ("number", "customer_name", "customer__name", "customer__email")
    date_hierarchy = "date"
    # derived from lines and payments
    readonly_fields = (
        "customer_name", "subtotal", "tax", "total", "amount_paid",
        "outstanding_amount", "created_by", "updated_by")
    inlines = [InvoiceLineInline, PaymentInline]
    delete_document = staticmethod(delete_invoice)

    def get_queryset(self, request):
        return super().get_queryset(request).prefetch_related("lines__product")

    @admin.display(description="Days past due")
    def days_past_due(self, obj):
        if obj.status not in OPEN_STATUSES or obj.due_date is None:
            return ""
        days = days_between(obj.due_date, timezone.localdate())
        return days if days > 0 else ""

    def save_related(self, request, form, formsets, change):
        # line edits change the total, so the paid/sent status may move too
        super().save_related(request, form, formsets, change)
        invoice = form.instance
        if invoice.status != "void":
            recompute_invoice_status(invoice.company, invoice.pk)


@admin.register(Payment)
class PaymentAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "reference", "company", "invoice", "customer_name",
        "date", "amount", "method")
    list_filter = ("company", "method", "date")
    list_select_related = ("company", "invoice")
    search_fields = ("reference", "customer_name", "invoice__number")
    readonly_fields = ("customer_name", "created_at")
    date_hierarchy = "date"

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        field = super().formfield_for_foreignkey(db_field, request, **kwargs)
        if db_field.name == "invoice":
            # void invoices cannot take payments
            field.queryset = field.queryset.exclude(status="void")
        return field


@admin.register(Customer)
class CustomerAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "name", "company", "code", "email", "phone",
        "payment_terms_days", "open_balance")
    search_fields = ("name", "code", "email", "gstin")
    list_filter = ("company",)

    def get_queryset(self, request):
        qs = super().get_queryset(request).select_related("company")
        return qs.annotate(_open_balance=Sum(
            "invoices__outstanding_amount",
            filter=Q(invoices__status__in=OPEN_STATUSES, invoices__is_deleted=False),
        ))

    @admin.display(description="Open balance", ordering="_open_balance")
    def open_balance(self, obj):
        return obj._open_balance or 0
