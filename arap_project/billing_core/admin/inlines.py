from django.contrib import admin

from billing_core.models import BillLine, InvoiceLine, Payment

from .mixins import TenantAdminMixin

# ---------- Helpful inline admin classes ----------


class InvoiceLineInline(TenantAdminMixin, admin.TabularInline):
    """Shows invoice lines under an Invoice page"""

    model = InvoiceLine
    # users don't need to set `company` manually
    exclude = ("company",)
    extra = 0
    fields = (
        "position", "product", "description", "quantity",
        "unit_price", "tax_pct", "net_amount", "tax_amount", "line_total")
    # amounts are computed automatically, so they're read-only
    readonly_fields = ("net_amount", "tax_amount", "line_total")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("product")


class BillLineInline(TenantAdminMixin, admin.TabularInline):
    """Shows bill lines under a Bill page"""

    model = BillLine
    exclude = ("company",)
    extra = 0
    fields = (
        "position", "product", "description", "quantity",
        "unit_price", "tax_pct", "net_amount", "tax_amount", "line_total")
    readonly_fields = ("net_amount", "tax_amount", "line_total")  # not editable

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("product")


class PaymentInline(TenantAdminMixin, admin.TabularInline):
    """Payments received against the invoice (read-only here)."""

    model = Payment
    fk_name = "invoice"
    extra = 0
    fields = ("reference", "date", "amount", "method", "is_deleted")
    readonly_fields = fields
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False
