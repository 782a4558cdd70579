from django.contrib import admin
from django.db.models import Count, Q, Sum
from django.utils import timezone

from billing_core.models import Bill, Vendor

from ..services.bills import delete_bill
from .actions import mark_bill_as_approved, mark_bill_as_paid
from .inlines import BillLineInline
from .mixins import DocumentAdminMixin, TenantAdminMixin

AP_OPEN_STATUSES = ("open", "approved")


class DueStateFilter(admin.SimpleListFilter):
    """Open bills split by whether their due date has passed."""

    title = "due state"
    parameter_name = "due"

    def lookups(self, request, model_admin):
        return (("overdue", "Past due"), ("upcoming", "Due today or later"))

    def queryset(self, request, queryset):
        today = timezone.localdate()
        open_bills = queryset.filter(status__in=AP_OPEN_STATUSES)
        if self.value() == "overdue":
            return open_bills.filter(due_date__lt=today)
        if self.value() == "upcoming":
            return open_bills.filter(due_date__gte=today)
        return queryset


@admin.register(Bill)
class BillAdmin(DocumentAdminMixin, admin.ModelAdmin):
    list_display = (
        "number", "company", "vendor_name", "date", "due_date", "status", "total")
    list_filter = ("company", "status", DueStateFilter)
    list_select_related = ("company", "vendor")
    actions = [mark_bill_as_approved, mark_bill_as_paid]
    search_fields = ("number", "vendor_name", "vendor__name")
    readonly_fields = (
        "vendor_name", "subtotal", "tax", "total", "created_by", "updated_by")
    inlines = [BillLineInline]
    delete_document = staticmethod(delete_bill)
    ordering = ("due_date", "id")


@admin.register(Vendor)
class VendorAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "name", "company", "code", "email", "payment_terms_days",
        "open_bills", "open_total")
    search_fields = ("name", "code", "email", "gstin")
    list_filter = ("company",)

    def get_queryset(self, request):
        live_open = Q(bills__status__in=AP_OPEN_STATUSES, bills__is_deleted=False)
        return (
            super().get_queryset(request)
            .select_related("company")
            .annotate(
                _open_bills=Count("bills", filter=live_open),
                _open_total=Sum("bills__total", filter=live_open),
            )
        )

    @admin.display(description="Open bills", ordering="_open_bills")
    def open_bills(self, obj):
        return obj._open_bills

    @admin.display(description="Open total", ordering="_open_total")
    def open_total(self, obj):
        return obj._open_total or 0
